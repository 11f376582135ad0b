"""Completion response parsing.

The backend is asked for three ``###`` sections (root cause, solution,
prevention). Parsing is lenient: a missing section is empty, never an
error, and :func:`build_diagnosis` fills the gaps with defaults.
"""

from __future__ import annotations

import html
import re
from collections.abc import Sequence

from kubedoctor.analyst.fallback import fallback_steps
from kubedoctor.llm.prompts import PREVENTION_HEADER, ROOT_CAUSE_HEADER, SOLUTION_HEADER
from kubedoctor.models.analysis import DiagnosisResult, DiagnosisSource, ParsedResponse
from kubedoctor.models.faults import FaultRecord

UNPARSED_ROOT_CAUSE = "The AI response could not be parsed into a root cause."

_SECTION_MARK = "###"

_RE_HEADER_HINT = re.compile(r"[ \t]*\([^)\n]*\)")
_RE_STEP_SPLIT = re.compile(r"(?=\n\d+\.\s)")
_RE_LEADING_NUMBER = re.compile(r"^\d+\.\s*")
_RE_SHELL_FENCE = re.compile(r"```(?:bash|sh|shell|console)[ \t]*\n(.*?)```", re.DOTALL)
_RE_CONFIG_FENCE = re.compile(r"```[\w-]*[ \t]*\n(.*?)```", re.DOTALL)
_RE_COMMAND = re.compile(r"\b((?:kubectl|docker|helm)[ \t]+[^\n`<]+)")
_RE_BULLET = re.compile(r"^[-*]\s*")


def strip_markdown(text: str) -> str:
    """Remove bold/underline markers and backticks, then trim."""
    return text.replace("**", "").replace("__", "").replace("`", "").strip()


def _section(text: str, header: str) -> str:
    start = text.find(header)
    if start == -1:
        return ""
    start += len(header)
    hint = _RE_HEADER_HINT.match(text, start)
    if hint:
        start = hint.end()
    end = text.find(_SECTION_MARK, start)
    if end == -1:
        end = len(text)
    return text[start:end].strip()


# ---------------------------------------------------------------------------
# Step markup
# ---------------------------------------------------------------------------


def _config_line(line: str) -> str:
    escaped = html.escape(line, quote=False)
    stripped = line.strip()
    if not stripped:
        return escaped
    if "unchanged" in stripped.lower():
        return f'<span class="config-unchanged">{escaped}</span>'
    if not stripped.startswith("#") and "#" in stripped:
        return f'<span class="config-changed">{escaped}</span>'
    return escaped


def _config_block(body: str) -> str:
    lines = body.rstrip("\n").split("\n")
    rendered = "\n".join(_config_line(line) for line in lines)
    return f'\n<pre class="config-block"><code>{rendered}</code></pre>\n'


def _command_block(match: re.Match[str]) -> str:
    command = match.group(1).strip().rstrip(".,;:")
    return f'\n<pre class="command-block"><code>{html.escape(command, quote=False)}</code></pre>\n'


def _mark_commands(text: str) -> str:
    return _RE_COMMAND.sub(_command_block, text)


def render_step(text: str) -> str:
    """Convert fenced config and CLI commands in one step to markup.

    Shell fences are unwrapped so their commands get command markup; any
    other fence becomes a config block. Commands inside config blocks
    are left alone.
    """
    text = _RE_SHELL_FENCE.sub(lambda m: m.group(1), text)
    parts: list[str] = []
    pos = 0
    for match in _RE_CONFIG_FENCE.finditer(text):
        parts.append(_mark_commands(text[pos : match.start()]))
        parts.append(_config_block(match.group(1)))
        pos = match.end()
    parts.append(_mark_commands(text[pos:]))
    return strip_markdown("".join(parts))


def parse_steps(solution: str) -> list[str]:
    """Split a solution section into rendered, number-free steps."""
    steps: list[str] = []
    for part in _RE_STEP_SPLIT.split(solution):
        chunk = _RE_LEADING_NUMBER.sub("", part.strip(), count=1)
        if not chunk:
            continue
        rendered = render_step(chunk)
        if rendered:
            steps.append(rendered)
    return steps


def parse_preventions(section: str) -> list[str]:
    items: list[str] = []
    for line in section.splitlines():
        stripped = line.strip()
        if not stripped.startswith(("-", "*")):
            continue
        item = strip_markdown(_RE_BULLET.sub("", stripped, count=1))
        if item:
            items.append(item)
    return items


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def parse_response(text: str | None) -> ParsedResponse:
    """Extract root cause, steps and preventions from *text*. Never raises."""
    text = text or ""
    return ParsedResponse(
        root_cause=strip_markdown(_section(text, ROOT_CAUSE_HEADER)),
        steps=parse_steps(_section(text, SOLUTION_HEADER)),
        preventions=parse_preventions(_section(text, PREVENTION_HEADER)),
    )


def build_diagnosis(
    primary: FaultRecord,
    related: Sequence[FaultRecord],
    text: str,
) -> DiagnosisResult:
    """Turn a completion response into a DiagnosisResult, applying defaults.

    An empty root cause becomes :data:`UNPARSED_ROOT_CAUSE`; an empty
    step list becomes the built-in steps for the fault kind.
    """
    parsed = parse_response(text)
    return DiagnosisResult(
        primary=primary,
        related=list(related),
        root_cause=parsed.root_cause or UNPARSED_ROOT_CAUSE,
        diagnosis=text,
        steps=parsed.steps or fallback_steps(primary),
        preventions=parsed.preventions,
        source=DiagnosisSource.LLM,
    )
