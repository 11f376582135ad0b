"""Click commands for offline detection and diagnosis of cluster dumps."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import click

from kubedoctor import __version__
from kubedoctor.analyst.coordinator import DiagnosisCoordinator, collect_faults
from kubedoctor.cli.source import FileContextSource, load_dump
from kubedoctor.config import load_config
from kubedoctor.models.analysis import DiagnosisResult
from kubedoctor.models.config import KubeDoctorConfig
from kubedoctor.observability.logging import setup_logging

_SEVERITY_COLOURS = {"critical": "red", "high": "yellow", "medium": "cyan", "low": "white"}

_DUMP_ARG = click.argument("dump", type=click.Path(exists=True, dir_okay=False, path_type=Path))


def _output_option(default: str):
    return click.option(
        "--output",
        "-o",
        type=click.Choice(["text", "json"]),
        default=default,
        show_default=True,
        help="Output format.",
    )


def _load(dump: Path):
    try:
        return load_dump(dump)
    except (OSError, ValueError) as exc:
        raise click.ClickException(f"Cannot read {dump}: {exc}") from exc


def _print_result(result: DiagnosisResult) -> None:
    fault = result.primary
    severity = str(fault.severity)
    where = f"{fault.namespace}/" if fault.namespace else ""
    click.echo(
        click.style(f"[{severity.upper()}] ", fg=_SEVERITY_COLOURS.get(severity), bold=True)
        + f"{fault.kind.code} {fault.resource_kind} {where}{fault.resource_name}"
    )
    click.echo(f"  Summary:    {fault.summary}")
    click.echo(f"  Root cause: {result.root_cause} ({result.source.value})")
    for i, step in enumerate(result.steps, start=1):
        click.echo(f"  {i}. {step}")
    for item in result.preventions:
        click.echo(f"  - {item}")
    for other in result.related:
        click.echo(f"  related: {other.kind.code}: {other.summary}")
    click.echo("")


@click.group()
@click.version_option(__version__, prog_name="kubedoctor")
@click.option("--log-level", default=None, help="Override KUBEDOCTOR_LOG_LEVEL.")
@click.pass_context
def cli(ctx: click.Context, log_level: str | None) -> None:
    """Detect and diagnose Kubernetes workload faults."""
    try:
        config = load_config()
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    setup_logging(log_level or config.log.level, config.log.format)
    ctx.obj = config


@cli.command()
@_DUMP_ARG
@_output_option("text")
@click.pass_obj
def detect(config: KubeDoctorConfig, dump: Path, output: str) -> None:
    """List the faults found in DUMP without diagnosing them."""
    snapshots, _ = _load(dump)
    faults = collect_faults(snapshots, cluster_id=config.cluster_id)
    if output == "json":
        click.echo(json.dumps([f.to_dict() for f in faults], indent=2, default=str))
        return
    if not faults:
        click.echo("No faults detected.")
    for fault in faults:
        where = f"{fault.namespace}/" if fault.namespace else ""
        click.echo(f"[{str(fault.severity).upper()}] {fault.kind.code} {fault.resource_kind} {where}{fault.resource_name}: {fault.summary}")


@cli.command()
@_DUMP_ARG
@click.option(
    "--logs-dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Directory holding <namespace>/<name>.log files.",
)
@click.option("--cluster-id", default=None, help="Override KUBEDOCTOR_CLUSTER_ID.")
@_output_option("json")
@click.pass_obj
def diagnose(
    config: KubeDoctorConfig,
    dump: Path,
    logs_dir: Path | None,
    cluster_id: str | None,
    output: str,
) -> None:
    """Detect, correlate and diagnose the faults in DUMP."""
    snapshots, events = _load(dump)
    source = FileContextSource(events=events, logs_dir=logs_dir)

    async def _run() -> list[DiagnosisResult]:
        coordinator = DiagnosisCoordinator.from_config(config, context_source=source)
        try:
            return await coordinator.scan(snapshots, cluster_id=cluster_id or config.cluster_id)
        finally:
            await coordinator.aclose()

    results = asyncio.run(_run())
    if output == "json":
        click.echo(json.dumps([r.to_dict() for r in results], indent=2, default=str))
        return
    if not results:
        click.echo("No faults detected.")
    for result in results:
        _print_result(result)
