"""Entry point for `python -m kubedoctor`.

Usage:
    python -m kubedoctor diagnose cluster-state.json
    uv run python -m kubedoctor detect cluster-state.json
"""

from __future__ import annotations

from kubedoctor.cli.main import cli

cli()
