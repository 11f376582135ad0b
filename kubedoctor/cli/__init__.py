"""kubedoctor command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``kubedoctor`` script).
"""

from kubedoctor.cli.main import cli

__all__ = ["cli"]
