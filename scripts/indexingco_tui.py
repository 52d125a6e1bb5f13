#!/usr/bin/env python3
"""Launch the Indexing Co dashboard (same as `indexingco tui`)."""

import sys

from indexingco_cli import bootstrap

if __name__ == "__main__":
    bootstrap(sys.argv)
    from indexingco.cli.main import run_cli

    sys.exit(run_cli(["tui", *sys.argv[1:]]))
