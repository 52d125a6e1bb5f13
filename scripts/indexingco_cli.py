#!/usr/bin/env python3
"""Run ``indexingco`` from a source checkout without installing it."""

import os
import sys
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def local_interpreter() -> Optional[Path]:
    """Interpreter of the checkout's ``.venv``, unless it is the one running now."""
    venv = PROJECT_ROOT / ".venv"
    if os.environ.get("VIRTUAL_ENV") == str(venv):
        return None
    for candidate in (venv / "bin" / "python", venv / "Scripts" / "python.exe"):
        if candidate.exists() and Path(sys.executable) != candidate:
            return candidate
    return None


def bootstrap(argv: List[str]) -> None:
    interpreter = local_interpreter()
    if interpreter is not None:
        os.execv(str(interpreter), [str(interpreter), *argv])
    if str(PROJECT_ROOT) not in sys.path:
        sys.path.insert(0, str(PROJECT_ROOT))


if __name__ == "__main__":
    bootstrap(sys.argv)
    from indexingco.cli.main import run_cli

    sys.exit(run_cli(sys.argv[1:]))
