#!/usr/bin/env python3
"""
Run tubesafe from a source checkout without installing it.

    ./tubesafe.py search "counting songs" --mode strict
"""

import sys
from pathlib import Path

SRC_PATH = Path(__file__).resolve().parent / "src"


def run_cli():
    sys.path.insert(0, str(SRC_PATH))

    from main import main

    main(sys.argv[1:])


if __name__ == "__main__":
    run_cli()
