"""
Main entry point for running the package as a module.

Usage:
    python -m thumbfilter check --item item.json --source figure1.tif
    python -m thumbfilter generate --item item.json --input figure1.tif
    python -m thumbfilter info
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
