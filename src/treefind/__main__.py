"""CLI entry-point for treefind.

Usage:
    python -m treefind <root> [--type f|d|s] [--size [+-]N[KMG]]
                              [--name GLOB | --iname GLOB | --regex RE] [--depth N]
"""

import sys

from .cli import main


if __name__ == "__main__":
    sys.exit(main())
