"""
Entry point: mesh statistics and plane slicing of an STL file.

Usage:
    python main.py <stl_file> [--axis {x,y,z}] [--layer-height H | --slices N]
                   [--output-dir DIR]
"""

import sys

from stl_facets.cli import main

if __name__ == "__main__":
    sys.exit(main())
