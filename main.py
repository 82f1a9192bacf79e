#!/usr/bin/env python3
"""
main.py — Quick-start entry point.

    python main.py generate -d depth.png -b background.jpg -o output.png
    python main.py palette photo.jpg --size 16

Or use the module directly:

    python -m autostereo.cli generate --help
"""

from autostereo.cli import app

if __name__ == "__main__":
    app()
