"""
Entry point for running the territory engine as a module.

Usage:
    python -m territory_engine track.csv [--territories map.json]
"""

from .cli import main

if __name__ == "__main__":
    main()
