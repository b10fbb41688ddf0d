"""
Package entry point.

Allows running: python -m gmaps_leads "Paris, France" "bakery"
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
