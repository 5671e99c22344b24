"""
Main entry point for running the package as a module.

Usage:
    python -m scaler serve --port 8080
    python -m scaler scale <id>/<size> -o thumb.jpg
    python -m scaler check-config
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
