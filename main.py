#!/usr/bin/env python3
"""Pomotide entry point.

Run with:
    python main.py
    python -m pomotide
"""

from pomotide.__main__ import main


if __name__ == "__main__":
    main()
