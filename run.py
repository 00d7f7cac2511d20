#!/usr/bin/env python3
"""Convenience runner for the Location Diary client.

Usage:
    python run.py record --lat 35.6812 --lon 139.7671
    python run.py sync
"""
import logging
from location_diary.cli import main

if __name__ == "__main__":
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s %(name)s: %(message)s")
    main()
