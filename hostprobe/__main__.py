"""
Main entry point for hostprobe, used by `python -m hostprobe`.
"""
import sys

from hostprobe.app import main

if __name__ == "__main__":
    sys.exit(main())
