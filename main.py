#!/usr/bin/env python3
"""
tau - Main entry point.

Runs the command line interface.
"""

import sys

from tau.main import main


if __name__ == "__main__":
    sys.exit(main())
