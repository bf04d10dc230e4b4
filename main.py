#!/usr/bin/env python3
"""
CapGen Entry Point Script

This script initializes the CLI handler and runs subtitle generation.
"""

import sys
from capgen.cli import CLIHandler

if __name__ == "__main__":
    if sys.version_info < (3, 9):
        sys.stderr.write("CapGen requires Python 3.9 or later.\n")
        sys.exit(1)

    cli = CLIHandler()
    cli.run()
