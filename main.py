"""Command-line Entry Point - Root Module.

This is the root-level entry point for running from a checkout.
It imports from the winlink_intake package.
"""

import sys

from winlink_intake.main import main

__all__ = [
    "main",
]

if __name__ == "__main__":
    sys.exit(main())
