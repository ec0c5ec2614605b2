"""Validator CLI entry point.

This module enables running the validator as:
    python -m openreferral_validator <command>
"""

from openreferral_validator.cli import main

if __name__ == "__main__":
    main()
