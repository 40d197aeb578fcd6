"""Entry point for running refkind as a module.

This module allows refkind to be run as a Python module using the -m flag:
    python -m refkind

It serves as the main entry point for the refkind command-line interface.
"""

from . import cli

if __name__ == "__main__":
    cli._main()
