"""
Entry point for running comfyfetch as a module.

Usage:
    python -m comfyfetch <command> [options]
"""

from .cli import main

if __name__ == "__main__":
    main()
