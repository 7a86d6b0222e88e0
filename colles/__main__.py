"""
Package entry point.

Allows running the application via:

    python -m colles

This simply forwards execution to colles.cli.main().
"""

from colles.cli import main

if __name__ == "__main__":
    main()
