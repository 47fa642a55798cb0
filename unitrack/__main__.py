"""
Package entry point.

Allows running the application via:

    python -m unitrack

This simply forwards execution to unitrack.cli.main().
"""

from unitrack.cli import main

if __name__ == "__main__":
    main()
