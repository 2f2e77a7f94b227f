"""
Allow running lamcheck as a module: ``python -m lamcheck``.

This delegates to the CLI entry point so that both
``lamcheck`` (console script) and ``python -m lamcheck``
behave identically.
"""

from lamcheck.cli import main

if __name__ == "__main__":
    main()
