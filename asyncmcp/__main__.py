"""Entry point for ``python -m asyncmcp``."""

from asyncmcp.cli import main

if __name__ == "__main__":
    main()
