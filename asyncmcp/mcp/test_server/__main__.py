"""Entry point for running the test server as a module.

Usage:
    python -m asyncmcp.mcp.test_server
"""

from asyncmcp.mcp.test_server.server import main

if __name__ == "__main__":
    main()
