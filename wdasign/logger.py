from rich.console import Console
from functools import lru_cache


@lru_cache(maxsize=1)
def get_console() -> Console:
    """Get or create the shared Console instance.

    Writes to stderr: stdout carries the MCP stdio transport.
    """
    return Console(stderr=True)
