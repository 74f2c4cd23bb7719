import sys

from wdasign.logger import get_console
from wdasign.src.server.session import ToolSession
from wdasign.src.server.tool_server import serve
from wdasign.src.utils.config_loader import load_settings


def run_serve_command(args) -> int:
    """Entry point for the serve command from CLI.

    Returns 0 when interrupted, 1 when the server cannot start.
    """
    console = get_console()

    try:
        settings = load_settings(args.config)
        session = ToolSession(settings)
    except Exception as e:
        console.print(f"[red]Fatal error starting server:[/] {e}")
        return 1

    try:
        serve(session)
    except KeyboardInterrupt:
        console.log("[yellow]Interrupted, shutting down[/]")
        return 0
    except Exception as e:
        console.print(f"[red]Fatal error running server:[/] {e}")
        return 1
    return 0


# For direct script execution - route through the CLI
if __name__ == "__main__":
    from wdasign.cli import main as cli_main

    sys.exit(cli_main())
