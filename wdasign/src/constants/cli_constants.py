from rich.text import Text

__version__ = "0.1.0"

APP_NAME = "wdasign"
APP_DESCRIPTION = "Build and re-sign WebDriverAgent for real iOS devices"

SERVER_NAME = "wda-mcp-server"


def get_banner_text() -> Text:
    """Return the styled banner shown above the help text."""
    banner = Text()
    banner.append("wda", style="bold cyan")
    banner.append("sign", style="bold magenta")
    return banner
