import argparse
import sys
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme
from rich_argparse import RichHelpFormatter
from wdasign.arguments import (
    add_build_arguments,
    add_config_argument,
    add_sign_arguments,
)
from wdasign.src.constants.cli_constants import (
    __version__,
    get_banner_text,
    APP_DESCRIPTION,
)


class WdaSignHelpFormatter(RichHelpFormatter):
    """Rich help output with a wider option column."""

    def __init__(self, prog):
        super().__init__(prog, max_help_position=30, width=100)


def display_banner():
    """Display a stylish banner for wdasign."""
    console = Console(theme=Theme({"version": "blue"}))
    banner = get_banner_text()

    version_info = Text(f"v{__version__}", style="version")
    tagline = Text(APP_DESCRIPTION, style="italic")

    panel = Panel.fit(
        Text.assemble(banner, "\n", tagline, "\n", version_info),
        border_style="green",
        padding=(1, 2),
    )
    console.print(panel)


def create_parser():
    parser = argparse.ArgumentParser(
        prog="wdasign",
        description=f"wdasign: {APP_DESCRIPTION}",
        formatter_class=WdaSignHelpFormatter,
        add_help=True,
    )

    parser.add_argument(
        "--version", action="version", version=f"wdasign {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command")

    # Serve command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the MCP server on stdio",
        formatter_class=WdaSignHelpFormatter,
        description="Expose profile listing and WebDriverAgent build-and-sign as MCP tools over stdio.",
    )
    add_config_argument(serve_parser)

    # Profiles command
    profiles_parser = subparsers.add_parser(
        "profiles",
        help="List installed provisioning profiles",
        formatter_class=WdaSignHelpFormatter,
        description="List the provisioning profiles Xcode has installed on this machine.",
    )
    add_config_argument(profiles_parser)

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Build and sign WebDriverAgent",
        formatter_class=WdaSignHelpFormatter,
        description="Build WebDriverAgent, package it as an IPA and re-sign it with a provisioning profile.",
    )
    add_build_arguments(build_parser)

    # Sign command
    sign_parser = subparsers.add_parser(
        "sign",
        help="Re-sign an existing IPA",
        formatter_class=WdaSignHelpFormatter,
        description="Re-sign an already packaged IPA with a provisioning profile.",
    )
    add_sign_arguments(sign_parser)

    return parser


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv

    # Display the banner before the help text
    if not argv or "-h" in argv or "--help" in argv:
        display_banner()

    load_dotenv()
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command == "serve":
        from wdasign.commands.serve import run_serve_command

        return run_serve_command(args)
    elif args.command == "profiles":
        from wdasign.commands.profiles import run_profiles_command

        return run_profiles_command(args)
    elif args.command == "build":
        from wdasign.commands.build import run_build_command

        return run_build_command(args)
    elif args.command == "sign":
        from wdasign.commands.sign import run_sign_command

        return run_sign_command(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
