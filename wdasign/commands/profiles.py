import sys
from typing import List

from rich.table import Table

from wdasign.logger import get_console
from wdasign.src.errors import WdaSignError
from wdasign.src.ipa.provisioning_profile_locator import (
    ProvisioningProfile,
    get_provisioning_profile_dir,
    list_profiles,
)
from wdasign.src.utils.config_loader import load_settings


def print_profiles_table(console, profiles: List[ProvisioningProfile]) -> None:
    """Print profiles as a table"""
    table = Table(title="Provisioning Profiles")
    table.add_column("UUID")
    table.add_column("Name")
    table.add_column("Team")
    table.add_column("Bundle ID")
    table.add_column("File")

    for profile in profiles:
        table.add_row(
            profile.uuid,
            profile.name,
            profile.team_name,
            profile.bundle_id or "-",
            profile.file_path.name,
        )

    console.print(table)


def run_profiles_command(args) -> int:
    """Entry point for the profiles command from CLI"""
    console = get_console()

    try:
        settings = load_settings(args.config)
        profiles_dir = get_provisioning_profile_dir(settings.profiles_dir)
        profiles = list_profiles(profiles_dir)
    except (WdaSignError, ValueError) as e:
        console.print(f"[red]Error:[/] {e}")
        return 1

    print_profiles_table(console, profiles)
    return 0


# For direct script execution - route through the CLI
if __name__ == "__main__":
    from wdasign.cli import main as cli_main

    sys.exit(cli_main())
