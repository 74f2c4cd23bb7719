import sys
from pathlib import Path

from wdasign.arguments import create_signer_options
from wdasign.logger import get_console
from wdasign.src.core.signer import (
    ApplesignEngine,
    Signer,
    SigningRequest,
    console_event_sink,
)
from wdasign.src.errors import WdaSignError
from wdasign.src.ipa.provisioning_profile_locator import resolve_profile
from wdasign.src.utils.config_loader import load_settings


def verify_ipa_exists(ipa_path: Path, console) -> bool:
    """Verify IPA file exists and return status."""
    if not ipa_path.is_file():
        console.print(f"[red]Error:[/] IPA file not found: {ipa_path}")
        return False
    return True


def default_output_path(ipa_path: Path) -> Path:
    return ipa_path.with_name(f"{ipa_path.stem}-resigned.ipa")


def run_sign_command(args) -> int:
    """Entry point for the sign command from CLI"""
    console = get_console()

    if not verify_ipa_exists(args.ipa_path, console):
        return 1

    try:
        settings = load_settings(args.config)
        profile = resolve_profile(args.profile)

        request = SigningRequest.create(
            ipa_path=args.ipa_path,
            mobileprovision=profile.file_path,
            output_path=args.output or default_output_path(args.ipa_path),
            is_free_account=args.free_account,
            bundle_id=args.bundle_id,
        )
        signer = Signer(
            engine=ApplesignEngine(
                command=settings.sign_command, timeout=settings.sign_timeout
            ),
            options=create_signer_options(args),
        )
        signer.sign(request, console_event_sink)
    except (WdaSignError, ValueError) as e:
        console.print(f"\n[red]Error during signing:[/] {e}")
        return 1

    return 0


# For direct script execution - route through the CLI
if __name__ == "__main__":
    from wdasign.cli import main as cli_main

    sys.exit(cli_main())
