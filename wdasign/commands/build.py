import sys

from wdasign.arguments import create_signer_options
from wdasign.logger import get_console
from wdasign.src.core.pipeline import BuildSignPipeline
from wdasign.src.core.signer import ApplesignEngine, Signer
from wdasign.src.errors import WdaSignError
from wdasign.src.ipa.provisioning_profile_locator import resolve_profile
from wdasign.src.utils.config_loader import load_settings


def print_build_summary(console, args, profile) -> None:
    """Print the configuration summary."""
    console.print("\n[bold blue]Build Configuration:[/]")
    console.print(f"[cyan]Profile:[/] {profile.display_name}")
    console.print(f"[cyan]Profile file:[/] {profile.file_path}")
    console.print(
        f"[cyan]Account type:[/] {'free' if args.free_account else 'enterprise'}"
    )
    if args.project:
        console.print(f"[cyan]Project:[/] {args.project}")


def run_build_command(args) -> int:
    """Entry point for the build command from CLI"""
    console = get_console()

    try:
        settings = load_settings(args.config)
        profile = resolve_profile(args.profile)
        print_build_summary(console, args, profile)

        signer = Signer(
            engine=ApplesignEngine(
                command=settings.sign_command, timeout=settings.sign_timeout
            ),
            options=create_signer_options(args),
        )
        pipeline = BuildSignPipeline(settings, signer=signer)

        result = pipeline.run(
            profile,
            args.free_account,
            bundle_id=args.bundle_id,
            project_path=args.project,
            output_path=args.output,
        )
    except (WdaSignError, ValueError) as e:
        console.print(f"\n[red]Error:[/] {e}")
        return 1

    console.print(
        f"\n[bold green]WebDriverAgent successfully built and signed:[/] {result.resigned_ipa_path}"
    )
    return 0


# For direct script execution - route through the CLI
if __name__ == "__main__":
    from wdasign.cli import main as cli_main

    sys.exit(cli_main())
