import argparse
from pathlib import Path
from wdasign.src.core.signer import SignerOptions


def add_config_argument(parser):
    """Add the shared --config option."""
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to the config file [default: ~/.wdasign/config.toml]",
    )


def add_profile_arguments(parser):
    """Add profile and account arguments shared by build and sign."""
    parser.add_argument(
        "--profile",
        "-p",
        type=Path,
        required=True,
        help="Path to the .mobileprovision file to sign with",
    )

    parser.add_argument(
        "--free-account",
        action="store_true",
        help="The profile belongs to a free Apple account, so the bundle ID is overridden [default: disabled]",
    )

    parser.add_argument(
        "--bundle-id",
        "-b",
        type=str,
        help="Bundle ID to sign with on a free account (required with --free-account)",
    )

    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Path of the re-signed IPA [default: Payload-resigned.ipa next to the build products]",
    )


def add_signer_arguments(parser):
    """Add the pass-through signing engine flags worth exposing on the command line."""
    parser.add_argument(
        "--identity",
        "-i",
        type=str,
        help="Hash of the codesign identity to use [default: picked by applesign]",
    )

    parser.add_argument(
        "--keychain",
        "-k",
        type=str,
        help="Custom keychain file [default: login keychain]",
    )

    parser.add_argument(
        "--verify",
        action="store_true",
        help="Verify all the signed files at the end [default: disabled]",
    )

    parser.add_argument(
        "--keep-plugins",
        action="store_false",
        dest="without_plugins",
        help="Keep plugins in the re-signed IPA [default: removed]",
    )

    parser.add_argument(
        "--without-get-task-allow",
        action="store_false",
        dest="with_get_task_allow",
        help="Do not set the get-task-allow entitlement [default: set]",
    )


def add_build_arguments(parser):
    """Add all build-and-sign arguments to an existing parser."""
    add_config_argument(parser)
    add_profile_arguments(parser)
    add_signer_arguments(parser)

    parser.add_argument(
        "--project",
        type=Path,
        help="WebDriverAgent project directory [default: search the Appium install]",
    )


def add_sign_arguments(parser):
    """Add all arguments for re-signing an existing IPA."""
    parser.add_argument("ipa_path", type=Path, help="Path to the IPA file to sign")
    add_config_argument(parser)
    add_profile_arguments(parser)
    add_signer_arguments(parser)


def create_signer_options(args) -> SignerOptions:
    """Convert parsed arguments to SignerOptions"""
    return SignerOptions(
        identity=args.identity,
        keychain=args.keychain,
        verify=args.verify,
        without_plugins=args.without_plugins,
        with_get_task_allow=args.with_get_task_allow,
    )
