import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from wdasign.logger import get_console
from wdasign.src.constants.wda_constants import DEFAULT_SIGN_COMMAND, DEFAULT_SIGN_TIMEOUT
from wdasign.src.errors import SigningError, StageTimeoutError, ValidationError
from wdasign.src.utils.process import command_line, stream_process

# on_event(kind, message) with kind "message" or "warning"
EventCallback = Callable[[str, str], None]


@dataclass
class SignerOptions:
    """Pass-through flags for the signing engine, all inert by default"""

    # Which files get signed
    all: bool = False  # Resign every binary, even unrelated ones
    all_dirs: bool = False  # Archive all directories, not just Payload/
    single: bool = False  # Sign a single file or directory
    parallel: bool = False  # Sign layered dependencies in parallel

    # Entitlements
    entitlement: Optional[str] = None  # Entitlements file to use
    add_entitlements: Optional[str] = None  # Extra entitlements to merge
    clone_entitlements: bool = False  # Copy entitlements from the profile
    massage_entitlements: bool = False  # Strip privileged entitlements
    entry: bool = False  # Use the generic entry entitlement
    no_entitlements_file: bool = False
    with_get_task_allow: bool = True  # Keep get-task-allow so the runner is debuggable

    # Keychain and identity
    identity: Optional[str] = None  # Hash of the codesign identity
    keychain: Optional[str] = None  # Custom keychain file
    custom_keychain_group: Optional[str] = None
    bundle_id_keychain_group: bool = False
    use_openssl: bool = False

    # Bundle contents
    without_plugins: bool = True  # Plugins are not needed by the runner
    without_watchapp: bool = False
    without_xctests: bool = False
    without_signing_files: bool = False
    insert_library: Optional[str] = None  # Dylib to insert into the main binary
    lipo_arch: Optional[str] = None  # Thin binaries to this architecture

    # Info.plist tweaks
    allow_http: bool = False
    force_family: bool = False
    osversion: Optional[str] = None

    # Profiles
    self_signed_provision: bool = False
    device_provision: bool = False
    pseudo_sign: bool = False
    unfair_play: bool = False

    # Process behaviour
    debug: Optional[str] = None  # Write signing details to this JSON file
    json: Optional[str] = None
    noclean: bool = False
    replace_ipa: bool = False
    use_7zip: bool = False
    ignore_zip_errors: bool = False
    verify: bool = False
    verify_twice: bool = False


@dataclass(frozen=True)
class SigningRequest:
    """One signing invocation, built fresh from the tool call"""

    ipa_path: Path
    mobileprovision: Path
    output_path: Path
    bundle_id: Optional[str] = None

    @classmethod
    def create(
        cls,
        ipa_path: Path,
        mobileprovision: Path,
        output_path: Path,
        is_free_account: bool,
        bundle_id: Optional[str] = None,
    ) -> "SigningRequest":
        return cls(
            ipa_path=Path(ipa_path),
            mobileprovision=Path(mobileprovision),
            output_path=Path(output_path),
            bundle_id=bundle_id_override(is_free_account, bundle_id),
        )


def bundle_id_override(is_free_account: bool, bundle_id: Optional[str]) -> Optional[str]:
    """Free accounts must override the bundle id, paid accounts never do"""
    if not is_free_account:
        return None
    override = (bundle_id or "").strip()
    if not override:
        raise ValidationError(
            "A bundle identifier is required when signing with a free account"
        )
    return override


# Boolean option -> flag emitted when the option is set
_BOOL_FLAGS = {
    "all": "--all",
    "all_dirs": "--all-dirs",
    "single": "--single",
    "parallel": "--parallel",
    "clone_entitlements": "--clone-entitlements",
    "massage_entitlements": "--massage-entitlements",
    "entry": "--entry-entitlement",
    "no_entitlements_file": "--no-entitlements-file",
    "bundle_id_keychain_group": "--bundleid-access-group",
    "use_openssl": "--use-openssl",
    "without_plugins": "--without-plugins",
    "without_watchapp": "--without-watchapp",
    "without_xctests": "--without-xctests",
    "without_signing_files": "--without-signing-files",
    "allow_http": "--allow-http",
    "force_family": "--force-family",
    "self_signed_provision": "--self-signed-provision",
    "device_provision": "--device-provision",
    "pseudo_sign": "--pseudo-sign",
    "unfair_play": "--unfair",
    "noclean": "--noclean",
    "replace_ipa": "--replace",
    "use_7zip": "--use-7zip",
    "ignore_zip_errors": "--ignore-zip-errors",
    "verify": "--verify",
    "verify_twice": "--verify-twice",
}

# Valued option -> flag followed by the value
_VALUE_FLAGS = {
    "entitlement": "--entitlements",
    "add_entitlements": "--add-entitlements",
    "identity": "--identity",
    "keychain": "--keychain",
    "custom_keychain_group": "--add-access-group",
    "insert_library": "--insert",
    "lipo_arch": "--lipo",
    "osversion": "--osversion",
    "debug": "--debug",
    "json": "--json",
}


class ApplesignEngine:
    """Runs the applesign command line tool"""

    def __init__(
        self,
        command: str = DEFAULT_SIGN_COMMAND,
        timeout: Optional[float] = DEFAULT_SIGN_TIMEOUT,
        runner: Callable = stream_process,
    ):
        self.command = shlex.split(command)
        self.timeout = timeout
        self.runner = runner

    def build_command(self, request: SigningRequest, options: SignerOptions) -> List[str]:
        cmd = list(self.command)
        cmd.extend(["--mobileprovision", str(request.mobileprovision)])
        cmd.extend(["--output", str(request.output_path)])
        if request.bundle_id:
            cmd.extend(["--bundleid", request.bundle_id])

        for name, flag in _BOOL_FLAGS.items():
            if getattr(options, name):
                cmd.append(flag)
        if not options.with_get_task_allow:
            cmd.append("--without-get-task-allow")
        for name, flag in _VALUE_FLAGS.items():
            value = getattr(options, name)
            if value:
                cmd.extend([flag, str(value)])

        cmd.append(str(request.ipa_path))
        return cmd

    def sign(
        self, request: SigningRequest, options: SignerOptions, on_event: EventCallback
    ) -> None:
        cmd = self.build_command(request, options)
        get_console().log(f"[cyan]Running sign command:[/] {command_line(cmd)}")

        warnings: List[str] = []

        def on_warning(line: str) -> None:
            warnings.append(line)
            on_event("warning", line)

        try:
            returncode = self.runner(
                cmd,
                on_stdout=lambda line: on_event("message", line),
                on_stderr=on_warning,
                timeout=self.timeout,
                stage="applesign",
            )
        except StageTimeoutError:
            raise
        except OSError as e:
            raise SigningError(f"Error signing WebDriverAgent: {e}")

        if returncode != 0:
            details = "\n".join(warnings[-20:])
            raise SigningError(
                f"Error signing WebDriverAgent: applesign exited with status "
                f"{returncode}\n{details}".rstrip()
            )


class Signer:
    """Signs a packaged IPA with the chosen provisioning profile"""

    def __init__(self, engine=None, options: Optional[SignerOptions] = None):
        self.engine = engine or ApplesignEngine()
        self.options = options or SignerOptions()
        self.console = get_console()

    def sign(self, request: SigningRequest, on_event: EventCallback) -> Path:
        self.console.log(f"[blue]Signing IPA:[/] {request.ipa_path}")
        if request.bundle_id:
            self.console.log(f"[blue]Overriding bundle identifier:[/] {request.bundle_id}")

        if not request.ipa_path.is_file():
            raise SigningError(f"IPA to sign not found: {request.ipa_path}")
        if not request.mobileprovision.is_file():
            raise SigningError(
                f"Provisioning profile not found: {request.mobileprovision}"
            )

        request.output_path.parent.mkdir(parents=True, exist_ok=True)
        self.engine.sign(request, self.options, on_event)

        if not request.output_path.is_file():
            raise SigningError(
                f"Signing finished but no signed IPA was written to {request.output_path}"
            )

        self.console.log(f"[green]Successfully signed IPA:[/] {request.output_path}")
        return request.output_path


def console_event_sink(kind: str, message: str) -> None:
    """Forward signing engine events to the shared console"""
    console = get_console()
    if kind == "warning":
        console.log(f"[yellow]WARNING[/] {message}")
    else:
        console.log(f"[dim]applesign:[/] {message}")
