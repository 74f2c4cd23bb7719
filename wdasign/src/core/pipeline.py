import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from wdasign.logger import get_console
from wdasign.src.constants.wda_constants import RESIGNED_IPA_NAME
from wdasign.src.core.builder import Builder
from wdasign.src.core.project_locator import resolve_project
from wdasign.src.core.signer import (
    ApplesignEngine,
    EventCallback,
    Signer,
    SigningRequest,
    bundle_id_override,
    console_event_sink,
)
from wdasign.src.errors import PipelineBusyError, ValidationError
from wdasign.src.ipa.packager import package, strip_frameworks
from wdasign.src.ipa.provisioning_profile_locator import ProvisioningProfile
from wdasign.src.utils.config_loader import Settings


@dataclass
class PipelineResult:
    ipa_path: Path
    resigned_ipa_path: Path
    project_path: Path
    bundle_id: Optional[str]

    def to_dict(self) -> dict:
        return {
            "ipaPath": str(self.ipa_path),
            "resignedIpaPath": str(self.resigned_ipa_path),
            "projectPath": str(self.project_path),
            "bundleId": self.bundle_id,
        }


class BuildSignPipeline:
    """Locate, build, strip, package and sign WebDriverAgent, in that order.

    Only one run may be in flight: the derived data and Payload staging
    directories are shared between runs.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        builder: Optional[Builder] = None,
        signer: Optional[Signer] = None,
    ):
        self.settings = settings or Settings()
        self.builder = builder or Builder(
            scheme=self.settings.scheme,
            derived_data=self.settings.derived_data,
            destination=self.settings.destination,
            timeout=self.settings.build_timeout,
        )
        self.signer = signer or Signer(
            engine=ApplesignEngine(
                command=self.settings.sign_command,
                timeout=self.settings.sign_timeout,
            )
        )
        self.console = get_console()
        self._lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    def run(
        self,
        profile: ProvisioningProfile,
        is_free_account: bool,
        bundle_id: Optional[str] = None,
        project_path: Optional[Path] = None,
        output_path: Optional[Path] = None,
        on_event: EventCallback = console_event_sink,
    ) -> PipelineResult:
        if profile is None:
            raise ValidationError("A provisioning profile must be selected explicitly")
        if is_free_account is None:
            raise ValidationError(
                "The account type (free or enterprise) must be confirmed"
            )
        if not Path(profile.file_path).is_file():
            raise ValidationError(
                f"Provisioning profile file no longer exists: {profile.file_path}"
            )

        # Checked before anything touches the filesystem or runs xcodebuild
        bundle_id_override(is_free_account, bundle_id)

        if not self._lock.acquire(blocking=False):
            raise PipelineBusyError(
                "A WebDriverAgent build is already running, try again when it finishes"
            )
        try:
            return self._run_stages(
                profile, is_free_account, bundle_id, project_path, output_path, on_event
            )
        finally:
            self._lock.release()

    def _run_stages(
        self,
        profile: ProvisioningProfile,
        is_free_account: bool,
        bundle_id: Optional[str],
        project_path: Optional[Path],
        output_path: Optional[Path],
        on_event: EventCallback,
    ) -> PipelineResult:
        self.console.log("\n[bold blue]Step 1: Locating WebDriverAgent project[/]")
        project = resolve_project(project_path, self.settings.project_search_root)

        self.console.log("\n[bold blue]Step 2: Building WebDriverAgent[/]")
        app_path = self.builder.build(project)

        self.console.log("\n[bold blue]Step 3: Preparing WebDriverAgent IPA[/]")
        strip_frameworks(app_path)
        products_dir = self.builder.products_dir(project)
        ipa_path = package(app_path, products_dir)

        self.console.log("\n[bold blue]Step 4: Signing WebDriverAgent IPA[/]")
        request = SigningRequest.create(
            ipa_path=ipa_path,
            mobileprovision=profile.file_path,
            output_path=Path(output_path) if output_path else products_dir / RESIGNED_IPA_NAME,
            is_free_account=is_free_account,
            bundle_id=bundle_id,
        )
        resigned = self.signer.sign(request, on_event)

        return PipelineResult(
            ipa_path=ipa_path,
            resigned_ipa_path=resigned,
            project_path=project,
            bundle_id=request.bundle_id,
        )
