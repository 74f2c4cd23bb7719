import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from wdasign.logger import get_console
from wdasign.src.core.pipeline import BuildSignPipeline
from wdasign.src.core.signer import EventCallback, console_event_sink
from wdasign.src.errors import MethodNotFoundError, ValidationError, WdaSignError
from wdasign.src.ipa.provisioning_profile_locator import (
    ProvisioningProfile,
    get_provisioning_profile_dir,
    list_profiles,
    resolve_profile,
)
from wdasign.src.utils.config_loader import Settings
from wdasign.src.utils.process import run_process

LIST_PROFILES_TOOL = "list_provisioning_profiles"
ACCOUNT_TYPE_TOOL = "is_free_account"
BUILD_AND_SIGN_TOOL = "build_and_sign_wda"


class SessionPhase(Enum):
    IDLE = "idle"
    PROFILE_LISTED = "profile_listed"
    ACCOUNT_TYPE_CONFIRMED = "account_type_confirmed"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class SessionState:
    """What the conversation has established so far"""

    selected_profile: Optional[ProvisioningProfile] = None
    is_free_account: Optional[bool] = None
    project_path: Optional[Path] = None
    profiles: List[ProvisioningProfile] = field(default_factory=list)
    phase: SessionPhase = SessionPhase.IDLE


@dataclass
class ToolResult:
    text: str
    is_error: bool = False

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], is_error: bool = False) -> "ToolResult":
        return cls(text=json.dumps(payload, indent=2), is_error=is_error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": [{"type": "text", "text": self.text}],
            "isError": self.is_error,
        }


class ToolSession:
    """Tool handlers sharing one conversation's state.

    Every failure is turned into an error result so the server keeps
    running and the client can retry the same call.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        pipeline: Optional[BuildSignPipeline] = None,
        runner: Callable = run_process,
        on_event: EventCallback = console_event_sink,
    ):
        self.settings = settings or Settings()
        self.pipeline = pipeline or BuildSignPipeline(self.settings)
        self.runner = runner
        self.on_event = on_event
        self.state = SessionState()
        self.console = get_console()
        self._handlers = {
            LIST_PROFILES_TOOL: (self.list_provisioning_profiles, {"profile_uuid"}),
            ACCOUNT_TYPE_TOOL: (self.confirm_account_type, {"is_free_account"}),
            BUILD_AND_SIGN_TOOL: (
                self.build_and_sign,
                {
                    "profile_uuid",
                    "profile_path",
                    "is_free_account",
                    "bundle_id",
                    "project_path",
                    "output_path",
                },
            ),
        }

    @property
    def tool_names(self) -> List[str]:
        return list(self._handlers)

    def dispatch(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> ToolResult:
        """Run one tool call and wrap the outcome as a tool result"""
        arguments = arguments or {}
        if name not in self._handlers:
            error = MethodNotFoundError(name)
            self.console.log(f"[red]{error.message}[/]")
            return ToolResult.from_payload(error.to_payload(), is_error=True)

        handler, accepted = self._handlers[name]
        try:
            unexpected = sorted(set(arguments) - accepted)
            if unexpected:
                raise ValidationError(
                    f"Unexpected arguments for {name}: {', '.join(unexpected)}"
                )
            payload = handler(**arguments)
        except WdaSignError as e:
            self.state.phase = SessionPhase.FAILED
            self.console.log(f"[red]{name} failed:[/] {e.message}")
            return ToolResult.from_payload(e.to_payload(), is_error=True)
        except Exception as e:
            self.state.phase = SessionPhase.FAILED
            self.console.print_exception()
            return ToolResult.from_payload(
                {"error": "internal_error", "message": str(e) or type(e).__name__},
                is_error=True,
            )
        return ToolResult.from_payload(payload)

    def list_provisioning_profiles(self, profile_uuid: Optional[str] = None) -> dict:
        profiles_dir = get_provisioning_profile_dir(
            self.settings.profiles_dir, runner=self.runner
        )
        profiles = list_profiles(profiles_dir)

        self.state.profiles = profiles
        self.state.selected_profile = None
        self.state.phase = SessionPhase.PROFILE_LISTED

        if profile_uuid:
            self.state.selected_profile = self._find_listed_profile(profile_uuid)

        return {
            "message": "Please select a provisioning profile",
            "profiles": [p.to_dict() for p in profiles],
            "selectedProfile": (
                self.state.selected_profile.uuid if self.state.selected_profile else None
            ),
            "instructions": (
                f"Use the '{ACCOUNT_TYPE_TOOL}' tool with the selected profile UUID to "
                "ask user to confirm the account type is free or enterprise"
            ),
        }

    def confirm_account_type(self, is_free_account: bool) -> dict:
        if not isinstance(is_free_account, bool):
            raise ValidationError("is_free_account must be true or false")

        self.state.is_free_account = is_free_account
        self.state.phase = SessionPhase.ACCOUNT_TYPE_CONFIRMED
        account = "free" if is_free_account else "enterprise"
        return {
            "message": f"Account type set to {account} account",
            "isFreeAccount": is_free_account,
            "instructions": (
                f"call the tool '{BUILD_AND_SIGN_TOOL}' with the selected profile "
                "and account type"
            ),
        }

    def build_and_sign(
        self,
        profile_uuid: Optional[str] = None,
        profile_path: Optional[str] = None,
        is_free_account: Optional[bool] = None,
        bundle_id: Optional[str] = None,
        project_path: Optional[str] = None,
        output_path: Optional[str] = None,
    ) -> dict:
        profile = self._resolve_selected_profile(profile_uuid, profile_path)

        if is_free_account is None:
            is_free_account = self.state.is_free_account
        if is_free_account is None:
            raise ValidationError(
                "The account type is unknown, confirm it with "
                f"'{ACCOUNT_TYPE_TOOL}' or pass is_free_account"
            )
        if not isinstance(is_free_account, bool):
            raise ValidationError("is_free_account must be true or false")

        project = project_path or self.state.project_path
        result = self.pipeline.run(
            profile,
            is_free_account,
            bundle_id=bundle_id,
            project_path=Path(project) if project else None,
            output_path=Path(output_path) if output_path else None,
            on_event=self.on_event,
        )

        self.state.selected_profile = profile
        self.state.is_free_account = is_free_account
        self.state.project_path = result.project_path
        self.state.phase = SessionPhase.COMPLETED

        payload = {"message": "WebDriverAgent successfully built and signed"}
        payload.update(result.to_dict())
        return payload

    def _find_listed_profile(self, profile_uuid: str) -> ProvisioningProfile:
        for profile in self.state.profiles:
            if profile.uuid == profile_uuid:
                return profile
        raise ValidationError(
            f"Provisioning profile {profile_uuid} is not among the listed profiles, "
            f"call '{LIST_PROFILES_TOOL}' first"
        )

    def _resolve_selected_profile(
        self, profile_uuid: Optional[str], profile_path: Optional[str]
    ) -> ProvisioningProfile:
        if profile_path:
            return resolve_profile(Path(profile_path))
        if profile_uuid:
            return self._find_listed_profile(profile_uuid)
        if self.state.selected_profile is not None:
            return self.state.selected_profile
        raise ValidationError(
            "No provisioning profile selected, pass profile_uuid or profile_path"
        )
