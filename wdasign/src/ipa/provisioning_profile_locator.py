import plistlib
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from asn1crypto.cms import ContentInfo

from wdasign.logger import get_console
from wdasign.src.constants.wda_constants import (
    LEGACY_PROFILES_DIR,
    LEGACY_XCODE_MAX_VERSION,
    PROFILE_SUFFIX,
    USERDATA_PROFILES_DIR,
    VERSION_QUERY_TIMEOUT,
)
from wdasign.src.errors import (
    EmptyResultError,
    NotFoundError,
    ProfileParseError,
    StageTimeoutError,
    ValidationError,
    VersionDetectionError,
)
from wdasign.src.utils.process import decode_clean, run_process

XCODE_VERSION_RE = re.compile(r"Xcode (\d+)\.")


@dataclass(frozen=True)
class ProvisioningProfile:
    """A parsed .mobileprovision file"""

    uuid: str
    name: str
    team_name: str
    bundle_id: Optional[str]  # Fragment after "Name:" (None when absent)
    file_path: Path

    @property
    def display_name(self) -> str:
        return f"{self.bundle_id or self.name} (Team: {self.team_name}) ({self.uuid})"

    def to_dict(self) -> dict:
        """JSON shape returned to tool clients"""
        return {
            "value": self.uuid,
            "name": self.display_name,
            "teamName": self.team_name,
            "bundleId": self.bundle_id,
            "filePath": str(self.file_path),
        }


def get_xcode_major_version(runner: Callable = run_process) -> int:
    """Ask xcodebuild which Xcode generation is installed"""
    try:
        result = runner(
            ["xcodebuild", "-version"],
            timeout=VERSION_QUERY_TIMEOUT,
            stage="Xcode version query",
        )
    except StageTimeoutError:
        raise
    except OSError as e:
        raise VersionDetectionError(f"Unable to determine Xcode version: {e}")

    if result.returncode != 0:
        raise VersionDetectionError(
            f"Unable to determine Xcode version: {decode_clean(result.stderr)}"
        )

    match = XCODE_VERSION_RE.search(result.stdout or "")
    if not match:
        raise VersionDetectionError("Unable to determine Xcode version")
    return int(match.group(1))


def get_provisioning_profile_dir(
    profiles_dir: Optional[Path] = None,
    runner: Callable = run_process,
    home: Optional[Path] = None,
) -> Path:
    """Directory holding the installed provisioning profiles.

    An explicit directory wins. Otherwise Xcode 15 and older keep profiles
    under MobileDevice, newer releases under Xcode's UserData.
    """
    if profiles_dir:
        return Path(profiles_dir)

    home = home or Path.home()
    if get_xcode_major_version(runner) <= LEGACY_XCODE_MAX_VERSION:
        return home / LEGACY_PROFILES_DIR
    return home / USERDATA_PROFILES_DIR


def dump_prov(prov_file: Path) -> dict:
    """Read a provisioning profile without using macOS security command"""
    with open(prov_file, "rb") as f:
        content_info = ContentInfo.load(f.read())
    signed_data = content_info["content"]
    # The plist is the encapsulated content of the SignedData envelope
    plist_data = signed_data["encap_content_info"]["content"].native
    return plistlib.loads(plist_data)


def derive_bundle_id(profile_name: str) -> Optional[str]:
    """Bundle identifier fragment of a profile name such as "XC Wildcard: com.foo.*"."""
    parts = profile_name.split(":")
    if len(parts) < 2:
        return None
    return parts[1].lstrip() or None


def parse_profile(prov_file: Path) -> ProvisioningProfile:
    """Parse a .mobileprovision file into a ProvisioningProfile"""
    prov_file = Path(prov_file)
    try:
        data = dump_prov(prov_file)
    except Exception as e:
        raise ProfileParseError(prov_file, str(e) or type(e).__name__)

    if not isinstance(data, dict):
        raise ProfileParseError(prov_file, "profile payload is not a dictionary")

    uuid = data.get("UUID")
    if not uuid:
        raise ProfileParseError(prov_file, "missing UUID")

    name = data.get("Name") or ""
    return ProvisioningProfile(
        uuid=uuid,
        name=name,
        team_name=data.get("TeamName") or "",
        bundle_id=derive_bundle_id(name),
        file_path=prov_file,
    )


def list_profiles(profiles_dir: Path) -> List[ProvisioningProfile]:
    """Parse every profile in a directory, in file name order.

    Any file that fails to parse aborts the whole listing.
    """
    profiles_dir = Path(profiles_dir)
    if not profiles_dir.is_dir():
        raise NotFoundError(f"Provisioning directory does not exist: {profiles_dir}")

    files = sorted(
        p
        for p in profiles_dir.iterdir()
        if p.name.endswith(PROFILE_SUFFIX) and p.is_file()
    )
    if not files:
        raise EmptyResultError(
            f"No mobileprovision file found in {profiles_dir}"
        )

    profiles = [parse_profile(f) for f in files]
    get_console().log(
        f"[green]Found {len(profiles)} provisioning profiles in[/] {profiles_dir}"
    )
    return profiles


def resolve_profile(profile_path: Optional[Path]) -> ProvisioningProfile:
    """Parse an explicitly chosen profile file.

    There is no implicit default: omitting the profile is a validation error.
    """
    if profile_path is None or str(profile_path) == "":
        raise ValidationError(
            "A provisioning profile must be selected explicitly"
        )

    profile_path = Path(profile_path).expanduser()
    if not profile_path.is_file():
        raise NotFoundError(f"Provisioning profile not found: {profile_path}")
    return parse_profile(profile_path)
