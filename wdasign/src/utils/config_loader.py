import os
from dataclasses import dataclass
from pathlib import Path
import toml
from typing import Dict, Any, Optional

from wdasign.src.constants.wda_constants import (
    DEFAULT_BUILD_TIMEOUT,
    DEFAULT_PROJECT_SEARCH_ROOT,
    DEFAULT_SIGN_COMMAND,
    DEFAULT_SIGN_TIMEOUT,
    WDA_DERIVED_DATA,
    WDA_DESTINATION,
    WDA_SCHEME,
)


@dataclass
class Settings:
    """Resolved runtime configuration"""

    profiles_dir: Optional[Path] = None  # None = derive from Xcode version
    project_search_root: Path = DEFAULT_PROJECT_SEARCH_ROOT
    scheme: str = WDA_SCHEME
    derived_data: str = WDA_DERIVED_DATA
    destination: str = WDA_DESTINATION
    build_timeout: Optional[float] = DEFAULT_BUILD_TIMEOUT
    sign_command: str = DEFAULT_SIGN_COMMAND
    sign_timeout: Optional[float] = DEFAULT_SIGN_TIMEOUT


def get_config_path() -> Path:
    """Return the path to the configuration file."""
    env_path = os.environ.get("WDASIGN_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".wdasign" / "config.toml"


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration from TOML file.

    A missing default file means an empty config; a path passed in
    explicitly must exist.
    """
    if config_path is None:
        config_path = get_config_path()
        if not config_path.exists():
            return {}
    elif not Path(config_path).is_file():
        raise ValueError(f"Failed to load config: {config_path} does not exist")

    try:
        return toml.load(config_path)
    except Exception as e:
        raise ValueError(f"Failed to load config: {e}")


def _parse_timeout(value: Any, name: str) -> Optional[float]:
    # 0 or a negative value disables the timeout
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {name}: {value!r}")
    return timeout if timeout > 0 else None


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Build Settings from the config file, with environment variables taking precedence."""
    config = load_config(config_path)
    paths_config = config.get("paths", {})
    build_config = config.get("build", {})
    sign_config = config.get("sign", {})

    settings = Settings()

    profiles_dir = os.environ.get("WDASIGN_PROFILES_DIR") or paths_config.get(
        "profiles_dir"
    )
    if profiles_dir:
        settings.profiles_dir = Path(profiles_dir).expanduser()

    project_root = os.environ.get("WDASIGN_PROJECT_ROOT") or paths_config.get(
        "project_search_root"
    )
    if project_root:
        settings.project_search_root = Path(project_root).expanduser()

    settings.scheme = build_config.get("scheme", settings.scheme)
    settings.derived_data = build_config.get("derived_data", settings.derived_data)
    settings.destination = build_config.get("destination", settings.destination)

    build_timeout = os.environ.get("WDASIGN_BUILD_TIMEOUT", build_config.get("timeout"))
    if build_timeout is not None:
        settings.build_timeout = _parse_timeout(build_timeout, "build timeout")

    settings.sign_command = os.environ.get(
        "WDASIGN_SIGN_COMMAND", sign_config.get("command", settings.sign_command)
    )

    sign_timeout = os.environ.get("WDASIGN_SIGN_TIMEOUT", sign_config.get("timeout"))
    if sign_timeout is not None:
        settings.sign_timeout = _parse_timeout(sign_timeout, "sign timeout")

    return settings
