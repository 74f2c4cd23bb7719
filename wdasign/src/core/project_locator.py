from pathlib import Path
from typing import Optional

from wdasign.logger import get_console
from wdasign.src.constants.wda_constants import (
    DEFAULT_PROJECT_SEARCH_ROOT,
    WDA_PROJECT_FILE,
)
from wdasign.src.errors import InvalidProjectPathError, ProjectNotFoundError


def find_wda_project(search_root: Path) -> Optional[Path]:
    """Directory of the first WebDriverAgent.xcodeproj under search_root"""
    if not search_root.is_dir():
        return None
    matches = sorted(search_root.rglob(WDA_PROJECT_FILE))
    if not matches:
        return None
    return matches[0].parent


def resolve_project(
    project_path: Optional[Path] = None,
    search_root: Path = DEFAULT_PROJECT_SEARCH_ROOT,
) -> Path:
    """Resolve the WebDriverAgent project directory.

    An explicit path only has to be an existing directory. Without one the
    search root is scanned for the project file and the first match wins.
    """
    console = get_console()

    if project_path is not None and str(project_path) != "":
        project_path = Path(project_path).expanduser()
        if not project_path.is_dir():
            raise InvalidProjectPathError(
                f"WebDriverAgent project path is not a directory: {project_path}"
            )
        return project_path

    search_root = Path(search_root).expanduser()
    console.log(f"[blue]Searching for {WDA_PROJECT_FILE} under[/] {search_root}")
    found = find_wda_project(search_root)
    if found is None:
        raise ProjectNotFoundError(
            f"Unable to find WebDriverAgent project under {search_root}"
        )

    console.log(f"[green]Found WebDriverAgent project:[/] {found}")
    return found
