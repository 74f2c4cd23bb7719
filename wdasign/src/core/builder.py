from pathlib import Path
from typing import Callable, List, Optional

from wdasign.logger import get_console
from wdasign.src.constants.wda_constants import (
    DEFAULT_BUILD_TIMEOUT,
    WDA_APP_NAME,
    WDA_DERIVED_DATA,
    WDA_DESTINATION,
    WDA_PRODUCTS_SUBPATH,
    WDA_PROJECT_FILE,
    WDA_SCHEME,
)
from wdasign.src.errors import BuildArtifactMissingError, BuildError, StageTimeoutError
from wdasign.src.utils.process import command_line, run_process, tail


class Builder:
    """Builds WebDriverAgentRunner for generic iOS devices with signing disabled"""

    def __init__(
        self,
        scheme: str = WDA_SCHEME,
        derived_data: str = WDA_DERIVED_DATA,
        destination: str = WDA_DESTINATION,
        timeout: Optional[float] = DEFAULT_BUILD_TIMEOUT,
        runner: Callable = run_process,
    ):
        self.scheme = scheme
        self.derived_data = derived_data
        self.destination = destination
        self.timeout = timeout
        self.runner = runner
        self.console = get_console()

    def build_command(self) -> List[str]:
        return [
            "xcodebuild",
            "clean",
            "build-for-testing",
            "-project",
            WDA_PROJECT_FILE,
            "-derivedDataPath",
            self.derived_data,
            "-scheme",
            self.scheme,
            "-destination",
            self.destination,
            "CODE_SIGNING_ALLOWED=NO",
        ]

    def products_dir(self, project_path: Path) -> Path:
        """Where xcodebuild leaves the device build products"""
        return Path(project_path) / self.derived_data / WDA_PRODUCTS_SUBPATH

    def app_path(self, project_path: Path) -> Path:
        return self.products_dir(project_path) / WDA_APP_NAME

    def build(self, project_path: Path) -> Path:
        """Build the project and return the path of the produced .app bundle"""
        cmd = self.build_command()
        self.console.log(f"[cyan]Running build command:[/] {command_line(cmd)}")

        try:
            result = self.runner(
                cmd, cwd=project_path, timeout=self.timeout, stage="xcodebuild"
            )
        except StageTimeoutError:
            raise
        except OSError as e:
            raise BuildError(f"Error building WebDriverAgent: {e}")

        if result.returncode != 0:
            details = tail(result.stderr) or tail(result.stdout)
            raise BuildError(
                f"Error building WebDriverAgent: xcodebuild exited with status "
                f"{result.returncode}\n{details}"
            )

        app_path = self.app_path(project_path)
        if not app_path.is_dir():
            raise BuildArtifactMissingError(
                f"xcodebuild succeeded but the app bundle is missing: {app_path}"
            )

        self.console.log(f"[green]Built WebDriverAgent:[/] {app_path}")
        return app_path
