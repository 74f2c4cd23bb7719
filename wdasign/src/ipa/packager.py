import os
import shutil
import zipfile
from pathlib import Path

from wdasign.logger import get_console
from wdasign.src.constants.wda_constants import (
    FRAMEWORKS_DIR_NAME,
    IPA_NAME,
    PAYLOAD_DIR_NAME,
)
from wdasign.src.errors import PackagingError


def _remove(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink()


def strip_frameworks(app_dir: Path) -> None:
    """Delete everything inside the bundle's Frameworks directory.

    The directory itself is kept. Running it again is a no-op.
    """
    console = get_console()
    frameworks_dir = Path(app_dir) / FRAMEWORKS_DIR_NAME
    if not frameworks_dir.is_dir():
        console.log(f"[yellow]No Frameworks directory in[/] {app_dir}")
        return

    try:
        for entry in sorted(frameworks_dir.iterdir()):
            console.log(f"[yellow]Removing embedded framework:[/] {entry.name}")
            _remove(entry)
    except OSError as e:
        raise PackagingError(f"Failed to strip frameworks from {app_dir}: {e}")


def zip_payload_directory(output_path: Path, payload_dir: Path) -> None:
    """Zip payload_dir at maximum compression, keeping it as the archive root"""
    root_name = payload_dir.name
    with zipfile.ZipFile(
        output_path, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9
    ) as zf:
        zf.write(payload_dir, root_name)
        for dirpath, dirnames, filenames in os.walk(payload_dir):
            dirnames.sort()
            current = Path(dirpath)
            relative = current.relative_to(payload_dir)
            for name in dirnames:
                zf.write(current / name, str(Path(root_name) / relative / name))
            for name in sorted(filenames):
                zf.write(current / name, str(Path(root_name) / relative / name))


def package(app_dir: Path, dest_dir: Path) -> Path:
    """Move the app bundle into dest_dir/Payload and zip it into an IPA.

    The bundle's original location is gone afterwards. A failed run leaves
    no archive behind.
    """
    console = get_console()
    app_dir = Path(app_dir)
    dest_dir = Path(dest_dir)
    payload_dir = dest_dir / PAYLOAD_DIR_NAME
    ipa_path = dest_dir / IPA_NAME
    partial_path = ipa_path.with_name(ipa_path.name + ".partial")

    if not app_dir.is_dir():
        raise PackagingError(f"App bundle not found: {app_dir}")

    console.log(f"[blue]Creating IPA from[/] {app_dir}")
    try:
        dest_dir.mkdir(parents=True, exist_ok=True)

        # Leftovers from a previous run would end up inside the new archive
        if payload_dir.exists():
            shutil.rmtree(payload_dir)
        if ipa_path.exists():
            ipa_path.unlink()

        payload_dir.mkdir()
        shutil.move(str(app_dir), str(payload_dir / app_dir.name))

        zip_payload_directory(partial_path, payload_dir)
        os.replace(partial_path, ipa_path)
    except OSError as e:
        if partial_path.exists():
            partial_path.unlink()
        raise PackagingError(f"Failed to package {app_dir}: {e}")

    console.log(f"[green]Created IPA:[/] {ipa_path}")
    return ipa_path
