"""Read-only view of an installation."""

from __future__ import annotations

import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .exceptions import CorruptManifestError
from .manifests import CONFIG_DIRNAME
from .models import InstallationManifest, ModuleUpdate, StatusReport
from .naming import BMAD_FOLDER_NAME
from .schemas import validate_against_schema
from .sources import discover_modules

MANIFEST_FILENAME = "manifest.yaml"

_VERSION_NUMBERS = re.compile(r"\d+")


def installation_manifest_path(bmad_dir: Path) -> Path:
    """Location of the installation manifest inside ``bmad_dir``."""
    return Path(bmad_dir) / CONFIG_DIRNAME / MANIFEST_FILENAME


def load_installation_manifest(path: Path) -> InstallationManifest | None:
    """Load the installation manifest.

    Returns:
        The manifest, or None if the file does not exist

    Raises:
        CorruptManifestError: If the file exists but is unparsable or does
            not match the manifest schema
    """
    path = Path(path)
    if not path.exists():
        return None

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Installation manifest is not valid YAML: {e}"
        raise CorruptManifestError(msg, details={"path": str(path)}) from e
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Failed to read installation manifest: {e}"
        raise CorruptManifestError(msg, details={"path": str(path)}) from e

    validate_against_schema(data, "installation-manifest", CorruptManifestError)

    try:
        return InstallationManifest.model_validate(data)
    except ValidationError as e:
        msg = f"Installation manifest validation failed: {e}"
        raise CorruptManifestError(msg, details={"path": str(path)}) from e


def version_key(version: str) -> tuple[int, ...]:
    """Comparable key for ``major.minor.patch`` style versions."""
    numbers = [int(n) for n in _VERSION_NUMBERS.findall(str(version))[:3]]
    return tuple(numbers + [0] * (3 - len(numbers)))


def read_status(
    project_dir: Path,
    bmad_folder: str = BMAD_FOLDER_NAME,
    source_root: Path | None = None,
) -> StatusReport:
    """Report what is installed in ``project_dir``. Never writes.

    Args:
        project_dir: Host project root
        bmad_folder: Installation folder name
        source_root: Module sources to compare installed versions against

    Raises:
        CorruptManifestError: If the installation manifest cannot be parsed
    """
    bmad_dir = Path(project_dir) / bmad_folder
    manifest = load_installation_manifest(installation_manifest_path(bmad_dir))
    if manifest is None:
        return StatusReport(installed=False, bmad_dir=bmad_dir)

    updates = []
    available = discover_modules(source_root)
    for module in manifest.modules:
        source = available.get(module.name)
        if source and version_key(source.version) > version_key(module.version):
            updates.append(ModuleUpdate(
                name=module.name,
                installed_version=module.version,
                available_version=source.version,
            ))

    return StatusReport(
        installed=True,
        bmad_dir=bmad_dir,
        manifest=manifest,
        available_updates=updates,
    )
