"""Discovery of installable module sources."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from .exceptions import ConfigurationError
from .models import ModuleSource

logger = logging.getLogger(__name__)

MODULE_FILE = "module.yaml"


def read_module_source(module_dir: Path) -> ModuleSource:
    """Read ``module.yaml`` from a module source directory.

    Raises:
        ConfigurationError: If the directory has no readable module.yaml
    """
    module_dir = Path(module_dir)
    module_file = module_dir / MODULE_FILE
    if not module_file.is_file():
        msg = f"Not a module source (missing {MODULE_FILE}): {module_dir}"
        raise ConfigurationError(msg, details={"path": str(module_dir)})

    try:
        with module_file.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError, UnicodeDecodeError) as e:
        msg = f"Failed to read {module_file}: {e}"
        raise ConfigurationError(msg, details={"path": str(module_file)}) from e

    if not isinstance(data, dict):
        msg = f"{module_file} must contain a mapping"
        raise ConfigurationError(msg, details={"path": str(module_file)})

    data.setdefault("code", module_dir.name)
    if data.get("version") is not None:
        data["version"] = str(data["version"])

    try:
        return ModuleSource.model_validate({**data, "path": module_dir})
    except ValidationError as e:
        msg = f"Invalid module definition {module_file}: {e}"
        raise ConfigurationError(msg, details={"path": str(module_file)}) from e


def discover_modules(source_root: Path | None) -> dict[str, ModuleSource]:
    """Find every module under ``source_root`` keyed by module code.

    Unreadable module definitions are logged and left out.
    """
    if source_root is None:
        return {}
    source_root = Path(source_root)
    if not source_root.is_dir():
        return {}

    modules: dict[str, ModuleSource] = {}
    for module_file in sorted(source_root.glob(f"*/{MODULE_FILE}")):
        try:
            source = read_module_source(module_file.parent)
        except ConfigurationError as e:
            logger.warning("Skipping module source: %s", e)
            continue
        modules[source.code] = source
    return modules
