"""Agent customization overlays layered on vendor agent definitions.

Overlays live under ``_config/agents/<module>-<agent>.customize.yaml`` and are
owned by the user. They are never written back into the vendor definition;
the compiled agent is recomputed from base + overlay on every run, so a
vendor upgrade replaces the base while the overlay survives untouched.

Section semantics:

* ``agent.metadata`` and ``persona`` replace the base value when the overlay
  sets any non-empty field in them. ``persona`` is replaced as a whole: an
  overlay that only sets ``role`` leaves the compiled persona with no
  identity, style or principles.
* ``critical_actions``, ``memories``, ``menu`` and ``prompts`` are appended
  after the base entries.
* Anything else in the overlay is ignored.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .exceptions import AgentDefinitionError, OverlayError
from .models import AgentDefinition, CustomizationOverlay, Persona
from .schemas import validate_against_schema

logger = logging.getLogger(__name__)

OVERLAY_SUFFIX = ".customize.yaml"
APPEND_SECTIONS = ("critical_actions", "memories", "menu", "prompts")

OVERLAY_TEMPLATE = """\
# Agent Customization
# Values set here are applied every time the agent is compiled.
# metadata and persona replace the vendor values when any field is set
# (persona is replaced as a whole, unset fields are NOT inherited).
# critical_actions, memories, menu and prompts are appended to the vendor lists.

agent:
  metadata:
    name: ""

persona:
  role: ""
  identity: ""
  communication_style: ""
  principles: []

critical_actions: []

memories: []

menu: []

prompts: []
"""


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _non_empty(mapping: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in mapping.items() if not _is_empty(v)}


def merge(base: AgentDefinition, overlay: CustomizationOverlay) -> AgentDefinition:
    """Merge an overlay into a base agent definition.

    Args:
        base: Vendor agent definition
        overlay: User overlay

    Returns:
        New compiled definition; neither input is modified
    """
    merged = base.model_copy(deep=True)

    if overlay.metadata:
        metadata = _non_empty(overlay.metadata)
        if metadata:
            merged.metadata = dict(metadata)

    if overlay.persona is not None:
        fields = _non_empty(overlay.persona.model_dump(exclude_none=True))
        if fields:
            merged.persona = Persona.model_validate(fields)

    for section in APPEND_SECTIONS:
        additions = getattr(overlay, section)
        if additions:
            setattr(merged, section, [*getattr(merged, section), *additions])

    return merged


def load_overlay(path: Path) -> CustomizationOverlay:
    """Load an overlay file.

    Args:
        path: ``*.customize.yaml`` file

    Returns:
        Parsed overlay; an absent or empty file yields an empty overlay

    Raises:
        OverlayError: If the file is not valid YAML or has the wrong shape
    """
    path = Path(path)
    if not path.exists():
        return CustomizationOverlay()

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Failed to parse overlay YAML {path}: {e}"
        raise OverlayError(msg, details={"path": str(path)}) from e
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Failed to read overlay {path}: {e}"
        raise OverlayError(msg, details={"path": str(path)}) from e

    if data is None:
        return CustomizationOverlay()

    validate_against_schema(data, "overlay", OverlayError)

    agent_section = data.get("agent") or {}
    metadata = agent_section.get("metadata")
    if metadata is None:
        metadata = data.get("metadata")

    try:
        return CustomizationOverlay.model_validate({
            "metadata": metadata,
            "persona": data.get("persona"),
            **{section: data.get(section) or [] for section in APPEND_SECTIONS},
        })
    except ValidationError as e:
        msg = f"Overlay validation failed for {path}: {e}"
        raise OverlayError(msg, details={"path": str(path)}) from e


def load_base_agent(path: Path) -> AgentDefinition:
    """Load a vendor ``*.agent.yaml`` definition.

    Raises:
        AgentDefinitionError: If the file is missing, unparsable or lacks an
            ``agent`` mapping
    """
    path = Path(path)
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Failed to parse agent YAML {path}: {e}"
        raise AgentDefinitionError(msg) from e
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Failed to read agent file {path}: {e}"
        raise AgentDefinitionError(msg) from e

    agent = data.get("agent") if isinstance(data, dict) else None
    if not isinstance(agent, dict):
        msg = f"Agent file {path} has no 'agent' section"
        raise AgentDefinitionError(msg)

    try:
        return AgentDefinition.model_validate(agent)
    except ValidationError as e:
        msg = f"Agent validation failed for {path}: {e}"
        raise AgentDefinitionError(msg) from e


def compile_agent(
    base_path: Path,
    overlay_path: Path,
) -> tuple[AgentDefinition, str | None]:
    """Load base and overlay and merge them.

    A malformed overlay never fails the run: the unmodified base definition
    is returned together with a warning message.

    Raises:
        AgentDefinitionError: If the base definition itself is unusable
    """
    base = load_base_agent(base_path)
    try:
        overlay = load_overlay(overlay_path)
    except OverlayError as e:
        warning = f"Ignoring customization {Path(overlay_path).name}: {e}"
        logger.warning(warning)
        return base, warning
    return merge(base, overlay), None


def overlay_path_for(config_dir: Path, module: str, agent_name: str) -> Path:
    """Location of the overlay for ``agent_name`` in ``module``."""
    return Path(config_dir) / "agents" / f"{module}-{agent_name}{OVERLAY_SUFFIX}"


def ensure_overlay_template(path: Path) -> bool:
    """Create an empty overlay template if none exists.

    Returns:
        True if a template was written, False if the user's file was kept
    """
    path = Path(path)
    if path.exists():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(OVERLAY_TEMPLATE, encoding="utf-8")
    return True
