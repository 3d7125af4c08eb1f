"""Flat filename conventions for generated command files.

Converts a (module, type, name) triple, or a hierarchical module path such as
``bmm/agents/pm.md``, into the flat file name written into an IDE command
directory, and parses such names back.

Current (dash) convention::

    bmm/agents/pm.md               -> bmad-agent-bmm-pm.md
    bmm/workflows/correct-course   -> bmad-bmm-correct-course.md
    core/agents/brainstorming.md   -> bmad-agent-brainstorming.md
    core/tasks/help.md             -> bmad-help.md

Legacy conventions use ``_`` (underscore) or ``:`` (colon) as the joiner and
place the agent marker after the module: ``bmad_bmm_agent_pm.md``.

Workflows, tasks and tools share one shape, so their type cannot be
recovered from a file name; ``decode`` reports them as workflows. Callers
that need the precise type must carry it alongside the file name.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePath

from .models import ArtifactType, NamingConvention

BMAD_FOLDER_NAME = "_bmad"
PREFIX = "bmad"
AGENT_MARKER = "agent"
CORE_MODULE = "core"
UNKNOWN_NAME = "unknown"

_SOURCE_EXTENSION = re.compile(r"\.(md|yaml|yml|json|xml|toml)$", re.IGNORECASE)
_OUTPUT_EXTENSION = re.compile(r"(\.prompt|\.agent)?\.(md|toml)$", re.IGNORECASE)
_PATH_SEPARATOR = re.compile(r"[/\\]")


@dataclass(frozen=True)
class ConventionStyle:
    """Shape of one naming convention."""

    joiner: str
    marker_after_module: bool
    custom_agent_template: str


_STYLES: dict[NamingConvention, ConventionStyle] = {
    NamingConvention.DASH: ConventionStyle(
        joiner="-",
        marker_after_module=False,
        custom_agent_template="bmad-custom-agent-{name}",
    ),
    NamingConvention.UNDERSCORE: ConventionStyle(
        joiner="_",
        marker_after_module=True,
        custom_agent_template="bmad_custom_{name}",
    ),
    NamingConvention.COLON: ConventionStyle(
        joiner=":",
        marker_after_module=True,
        custom_agent_template="bmad:custom:{name}",
    ),
}


@dataclass(frozen=True)
class ParsedName:
    """Structured identity recovered from a flat file name."""

    module: str
    type: ArtifactType
    name: str
    convention: NamingConvention


def style_for(convention: NamingConvention) -> ConventionStyle:
    """Return the shape description of a convention."""
    return _STYLES[NamingConvention(convention)]


def placeholder_name(
    convention: NamingConvention = NamingConvention.DASH,
    extension: str = ".md",
) -> str:
    """Safe file name used for rows that cannot be named."""
    return style_for(convention).joiner.join([PREFIX, UNKNOWN_NAME]) + extension


def _coerce_type(artifact_type: ArtifactType | str | None) -> ArtifactType | None:
    if isinstance(artifact_type, ArtifactType):
        return artifact_type
    if not artifact_type:
        return None
    return ArtifactType.from_segment(str(artifact_type))


def encode(
    module: str,
    artifact_type: ArtifactType | str,
    name: str,
    convention: NamingConvention = NamingConvention.DASH,
    extension: str = ".md",
) -> str:
    """Build the flat file name for an artifact.

    Args:
        module: Module code; ``core`` omits the module segment
        artifact_type: Artifact type, or its ``agents``-style segment
        name: Artifact name; nested names are flattened with the joiner
        convention: Naming convention to apply
        extension: File extension including the dot

    Returns:
        File name such as ``bmad-agent-bmm-pm.md``. Invalid input yields
        the placeholder name instead of raising.
    """
    style = style_for(convention)
    resolved_type = _coerce_type(artifact_type)

    if not isinstance(name, str) or not isinstance(module, str):
        return placeholder_name(convention, extension)

    stripped = _SOURCE_EXTENSION.sub("", name.strip())
    parts = [p for p in _PATH_SEPARATOR.split(stripped) if p]
    flat_name = style.joiner.join(parts)
    module = module.strip()
    if not flat_name or not module or resolved_type is None:
        return placeholder_name(convention, extension)

    is_agent = resolved_type is ArtifactType.AGENT
    if module == CORE_MODULE:
        segments = [PREFIX, AGENT_MARKER, flat_name] if is_agent else [PREFIX, flat_name]
    elif not is_agent:
        segments = [PREFIX, module, flat_name]
    elif style.marker_after_module:
        segments = [PREFIX, module, AGENT_MARKER, flat_name]
    else:
        segments = [PREFIX, AGENT_MARKER, module, flat_name]

    return style.joiner.join(segments) + extension


def encode_path(
    relative_path: str,
    convention: NamingConvention = NamingConvention.DASH,
    extension: str = ".md",
) -> str:
    """Build the flat file name for a ``<module>/<segment>/<name>`` path.

    Agents nested in a folder collapse to the folder name, so
    ``bmm/agents/tech-writer/tech-writer.md`` becomes
    ``bmad-agent-bmm-tech-writer.md`` rather than repeating the name.
    """
    if not relative_path or not isinstance(relative_path, str):
        return placeholder_name(convention, extension)

    without_ext = _SOURCE_EXTENSION.sub("", relative_path)
    parts = [p for p in _PATH_SEPARATOR.split(without_ext) if p]
    if len(parts) < 3:
        return placeholder_name(convention, extension)

    module, segment = parts[0], parts[1]
    artifact_type = ArtifactType.from_segment(segment) or ArtifactType.WORKFLOW

    if artifact_type is ArtifactType.AGENT and len(parts) > 3:
        name = parts[2]
    else:
        name = "/".join(parts[2:])

    return encode(module, artifact_type, name, convention, extension)


def custom_agent_name(
    agent_name: str,
    convention: NamingConvention = NamingConvention.DASH,
    extension: str = ".md",
) -> str:
    """File name for a standalone custom agent launcher."""
    if not agent_name:
        return placeholder_name(convention, extension)
    return style_for(convention).custom_agent_template.format(name=agent_name) + extension


def decode(
    filename: str,
    convention: NamingConvention = NamingConvention.DASH,
) -> ParsedName | None:
    """Parse a flat file name produced by ``encode``.

    Returns:
        The parsed identity, or None when the name does not follow the
        convention. Non-agent names always decode as workflows.
    """
    if not filename or not isinstance(filename, str):
        return None

    convention = NamingConvention(convention)
    joiner = style_for(convention).joiner
    stem = _OUTPUT_EXTENSION.sub("", PurePath(filename).name)
    parts = stem.split(joiner)

    if len(parts) < 2 or parts[0] != PREFIX or not all(parts):
        return None

    if convention is NamingConvention.DASH:
        return _decode_dash(parts, joiner, convention)
    return _decode_marker_after_module(parts, joiner, convention)


def _decode_dash(
    parts: list[str],
    joiner: str,
    convention: NamingConvention,
) -> ParsedName | None:
    if parts[1] == AGENT_MARKER:
        if len(parts) == 2:
            return None
        if len(parts) == 3:
            return ParsedName(CORE_MODULE, ArtifactType.AGENT, parts[2], convention)
        return ParsedName(parts[2], ArtifactType.AGENT, joiner.join(parts[3:]), convention)

    if len(parts) > 3 and parts[1] == "custom" and parts[2] == AGENT_MARKER:
        return ParsedName("custom", ArtifactType.AGENT, joiner.join(parts[3:]), convention)

    return _decode_non_agent(parts, joiner, convention)


def _decode_marker_after_module(
    parts: list[str],
    joiner: str,
    convention: NamingConvention,
) -> ParsedName | None:
    if parts[1] == AGENT_MARKER:
        if len(parts) == 2:
            return None
        return ParsedName(CORE_MODULE, ArtifactType.AGENT, joiner.join(parts[2:]), convention)

    if len(parts) > 3 and parts[2] == AGENT_MARKER:
        return ParsedName(parts[1], ArtifactType.AGENT, joiner.join(parts[3:]), convention)

    return _decode_non_agent(parts, joiner, convention)


def _decode_non_agent(
    parts: list[str],
    joiner: str,
    convention: NamingConvention,
) -> ParsedName:
    if len(parts) == 2:
        return ParsedName(CORE_MODULE, ArtifactType.WORKFLOW, parts[1], convention)
    return ParsedName(parts[1], ArtifactType.WORKFLOW, joiner.join(parts[2:]), convention)


def detect_convention(filename: str) -> NamingConvention | None:
    """Return the convention a generated file name belongs to, if any."""
    for convention in NamingConvention:
        if decode(filename, convention) is not None:
            return convention
    return None
