"""IDE integration targets.

Each target names the directories pointer files are written to, the file
extension it expects and which artifact types it consumes. Targets that
split artifacts across directories (GitHub Copilot keeps agents and prompts
apart) declare one output per directory.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .exceptions import ConfigurationError
from .models import ArtifactType, NamingConvention

ALL_TYPES: tuple[ArtifactType, ...] = tuple(ArtifactType)
COMMAND_TYPES: tuple[ArtifactType, ...] = (
    ArtifactType.WORKFLOW,
    ArtifactType.TASK,
    ArtifactType.TOOL,
)


@dataclass(frozen=True)
class TargetOutput:
    """One destination directory of an IDE target."""

    directory: str
    extension: str = ".md"
    artifact_types: tuple[ArtifactType, ...] = ALL_TYPES


@dataclass(frozen=True)
class IdeTarget:
    """An IDE or CLI assistant that consumes generated pointer files."""

    code: str
    name: str
    outputs: tuple[TargetOutput, ...]
    convention: NamingConvention = NamingConvention.DASH
    legacy_directories: tuple[str, ...] = field(default_factory=tuple)

    def output_for(self, artifact_type: ArtifactType) -> TargetOutput | None:
        """Output that receives ``artifact_type``, if the target consumes it."""
        for output in self.outputs:
            if artifact_type in output.artifact_types:
                return output
        return None

    @property
    def directories(self) -> list[str]:
        """Every directory this target writes into, including legacy ones."""
        dirs = [output.directory for output in self.outputs]
        return dirs + [d for d in self.legacy_directories if d not in dirs]


TARGETS: dict[str, IdeTarget] = {
    "claude-code": IdeTarget(
        code="claude-code",
        name="Claude Code",
        outputs=(TargetOutput(".claude/commands"),),
        legacy_directories=(".claude/commands/bmad",),
    ),
    "cursor": IdeTarget(
        code="cursor",
        name="Cursor",
        outputs=(TargetOutput(".cursor/commands"),),
        legacy_directories=(".cursor/commands/bmad",),
    ),
    "windsurf": IdeTarget(
        code="windsurf",
        name="Windsurf",
        outputs=(TargetOutput(".windsurf/workflows"),),
    ),
    "github-copilot": IdeTarget(
        code="github-copilot",
        name="GitHub Copilot",
        outputs=(
            TargetOutput(".github/agents", ".agent.md", (ArtifactType.AGENT,)),
            TargetOutput(".github/prompts", ".prompt.md", COMMAND_TYPES),
        ),
    ),
    "gemini": IdeTarget(
        code="gemini",
        name="Gemini CLI",
        outputs=(TargetOutput(".gemini/commands", ".toml"),),
    ),
    "codex": IdeTarget(
        code="codex",
        name="Codex",
        outputs=(TargetOutput(".codex/prompts"),),
    ),
    "opencode": IdeTarget(
        code="opencode",
        name="OpenCode",
        outputs=(
            TargetOutput(".opencode/agent", ".md", (ArtifactType.AGENT,)),
            TargetOutput(".opencode/command", ".md", COMMAND_TYPES),
        ),
    ),
}


def get_target(code: str) -> IdeTarget:
    """Look up a target by code.

    Raises:
        ConfigurationError: If the code is not a known target
    """
    try:
        return TARGETS[code]
    except KeyError:
        msg = f"Unknown IDE target: {code}"
        raise ConfigurationError(
            msg,
            details={"target": code, "available": sorted(TARGETS)},
        ) from None
