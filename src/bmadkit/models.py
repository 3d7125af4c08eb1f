"""Core data models for the bmadkit artifact compiler."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ArtifactType(str, Enum):
    """Kinds of installable artifacts."""

    AGENT = "agent"
    WORKFLOW = "workflow"
    TASK = "task"
    TOOL = "tool"

    @property
    def segment(self) -> str:
        """Plural directory segment used in module trees (``agents`` etc.)."""
        return f"{self.value}s"

    @classmethod
    def from_segment(cls, segment: str) -> ArtifactType | None:
        """Map ``agents``/``agent`` style segments back to a type."""
        value = segment[:-1] if segment.endswith("s") else segment
        try:
            return cls(value)
        except ValueError:
            return None


class NamingConvention(str, Enum):
    """Flat filename conventions for generated command files.

    ``dash`` is current; ``underscore`` and ``colon`` are kept so files
    written by older installers can still be recognized and cleaned up.
    """

    DASH = "dash"
    UNDERSCORE = "underscore"
    COLON = "colon"


class ActionType(str, Enum):
    """Action explicitly requested by the caller."""

    INSTALL = "install"
    UPDATE = "update"
    QUICK_UPDATE = "quick-update"
    COMPILE_AGENTS = "compile-agents"
    UNINSTALL = "uninstall"
    CANCEL = "cancel"


class InstallAction(str, Enum):
    """Resolved lifecycle state of an installer run."""

    NO_INSTALLATION = "no-installation"
    FRESH_INSTALL = "fresh-install"
    UPDATE = "update"
    QUICK_UPDATE = "quick-update"
    COMPILE_AGENTS = "compile-agents"
    UNINSTALL = "uninstall"


class ArtifactRecord(BaseModel):
    """A single installable artifact discovered from a module manifest."""

    model_config = ConfigDict(frozen=True)

    type: ArtifactType = Field(..., description="Artifact kind")
    module: str = Field(..., min_length=1, description="Owning module code")
    name: str = Field(..., min_length=1, description="Name unique within module and type")
    source_path: str = Field(
        ...,
        description="Authoritative definition file, relative to the project root",
    )
    display_name: str | None = Field(default=None, description="Human-facing name")
    description: str | None = Field(default=None, description="Human-facing summary")
    base_path: str | None = Field(
        default=None,
        description="Base agent definition (*.agent.yaml) for agent records",
    )

    @model_validator(mode="before")
    @classmethod
    def default_display_fields(cls, data: Any) -> Any:
        """Default display name and description from the artifact name."""
        if isinstance(data, dict):
            data = dict(data)
            if not data.get("display_name"):
                data["display_name"] = data.get("name")
            if not data.get("description"):
                data["description"] = f"Execute {data['display_name']}"
        return data

    @property
    def relative_path(self) -> str:
        """Hierarchical identity: ``<module>/<segment>/<name>``."""
        return f"{self.module}/{self.type.segment}/{self.name}"


class Persona(BaseModel):
    """Agent persona. Replaced as a whole by an overlay, never field-merged."""

    model_config = ConfigDict(extra="allow")

    role: str | None = None
    identity: str | None = None
    communication_style: str | None = None
    principles: str | list[str] | None = None


class AgentDefinition(BaseModel):
    """Base or compiled agent definition."""

    model_config = ConfigDict(extra="ignore")

    metadata: dict[str, Any] = Field(default_factory=dict)
    persona: Persona | None = None
    critical_actions: list[Any] = Field(default_factory=list)
    memories: list[Any] = Field(default_factory=list)
    menu: list[Any] = Field(default_factory=list)
    prompts: list[Any] = Field(default_factory=list)


class CustomizationOverlay(BaseModel):
    """User-owned overlay layered on a vendor agent definition.

    ``metadata`` and ``persona`` replace the base when non-empty; the list
    sections are appended after the base entries.
    """

    model_config = ConfigDict(extra="ignore")

    metadata: dict[str, Any] | None = None
    persona: Persona | None = None
    critical_actions: list[Any] = Field(default_factory=list)
    memories: list[Any] = Field(default_factory=list)
    menu: list[Any] = Field(default_factory=list)
    prompts: list[Any] = Field(default_factory=list)


class ModuleSource(BaseModel):
    """A module available for installation (parsed from ``module.yaml``)."""

    code: str = Field(
        ...,
        pattern=r"^[^\s\-_:/\\]+$",
        description="Module identifier; may not contain a naming-convention joiner",
    )
    name: str | None = Field(default=None, description="Display name")
    version: str = Field(default="0.0.0", description="Module version")
    description: str = Field(default="", description="Module summary")
    default_settings: dict[str, Any] = Field(
        default_factory=dict,
        description="Default per-module configuration values",
    )
    path: Path = Field(..., description="Directory containing the module content")


class InstallConfig(BaseModel):
    """Configuration supplied by the (interactive or CLI) front end."""

    project_directory: Path = Field(..., description="Host project root")
    selected_modules: list[str] = Field(default_factory=list)
    selected_ide_targets: list[str] = Field(default_factory=list)
    action_type: ActionType | None = Field(default=None)
    output_folder: str = Field(default="_bmad-output")
    user_name: str = Field(default="User")
    communication_language: str = Field(default="English")
    document_output_language: str = Field(default="English")
    custom_content_paths: list[Path] = Field(default_factory=list)
    module_settings: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description="Per-module configuration values keyed by module code",
    )
    naming_convention: NamingConvention | None = Field(
        default=None,
        description="Override the naming convention of every IDE target",
    )

    def core_settings(self) -> dict[str, Any]:
        """Settings written to the core module's config.yaml."""
        return {
            "user_name": self.user_name,
            "communication_language": self.communication_language,
            "document_output_language": self.document_output_language,
            "output_folder": self.output_folder,
        }


class InstalledModule(BaseModel):
    """A module entry in the installation manifest."""

    name: str
    version: str = "0.0.0"
    source: str | None = None
    install_date: datetime
    last_updated: datetime


class GeneratedFile(BaseModel):
    """A file written into an IDE target directory."""

    path: str = Field(..., description="Project-relative posix path")
    ide: str
    type: ArtifactType
    module: str
    name: str


class InstallationInfo(BaseModel):
    """Installer version and dates."""

    version: str
    install_date: datetime
    last_updated: datetime


class InstallationManifest(BaseModel):
    """Persisted record of what is currently installed."""

    installation: InstallationInfo
    modules: list[InstalledModule] = Field(default_factory=list)
    ides: list[str] = Field(default_factory=list)
    output_folder: str = "_bmad-output"
    naming_convention: NamingConvention = NamingConvention.DASH
    files: list[GeneratedFile] = Field(default_factory=list)

    def module_names(self) -> list[str]:
        """Names of installed modules in manifest order."""
        return [module.name for module in self.modules]

    def get_module(self, name: str) -> InstalledModule | None:
        """Look up an installed module by name."""
        return next((m for m in self.modules if m.name == name), None)


class InstallPlan(BaseModel):
    """What an install run is about to do, shown before anything is written."""

    action: InstallAction
    bmad_dir: Path
    modules: list[str] = Field(default_factory=list)
    ides: list[str] = Field(default_factory=list)


class InstallResult(BaseModel):
    """Outcome of install, update, quick-update or compile-agents."""

    success: bool = True
    cancelled: bool = False
    action: InstallAction | None = None
    module_count: int = 0
    modules: list[str] = Field(default_factory=list)
    agent_count: int = 0
    generated: int = 0
    warnings: list[str] = Field(default_factory=list)
    skipped_modules: list[str] = Field(default_factory=list)

    @classmethod
    def cancelled_result(cls, action: InstallAction | None = None) -> InstallResult:
        """Result for a run cancelled before any write."""
        return cls(success=False, cancelled=True, action=action)


class UninstallPhase(str, Enum):
    """Independently selectable uninstall phases, in execution order."""

    IDE = "ide"
    OUTPUT = "output"
    MODULES = "modules"


class UninstallResult(BaseModel):
    """Outcome of an uninstall run."""

    success: bool = True
    installed: bool = Field(default=True, description="Whether an installation was found")
    completed_phases: list[UninstallPhase] = Field(default_factory=list)
    failed_phase: UninstallPhase | None = None
    error: str | None = None
    removed_files: int = 0


class ModuleUpdate(BaseModel):
    """An installed module with a newer version available locally."""

    name: str
    installed_version: str
    available_version: str


class StatusReport(BaseModel):
    """Read-only view of an installation."""

    installed: bool
    bmad_dir: Path
    manifest: InstallationManifest | None = None
    available_updates: list[ModuleUpdate] = Field(default_factory=list)

    @property
    def modules(self) -> list[InstalledModule]:
        """Installed modules, empty when nothing is installed."""
        return self.manifest.modules if self.manifest else []
