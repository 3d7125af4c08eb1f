"""Per-type artifact manifests: generation from installed modules and loading.

Tasks and tools are listed in tabular CSV manifests; agents and workflows in
structured YAML manifests. The loader accepts either format for any type and
validates every row against an explicit schema, excluding rows that do not
fit rather than passing loosely typed data down the pipeline.
"""

from __future__ import annotations

import csv
import logging
import re
from pathlib import Path, PurePosixPath
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ManifestError
from .models import ArtifactRecord, ArtifactType
from .naming import BMAD_FOLDER_NAME, CORE_MODULE

logger = logging.getLogger(__name__)

CONFIG_DIRNAME = "_config"

MANIFEST_FILES: dict[ArtifactType, str] = {
    ArtifactType.AGENT: "agent-manifest.yaml",
    ArtifactType.WORKFLOW: "workflow-manifest.yaml",
    ArtifactType.TASK: "task-manifest.csv",
    ArtifactType.TOOL: "tool-manifest.csv",
}

TABULAR_COLUMNS = ["name", "displayName", "description", "module", "path", "standalone"]

_PROJECT_ROOT_TOKEN = "{project-root}"
_UNRESOLVED_PLACEHOLDER = re.compile(r"\{\{[^}]*\}\}|\{(?!project-root\})[^{}\s]+\}")
_FRONT_MATTER = re.compile(r"^---\r?\n(.*?)\r?\n---(?:\r?\n|$)", re.DOTALL)
_XML_ROOT = re.compile(r"<(task|tool)\b([^>]*)>", re.IGNORECASE)
_XML_ATTRIBUTE = re.compile(r'([\w-]+)="([^"]*)"')
_TRUTHY = {"true", "yes", "1"}
_FALSY = {"false", "no", "0"}
_TASK_SUFFIXES = {".md", ".xml", ".yaml", ".yml"}


class ManifestRow(BaseModel):
    """Columns shared by every artifact manifest."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(..., min_length=1)
    module: str = Field(..., min_length=1)
    path: str = Field(..., min_length=1)
    display_name: str | None = Field(default=None, alias="displayName")
    description: str | None = None
    standalone: bool = True

    @field_validator("name", "module", "path", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        """Trim surrounding whitespace from identity columns."""
        return v.strip() if isinstance(v, str) else v

    @field_validator("standalone", mode="before")
    @classmethod
    def parse_flag(cls, v: Any) -> Any:
        """Accept CSV-style flags; an empty cell means standalone."""
        if v is None:
            return True
        if isinstance(v, str):
            lowered = v.strip().lower()
            if not lowered or lowered in _TRUTHY:
                return True
            if lowered in _FALSY:
                return False
        return v


class AgentRow(ManifestRow):
    """Agent manifest row."""

    title: str | None = None
    icon: str | None = None
    base_path: str | None = Field(default=None, alias="basePath")


class WorkflowRow(ManifestRow):
    """Workflow manifest row."""


class TaskRow(ManifestRow):
    """Task manifest row."""


class ToolRow(ManifestRow):
    """Tool manifest row."""


ROW_SCHEMAS: dict[ArtifactType, type[ManifestRow]] = {
    ArtifactType.AGENT: AgentRow,
    ArtifactType.WORKFLOW: WorkflowRow,
    ArtifactType.TASK: TaskRow,
    ArtifactType.TOOL: ToolRow,
}


def has_unresolved_placeholder(value: str) -> bool:
    """Whether a reference still contains an unsubstituted template token."""
    return bool(_UNRESOLVED_PLACEHOLDER.search(value))


def split_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """Split YAML front matter from a markdown document.

    Returns:
        Parsed front matter (empty when absent) and the remaining body

    Raises:
        yaml.YAMLError: If the front matter is not valid YAML
    """
    match = _FRONT_MATTER.match(text)
    if not match:
        return {}, text
    data = yaml.safe_load(match.group(1))
    return (data if isinstance(data, dict) else {}), text[match.end():]


class ManifestLoader:
    """Reads per-type manifests into ordered lists of artifact records."""

    def __init__(
        self,
        bmad_folder: str = BMAD_FOLDER_NAME,
        project_root: Path | None = None,
    ) -> None:
        """Initialize loader.

        Args:
            bmad_folder: Installation folder name used to anchor source paths
            project_root: Project root used to relativize absolute paths
        """
        self.bmad_folder = bmad_folder
        self.project_root = Path(project_root) if project_root else None
        self.warnings: list[str] = []

    def load(self, manifest_path: Path, artifact_type: ArtifactType) -> list[ArtifactRecord]:
        """Load one manifest.

        Args:
            manifest_path: CSV or YAML manifest file
            artifact_type: Type of every record in the manifest

        Returns:
            Records in file order; an absent manifest yields an empty list

        Raises:
            ManifestError: If the file exists but cannot be parsed at all
        """
        manifest_path = Path(manifest_path)
        if not manifest_path.exists():
            return []

        records: list[ArtifactRecord] = []
        for index, row in enumerate(self._read_rows(manifest_path), start=1):
            record = self._to_record(row, artifact_type, manifest_path, index)
            if record is not None:
                records.append(record)
        return records

    def load_all(self, config_dir: Path) -> list[ArtifactRecord]:
        """Load every per-type manifest in ``config_dir``.

        Either format is accepted for any type; when both exist the one named
        in ``MANIFEST_FILES`` wins. Unreadable manifests become warnings.
        """
        config_dir = Path(config_dir)
        records: list[ArtifactRecord] = []

        for artifact_type, filename in MANIFEST_FILES.items():
            path = self._find_manifest(config_dir, artifact_type, filename)
            if path is None:
                continue
            try:
                records.extend(self.load(path, artifact_type))
            except ManifestError as e:
                self._warn(str(e))

        return records

    def _find_manifest(
        self,
        config_dir: Path,
        artifact_type: ArtifactType,
        preferred: str,
    ) -> Path | None:
        candidates = [preferred] + [
            f"{artifact_type.value}-manifest{suffix}"
            for suffix in (".csv", ".yaml", ".yml")
        ]
        for candidate in candidates:
            path = config_dir / candidate
            if path.exists():
                return path
        return None

    def _read_rows(self, manifest_path: Path) -> list[dict[str, Any]]:
        try:
            content = manifest_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            msg = f"Failed to read manifest {manifest_path}: {e}"
            raise ManifestError(msg) from e

        if manifest_path.suffix.lower() == ".csv":
            try:
                reader = csv.DictReader(content.splitlines())
                return [
                    {(k or "").strip(): v for k, v in row.items()}
                    for row in reader
                ]
            except csv.Error as e:
                msg = f"Failed to parse manifest CSV {manifest_path}: {e}"
                raise ManifestError(msg) from e

        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            msg = f"Failed to parse manifest YAML {manifest_path}: {e}"
            raise ManifestError(msg) from e

        if data is None:
            return []
        if isinstance(data, dict):
            # Structured manifests may wrap the list under a single key
            lists = [v for v in data.values() if isinstance(v, list)]
            data = lists[0] if len(lists) == 1 else None
        if not isinstance(data, list):
            msg = f"Manifest {manifest_path} must contain a list of records"
            raise ManifestError(msg)
        return [row for row in data if isinstance(row, dict)]

    def _to_record(
        self,
        row: dict[str, Any],
        artifact_type: ArtifactType,
        manifest_path: Path,
        index: int,
    ) -> ArtifactRecord | None:
        reference = row.get("path")
        if not isinstance(reference, str) or not reference.strip():
            logger.debug("Row %d of %s has no path, skipped", index, manifest_path.name)
            return None
        if has_unresolved_placeholder(reference):
            logger.debug(
                "Row %d of %s references unresolved %s, skipped",
                index,
                manifest_path.name,
                reference,
            )
            return None

        try:
            parsed = ROW_SCHEMAS[artifact_type].model_validate(row)
        except ValidationError as e:
            self._warn(
                f"Invalid row {index} in {manifest_path.name}: "
                f"{e.error_count()} schema error(s)",
            )
            return None

        if not parsed.standalone:
            return None

        base_path = getattr(parsed, "base_path", None)
        description = parsed.description
        if not description and isinstance(parsed, AgentRow):
            description = parsed.title

        return ArtifactRecord(
            type=artifact_type,
            module=parsed.module,
            name=parsed.name,
            source_path=self.normalize_source_path(parsed.path),
            display_name=parsed.display_name,
            description=description,
            base_path=self.normalize_source_path(base_path) if base_path else None,
        )

    def normalize_source_path(self, raw: str) -> str:
        """Express a manifest reference relative to the project root.

        ``{project-root}/_bmad/bmm/agents/pm.md``, ``_bmad/bmm/agents/pm.md``
        and ``bmm/agents/pm.md`` all become ``_bmad/bmm/agents/pm.md``.
        Absolute paths outside the project are returned unchanged.
        """
        value = raw.strip().replace("\\", "/")
        if value.startswith(_PROJECT_ROOT_TOKEN):
            return value[len(_PROJECT_ROOT_TOKEN):].lstrip("/")

        posix = PurePosixPath(value)
        if posix.is_absolute() or re.match(r"^[A-Za-z]:/", value):
            if self.project_root is not None:
                try:
                    return Path(value).resolve().relative_to(
                        self.project_root.resolve(),
                    ).as_posix()
                except ValueError:
                    pass
            marker = f"/{self.bmad_folder}/"
            if marker in value:
                return self.bmad_folder + "/" + value.split(marker, 1)[1]
            return value

        if value.startswith(f"{self.bmad_folder}/"):
            return value
        if value.startswith("bmad/"):
            return f"{self.bmad_folder}/{value[len('bmad/'):]}"
        return f"{self.bmad_folder}/{value.removeprefix('./')}"

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)


class ManifestGenerator:
    """Scans installed modules and writes the per-type manifests."""

    def __init__(self, bmad_dir: Path) -> None:
        """Initialize generator.

        Args:
            bmad_dir: Installation directory (``<project>/_bmad``)
        """
        self.bmad_dir = Path(bmad_dir)
        self.bmad_folder = self.bmad_dir.name
        self.warnings: list[str] = []

    @property
    def config_dir(self) -> Path:
        """Directory holding generated manifests."""
        return self.bmad_dir / CONFIG_DIRNAME

    def generate(self, modules: list[str]) -> dict[ArtifactType, Path]:
        """Write agent, workflow, task and tool manifests for ``modules``.

        Returns:
            Manifest path per artifact type
        """
        ordered = _ordered_modules(modules)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        agents: list[dict[str, Any]] = []
        workflows: dict[str, dict[str, Any]] = {}
        tasks: list[dict[str, Any]] = []
        tools: list[dict[str, Any]] = []

        for module in ordered:
            if not (self.bmad_dir / module).is_dir():
                continue
            agents.extend(self.collect_agents(module))
            for row in self.collect_workflows(module):
                workflows[f"{row['module']}:{row['name']}"] = row
            tasks.extend(self.collect_tasks(module, ArtifactType.TASK))
            tools.extend(self.collect_tasks(module, ArtifactType.TOOL))

        paths = {t: self.config_dir / f for t, f in MANIFEST_FILES.items()}
        self._write_yaml(paths[ArtifactType.AGENT], agents)
        self._write_yaml(paths[ArtifactType.WORKFLOW], list(workflows.values()))
        self._write_csv(paths[ArtifactType.TASK], tasks)
        self._write_csv(paths[ArtifactType.TOOL], tools)
        return paths

    def collect_agents(self, module: str) -> list[dict[str, Any]]:
        """Collect agent rows from ``<module>/agents/**/*.agent.yaml``."""
        agents_dir = self.bmad_dir / module / "agents"
        if not agents_dir.is_dir():
            return []

        rows = []
        for base_file in sorted(agents_dir.rglob("*.agent.yaml")):
            relative = base_file.relative_to(agents_dir)
            stem = base_file.name[: -len(".agent.yaml")]
            name = relative.parts[0] if len(relative.parts) > 1 else stem

            try:
                data = yaml.safe_load(base_file.read_text(encoding="utf-8")) or {}
            except (yaml.YAMLError, OSError, UnicodeDecodeError) as e:
                self._warn(f"Failed to parse agent {base_file}: {e}")
                continue

            agent = data.get("agent", {}) if isinstance(data, dict) else {}
            metadata = agent.get("metadata", {}) if isinstance(agent, dict) else {}
            if not isinstance(metadata, dict):
                metadata = {}

            compiled = relative.with_name(f"{stem}.md").as_posix()
            rows.append({
                "name": name,
                "displayName": metadata.get("name") or name,
                "title": metadata.get("title") or "",
                "icon": metadata.get("icon") or "",
                "description": _clean(metadata.get("description") or metadata.get("title")),
                "module": module,
                "path": f"{self.bmad_folder}/{module}/agents/{compiled}",
                "basePath": f"{self.bmad_folder}/{module}/agents/{relative.as_posix()}",
            })
        return rows

    def collect_workflows(self, module: str) -> list[dict[str, Any]]:
        """Collect workflow rows from ``workflow.yaml`` and ``workflow*.md`` files."""
        workflows_dir = self.bmad_dir / module / "workflows"
        if not workflows_dir.is_dir():
            return []

        rows = []
        for path in sorted(workflows_dir.rglob("*")):
            if not path.is_file() or not _is_workflow_file(path.name):
                continue
            try:
                text = path.read_text(encoding="utf-8").replace("\r\n", "\n")
                if path.suffix == ".yaml":
                    data = yaml.safe_load(text) or {}
                else:
                    data, _ = split_front_matter(text)
            except (yaml.YAMLError, OSError, UnicodeDecodeError) as e:
                self._warn(f"Failed to parse workflow at {path}: {e}")
                continue

            if not isinstance(data, dict):
                continue
            name = data.get("name")
            description = data.get("description")
            if not isinstance(name, str) or ("{" in name and "}" in name):
                continue
            if data.get("standalone") is False or not description:
                continue

            relative = path.relative_to(self.bmad_dir).as_posix()
            rows.append({
                "name": name,
                "displayName": data.get("displayName") or name,
                "description": _clean(description),
                "module": module,
                "path": f"{self.bmad_folder}/{relative}",
            })
        return rows

    def collect_tasks(self, module: str, artifact_type: ArtifactType) -> list[dict[str, Any]]:
        """Collect task or tool rows from ``<module>/tasks`` or ``<module>/tools``."""
        source_dir = self.bmad_dir / module / artifact_type.segment
        if not source_dir.is_dir():
            return []

        rows = []
        for path in sorted(source_dir.iterdir()):
            if not path.is_file() or path.suffix.lower() not in _TASK_SUFFIXES:
                continue
            try:
                attributes = self._read_task_attributes(path)
            except (yaml.YAMLError, OSError, UnicodeDecodeError) as e:
                self._warn(f"Failed to parse {artifact_type.value} at {path}: {e}")
                continue

            if _is_true(attributes.get("internal")):
                continue

            name = str(attributes.get("name") or path.stem)
            rows.append({
                "name": path.stem,
                "displayName": name,
                "description": _clean(attributes.get("description")),
                "module": module,
                "path": f"{self.bmad_folder}/{path.relative_to(self.bmad_dir).as_posix()}",
                "standalone": "false" if _is_false(attributes.get("standalone")) else "true",
            })
        return rows

    def _read_task_attributes(self, path: Path) -> dict[str, Any]:
        text = path.read_text(encoding="utf-8")
        suffix = path.suffix.lower()
        if suffix == ".md":
            return split_front_matter(text)[0]
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(text)
            return data if isinstance(data, dict) else {}
        match = _XML_ROOT.search(text)
        if not match:
            return {}
        return dict(_XML_ATTRIBUTE.findall(match.group(2)))

    def _write_yaml(self, path: Path, rows: list[dict[str, Any]]) -> None:
        content = yaml.safe_dump(
            rows,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
        path.write_text(content, encoding="utf-8")

    def _write_csv(self, path: Path, rows: list[dict[str, Any]]) -> None:
        with path.open("w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(
                f,
                fieldnames=TABULAR_COLUMNS,
                quoting=csv.QUOTE_ALL,
                lineterminator="\n",
                extrasaction="ignore",
            )
            writer.writeheader()
            writer.writerows(rows)

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)


def _ordered_modules(modules: list[str]) -> list[str]:
    """Core first, then the remaining modules in order without duplicates."""
    ordered = [CORE_MODULE]
    for module in modules:
        if module not in ordered:
            ordered.append(module)
    return ordered


def _is_workflow_file(filename: str) -> bool:
    return filename in {"workflow.yaml", "workflow.md"} or (
        filename.startswith("workflow-") and filename.endswith(".md")
    )


def _is_true(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return value is not None and str(value).strip().lower() in _TRUTHY


def _is_false(value: Any, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return not value
    return str(value).strip().lower() in _FALSY


def _clean(text: Any) -> str:
    """Collapse whitespace so descriptions fit on one manifest line."""
    if not text:
        return ""
    return " ".join(str(text).split())
