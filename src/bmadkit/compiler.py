"""Artifact compiler for generating IDE pointer files and compiled agents."""

from __future__ import annotations

import logging
import posixpath
import re
from pathlib import Path
from typing import Any
from xml.sax.saxutils import escape, quoteattr

from .models import AgentDefinition, ArtifactRecord, ArtifactType, NamingConvention
from .naming import BMAD_FOLDER_NAME, encode

logger = logging.getLogger(__name__)

PROJECT_ROOT_TOKEN = "{project-root}"

_WINDOWS_DRIVE = re.compile(r"^[A-Za-z]:[/\\]")


def write_if_changed(path: Path, content: str) -> bool:
    """Write ``content`` unless the file already holds exactly that text.

    Returns:
        True if the file was created or rewritten
    """
    path = Path(path)
    if path.is_file():
        try:
            if path.read_text(encoding="utf-8") == content:
                return False
        except UnicodeDecodeError:
            pass
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return True


def _single_quoted(value: str) -> str:
    """YAML single-quoted scalar."""
    return "'" + value.replace("'", "''") + "'"


def _toml_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", " ")
    return f'"{escaped}"'


class ArtifactCompiler:
    """Renders artifact records into pointer files for IDE targets.

    A pointer never inlines the artifact: it tells the consuming assistant
    where the authoritative definition lives and to follow it verbatim, so a
    module update takes effect without regenerating content.
    """

    def __init__(self, project_root: Path, bmad_folder: str = BMAD_FOLDER_NAME) -> None:
        """Initialize compiler.

        Args:
            project_root: Host project root every source path is relative to
            bmad_folder: Installation folder name
        """
        self.project_root = Path(project_root)
        self.bmad_folder = bmad_folder
        self.warnings: list[str] = []
        self.written: list[Path] = []

    def generate(
        self,
        record: ArtifactRecord,
        convention: NamingConvention,
        destination_root: Path,
        extension: str = ".md",
    ) -> Path | None:
        """Write the pointer file for ``record`` into ``destination_root``.

        Args:
            record: Artifact to point at
            convention: Naming convention for the file name
            destination_root: IDE target directory
            extension: Output extension (``.md``, ``.toml``, ``.agent.md`` ...)

        Returns:
            Path of the pointer file, or None if the record was skipped
        """
        if self.resolve_source(record) is None:
            self._warn(
                f"Skipping {record.type.value} '{record.module}/{record.name}': "
                f"unresolvable source path '{record.source_path}'",
            )
            return None

        filename = encode(record.module, record.type, record.name, convention, extension)
        target = Path(destination_root) / filename
        if write_if_changed(target, self.render_pointer(record, extension)):
            self.written.append(target)
            logger.debug("Wrote %s", target)
        return target

    def resolve_source(self, record: ArtifactRecord) -> str | None:
        """Normalized project-relative source path, or None if unusable.

        Empty paths, absolute paths and paths escaping the project root are
        unusable.
        """
        return self.resolve_path(record.source_path)

    def resolve_path(self, path: str | None) -> str | None:
        """Normalize a project-relative path, or None if it is unusable."""
        raw = (path or "").strip().replace("\\", "/")
        if not raw or raw.startswith("/") or _WINDOWS_DRIVE.match(raw):
            return None
        normalized = posixpath.normpath(raw)
        if normalized == ".." or normalized.startswith("../") or normalized == ".":
            return None
        return normalized

    def pointer_target(self, record: ArtifactRecord) -> str:
        """The ``{project-root}/...`` reference written into a pointer."""
        return f"{PROJECT_ROOT_TOKEN}/{self.resolve_source(record) or record.source_path}"

    def render_pointer(self, record: ArtifactRecord, extension: str = ".md") -> str:
        """Render pointer content for one record.

        Args:
            record: Artifact to point at
            extension: Output extension; ``.toml`` selects the TOML command format

        Returns:
            Deterministic pointer text
        """
        if extension.endswith(".toml"):
            return self._render_toml_pointer(record)

        source = self.pointer_target(record)
        description = record.description or f"Execute {record.display_name}"

        sections = [
            "---",
            f"name: {_single_quoted(record.name)}",
            f"description: {_single_quoted(description)}",
            "disable-model-invocation: true",
            "---",
            "",
        ]

        if record.type is ArtifactType.AGENT:
            sections.extend([
                "You must fully embody this agent's persona and follow all "
                "activation instructions exactly as specified.",
                "",
                '<agent-activation CRITICAL="TRUE">',
                f"1. LOAD the FULL agent file from {source}",
                "2. READ its entire contents - this contains the complete agent "
                "persona, menu, and instructions",
                "3. FOLLOW every step in the <activation> section precisely",
                "</agent-activation>",
            ])
        elif record.type is ArtifactType.WORKFLOW:
            sections.extend([
                f"# {record.display_name}",
                "",
                f"LOAD and execute from: {source}",
            ])
        else:
            kind = record.type.value
            sections.extend([
                f"# {record.display_name}",
                "",
                f"Read the entire {kind} file at: {source}",
                "",
                f"Follow all instructions in the {kind} file exactly as written.",
            ])

        return "\n".join(sections) + "\n"

    def _render_toml_pointer(self, record: ArtifactRecord) -> str:
        source = self.pointer_target(record)
        description = record.description or f"Execute {record.display_name}"

        if record.type is ArtifactType.AGENT:
            body = [
                "You must fully embody this agent's persona and follow all "
                "activation instructions exactly as specified.",
                "",
                f"1. LOAD the FULL agent file from {source}",
                "2. READ its entire contents",
                "3. FOLLOW every step in the <activation> section precisely",
            ]
        elif record.type is ArtifactType.WORKFLOW:
            body = [f"LOAD and execute from: {source}"]
        else:
            body = [
                f"Read the entire {record.type.value} file at: {source}",
                "",
                f"Follow all instructions in the {record.type.value} file exactly as written.",
            ]

        lines = [
            f"description = {_toml_string(description)}",
            'prompt = """',
            *body,
            '"""',
        ]
        return "\n".join(lines) + "\n"

    def compile_agent_document(
        self,
        definition: AgentDefinition,
        record: ArtifactRecord,
    ) -> str:
        """Render a compiled agent definition as the markdown agent file.

        Args:
            definition: Base definition with the user's overlay applied
            record: Agent record the document belongs to

        Returns:
            Markdown with YAML front matter and an ``<agent>`` block
        """
        metadata = definition.metadata
        display_name = str(metadata.get("name") or record.display_name)
        title = str(metadata.get("title") or display_name)
        icon = metadata.get("icon")
        description = str(metadata.get("description") or record.description or title)

        heading = f"# {icon} {title}" if icon else f"# {title}"
        agent_attrs = " ".join([
            f"id={quoteattr(record.source_path)}",
            f"name={quoteattr(display_name)}",
            f"title={quoteattr(title)}",
            *([f"icon={quoteattr(str(icon))}"] if icon else []),
        ])

        sections = [
            "---",
            f"name: {_single_quoted(record.name)}",
            f"description: {_single_quoted(description)}",
            "---",
            "",
            heading,
            "",
            "You must fully embody this agent's persona and follow all activation "
            "instructions exactly as specified. NEVER break character until given "
            "an exit command.",
            "",
            "```xml",
            f"<agent {agent_attrs}>",
            self._render_activation(definition),
        ]

        if definition.persona is not None:
            sections.append(self._render_persona(definition))
        if definition.memories:
            sections.append(self._render_list("memories", "memory", definition.memories))
        if definition.menu:
            sections.append(self._render_menu(definition.menu))
        if definition.prompts:
            sections.append(self._render_prompts(definition.prompts))

        sections.extend(["</agent>", "```"])
        return "\n".join(sections) + "\n"

    def _render_activation(self, definition: AgentDefinition) -> str:
        steps = [
            "Load persona from this current agent file (already in context)",
            f"Load and read {PROJECT_ROOT_TOKEN}/{self.bmad_folder}/core/config.yaml "
            "and store its values as session variables",
            *[self._as_text(action) for action in definition.critical_actions],
            "Show greeting, then display the numbered menu and WAIT for user input",
        ]
        lines = ['  <activation critical="MANDATORY">']
        lines.extend(
            f'    <step n="{number}">{escape(step)}</step>'
            for number, step in enumerate(steps, start=1)
        )
        lines.append("  </activation>")
        return "\n".join(lines)

    def _render_persona(self, definition: AgentDefinition) -> str:
        persona = definition.persona.model_dump(exclude_none=True)
        lines = ["  <persona>"]
        for key, value in persona.items():
            if isinstance(value, list):
                value = " ".join(self._as_text(item) for item in value)
            lines.append(f"    <{key}>{escape(self._as_text(value))}</{key}>")
        lines.append("  </persona>")
        return "\n".join(lines)

    def _render_list(self, tag: str, item_tag: str, items: list[Any]) -> str:
        lines = [f"  <{tag}>"]
        lines.extend(
            f"    <{item_tag}>{escape(self._as_text(item))}</{item_tag}>" for item in items
        )
        lines.append(f"  </{tag}>")
        return "\n".join(lines)

    def _render_menu(self, menu: list[Any]) -> str:
        lines = ["  <menu>"]
        for entry in menu:
            if not isinstance(entry, dict):
                lines.append(f"    <item>{escape(self._as_text(entry))}</item>")
                continue
            label = entry.get("description") or entry.get("trigger") or ""
            attrs = []
            if entry.get("trigger"):
                attrs.append(f"cmd={quoteattr(str(entry['trigger']))}")
            attrs.extend(
                f"{key}={quoteattr(self._as_text(value))}"
                for key, value in entry.items()
                if key not in ("trigger", "description")
            )
            attr_text = (" " + " ".join(attrs)) if attrs else ""
            lines.append(f"    <item{attr_text}>{escape(str(label))}</item>")
        lines.append("  </menu>")
        return "\n".join(lines)

    def _render_prompts(self, prompts: list[Any]) -> str:
        lines = ["  <prompts>"]
        for prompt in prompts:
            if isinstance(prompt, dict):
                prompt_id = prompt.get("id")
                content = self._as_text(prompt.get("content", ""))
                attr = f" id={quoteattr(str(prompt_id))}" if prompt_id else ""
            else:
                attr, content = "", self._as_text(prompt)
            lines.append(f"    <prompt{attr}>{escape(content.strip())}</prompt>")
        lines.append("  </prompts>")
        return "\n".join(lines)

    @staticmethod
    def _as_text(value: Any) -> str:
        if isinstance(value, dict):
            return "; ".join(f"{k}: {v}" for k, v in value.items())
        return str(value)

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)
