"""Tests for overlay loading and merging."""

import tempfile
from pathlib import Path

import pytest
import yaml

from bmadkit.customization import (
    OVERLAY_TEMPLATE,
    compile_agent,
    ensure_overlay_template,
    load_base_agent,
    load_overlay,
    merge,
    overlay_path_for,
)
from bmadkit.exceptions import AgentDefinitionError, OverlayError
from bmadkit.models import AgentDefinition, CustomizationOverlay, Persona

from .conftest import sample_agent


@pytest.fixture
def base() -> AgentDefinition:
    """A base agent definition."""
    return AgentDefinition.model_validate(sample_agent("john", "Product Manager"))


@pytest.fixture
def work_dir() -> Path:
    """A scratch directory."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


class TestMerge:
    """Test replace and append section semantics."""

    def test_empty_overlay_is_identity(self, base: AgentDefinition) -> None:
        """Test that an empty overlay changes nothing."""
        assert merge(base, CustomizationOverlay()) == base

    def test_memories_only_overlay(self, base: AgentDefinition) -> None:
        """Test that appending memories leaves every other section alone."""
        overlay = CustomizationOverlay(memories=["Prefers short PRDs"])

        compiled = merge(base, overlay)

        assert compiled.menu == base.menu
        assert compiled.persona == base.persona
        assert compiled.critical_actions == base.critical_actions
        assert compiled.metadata == base.metadata
        assert compiled.memories == ["Base memory", "Prefers short PRDs"]

    def test_partial_persona_replaces_whole_persona(self, base: AgentDefinition) -> None:
        """Test the all-or-nothing persona rule."""
        overlay = CustomizationOverlay(persona=Persona(role="Strategist"))

        compiled = merge(base, overlay)

        assert compiled.persona == Persona(role="Strategist")
        assert compiled.persona.identity is None
        assert compiled.persona.principles is None

    def test_append_sections_keep_base_order(self, base: AgentDefinition) -> None:
        """Test that overlay items follow base items."""
        overlay = CustomizationOverlay(
            menu=[{"trigger": "retro", "description": "Run a retro"}],
            critical_actions=["Greet by name"],
            prompts=[{"id": "p1", "content": "Hi"}],
        )

        compiled = merge(base, overlay)

        assert [item["trigger"] for item in compiled.menu] == ["help", "plan", "retro"]
        assert compiled.critical_actions == ["Load project context", "Greet by name"]
        assert compiled.prompts == [{"id": "p1", "content": "Hi"}]

    def test_metadata_replaces_base(self, base: AgentDefinition) -> None:
        """Test that overlay metadata substitutes the base mapping."""
        compiled = merge(base, CustomizationOverlay(metadata={"name": "Jane", "title": ""}))

        assert compiled.metadata == {"name": "Jane"}

    def test_inputs_are_not_mutated(self, base: AgentDefinition) -> None:
        """Test that merge builds a new definition."""
        snapshot = base.model_copy(deep=True)

        merge(base, CustomizationOverlay(memories=["x"], menu=[{"trigger": "y"}]))

        assert base == snapshot


class TestLoadOverlay:
    """Test reading overlay files."""

    def test_absent_file_is_empty_overlay(self, work_dir: Path) -> None:
        """Test that a missing overlay is a no-op."""
        assert load_overlay(work_dir / "missing.customize.yaml") == CustomizationOverlay()

    def test_template_is_a_no_op(self, work_dir: Path, base: AgentDefinition) -> None:
        """Test that the generated template does not alter the agent."""
        path = work_dir / "bmm-pm.customize.yaml"
        path.write_text(OVERLAY_TEMPLATE, encoding="utf-8")

        assert merge(base, load_overlay(path)) == base

    def test_reads_sections_and_ignores_unknown_keys(self, work_dir: Path) -> None:
        """Test section parsing."""
        path = work_dir / "bmm-pm.customize.yaml"
        path.write_text(
            yaml.safe_dump({
                "agent": {"metadata": {"name": "Jane"}},
                "persona": {"role": "Strategist"},
                "memories": ["m1"],
                "favourite_colour": "green",
            }),
            encoding="utf-8",
        )

        overlay = load_overlay(path)

        assert overlay.metadata == {"name": "Jane"}
        assert overlay.persona == Persona(role="Strategist")
        assert overlay.memories == ["m1"]

    def test_unparsable_yaml_raises(self, work_dir: Path) -> None:
        """Test that broken YAML is an overlay error."""
        path = work_dir / "bad.customize.yaml"
        path.write_text("memories: [unclosed", encoding="utf-8")

        with pytest.raises(OverlayError):
            load_overlay(path)

    def test_non_utf8_overlay_raises(self, work_dir: Path) -> None:
        """Test that an overlay saved in another encoding is an overlay error."""
        path = work_dir / "bmm-pm.customize.yaml"
        path.write_bytes("persona:\n  role: Café\n".encode("latin-1"))

        with pytest.raises(OverlayError):
            load_overlay(path)

    def test_wrong_shape_raises(self, work_dir: Path) -> None:
        """Test schema validation of section types."""
        path = work_dir / "bad.customize.yaml"
        path.write_text("memories: not-a-list\n", encoding="utf-8")

        with pytest.raises(OverlayError) as exc_info:
            load_overlay(path)
        assert exc_info.value.details["path"] == ["memories"]


class TestCompileAgent:
    """Test base + overlay compilation from files."""

    @pytest.fixture
    def base_path(self, work_dir: Path) -> Path:
        """Write a base agent file."""
        path = work_dir / "pm.agent.yaml"
        path.write_text(
            yaml.safe_dump({"agent": sample_agent("john", "Product Manager")}),
            encoding="utf-8",
        )
        return path

    def test_applies_overlay(self, work_dir: Path, base_path: Path) -> None:
        """Test a successful compilation."""
        overlay = work_dir / "bmm-pm.customize.yaml"
        overlay.write_text("memories: [Likes tables]\n", encoding="utf-8")

        compiled, warning = compile_agent(base_path, overlay)

        assert warning is None
        assert compiled.memories == ["Base memory", "Likes tables"]

    def test_malformed_overlay_falls_back_to_base(self, work_dir: Path, base_path: Path) -> None:
        """Test that a broken overlay yields the base and a warning."""
        overlay = work_dir / "bmm-pm.customize.yaml"
        overlay.write_text("persona: [unclosed", encoding="utf-8")

        compiled, warning = compile_agent(base_path, overlay)

        assert compiled == load_base_agent(base_path)
        assert warning is not None
        assert "bmm-pm.customize.yaml" in warning

    def test_missing_base_raises(self, work_dir: Path) -> None:
        """Test that an unusable base is an error."""
        with pytest.raises(AgentDefinitionError):
            load_base_agent(work_dir / "missing.agent.yaml")

        no_agent = work_dir / "empty.agent.yaml"
        no_agent.write_text("name: x\n", encoding="utf-8")
        with pytest.raises(AgentDefinitionError):
            load_base_agent(no_agent)

    def test_non_utf8_base_raises(self, work_dir: Path) -> None:
        """Test that an undecodable base definition is an agent definition error."""
        path = work_dir / "latin.agent.yaml"
        path.write_bytes("agent:\n  metadata:\n    name: Café\n".encode("latin-1"))

        with pytest.raises(AgentDefinitionError):
            load_base_agent(path)


class TestOverlayTemplate:
    """Test overlay locations and template creation."""

    def test_overlay_path(self, work_dir: Path) -> None:
        """Test the overlay naming scheme."""
        path = overlay_path_for(work_dir / "_config", "bmm", "pm")
        assert path == work_dir / "_config" / "agents" / "bmm-pm.customize.yaml"

    def test_template_created_once(self, work_dir: Path) -> None:
        """Test that user edits are never overwritten."""
        path = overlay_path_for(work_dir, "bmm", "pm")

        assert ensure_overlay_template(path) is True
        path.write_text("memories: [mine]\n", encoding="utf-8")
        assert ensure_overlay_template(path) is False
        assert path.read_text(encoding="utf-8") == "memories: [mine]\n"
