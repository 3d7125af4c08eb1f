"""Shared fixtures: module source trees and empty project directories."""

import tempfile
from pathlib import Path
from typing import Any

import pytest
import yaml


def write_module(
    source_root: Path,
    code: str,
    version: str = "1.0.0",
    agents: dict[str, dict[str, Any]] | None = None,
    workflows: dict[str, dict[str, Any]] | None = None,
    tasks: dict[str, str] | None = None,
    default_settings: dict[str, Any] | None = None,
) -> Path:
    """Create a module source directory.

    Args:
        source_root: Directory holding module sources
        code: Module code
        version: Module version
        agents: Agent name -> ``agent`` section of its ``*.agent.yaml``
        workflows: Workflow folder -> ``workflow.yaml`` content
        tasks: Task file name -> file content
        default_settings: Default module configuration values
    """
    module_dir = source_root / code
    module_dir.mkdir(parents=True, exist_ok=True)
    (module_dir / "module.yaml").write_text(
        yaml.safe_dump({
            "code": code,
            "name": code.upper(),
            "version": version,
            "description": f"{code} module",
            "default_settings": default_settings or {},
        }),
        encoding="utf-8",
    )

    for name, agent in (agents or {}).items():
        agents_dir = module_dir / "agents"
        agents_dir.mkdir(exist_ok=True)
        (agents_dir / f"{name}.agent.yaml").write_text(
            yaml.safe_dump({"agent": agent}, sort_keys=False),
            encoding="utf-8",
        )

    for folder, workflow in (workflows or {}).items():
        workflow_dir = module_dir / "workflows" / folder
        workflow_dir.mkdir(parents=True, exist_ok=True)
        (workflow_dir / "workflow.yaml").write_text(
            yaml.safe_dump(workflow, sort_keys=False),
            encoding="utf-8",
        )

    for filename, content in (tasks or {}).items():
        tasks_dir = module_dir / "tasks"
        tasks_dir.mkdir(exist_ok=True)
        (tasks_dir / filename).write_text(content, encoding="utf-8")

    return module_dir


def sample_agent(name: str, title: str) -> dict[str, Any]:
    """A small but complete base agent definition."""
    return {
        "metadata": {"name": name.title(), "title": title, "icon": "🤖"},
        "persona": {
            "role": f"{title} role",
            "identity": f"Seasoned {title.lower()}",
            "communication_style": "Direct",
            "principles": ["Ship small", "Ask why"],
        },
        "critical_actions": ["Load project context"],
        "memories": ["Base memory"],
        "menu": [
            {"trigger": "help", "description": "Show help"},
            {"trigger": "plan", "workflow": "{project-root}/_bmad/bmm/workflows/plan/workflow.yaml",
             "description": "Create a plan"},
        ],
    }


@pytest.fixture
def source_root() -> Path:
    """Module sources with a core and a bmm module."""
    with tempfile.TemporaryDirectory() as temp_dir:
        root = Path(temp_dir) / "modules"
        write_module(
            root,
            "core",
            agents={"bmad-master": sample_agent("master", "Master Orchestrator")},
            tasks={
                "help.md": "---\nname: help\ndescription: Show available commands\n---\n\n# Help\n",
                "internal-step.xml": '<task id="x" name="Internal" internal="true">\n</task>\n',
            },
        )
        write_module(
            root,
            "bmm",
            version="2.0.0",
            agents={"pm": sample_agent("john", "Product Manager")},
            workflows={
                "create-prd": {"name": "create-prd", "description": "Create a PRD"},
                "sub-step": {"name": "sub-step", "description": "Step", "standalone": False},
                "templated": {"name": "{workflow_name}", "description": "Template"},
            },
            default_settings={"planning_artifacts": "planning"},
        )
        yield root


@pytest.fixture
def project_dir() -> Path:
    """An empty host project."""
    with tempfile.TemporaryDirectory() as temp_dir:
        project = Path(temp_dir) / "project"
        project.mkdir()
        yield project
