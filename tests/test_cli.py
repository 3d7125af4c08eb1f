"""Tests for CLI commands."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from bmadkit.cli import app
from bmadkit.status import installation_manifest_path


class TestCLI:
    """Test CLI commands."""

    @pytest.fixture
    def runner(self) -> CliRunner:
        """Create CLI test runner."""
        return CliRunner()

    def install(self, runner: CliRunner, project_dir: Path, source_root: Path, *extra: str):
        """Run a non-interactive install."""
        return runner.invoke(app, [
            "install",
            "--directory", str(project_dir),
            "--source", str(source_root),
            "--module", "bmm",
            "--tool", "claude-code",
            "--yes",
            *extra,
        ])

    def test_version(self, runner: CliRunner) -> None:
        """Test version command and flag."""
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert "bmadkit version" in result.stdout

        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "bmadkit version" in result.stdout

    def test_install(self, runner: CliRunner, project_dir: Path, source_root: Path) -> None:
        """Test a fresh install from the command line."""
        result = self.install(runner, project_dir, source_root)

        assert result.exit_code == 0, result.stdout
        assert "fresh-install" in result.stdout
        assert (project_dir / ".claude" / "commands" / "bmad-agent-bmm-pm.md").exists()
        assert installation_manifest_path(project_dir / "_bmad").exists()

    def test_install_source_from_environment(
        self,
        runner: CliRunner,
        project_dir: Path,
        source_root: Path,
    ) -> None:
        """Test the module source environment variable."""
        result = runner.invoke(
            app,
            ["install", "-d", str(project_dir), "-t", "cursor", "-y"],
            env={"BMAD_SOURCE_ROOT": str(source_root)},
        )

        assert result.exit_code == 0, result.stdout
        assert (project_dir / ".cursor" / "commands" / "bmad-help.md").exists()

    def test_install_declined(self, runner: CliRunner, project_dir: Path, source_root: Path) -> None:
        """Test answering no at the confirmation prompt."""
        result = runner.invoke(
            app,
            ["install", "-d", str(project_dir), "--source", str(source_root), "-t", "claude-code"],
            input="n\n",
        )

        assert result.exit_code == 0
        assert "cancelled" in result.stdout
        assert list(project_dir.iterdir()) == []

    def test_install_unknown_target(self, runner: CliRunner, project_dir: Path, source_root: Path) -> None:
        """Test that configuration errors exit non-zero."""
        result = runner.invoke(app, [
            "install", "-d", str(project_dir), "--source", str(source_root), "-t", "notepad", "-y",
        ])

        assert result.exit_code == 1
        assert "notepad" in result.stdout

    def test_update_requires_action(self, runner: CliRunner, project_dir: Path, source_root: Path) -> None:
        """Test re-running install over an existing installation."""
        self.install(runner, project_dir, source_root)

        assert self.install(runner, project_dir, source_root).exit_code == 1

        result = self.install(runner, project_dir, source_root, "--action", "quick-update")
        assert result.exit_code == 0, result.stdout
        assert "quick-update" in result.stdout

    def test_status(self, runner: CliRunner, project_dir: Path, source_root: Path) -> None:
        """Test status before and after install."""
        result = runner.invoke(app, ["status", "-d", str(project_dir)])
        assert result.exit_code == 0
        assert "No installation found" in result.stdout

        self.install(runner, project_dir, source_root)
        result = runner.invoke(app, ["status", "-d", str(project_dir)])

        assert result.exit_code == 0
        assert "Installation Status" in result.stdout
        assert "bmm" in result.stdout

    def test_status_corrupt_manifest(self, runner: CliRunner, project_dir: Path) -> None:
        """Test the distinct corrupt manifest message."""
        path = installation_manifest_path(project_dir / "_bmad")
        path.parent.mkdir(parents=True)
        path.write_text("installation: [broken", encoding="utf-8")

        result = runner.invoke(app, ["status", "-d", str(project_dir)])

        assert result.exit_code == 1
        assert "corrupt" in result.stdout

    def test_uninstall_keep_ide(self, runner: CliRunner, project_dir: Path, source_root: Path) -> None:
        """Test removing modules and output while keeping IDE files."""
        self.install(runner, project_dir, source_root)

        result = runner.invoke(app, ["uninstall", "-d", str(project_dir), "--keep-ide", "-y"])

        assert result.exit_code == 0, result.stdout
        assert not (project_dir / "_bmad").exists()
        assert not (project_dir / "_bmad-output").exists()
        assert (project_dir / ".claude" / "commands" / "bmad-agent-bmm-pm.md").exists()

    def test_uninstall_nothing_selected(self, runner: CliRunner, project_dir: Path) -> None:
        """Test that keeping everything is a no-op."""
        result = runner.invoke(app, [
            "uninstall", "-d", str(project_dir), "--keep-ide", "--keep-output", "--keep-modules",
        ])

        assert result.exit_code == 0
        assert "Nothing to remove" in result.stdout

    def test_uninstall_not_installed(self, runner: CliRunner, project_dir: Path) -> None:
        """Test uninstall in a project without an installation."""
        result = runner.invoke(app, ["uninstall", "-d", str(project_dir), "-y"])

        assert result.exit_code == 0
        assert "No installation found" in result.stdout
