"""bmadkit command-line interface."""

from __future__ import annotations

import logging
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __version__
from .exceptions import BmadKitError, CorruptManifestError
from .installer import Installer
from .models import ActionType, InstallConfig, InstallPlan, NamingConvention
from .naming import BMAD_FOLDER_NAME
from .status import read_status
from .targets import TARGETS

app = typer.Typer(
    name="bmad",
    help="bmadkit: install agent modules and generate IDE command files",
    add_completion=False,
)
console = Console()

SOURCE_ENVVAR = "BMAD_SOURCE_ROOT"


def _get_version_string() -> str:
    """Get version string from package metadata."""
    try:
        return get_version("bmadkit")
    except PackageNotFoundError:
        return f"{__version__} (development)"


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"bmadkit version {_get_version_string()}")
        raise typer.Exit


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    debug: bool = typer.Option(False, "--debug", help="Show debug logging"),
) -> None:
    """bmadkit: install agent modules and generate IDE command files."""
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
            force=True,
        )


def _print_plan(plan: InstallPlan) -> None:
    table = Table(title="Installation Plan")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Action", plan.action.value)
    table.add_row("Install Folder", str(plan.bmad_dir))
    table.add_row("Modules", ", ".join(plan.modules) or "-")
    table.add_row("IDE Targets", ", ".join(plan.ides) or "-")
    console.print(table)


def _print_warnings(warnings: list[str]) -> None:
    if not warnings:
        return
    console.print(f"\n[yellow]{len(warnings)} warning(s):[/yellow]")
    for warning in warnings:
        console.print(f"  [yellow]![/yellow] {warning}")


@app.command()
def install(
    directory: Path = typer.Option(
        Path("."),
        "--directory",
        "-d",
        help="Project directory to install into",
    ),
    modules: list[str] = typer.Option(
        [],
        "--module",
        "-m",
        help="Module to install (repeatable); core is always installed",
    ),
    tools: list[str] = typer.Option(
        [],
        "--tool",
        "-t",
        help=f"IDE target (repeatable): {', '.join(TARGETS)}",
    ),
    action: ActionType | None = typer.Option(
        None,
        "--action",
        help="install, update, quick-update or compile-agents",
    ),
    output_folder: str = typer.Option("_bmad-output", help="Folder for generated documents"),
    user_name: str = typer.Option("User", help="Name agents address you by"),
    language: str = typer.Option("English", help="Communication language"),
    document_language: str = typer.Option("English", help="Document output language"),
    custom_content: list[Path] = typer.Option(
        [],
        "--custom-content",
        help="Extra module source directory (repeatable)",
    ),
    naming_convention: NamingConvention | None = typer.Option(
        None,
        "--naming-convention",
        help="Override the file naming convention of every IDE target",
    ),
    source: Path | None = typer.Option(
        None,
        "--source",
        envvar=SOURCE_ENVVAR,
        help="Directory containing module sources",
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Install, update or recompile an installation."""
    config = InstallConfig(
        project_directory=directory,
        selected_modules=modules,
        selected_ide_targets=tools,
        action_type=action,
        output_folder=output_folder,
        user_name=user_name,
        communication_language=language,
        document_output_language=document_language,
        custom_content_paths=custom_content,
        naming_convention=naming_convention,
    )

    def confirm(plan: InstallPlan) -> bool:
        _print_plan(plan)
        return yes or typer.confirm("Proceed?", default=True)

    try:
        result = Installer(source_root=source).install(config, confirm=confirm)
    except BmadKitError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    if result.cancelled:
        console.print("Installation cancelled")
        return

    console.print(
        f"[green]✓[/green] {result.action.value}: {result.module_count} module(s), "
        f"{result.agent_count} agent(s) compiled, {result.generated} file(s) generated",
    )
    if result.skipped_modules:
        console.print(
            f"[yellow]Skipped modules:[/yellow] {', '.join(result.skipped_modules)}",
        )
    _print_warnings(result.warnings)


@app.command()
def status(
    directory: Path = typer.Option(
        Path("."),
        "--directory",
        "-d",
        help="Project directory to inspect",
    ),
    bmad_folder: str = typer.Option(BMAD_FOLDER_NAME, help="Installation folder name"),
    source: Path | None = typer.Option(
        None,
        "--source",
        envvar=SOURCE_ENVVAR,
        help="Directory containing module sources, used to detect updates",
    ),
) -> None:
    """Show what is installed in a project."""
    try:
        report = read_status(directory, bmad_folder, source)
    except CorruptManifestError as e:
        console.print(f"[red]Error:[/red] Installation manifest is corrupt: {e}")
        console.print("Run [bold]bmad install --action update[/bold] to reinstall")
        raise typer.Exit(1) from e
    except BmadKitError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    if not report.installed:
        console.print(f"[yellow]No installation found[/yellow] at {report.bmad_dir}")
        return

    manifest = report.manifest
    table = Table(title="Installation Status")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Location", str(report.bmad_dir))
    table.add_row("Installer Version", manifest.installation.version)
    table.add_row("Installed", manifest.installation.install_date.isoformat())
    table.add_row("Last Updated", manifest.installation.last_updated.isoformat())
    table.add_row("IDE Targets", ", ".join(manifest.ides) or "-")
    table.add_row("Output Folder", manifest.output_folder)
    table.add_row("Generated Files", str(len(manifest.files)))
    console.print(table)

    console.print("\n[bold]Modules:[/bold]")
    for module in report.modules:
        console.print(f"  {module.name} [dim]{module.version}[/dim]")

    if report.available_updates:
        console.print("\n[bold]Updates available:[/bold]")
        for update in report.available_updates:
            console.print(
                f"  {update.name}: {update.installed_version} → "
                f"[green]{update.available_version}[/green]",
            )


@app.command()
def uninstall(
    directory: Path = typer.Option(
        Path("."),
        "--directory",
        "-d",
        help="Project directory to uninstall from",
    ),
    keep_ide: bool = typer.Option(False, "--keep-ide", help="Keep IDE command files"),
    keep_output: bool = typer.Option(False, "--keep-output", help="Keep generated documents"),
    keep_modules: bool = typer.Option(False, "--keep-modules", help="Keep installed modules"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Remove an installation from a project."""
    if keep_ide and keep_output and keep_modules:
        console.print("Nothing to remove")
        return

    if not yes and not typer.confirm(f"Remove installation from {directory}?"):
        console.print("Uninstall cancelled")
        return

    try:
        result = Installer().uninstall(
            directory,
            remove_ide=not keep_ide,
            remove_output=not keep_output,
            remove_modules=not keep_modules,
        )
    except BmadKitError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    if not result.installed:
        console.print(f"[yellow]No installation found[/yellow] in {directory}")
        return

    for phase in result.completed_phases:
        console.print(f"[green]✓[/green] Removed {phase.value}")
    if not result.success:
        console.print(
            f"[red]Error:[/red] {result.failed_phase.value} phase failed: {result.error}",
        )
        raise typer.Exit(1)
    console.print(f"{result.removed_files} file(s) removed")


@app.command()
def version() -> None:
    """Show the installed bmadkit version."""
    console.print(f"bmadkit version {_get_version_string()}")


def main() -> None:
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
