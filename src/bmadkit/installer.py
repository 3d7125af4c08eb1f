"""Installation lifecycle: install, update, quick-update, compile and uninstall.

A run is a sequential pipeline::

    copy modules -> module config.yaml -> per-type manifests -> load records
    -> compile agents (base + overlay) -> pointer files per IDE target
    -> installation manifest -> remove orphans and legacy-named files

The installation manifest is replaced atomically after every file it lists
has been written. Files are only deleted once it is in place, so a run that
fails part way leaves the previous manifest and the files it lists intact.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any

import yaml

from . import __version__
from .compiler import ArtifactCompiler, write_if_changed
from .customization import compile_agent, ensure_overlay_template, overlay_path_for
from .exceptions import (
    AgentDefinitionError,
    BmadKitError,
    ConfigurationError,
    CorruptManifestError,
    InstallationError,
)
from .manifests import CONFIG_DIRNAME, ManifestGenerator, ManifestLoader
from .models import (
    ActionType,
    ArtifactRecord,
    ArtifactType,
    GeneratedFile,
    InstallAction,
    InstallationInfo,
    InstallationManifest,
    InstallConfig,
    InstalledModule,
    InstallPlan,
    InstallResult,
    ModuleSource,
    NamingConvention,
    UninstallPhase,
    UninstallResult,
)
from .naming import BMAD_FOLDER_NAME, CORE_MODULE, detect_convention
from .sources import discover_modules, read_module_source
from .status import installation_manifest_path, load_installation_manifest
from .targets import TARGETS, IdeTarget, get_target

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[InstallPlan], bool]

CORE_SETTING_KEYS = (
    "user_name",
    "communication_language",
    "document_output_language",
    "output_folder",
)

_FRESH_ACTIONS = {
    None: InstallAction.FRESH_INSTALL,
    ActionType.INSTALL: InstallAction.FRESH_INSTALL,
    ActionType.UPDATE: InstallAction.FRESH_INSTALL,
    ActionType.UNINSTALL: InstallAction.NO_INSTALLATION,
}

_EXISTING_ACTIONS = {
    ActionType.INSTALL: InstallAction.UPDATE,
    ActionType.UPDATE: InstallAction.UPDATE,
    ActionType.QUICK_UPDATE: InstallAction.QUICK_UPDATE,
    ActionType.COMPILE_AGENTS: InstallAction.COMPILE_AGENTS,
    ActionType.UNINSTALL: InstallAction.UNINSTALL,
}


def resolve_action(has_manifest: bool, requested: ActionType | None) -> InstallAction:
    """Resolve the lifecycle action from installation state and request.

    Args:
        has_manifest: Whether an installation manifest exists
        requested: Action the caller asked for, if any

    Returns:
        The action to run

    Raises:
        ConfigurationError: If the request is not valid in this state, for
            example a quick update with nothing installed, or an existing
            installation with no explicit action
    """
    if requested is ActionType.CANCEL:
        msg = "Cancel is not a runnable action"
        raise ConfigurationError(msg)

    if not has_manifest:
        if requested in _FRESH_ACTIONS:
            return _FRESH_ACTIONS[requested]
        msg = f"Cannot run '{requested.value}': no installation found"
        raise ConfigurationError(msg, details={"requested": requested.value})

    if requested is None:
        msg = "An installation already exists; choose update, quick-update or compile-agents"
        raise ConfigurationError(msg)
    return _EXISTING_ACTIONS[requested]


@dataclass
class _Run:
    """Everything one pipeline run needs, resolved before any write."""

    action: InstallAction
    project_dir: Path
    bmad_dir: Path
    modules: list[str]
    sources: dict[str, ModuleSource]
    targets: list[IdeTarget]
    core_settings: dict[str, Any]
    module_settings: dict[str, dict[str, Any]]
    output_folder: str
    convention_override: NamingConvention | None
    previous: InstallationManifest | None
    warnings: list[str] = field(default_factory=list)
    skipped_modules: list[str] = field(default_factory=list)

    def plan(self) -> InstallPlan:
        return InstallPlan(
            action=self.action,
            bmad_dir=self.bmad_dir,
            modules=self.modules,
            ides=[target.code for target in self.targets],
        )


class Installer:
    """Runs install, update and uninstall operations against a project."""

    def __init__(
        self,
        source_root: Path | None = None,
        bmad_folder: str = BMAD_FOLDER_NAME,
    ) -> None:
        """Initialize installer.

        Args:
            source_root: Directory containing one folder per module source
            bmad_folder: Installation folder name inside the project
        """
        self.source_root = Path(source_root) if source_root else None
        self.bmad_folder = bmad_folder

    def available_modules(self) -> dict[str, ModuleSource]:
        """Modules that can be installed from the source root."""
        return discover_modules(self.source_root)

    def bmad_dir(self, project_dir: Path) -> Path:
        """Installation directory of ``project_dir``."""
        return Path(project_dir) / self.bmad_folder

    def install(
        self,
        config: InstallConfig,
        confirm: ConfirmCallback | None = None,
    ) -> InstallResult:
        """Install or update according to ``config``.

        Args:
            config: Front-end configuration
            confirm: Called with the plan before the first write; returning
                False cancels the run

        Returns:
            Result of the resolved action

        Raises:
            ConfigurationError: If the configuration is invalid (nothing written)
            InstallationError: If writing fails (manifest left untouched)
        """
        if config.action_type is ActionType.CANCEL:
            return InstallResult.cancelled_result()

        project_dir = self._validate_project(config.project_directory)
        warnings: list[str] = []
        try:
            previous = load_installation_manifest(
                installation_manifest_path(self.bmad_dir(project_dir)),
            )
        except CorruptManifestError as e:
            if config.action_type not in (None, ActionType.INSTALL, ActionType.UPDATE):
                raise
            warnings.append(f"Existing installation manifest is unreadable, reinstalling: {e}")
            logger.warning(warnings[-1])
            previous = None

        action = resolve_action(previous is not None, config.action_type)
        if action is InstallAction.QUICK_UPDATE:
            return self.quick_update(config, confirm)
        if action is InstallAction.COMPILE_AGENTS:
            return self.compile_agents(config, confirm)
        if action in (InstallAction.UNINSTALL, InstallAction.NO_INSTALLATION):
            msg = "Uninstall is a separate operation; use Installer.uninstall"
            raise ConfigurationError(msg)

        targets = self._resolve_targets(config.selected_ide_targets)
        sources = self._resolve_sources(config)
        self._validate_output_folder(config.output_folder)

        run = _Run(
            action=action,
            project_dir=project_dir,
            bmad_dir=self.bmad_dir(project_dir),
            modules=list(sources),
            sources=sources,
            targets=targets,
            core_settings=config.core_settings(),
            module_settings=config.module_settings,
            output_folder=config.output_folder,
            convention_override=config.naming_convention,
            previous=previous,
            warnings=warnings,
        )
        if confirm is not None and not confirm(run.plan()):
            return InstallResult.cancelled_result(action)
        return self._execute(run)

    def quick_update(
        self,
        config: InstallConfig,
        confirm: ConfirmCallback | None = None,
    ) -> InstallResult:
        """Re-run the pipeline using the existing installation's choices.

        Installed modules, IDE targets, output folder and per-module settings
        come from the installation and override whatever ``config`` holds.
        Modules whose source is no longer available keep their installed
        content and are reported in ``skipped_modules``.

        Raises:
            ConfigurationError: If nothing is installed
            CorruptManifestError: If the installation manifest is unreadable
        """
        project_dir = self._validate_project(config.project_directory)
        bmad_dir = self.bmad_dir(project_dir)
        previous = load_installation_manifest(installation_manifest_path(bmad_dir))
        if previous is None:
            msg = f"No installation found at {bmad_dir}; run a regular install first"
            raise ConfigurationError(msg, details={"path": str(bmad_dir)})

        available = self.available_modules()
        warnings: list[str] = []
        sources: dict[str, ModuleSource] = {}
        skipped: list[str] = []
        for name in previous.module_names():
            if name in available:
                sources[name] = available[name]
            elif (bmad_dir / name).is_dir():
                skipped.append(name)
                warnings.append(f"No source for module '{name}', keeping installed content")
            else:
                skipped.append(name)
                warnings.append(f"Module '{name}' has no source and no installed content")

        targets = []
        for code in previous.ides:
            if code in TARGETS:
                targets.append(TARGETS[code])
            else:
                warnings.append(f"Unknown IDE target '{code}' in installation manifest, skipped")

        existing = self._read_module_configs(bmad_dir, previous.module_names())
        core_settings = config.core_settings()
        core_settings.update({
            k: v for k, v in existing.get(CORE_MODULE, {}).items() if k in CORE_SETTING_KEYS
        })
        output_folder = previous.output_folder or core_settings["output_folder"]
        core_settings["output_folder"] = output_folder
        module_settings = {
            name: {k: v for k, v in values.items() if k not in CORE_SETTING_KEYS}
            for name, values in existing.items()
        }

        for message in warnings:
            logger.warning(message)

        modules = [
            name for name in previous.module_names()
            if name in sources or (bmad_dir / name).is_dir()
        ]
        run = _Run(
            action=InstallAction.QUICK_UPDATE,
            project_dir=project_dir,
            bmad_dir=bmad_dir,
            modules=modules,
            sources=sources,
            targets=targets,
            core_settings=core_settings,
            module_settings=module_settings,
            output_folder=output_folder,
            convention_override=config.naming_convention or previous.naming_convention,
            previous=previous,
            warnings=warnings,
            skipped_modules=skipped,
        )
        if confirm is not None and not confirm(run.plan()):
            return InstallResult.cancelled_result(InstallAction.QUICK_UPDATE)
        return self._execute(run)

    def compile_agents(
        self,
        config: InstallConfig,
        confirm: ConfirmCallback | None = None,
    ) -> InstallResult:
        """Recompile agents from installed content and refresh agent pointers.

        Modules are not copied and the installation manifest is not rewritten.
        Agent pointers are regenerated under the convention each target was
        installed with, so the files written are the ones the manifest lists.

        Args:
            config: Front-end configuration; only the project directory is used
            confirm: Called with the plan before the first write; returning
                False cancels the run

        Raises:
            ConfigurationError: If nothing is installed
            InstallationError: If writing fails
        """
        project_dir = self._validate_project(config.project_directory)
        bmad_dir = self.bmad_dir(project_dir)
        previous = load_installation_manifest(installation_manifest_path(bmad_dir))
        if previous is None:
            msg = f"No installation found at {bmad_dir}"
            raise ConfigurationError(msg, details={"path": str(bmad_dir)})

        targets = [TARGETS[code] for code in previous.ides if code in TARGETS]
        plan = InstallPlan(
            action=InstallAction.COMPILE_AGENTS,
            bmad_dir=bmad_dir,
            modules=previous.module_names(),
            ides=[target.code for target in targets],
        )
        if confirm is not None and not confirm(plan):
            return InstallResult.cancelled_result(InstallAction.COMPILE_AGENTS)

        loader = ManifestLoader(self.bmad_folder, project_dir)
        records = [
            r for r in loader.load_all(bmad_dir / CONFIG_DIRNAME)
            if r.type is ArtifactType.AGENT
        ]
        compiler = ArtifactCompiler(project_dir, self.bmad_folder)
        warnings = list(loader.warnings)

        try:
            agent_count = self._compile_agent_files(bmad_dir, records, compiler, warnings)
            files: list[GeneratedFile] = []
            for target in targets:
                files.extend(self._generate_pointers(
                    project_dir,
                    records,
                    [target],
                    _installed_convention(previous, target),
                    compiler,
                ))
        except OSError as e:
            msg = f"Agent compilation failed: {e}"
            raise InstallationError(msg) from e

        warnings.extend(compiler.warnings)
        return InstallResult(
            action=InstallAction.COMPILE_AGENTS,
            module_count=len(previous.modules),
            modules=previous.module_names(),
            agent_count=agent_count,
            generated=len(files),
            warnings=warnings,
        )

    def uninstall(
        self,
        project_dir: Path,
        remove_ide: bool = True,
        remove_output: bool = True,
        remove_modules: bool = True,
    ) -> UninstallResult:
        """Remove an installation in phases: IDE files, output, module content.

        Phases run in that fixed order. A failing phase stops the run; phases
        already completed are not rolled back. A project with neither a
        manifest nor an installation folder is reported as not installed and
        left untouched.
        """
        project_dir = self._validate_project(project_dir)
        bmad_dir = self.bmad_dir(project_dir)
        try:
            manifest = load_installation_manifest(installation_manifest_path(bmad_dir))
        except CorruptManifestError as e:
            logger.warning("Installation manifest unreadable, sweeping known targets: %s", e)
            manifest = None
        else:
            if manifest is None and not bmad_dir.is_dir():
                logger.info("No installation found at %s", bmad_dir)
                return UninstallResult(installed=False)

        phases = [
            (UninstallPhase.IDE, remove_ide, self._uninstall_ide),
            (UninstallPhase.OUTPUT, remove_output, self._uninstall_output),
            (UninstallPhase.MODULES, remove_modules, self._uninstall_modules),
        ]

        result = UninstallResult()
        for phase, enabled, run_phase in phases:
            if not enabled:
                continue
            try:
                result.removed_files += run_phase(project_dir, manifest, remove_modules)
            except (OSError, BmadKitError) as e:
                logger.error("Uninstall phase '%s' failed: %s", phase.value, e)
                result.success = False
                result.failed_phase = phase
                result.error = str(e)
                break
            result.completed_phases.append(phase)
        return result

    def _execute(self, run: _Run) -> InstallResult:
        bmad_dir = run.bmad_dir
        config_dir = bmad_dir / CONFIG_DIRNAME
        compiler = ArtifactCompiler(run.project_dir, self.bmad_folder)

        try:
            (config_dir / "agents").mkdir(parents=True, exist_ok=True)
            for name, source in run.sources.items():
                self._copy_module(source, bmad_dir / name)
            self._write_module_configs(run)
            (run.project_dir / run.output_folder).mkdir(parents=True, exist_ok=True)

            generator = ManifestGenerator(bmad_dir)
            generator.generate(run.modules)
            run.warnings.extend(generator.warnings)

            loader = ManifestLoader(self.bmad_folder, run.project_dir)
            records = loader.load_all(config_dir)
            run.warnings.extend(loader.warnings)

            agents = [r for r in records if r.type is ArtifactType.AGENT]
            agent_count = self._compile_agent_files(bmad_dir, agents, compiler, run.warnings)

            files: list[GeneratedFile] = []
            for target in run.targets:
                convention = run.convention_override or target.convention
                files.extend(self._generate_pointers(
                    run.project_dir, records, [target], convention, compiler,
                ))
            run.warnings.extend(compiler.warnings)

            manifest = self._build_manifest(run, files)
            self._write_manifest(installation_manifest_path(bmad_dir), manifest)

            # After the manifest is replaced: a failed write must leave every
            # file the previous manifest lists on disk.
            self._remove_orphans(run.project_dir, run.previous, files)
            self._remove_legacy_files(run, files)
        except OSError as e:
            msg = f"Installation failed: {e}"
            raise InstallationError(
                msg,
                details={"path": getattr(e, "filename", None), "action": run.action.value},
            ) from e

        for message in run.warnings:
            logger.debug("Run warning: %s", message)

        return InstallResult(
            action=run.action,
            module_count=len(run.modules),
            modules=run.modules,
            agent_count=agent_count,
            generated=len(files),
            warnings=run.warnings,
            skipped_modules=run.skipped_modules,
        )

    def _validate_project(self, project_dir: Path) -> Path:
        project_dir = Path(project_dir).expanduser()
        if not project_dir.is_dir():
            msg = f"Project directory does not exist: {project_dir}"
            raise ConfigurationError(msg, details={"path": str(project_dir)})
        return project_dir.resolve()

    def _validate_output_folder(self, output_folder: str) -> None:
        path = PurePosixPath(output_folder.replace("\\", "/"))
        if not output_folder or path.is_absolute() or ".." in path.parts:
            msg = f"Output folder must be a path inside the project: {output_folder!r}"
            raise ConfigurationError(msg)

    def _resolve_targets(self, codes: list[str]) -> list[IdeTarget]:
        targets: list[IdeTarget] = []
        for code in codes:
            target = get_target(code)
            if target not in targets:
                targets.append(target)
        return targets

    def _resolve_sources(self, config: InstallConfig) -> dict[str, ModuleSource]:
        available = self.available_modules()
        custom = [read_module_source(p) for p in config.custom_content_paths]
        available.update({source.code: source for source in custom})

        if CORE_MODULE not in available:
            msg = "The core module is not available from the module source root"
            raise ConfigurationError(
                msg,
                details={"source_root": str(self.source_root) if self.source_root else None},
            )

        sources = {CORE_MODULE: available[CORE_MODULE]}
        for name in [*config.selected_modules, *(source.code for source in custom)]:
            if name in sources:
                continue
            if name not in available:
                msg = f"Unknown module: {name}"
                raise ConfigurationError(
                    msg,
                    details={"module": name, "available": sorted(available)},
                )
            sources[name] = available[name]
        return sources

    def _copy_module(self, source: ModuleSource, destination: Path) -> None:
        """Replace the installed copy of a module with its source tree."""
        staging = destination.with_name(f".{destination.name}.staging")
        if staging.exists():
            shutil.rmtree(staging)
        shutil.copytree(source.path, staging)
        if destination.exists():
            shutil.rmtree(destination)
        staging.rename(destination)

    def _read_module_configs(self, bmad_dir: Path, modules: list[str]) -> dict[str, dict[str, Any]]:
        configs: dict[str, dict[str, Any]] = {}
        for name in modules:
            config_file = bmad_dir / name / "config.yaml"
            if not config_file.is_file():
                continue
            try:
                data = yaml.safe_load(config_file.read_text(encoding="utf-8"))
            except (yaml.YAMLError, OSError, UnicodeDecodeError) as e:
                logger.warning("Ignoring unreadable %s: %s", config_file, e)
                continue
            if isinstance(data, dict):
                configs[name] = data
        return configs

    def _write_module_configs(self, run: _Run) -> None:
        for name in run.modules:
            module_dir = run.bmad_dir / name
            if not module_dir.is_dir():
                continue
            source = run.sources.get(name)
            values: dict[str, Any] = dict(source.default_settings) if source else {}
            values.update(run.module_settings.get(name, {}))
            values.update(run.core_settings)

            header = (
                f"# {name.upper()} Module Configuration\n"
                f"# Generated by bmadkit installer\n\n"
            )
            body = yaml.safe_dump(values, default_flow_style=False, sort_keys=False, allow_unicode=True)
            write_if_changed(module_dir / "config.yaml", header + body)

    def _compile_agent_files(
        self,
        bmad_dir: Path,
        records: list[ArtifactRecord],
        compiler: ArtifactCompiler,
        warnings: list[str],
    ) -> int:
        """Compile every agent record that has a base definition."""
        config_dir = bmad_dir / CONFIG_DIRNAME
        project_dir = compiler.project_root
        count = 0
        for record in records:
            if not record.base_path:
                continue
            compiled_path = compiler.resolve_source(record)
            base_path = compiler.resolve_path(record.base_path)
            if compiled_path is None or base_path is None:
                message = (
                    f"Skipping agent '{record.module}/{record.name}': path outside the "
                    f"project ({record.source_path}, {record.base_path})"
                )
                warnings.append(message)
                logger.warning(message)
                continue
            overlay = overlay_path_for(config_dir, record.module, record.name)
            ensure_overlay_template(overlay)
            try:
                definition, warning = compile_agent(project_dir / base_path, overlay)
            except AgentDefinitionError as e:
                warnings.append(str(e))
                logger.warning("Skipping agent %s: %s", record.name, e)
                continue
            if warning:
                warnings.append(warning)
            document = compiler.compile_agent_document(definition, record)
            write_if_changed(project_dir / compiled_path, document)
            count += 1
        return count

    def _generate_pointers(
        self,
        project_dir: Path,
        records: list[ArtifactRecord],
        targets: list[IdeTarget],
        convention: NamingConvention,
        compiler: ArtifactCompiler,
    ) -> list[GeneratedFile]:
        files: list[GeneratedFile] = []
        for target in targets:
            for record in records:
                output = target.output_for(record.type)
                if output is None:
                    continue
                path = compiler.generate(
                    record,
                    convention,
                    project_dir / output.directory,
                    output.extension,
                )
                if path is None:
                    continue
                files.append(GeneratedFile(
                    path=path.relative_to(project_dir).as_posix(),
                    ide=target.code,
                    type=record.type,
                    module=record.module,
                    name=record.name,
                ))
        return files

    def _remove_orphans(
        self,
        project_dir: Path,
        previous: InstallationManifest | None,
        files: list[GeneratedFile],
    ) -> int:
        """Delete files the previous run generated that this run did not."""
        if previous is None:
            return 0
        current = {f.path for f in files}
        removed = 0
        for old in previous.files:
            if old.path in current:
                continue
            path = project_dir / old.path
            if path.is_file():
                path.unlink()
                removed += 1
                logger.debug("Removed orphaned %s", old.path)
        return removed

    def _remove_legacy_files(self, run: _Run, files: list[GeneratedFile]) -> int:
        """Delete files named under a convention other than the active one."""
        current = {f.path for f in files}
        removed = 0
        for target in run.targets:
            active = run.convention_override or target.convention
            for directory in target.directories:
                target_dir = run.project_dir / directory
                if not target_dir.is_dir():
                    continue
                for path in sorted(target_dir.iterdir()):
                    if not path.is_file():
                        continue
                    relative = path.relative_to(run.project_dir).as_posix()
                    convention = detect_convention(path.name)
                    if relative in current or convention is None or convention is active:
                        continue
                    path.unlink()
                    removed += 1
                    logger.debug("Removed legacy %s", relative)
        return removed

    def _build_manifest(self, run: _Run, files: list[GeneratedFile]) -> InstallationManifest:
        now = datetime.now(timezone.utc)
        previous = run.previous
        installed_on = previous.installation.install_date if previous else now

        modules = []
        for name in run.modules:
            old = previous.get_module(name) if previous else None
            source = run.sources.get(name)
            if source is not None:
                version, origin = source.version, str(source.path)
            else:
                version = old.version if old else "0.0.0"
                origin = old.source if old else None
            modules.append(InstalledModule(
                name=name,
                version=version,
                source=origin,
                install_date=old.install_date if old else now,
                last_updated=now,
            ))

        conventions = {run.convention_override or t.convention for t in run.targets}
        return InstallationManifest(
            installation=InstallationInfo(
                version=__version__,
                install_date=installed_on,
                last_updated=now,
            ),
            modules=modules,
            ides=[target.code for target in run.targets],
            output_folder=run.output_folder,
            naming_convention=(
                conventions.pop() if len(conventions) == 1 else NamingConvention.DASH
            ),
            files=files,
        )

    def _write_manifest(self, path: Path, manifest: InstallationManifest) -> None:
        """Write the manifest through a temporary file and atomic replace."""
        path.parent.mkdir(parents=True, exist_ok=True)
        content = yaml.safe_dump(
            manifest.model_dump(mode="json"),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
        temp = path.with_name(f".{path.name}.tmp")
        temp.write_text(content, encoding="utf-8")
        os.replace(temp, path)

    def _uninstall_ide(
        self,
        project_dir: Path,
        manifest: InstallationManifest | None,
        removing_modules: bool,
    ) -> int:
        removed = 0
        if manifest is not None:
            for entry in manifest.files:
                path = project_dir / entry.path
                if path.is_file():
                    path.unlink()
                    removed += 1
            if not removing_modules:
                remaining = manifest.model_copy(update={"ides": [], "files": []})
                self._write_manifest(
                    installation_manifest_path(self.bmad_dir(project_dir)),
                    remaining,
                )
            return removed

        for target in TARGETS.values():
            for directory in target.directories:
                target_dir = project_dir / directory
                if not target_dir.is_dir():
                    continue
                for path in sorted(target_dir.iterdir()):
                    if path.is_file() and detect_convention(path.name) is not None:
                        path.unlink()
                        removed += 1
        return removed

    def _uninstall_output(
        self,
        project_dir: Path,
        manifest: InstallationManifest | None,
        removing_modules: bool,  # noqa: ARG002
    ) -> int:
        if manifest is not None:
            output_folder = manifest.output_folder
        else:
            core = self._read_module_configs(self.bmad_dir(project_dir), [CORE_MODULE])
            output_folder = core.get(CORE_MODULE, {}).get("output_folder", "_bmad-output")

        self._validate_output_folder(str(output_folder))
        return _remove_tree(project_dir / output_folder)

    def _uninstall_modules(
        self,
        project_dir: Path,
        manifest: InstallationManifest | None,  # noqa: ARG002
        removing_modules: bool,  # noqa: ARG002
    ) -> int:
        return _remove_tree(self.bmad_dir(project_dir))


def _remove_tree(path: Path) -> int:
    """Remove a directory tree, returning how many files it held."""
    if not path.exists():
        return 0
    count = sum(1 for p in path.rglob("*") if p.is_file())
    shutil.rmtree(path)
    return count


def _installed_convention(manifest: InstallationManifest, target: IdeTarget) -> NamingConvention:
    """Convention the target's recorded files were generated under."""
    for entry in manifest.files:
        if entry.ide != target.code:
            continue
        convention = detect_convention(PurePosixPath(entry.path).name)
        if convention is not None:
            return convention
    return manifest.naming_convention
