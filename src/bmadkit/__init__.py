"""bmadkit: manifest-driven artifact compiler and installer for AI agent modules."""

__version__ = "0.1.0"
__author__ = "bmadkit Contributors"
__description__ = "Manifest-driven artifact compiler and installer for AI agent modules"

from .compiler import ArtifactCompiler
from .installer import Installer, resolve_action
from .manifests import ManifestGenerator, ManifestLoader
from .models import ArtifactRecord, ArtifactType, InstallConfig, NamingConvention
from .status import read_status

__all__ = [
    "ArtifactCompiler",
    "ArtifactRecord",
    "ArtifactType",
    "InstallConfig",
    "Installer",
    "ManifestGenerator",
    "ManifestLoader",
    "NamingConvention",
    "read_status",
    "resolve_action",
]
