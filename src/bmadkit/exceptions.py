"""Custom exceptions for bmadkit."""

from typing import Any


class BmadKitError(Exception):
    """Base exception for all bmadkit errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.details = details or {}


class ConfigurationError(BmadKitError):
    """Raised when the install configuration is invalid."""


class ManifestError(BmadKitError):
    """Raised when a per-type artifact manifest cannot be read at all."""


class OverlayError(BmadKitError):
    """Raised when an agent customization overlay is malformed."""


class AgentDefinitionError(BmadKitError):
    """Raised when a base agent definition cannot be read."""


class InstallationError(BmadKitError):
    """Raised when an install step fails and the run must abort."""


class CorruptManifestError(BmadKitError):
    """Raised when the persisted installation manifest cannot be parsed."""
