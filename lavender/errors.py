"""Error taxonomy for manifest generation runs."""

from __future__ import annotations


class LavenderError(RuntimeError):
    """Base class for failures that abort a generation run."""

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"{self.stage}: {self.message}"
        return self.message


class ConfigurationError(LavenderError):
    """Raised for bad glob patterns, project descriptors or legacy configuration."""


class ScmResolutionError(LavenderError):
    """Raised when the current revision cannot be determined."""


class IOFailure(LavenderError):
    """Raised when a resource cannot be read or the manifest cannot be written."""


class TraversalError(LavenderError):
    """Raised when the source tree cannot be walked."""


__all__ = [
    "ConfigurationError",
    "IOFailure",
    "LavenderError",
    "ScmResolutionError",
    "TraversalError",
]
