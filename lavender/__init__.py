"""Build-time generator for lavender resource manifests."""

from .builder import ManifestBuilder
from .errors import (
    ConfigurationError,
    IOFailure,
    LavenderError,
    ScmResolutionError,
    TraversalError,
)
from .models import FileEntry, Manifest, ModuleDescriptor, RevisionInfo

__all__ = [
    "ConfigurationError",
    "FileEntry",
    "IOFailure",
    "LavenderError",
    "Manifest",
    "ManifestBuilder",
    "ModuleDescriptor",
    "RevisionInfo",
    "ScmResolutionError",
    "TraversalError",
]
