"""Core data models shared across lavender components."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Sequence, Tuple

from .errors import ConfigurationError

INDEX_PREFIX = "index."
SCM_PREFIX = "scm."


@dataclass(frozen=True)
class ModuleDescriptor:
    """Identity and resource selection settings for one module."""

    name: str
    is_webapp: bool
    source_root: str
    resource_path_prefix: str
    scm_connection: str
    scm_devel_connection: str
    include_patterns: Tuple[str, ...] = ()
    exclude_patterns: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Callers may hand over lists; keep the descriptor hashable and immutable.
        object.__setattr__(self, "include_patterns", tuple(self.include_patterns))
        object.__setattr__(self, "exclude_patterns", tuple(self.exclude_patterns))


@dataclass(frozen=True)
class FileEntry:
    """A matched resource: its slash-separated relative path and where to read it."""

    relative_path: str
    location: Any


@dataclass(frozen=True)
class ScanResult:
    """Outcome of a tree scan; ``root_present`` separates a missing root from an empty one."""

    root_present: bool
    entries: Sequence[FileEntry] = ()

    @classmethod
    def missing(cls) -> "ScanResult":
        return cls(root_present=False, entries=())


@dataclass(frozen=True)
class RevisionInfo:
    """Revision currently checked out in a working copy."""

    revision: str


class Manifest:
    """Ordered key/value manifest with a metadata block followed by index entries."""

    def __init__(self) -> None:
        self._entries: Dict[str, str] = {}

    def put(self, key: str, value: str) -> None:
        if key in self._entries:
            raise ConfigurationError(f"duplicate manifest key: {key}")
        self._entries[key] = value

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._entries.get(key, default)

    def items(self) -> List[Tuple[str, str]]:
        return list(self._entries.items())

    def index(self) -> Dict[str, str]:
        """Return the ``relative path -> fingerprint`` entries."""
        return {
            key[len(INDEX_PREFIX):]: value
            for key, value in self._entries.items()
            if key.startswith(INDEX_PREFIX)
        }

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


__all__ = [
    "FileEntry",
    "INDEX_PREFIX",
    "Manifest",
    "ModuleDescriptor",
    "RevisionInfo",
    "SCM_PREFIX",
    "ScanResult",
]
