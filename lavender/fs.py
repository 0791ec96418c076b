"""Filesystem context passed explicitly to the scanner and fingerprinter."""

from __future__ import annotations

import errno
import os
import stat
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, BinaryIO, Hashable, List

FILE = "file"
DIRECTORY = "directory"
MISSING = "missing"
OTHER = "other"


class FileSystem(ABC):
    """Minimal read-only view of a filesystem used during manifest generation."""

    @abstractmethod
    def kind(self, location: Any) -> str:
        """Return FILE, DIRECTORY, MISSING or OTHER for ``location`` (links followed).

        Raise OSError when the kind cannot be determined, e.g. permission denied.
        """

    @abstractmethod
    def list_dir(self, location: Any) -> List[str]:
        """Return the child names of a directory; raise OSError when unreadable."""

    @abstractmethod
    def join(self, location: Any, name: str) -> Any:
        """Return the location of child ``name`` under ``location``."""

    @abstractmethod
    def identity(self, location: Any) -> Hashable:
        """Return a key identifying the physical directory behind ``location``."""

    @abstractmethod
    def open_binary(self, location: Any) -> BinaryIO:
        """Open a file for binary reading."""


class LocalFileSystem(FileSystem):
    """FileSystem backed by the host operating system."""

    def kind(self, location: Any) -> str:
        try:
            mode = os.stat(location).st_mode
        except (FileNotFoundError, NotADirectoryError):
            # Dangling symlinks land here as well.
            return MISSING
        except OSError as exc:
            if exc.errno == errno.ELOOP and os.path.islink(location):
                return OTHER
            raise
        if stat.S_ISDIR(mode):
            return DIRECTORY
        if stat.S_ISREG(mode):
            return FILE
        return OTHER

    def list_dir(self, location: Any) -> List[str]:
        return os.listdir(location)

    def join(self, location: Any, name: str) -> Path:
        return Path(location) / name

    def identity(self, location: Any) -> Hashable:
        info = os.stat(location)
        return (info.st_dev, info.st_ino)

    def open_binary(self, location: Any) -> BinaryIO:
        return open(location, "rb")


__all__ = ["DIRECTORY", "FILE", "FileSystem", "LocalFileSystem", "MISSING", "OTHER"]
