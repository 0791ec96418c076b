"""Depth-first resource tree traversal."""

from __future__ import annotations

from typing import Any, Callable, Hashable, List, Set

from .errors import TraversalError
from .fs import DIRECTORY, FILE, FileSystem, LocalFileSystem
from .logging import get_logger
from .models import FileEntry, ScanResult

PathPredicate = Callable[[str], bool]


class TreeScanner:
    """Walks a source root and yields the regular files accepted by a predicate."""

    def __init__(self, filesystem: FileSystem | None = None) -> None:
        self.filesystem = filesystem or LocalFileSystem()
        self.logger = get_logger("scanner")

    def scan(self, root: Any, accept: PathPredicate) -> ScanResult:
        """Return matching entries in per-directory lexicographic order.

        A missing root (or one that is not a directory) yields an empty result
        flagged with ``root_present=False``; an unreadable directory or an entry
        whose kind cannot be determined is fatal.
        """
        if self._inspect(self.filesystem.kind, root, ".") != DIRECTORY:
            return ScanResult.missing()

        entries: List[FileEntry] = []
        root_identity = self._inspect(self.filesystem.identity, root, ".")
        self._walk(root, "", accept, entries, {root_identity})
        return ScanResult(root_present=True, entries=tuple(entries))

    def _walk(
        self,
        directory: Any,
        rel_dir: str,
        accept: PathPredicate,
        entries: List[FileEntry],
        ancestors: Set[Hashable],
    ) -> None:
        fs = self.filesystem
        try:
            names = sorted(fs.list_dir(directory))
        except OSError as exc:
            raise TraversalError(
                f"cannot list {rel_dir or '.'}: {exc.strerror or exc}"
            ) from exc

        for name in names:
            location = fs.join(directory, name)
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            kind = self._inspect(fs.kind, location, rel_path)
            if kind == FILE:
                if accept(rel_path):
                    entries.append(FileEntry(relative_path=rel_path, location=location))
            elif kind == DIRECTORY:
                identity = self._inspect(fs.identity, location, rel_path)
                if identity in ancestors:
                    self.logger.warning("Skipping symlink cycle at %s", rel_path)
                    continue
                ancestors.add(identity)
                try:
                    self._walk(location, rel_path, accept, entries, ancestors)
                finally:
                    ancestors.discard(identity)

    @staticmethod
    def _inspect(call: Callable[[Any], Any], location: Any, rel_path: str) -> Any:
        try:
            return call(location)
        except OSError as exc:
            raise TraversalError(f"cannot inspect {rel_path}: {exc.strerror or exc}") from exc


__all__ = ["PathPredicate", "TreeScanner"]
