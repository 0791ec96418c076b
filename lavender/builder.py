"""Manifest generation pipeline: validate, resolve, scan, fingerprint, assemble, emit."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Sequence, Tuple

from .errors import ConfigurationError, IOFailure, LavenderError
from .filters import PathFilter
from .fingerprint import DEFAULT_ALGORITHM, ContentFingerprinter
from .fs import FileSystem, LocalFileSystem
from .logging import get_logger
from .models import INDEX_PREFIX, SCM_PREFIX, FileEntry, Manifest, ModuleDescriptor, RevisionInfo
from .properties import DEFAULT_COMMENT, write_properties
from .scm.revision import RevisionResolver
from .tree_scanner import TreeScanner

ManifestWriter = Callable[[Path, Iterable[Tuple[str, str]], str], Path]

STAGE_VALIDATION = "validation"
STAGE_REVISION = "revision resolution"
STAGE_SCANNING = "scanning"
STAGE_HASHING = "hashing"
STAGE_ASSEMBLY = "assembly"
STAGE_WRITING = "writing"


@contextmanager
def _stage(name: str) -> Iterator[None]:
    try:
        yield
    except LavenderError as exc:
        if exc.stage is None:
            exc.stage = name
        raise
    except OSError as exc:
        raise IOFailure(str(exc), stage=name) from exc


class ManifestBuilder:
    """Coordinates one manifest generation run for a module.

    Every stage either completes or raises; the writer is only called once
    all reads have finished, so it never sees a partial manifest.
    """

    def __init__(
        self,
        resolver: RevisionResolver | None = None,
        *,
        filesystem: FileSystem | None = None,
        scanner: TreeScanner | None = None,
        fingerprinter: ContentFingerprinter | None = None,
        writer: ManifestWriter | None = None,
        workers: int = 1,
        algorithm: str = DEFAULT_ALGORITHM,
    ) -> None:
        self.filesystem = filesystem or LocalFileSystem()
        self.resolver = resolver or RevisionResolver()
        self.scanner = scanner or TreeScanner(self.filesystem)
        self.fingerprinter = fingerprinter or ContentFingerprinter(
            self.filesystem, algorithm=algorithm
        )
        self.writer = writer or write_properties
        self.workers = max(1, workers)
        self.logger = get_logger("builder")

    def generate(
        self,
        descriptor: ModuleDescriptor,
        basedir: Path,
        *,
        legacy_properties: Path | None = None,
        destination: Path | None = None,
    ) -> Manifest:
        """Run the pipeline; ``destination=None`` stops before emitting."""
        self.logger.info("webapp: %s", "true" if descriptor.is_webapp else "false")

        with _stage(STAGE_VALIDATION):
            if legacy_properties is not None:
                check_legacy_properties(legacy_properties)
            accept = PathFilter.compile(descriptor.include_patterns, descriptor.exclude_patterns)

        with _stage(STAGE_REVISION):
            revision = self.resolver.resolve(descriptor.scm_connection, basedir)
        self.logger.info("scm revision: %s", revision.revision)

        with _stage(STAGE_SCANNING):
            result = self.scanner.scan(basedir / descriptor.source_root, accept)
        if not result.root_present:
            self.logger.warning(
                "Source root %s does not exist; manifest has no index entries",
                descriptor.source_root,
            )
        self.logger.debug("Scanner matched %d files", len(result.entries))

        with _stage(STAGE_HASHING):
            fingerprints = self._fingerprint_all(result.entries)

        with _stage(STAGE_ASSEMBLY):
            manifest = assemble_manifest(descriptor, revision, zip(result.entries, fingerprints))
        self.logger.info("indexed %d files", len(fingerprints))

        if destination is not None:
            with _stage(STAGE_WRITING):
                self.writer(destination, manifest.items(), DEFAULT_COMMENT)
            self.logger.info("generated %s", destination)
        return manifest

    def _fingerprint_all(self, entries: Sequence[FileEntry]) -> List[str]:
        locations = [entry.location for entry in entries]
        if self.workers == 1 or len(locations) < 2:
            return [self.fingerprinter.fingerprint(location) for location in locations]

        executor = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="lavender-hash")
        try:
            # map() yields in submission order and re-raises the first failure.
            return list(executor.map(self.fingerprinter.fingerprint, locations))
        finally:
            executor.shutdown(wait=True, cancel_futures=True)


def check_legacy_properties(path: Path) -> None:
    """Reject a non-blank legacy ``lavender.properties`` left in the source tree."""
    if not path.exists():
        return
    if path.read_text(encoding="utf-8", errors="replace").strip():
        raise ConfigurationError(f"source properties not empty: {path}")


def assemble_manifest(
    descriptor: ModuleDescriptor,
    revision: RevisionInfo,
    fingerprints: Iterable[Tuple[FileEntry, str]],
) -> Manifest:
    """Build the metadata block followed by one ``index.`` entry per file."""
    base = f"{SCM_PREFIX}{descriptor.name}"
    manifest = Manifest()
    manifest.put(base, descriptor.scm_connection)
    manifest.put(f"{base}.devel", descriptor.scm_devel_connection)
    manifest.put(f"{base}.path", descriptor.source_root)
    manifest.put(f"{base}.tag", revision.revision)
    manifest.put(f"{base}.includes", ",".join(descriptor.include_patterns))
    manifest.put(f"{base}.excludes", ",".join(descriptor.exclude_patterns))
    manifest.put(f"{base}.resourcePathPrefix", descriptor.resource_path_prefix)
    for entry, fingerprint in fingerprints:
        manifest.put(f"{INDEX_PREFIX}{entry.relative_path}", fingerprint)
    return manifest


__all__ = ["ManifestBuilder", "assemble_manifest", "check_legacy_properties"]
