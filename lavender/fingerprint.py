"""Content fingerprints for resource files."""

from __future__ import annotations

import hashlib
from typing import Any

from .errors import ConfigurationError, IOFailure
from .fs import FileSystem, LocalFileSystem

DEFAULT_ALGORITHM = "md5"
_CHUNK_SIZE = 1024 * 1024


class ContentFingerprinter:
    """Hashes file bytes in chunks and renders the digest as lowercase hex."""

    def __init__(
        self,
        filesystem: FileSystem | None = None,
        *,
        algorithm: str = DEFAULT_ALGORITHM,
    ) -> None:
        try:
            probe = hashlib.new(algorithm)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"unsupported hash algorithm: {algorithm}") from exc
        if not probe.digest_size:
            # Variable-length digests (shake_*) have no fixed hex rendering.
            raise ConfigurationError(f"unsupported hash algorithm: {algorithm}")
        self.filesystem = filesystem or LocalFileSystem()
        self.algorithm = algorithm

    def fingerprint(self, location: Any) -> str:
        digest = hashlib.new(self.algorithm)
        try:
            with self.filesystem.open_binary(location) as handle:
                for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
                    digest.update(chunk)
        except OSError as exc:
            raise IOFailure(f"cannot read {location}: {exc.strerror or exc}") from exc
        return digest.hexdigest()


__all__ = ["ContentFingerprinter", "DEFAULT_ALGORITHM"]
