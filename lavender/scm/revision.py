"""Resolve the checked-out revision of a module's working copy."""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Mapping, Sequence, Tuple

from ..errors import ScmResolutionError
from ..logging import get_logger
from ..models import RevisionInfo

DEFAULT_TIMEOUT = 60.0

CommandRunner = Callable[..., str]


@dataclass(frozen=True)
class InfoItem:
    """One item reported by a provider's info command."""

    revision: str


@dataclass(frozen=True)
class InfoResult:
    """Outcome of a provider info call: a success flag plus zero or more items."""

    success: bool
    items: Sequence[InfoItem] = field(default_factory=tuple)
    message: str = ""


class ScmProvider(ABC):
    """Adapter for one version-control system."""

    name: str = ""

    @abstractmethod
    def info(self, url: str, working_directory: Path, run: CommandRunner) -> InfoResult:
        """Report the revision checked out in ``working_directory``."""


class GitProvider(ScmProvider):
    name = "git"

    def info(self, url: str, working_directory: Path, run: CommandRunner) -> InfoResult:
        try:
            output = run(["git", "rev-parse", "HEAD"], cwd=working_directory)
        except subprocess.CalledProcessError as exc:
            return InfoResult(success=False, message=_process_detail(exc))
        revision = output.strip()
        if not revision:
            return InfoResult(success=True)
        return InfoResult(success=True, items=(InfoItem(revision=revision),))


class SvnProvider(ScmProvider):
    name = "svn"

    def info(self, url: str, working_directory: Path, run: CommandRunner) -> InfoResult:
        try:
            output = run(["svn", "info", "--non-interactive"], cwd=working_directory)
        except subprocess.CalledProcessError as exc:
            return InfoResult(success=False, message=_process_detail(exc))
        items = []
        for line in output.splitlines():
            key, sep, value = line.partition(":")
            if sep and key.strip() == "Revision" and value.strip():
                items.append(InfoItem(revision=value.strip()))
        return InfoResult(success=True, items=tuple(items))


_DEFAULT_PROVIDERS: Tuple[ScmProvider, ...] = (GitProvider(), SvnProvider())


def parse_connection(connection: str) -> Tuple[str, str]:
    """Split ``scm:<provider>:<url>`` (or ``scm:<provider>|<url>``) into provider and url."""
    if not connection or not connection.startswith("scm:"):
        raise ScmResolutionError(f"invalid scm connection: {connection!r}")
    remainder = connection[4:]
    separators = [index for index in (remainder.find(":"), remainder.find("|")) if index > 0]
    if not separators:
        raise ScmResolutionError(f"invalid scm connection: {connection!r}")
    split_at = min(separators)
    return remainder[:split_at], remainder[split_at + 1:]


class RevisionResolver:
    """Asks the module's version-control system for the current revision.

    There is no retry and no caching: every failure, whether the provider
    reports nothing, reports failure, or cannot be reached, raises
    ``ScmResolutionError``.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        providers: Iterable[ScmProvider] | None = None,
    ) -> None:
        self._runner = runner or self._default_runner
        self.timeout = timeout
        self._providers: Mapping[str, ScmProvider] = {
            provider.name: provider for provider in (providers or _DEFAULT_PROVIDERS)
        }
        self.logger = get_logger("scm")

    def resolve(self, connection: str, working_directory: Path | str) -> RevisionInfo:
        provider_name, url = parse_connection(connection)
        provider = self._providers.get(provider_name)
        if provider is None:
            raise ScmResolutionError(f"unsupported scm provider: {provider_name}")

        self.logger.debug("Querying %s revision for %s", provider_name, working_directory)
        try:
            result = provider.info(url, Path(working_directory), self._run)
        except subprocess.TimeoutExpired as exc:
            raise ScmResolutionError(
                f"scm operation timed out after {exc.timeout:g}s"
            ) from exc
        except subprocess.CalledProcessError as exc:
            raise ScmResolutionError(f"scm operation failed: {_process_detail(exc)}") from exc
        except OSError as exc:
            raise ScmResolutionError(f"scm operation failed: {exc}") from exc

        if result is None or not result.items:
            detail = f": {result.message}" if result is not None and result.message else ""
            raise ScmResolutionError(f"cannot determine scm revision{detail}")
        if not result.success:
            raise ScmResolutionError(f"scm operation failed: {result.message or result}")
        return RevisionInfo(revision=result.items[0].revision)

    # ------------------------------------------------------------------
    # Internals

    def _run(self, args: Iterable[str], *, cwd: Path) -> str:
        return self._runner(args, cwd=cwd, timeout=self.timeout)

    @staticmethod
    def _default_runner(args: Iterable[str], *, cwd: Path, timeout: float) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            capture_output=True,
            timeout=timeout,
        )
        return completed.stdout


def _process_detail(exc: subprocess.CalledProcessError) -> str:
    stderr = exc.stderr.strip() if isinstance(exc.stderr, str) else ""
    return stderr or f"exit status {exc.returncode}"


__all__ = [
    "GitProvider",
    "InfoItem",
    "InfoResult",
    "RevisionResolver",
    "ScmProvider",
    "SvnProvider",
    "parse_connection",
]
