from __future__ import annotations

from pathlib import Path

import pytest

from lavender.scm.revision import RevisionResolver
from tests._fixtures.module_builder import REVISION, ModuleBuilder


@pytest.fixture
def module_builder(tmp_path: Path) -> ModuleBuilder:
    """Provide a module directory rooted at the pytest tmp_path."""
    return ModuleBuilder(tmp_path)


@pytest.fixture
def git_calls() -> list[list[str]]:
    return []


@pytest.fixture
def resolver(git_calls: list[list[str]]) -> RevisionResolver:
    """A resolver whose git runner always reports a fixed HEAD."""

    def runner(args, cwd, timeout):  # type: ignore[no-untyped-def]
        git_calls.append(list(args))
        return REVISION + "\n"

    return RevisionResolver(runner=runner)
