"""Tests for the manifest generation pipeline."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path, PurePosixPath

import pytest

from lavender.builder import ManifestBuilder, assemble_manifest
from lavender.errors import ConfigurationError, IOFailure, ScmResolutionError, TraversalError
from lavender.models import FileEntry, ModuleDescriptor, RevisionInfo
from lavender.properties import write_properties
from lavender.scm.revision import InfoResult, RevisionResolver, ScmProvider
from tests._fixtures.memory_fs import MemoryFileSystem
from tests._fixtures.module_builder import REVISION


def _descriptor(**overrides) -> ModuleDescriptor:  # type: ignore[no-untyped-def]
    values = dict(
        name="foo",
        is_webapp=False,
        source_root="src/main/resources",
        resource_path_prefix="modules/foo/",
        scm_connection="scm:git:https://x",
        scm_devel_connection="scm:git:ssh://x",
        include_patterns=(),
        exclude_patterns=("htdocs/**/*",),
    )
    values.update(overrides)
    return ModuleDescriptor(**values)


class _FailingProvider(ScmProvider):
    name = "git"

    def info(self, url, working_directory, run):  # type: ignore[no-untyped-def]
        return InfoResult(success=True)


def test_manifest_key_scheme() -> None:
    descriptor = _descriptor(include_patterns=("a", "b"), exclude_patterns=("c",))
    entry = FileEntry(relative_path="img/logo.png", location=None)

    manifest = assemble_manifest(
        descriptor,
        RevisionInfo(revision="r42"),
        [(entry, "deadbeefdeadbeefdeadbeefdeadbeef")],
    )

    assert manifest.items() == [
        ("scm.foo", "scm:git:https://x"),
        ("scm.foo.devel", "scm:git:ssh://x"),
        ("scm.foo.path", "src/main/resources"),
        ("scm.foo.tag", "r42"),
        ("scm.foo.includes", "a,b"),
        ("scm.foo.excludes", "c"),
        ("scm.foo.resourcePathPrefix", "modules/foo/"),
        ("index.img/logo.png", "deadbeefdeadbeefdeadbeefdeadbeef"),
    ]


def test_index_keys_cannot_collide_with_metadata() -> None:
    entry = FileEntry(relative_path="scm.foo", location=None)

    manifest = assemble_manifest(_descriptor(), RevisionInfo(revision="r"), [(entry, "00")])

    assert manifest.get("scm.foo") == "scm:git:https://x"
    assert manifest.get("index.scm.foo") == "00"


def test_generate_indexes_matching_resources(module_builder, resolver, git_calls) -> None:  # type: ignore[no-untyped-def]
    module_builder.write(
        {
            "src/main/resources/a.txt": "alpha",
            "src/main/resources/b/c.txt": "gamma",
            "src/main/resources/b/d.tmp": "delta",
            "src/main/resources/htdocs/old.css": "x",
        }
    )
    builder = ManifestBuilder(resolver)

    manifest = builder.generate(_descriptor(), module_builder.path())

    assert manifest.get("scm.foo.tag") == REVISION
    assert manifest.index() == {
        "a.txt": hashlib.md5(b"alpha").hexdigest(),
        "b/c.txt": hashlib.md5(b"gamma").hexdigest(),
        "b/d.tmp": hashlib.md5(b"delta").hexdigest(),
    }
    assert git_calls == [["git", "rev-parse", "HEAD"]]


def test_missing_source_root_produces_metadata_only(module_builder, resolver) -> None:  # type: ignore[no-untyped-def]
    manifest = ManifestBuilder(resolver).generate(_descriptor(), module_builder.path())

    assert manifest.index() == {}
    assert manifest.get("scm.foo") == "scm:git:https://x"


def test_generate_writes_properties(module_builder, resolver) -> None:  # type: ignore[no-untyped-def]
    module_builder.write({"src/main/resources/img/logo.png": b"png"})
    destination = module_builder.path("target/classes/META-INF/lavender.properties")

    ManifestBuilder(resolver).generate(
        _descriptor(), module_builder.path(), destination=destination
    )

    lines = destination.read_text(encoding="latin-1").splitlines()
    assert lines[0] == "#generated by lavender-plugin"
    assert "scm.foo=scm\\:git\\:https\\://x" in lines
    assert f"index.img/logo.png={hashlib.md5(b'png').hexdigest()}" in lines


def test_consecutive_runs_are_byte_identical(module_builder, resolver) -> None:  # type: ignore[no-untyped-def]
    module_builder.write(
        {
            "src/main/resources/z.js": "z",
            "src/main/resources/a/b.css": "b",
            "src/main/resources/m.png": b"\x00\x01",
        }
    )
    first = module_builder.path("out/first.properties")
    second = module_builder.path("out/second.properties")
    builder = ManifestBuilder(resolver, workers=4)

    builder.generate(_descriptor(), module_builder.path(), destination=first)
    builder.generate(_descriptor(), module_builder.path(), destination=second)

    assert first.read_bytes() == second.read_bytes()


def test_parallel_and_serial_fingerprinting_agree(module_builder, resolver) -> None:  # type: ignore[no-untyped-def]
    module_builder.write({f"src/main/resources/f{i:02d}.txt": f"content {i}" for i in range(25)})

    serial = ManifestBuilder(resolver, workers=1).generate(_descriptor(), module_builder.path())
    parallel = ManifestBuilder(resolver, workers=8).generate(_descriptor(), module_builder.path())

    assert serial.items() == parallel.items()


def test_non_empty_legacy_properties_abort_before_scanning(module_builder, git_calls, resolver) -> None:  # type: ignore[no-untyped-def]
    module_builder.write(
        {
            "src/main/resources/META-INF/lavender.properties": "scm.foo=legacy\n",
            "src/main/resources/a.txt": "a",
        }
    )
    destination = module_builder.path("target/classes/META-INF/lavender.properties")

    with pytest.raises(ConfigurationError) as excinfo:
        ManifestBuilder(resolver).generate(
            _descriptor(),
            module_builder.path(),
            legacy_properties=module_builder.path("src/main/resources/META-INF/lavender.properties"),
            destination=destination,
        )

    assert excinfo.value.stage == "validation"
    assert "source properties not empty" in str(excinfo.value)
    assert git_calls == []
    assert not destination.exists()


def test_blank_legacy_properties_are_tolerated(module_builder, resolver) -> None:  # type: ignore[no-untyped-def]
    legacy = module_builder.path("src/main/resources/META-INF/lavender.properties")
    module_builder.write({"src/main/resources/META-INF/lavender.properties": "  \n\n"})

    manifest = ManifestBuilder(resolver).generate(
        _descriptor(), module_builder.path(), legacy_properties=legacy
    )

    assert "META-INF/lavender.properties" in manifest.index()


def test_revision_failure_produces_no_output(module_builder) -> None:  # type: ignore[no-untyped-def]
    module_builder.write({"src/main/resources/a.txt": "a"})
    destination = module_builder.path("target/classes/META-INF/lavender.properties")
    resolver = RevisionResolver(providers=[_FailingProvider()])

    with pytest.raises(ScmResolutionError) as excinfo:
        ManifestBuilder(resolver).generate(
            _descriptor(), module_builder.path(), destination=destination
        )

    assert excinfo.value.stage == "revision resolution"
    assert not destination.exists()


def test_invalid_glob_fails_during_validation(module_builder, git_calls, resolver) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(ConfigurationError) as excinfo:
        ManifestBuilder(resolver).generate(
            _descriptor(include_patterns=("[broken",)), module_builder.path()
        )

    assert excinfo.value.stage == "validation"
    assert git_calls == []


@pytest.mark.parametrize("workers", [1, 4])
def test_unreadable_file_aborts_without_partial_manifest(resolver, workers: int) -> None:  # type: ignore[no-untyped-def]
    fs = MemoryFileSystem(
        {
            "/mod/src/main/resources/a.txt": b"a",
            "/mod/src/main/resources/b.txt": b"b",
            "/mod/src/main/resources/c.txt": b"c",
        }
    )
    fs.unreadable.add(PurePosixPath("/mod/src/main/resources/b.txt"))
    written: list[Path] = []

    def writer(path, items, comment):  # type: ignore[no-untyped-def]
        written.append(path)
        return path

    builder = ManifestBuilder(resolver, filesystem=fs, writer=writer, workers=workers)

    with pytest.raises(IOFailure) as excinfo:
        builder.generate(
            _descriptor(),
            PurePosixPath("/mod"),  # type: ignore[arg-type]
            destination=Path("unused.properties"),
        )

    assert excinfo.value.stage == "hashing"
    assert "b.txt" in str(excinfo.value)
    assert written == []


@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0,
    reason="file permissions are not enforced for root",
)
def test_unsearchable_resource_directory_fails_scanning(module_builder, resolver) -> None:  # type: ignore[no-untyped-def]
    module_builder.write(
        {
            "src/main/resources/a.txt": "a",
            "src/main/resources/img/logo.png": b"png",
        }
    )
    img = module_builder.path("src/main/resources/img")
    destination = module_builder.path("target/classes/META-INF/lavender.properties")
    img.chmod(0o444)
    try:
        with pytest.raises(TraversalError) as excinfo:
            ManifestBuilder(resolver).generate(
                _descriptor(), module_builder.path(), destination=destination
            )
    finally:
        img.chmod(0o755)

    assert excinfo.value.stage == "scanning"
    assert not destination.exists()


def test_unwritable_destination_is_io_failure(module_builder, resolver) -> None:  # type: ignore[no-untyped-def]
    blocker = module_builder.path("target")
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(IOFailure) as excinfo:
        ManifestBuilder(resolver).generate(
            _descriptor(),
            module_builder.path(),
            destination=blocker / "classes" / "META-INF" / "lavender.properties",
        )

    assert excinfo.value.stage == "writing"


def test_writer_receives_manifest_items(module_builder, resolver) -> None:  # type: ignore[no-untyped-def]
    module_builder.write({"src/main/resources/a.txt": "a"})
    received = {}

    def writer(path, items, comment):  # type: ignore[no-untyped-def]
        received["path"] = path
        received["items"] = list(items)
        received["comment"] = comment
        return write_properties(path, received["items"], comment)

    destination = module_builder.path("out.properties")
    ManifestBuilder(resolver, writer=writer).generate(
        _descriptor(), module_builder.path(), destination=destination
    )

    assert received["path"] == destination
    assert received["items"][-1] == ("index.a.txt", hashlib.md5(b"a").hexdigest())
    assert received["comment"] == "generated by lavender-plugin"
