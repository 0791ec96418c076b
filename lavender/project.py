"""Project descriptor loading and packaging-dependent layout rules."""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .errors import ConfigurationError
from .models import ModuleDescriptor

POM_FILENAME = "pom.xml"
PROPERTIES_FILENAME = "lavender.properties"
WEBAPP_PACKAGING = "war"
WEBAPP_NAME = "webapp"
WEBAPP_SOURCE_ROOT = "src/main/webapp"
LIBRARY_SOURCE_ROOT = "src/main/resources"


@dataclass(frozen=True)
class ProjectInfo:
    """Identity of the module being built, as read from its project descriptor."""

    basedir: Path
    artifact_id: str
    packaging: str
    scm_connection: str
    scm_devel_connection: str

    @property
    def is_webapp(self) -> bool:
        return self.packaging == WEBAPP_PACKAGING


@dataclass(frozen=True)
class ModuleLayout:
    """Where a module's resources live and where its manifest goes."""

    name: str
    source_root: str
    resource_path_prefix: str
    legacy_properties: Path
    destination: Path

    @classmethod
    def for_project(cls, project: ProjectInfo, build_directory: Path) -> "ModuleLayout":
        if project.is_webapp:
            return cls(
                name=WEBAPP_NAME,
                source_root=WEBAPP_SOURCE_ROOT,
                resource_path_prefix="",
                legacy_properties=project.basedir / WEBAPP_SOURCE_ROOT / "WEB-INF" / PROPERTIES_FILENAME,
                destination=build_directory / project.artifact_id / "WEB-INF" / PROPERTIES_FILENAME,
            )
        return cls(
            name=project.artifact_id,
            source_root=LIBRARY_SOURCE_ROOT,
            resource_path_prefix=f"modules/{project.artifact_id}/",
            legacy_properties=project.basedir / LIBRARY_SOURCE_ROOT / "META-INF" / PROPERTIES_FILENAME,
            destination=build_directory / "classes" / "META-INF" / PROPERTIES_FILENAME,
        )

    def descriptor(
        self,
        project: ProjectInfo,
        include_patterns: Sequence[str],
        exclude_patterns: Sequence[str],
    ) -> ModuleDescriptor:
        return ModuleDescriptor(
            name=self.name,
            is_webapp=project.is_webapp,
            source_root=self.source_root,
            resource_path_prefix=self.resource_path_prefix,
            scm_connection=project.scm_connection,
            scm_devel_connection=project.scm_devel_connection,
            include_patterns=tuple(include_patterns),
            exclude_patterns=tuple(exclude_patterns),
        )


def load_project(
    basedir: Path,
    *,
    artifact_id: Optional[str] = None,
    packaging: Optional[str] = None,
    scm_connection: Optional[str] = None,
    scm_devel_connection: Optional[str] = None,
) -> ProjectInfo:
    """Read ``pom.xml`` under ``basedir``; explicit arguments override its values."""
    basedir = basedir.expanduser().resolve()
    pom = _read_pom(basedir / POM_FILENAME)

    artifact_id = artifact_id or pom.get("artifactId")
    if not artifact_id:
        raise ConfigurationError(f"no artifactId configured for {basedir}")
    connection = scm_connection or pom.get("connection")
    if not connection:
        raise ConfigurationError(f"no scm connection configured for {artifact_id}")
    # A missing developer connection falls back to the read-only one.
    devel = scm_devel_connection or pom.get("developerConnection") or connection

    return ProjectInfo(
        basedir=basedir,
        artifact_id=artifact_id,
        packaging=packaging or pom.get("packaging") or "jar",
        scm_connection=connection,
        scm_devel_connection=devel,
    )


def _read_pom(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}
    try:
        root = ET.fromstring(path.read_text(encoding="utf-8"))
    except ET.ParseError as exc:
        raise ConfigurationError(f"cannot parse {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigurationError(f"cannot read {path}: {exc}") from exc

    namespace = _detect_xml_namespace(root)

    def tag(name: str) -> str:
        return f"{{{namespace}}}{name}" if namespace else name

    values: dict[str, str] = {}
    for name in ("artifactId", "packaging"):
        text = root.findtext(tag(name))
        if text and text.strip():
            values[name] = text.strip()

    scm = root.find(tag("scm"))
    if scm is not None:
        for name in ("connection", "developerConnection"):
            text = scm.findtext(tag(name))
            if text and text.strip():
                values[name] = text.strip()
    return values


def _detect_xml_namespace(element: ET.Element) -> str | None:
    match = re.match(r"\{(.+)}", element.tag)
    return match.group(1) if match else None


__all__ = ["ModuleLayout", "ProjectInfo", "load_project"]
