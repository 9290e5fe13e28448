"""Readers that turn manifest files into :class:`ManifestContent` facts."""

from __future__ import annotations

import json
import re
import tomllib
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .models import ManifestContent

MSBUILD_SUFFIXES = (".csproj", ".fsproj", ".vbproj")
NPM_FILENAME = "package.json"
PYPROJECT_FILENAME = "pyproject.toml"

KIND_MSBUILD = "msbuild"
KIND_NPM = "npm"
KIND_PYPROJECT = "pyproject"


class ManifestError(RuntimeError):
    """Raised when a manifest file cannot be read or parsed."""


def manifest_kind(path: Path) -> Optional[str]:
    """Return the manifest kind for ``path`` or ``None`` if it is not a manifest."""
    name = path.name
    if name.lower().endswith(MSBUILD_SUFFIXES):
        return KIND_MSBUILD
    if name == NPM_FILENAME:
        return KIND_NPM
    if name == PYPROJECT_FILENAME:
        return KIND_PYPROJECT
    return None


def read_manifest(path: Path) -> ManifestContent:
    """Parse ``path`` according to its manifest kind."""
    kind = manifest_kind(path)
    if kind is None:
        raise ManifestError(f"Not a recognised manifest: {path.name}")
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestError(f"Unable to read {path.name}: {exc}") from exc
    return _READERS[kind](path, text)


# MSBuild project files


def _parse_msbuild(path: Path, text: str) -> ManifestContent:
    try:
        root = ET.fromstring(text)
    except ET.ParseError as exc:
        raise ManifestError(f"Invalid project XML in {path.name}: {exc}") from exc

    namespace = _detect_xml_namespace(root)

    def _tag(name: str) -> str:
        return f"{{{namespace}}}{name}" if namespace else name

    output_type = _first_text(root, _tag("OutputType"))
    framework = _first_text(root, _tag("TargetFramework"))
    if framework is None:
        frameworks = _first_text(root, _tag("TargetFrameworks"))
        if frameworks:
            framework = frameworks.split(";")[0].strip() or None

    dependencies: List[str] = []
    for element in root.iter(_tag("PackageReference")):
        name = element.get("Include") or element.get("Update")
        if name:
            dependencies.append(name)
    for element in root.iter(_tag("ProjectReference")):
        include = element.get("Include")
        if include:
            dependencies.append(Path(include.replace("\\", "/")).stem)

    return ManifestContent(
        kind=KIND_MSBUILD,
        name=path.stem,
        sdk=root.get("Sdk"),
        output_type=output_type,
        dependencies=dependencies,
        executable=(output_type or "").lower() in {"exe", "winexe"},
        framework_version=framework,
        has_identity=True,
    )


def _first_text(root: ET.Element, tag: str) -> Optional[str]:
    for element in root.iter(tag):
        if element.text and element.text.strip():
            return element.text.strip()
    return None


def _detect_xml_namespace(element: ET.Element) -> str | None:
    match = re.match(r"\{(.+)}", element.tag)
    return match.group(1) if match else None


# npm package.json


def _parse_package_json(path: Path, text: str) -> ManifestContent:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestError(f"Invalid JSON in {path.name}: {exc}") from exc
    if not isinstance(data, dict):
        raise ManifestError(f"{path.name} must contain a JSON object")

    dependencies: List[str] = []
    for key in ("dependencies", "devDependencies", "peerDependencies"):
        section = data.get(key)
        if isinstance(section, dict):
            dependencies.extend(name for name in section if name not in dependencies)

    engines = data.get("engines")
    framework = engines.get("node") if isinstance(engines, dict) else None
    name = data.get("name")

    return ManifestContent(
        kind=KIND_NPM,
        name=name if isinstance(name, str) and name else path.parent.name,
        dependencies=dependencies,
        executable=bool(data.get("bin")),
        framework_version=framework if isinstance(framework, str) else None,
        has_identity=isinstance(name, str) and bool(name),
    )


# pyproject.toml


def _parse_pyproject(path: Path, text: str) -> ManifestContent:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ManifestError(f"Invalid TOML in {path.name}: {exc}") from exc

    project = data.get("project") if isinstance(data.get("project"), dict) else {}
    tool = data.get("tool") if isinstance(data.get("tool"), dict) else {}
    poetry = tool.get("poetry") if isinstance(tool.get("poetry"), dict) else {}

    raw_dependencies: List[Any] = list(project.get("dependencies", []) or [])
    optional = project.get("optional-dependencies", {}) or {}
    if isinstance(optional, dict):
        for values in optional.values():
            raw_dependencies.extend(values or [])
    poetry_deps = poetry.get("dependencies", {}) or {}
    if isinstance(poetry_deps, dict):
        raw_dependencies.extend(key for key in poetry_deps if key.lower() != "python")

    dependencies: List[str] = []
    for dep in raw_dependencies:
        if not isinstance(dep, str):
            continue
        name = re.split(r"[<>=!~;\[ ]", dep, 1)[0].strip()
        if name and name not in dependencies:
            dependencies.append(name)

    name = project.get("name") or poetry.get("name")
    framework = project.get("requires-python")
    if framework is None and isinstance(poetry_deps, dict):
        framework = poetry_deps.get("python")

    return ManifestContent(
        kind=KIND_PYPROJECT,
        name=name if isinstance(name, str) and name else path.parent.name,
        dependencies=dependencies,
        executable=bool(project.get("scripts") or poetry.get("scripts")),
        framework_version=framework if isinstance(framework, str) else None,
        has_identity=isinstance(name, str) and bool(name),
    )


_READERS: Dict[str, Callable[[Path, str], ManifestContent]] = {
    KIND_MSBUILD: _parse_msbuild,
    KIND_NPM: _parse_package_json,
    KIND_PYPROJECT: _parse_pyproject,
}


__all__ = [
    "KIND_MSBUILD",
    "KIND_NPM",
    "KIND_PYPROJECT",
    "ManifestError",
    "manifest_kind",
    "read_manifest",
]
