"""Repository walking and project discovery."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Set

from .classifier import classify
from .logging import get_logger
from .manifests import ManifestError, manifest_kind, read_manifest
from .models import DiscoveredProject, Finding

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".bot",
    ".vs",
    ".idea",
    ".vscode",
    "node_modules",
    "bin",
    "obj",
    "dist",
    "build",
    "out",
    "target",
    "packages",
    "__pycache__",
    ".venv",
    "venv",
    ".pytest_cache",
    ".mypy_cache",
}

logger = get_logger("scanner")


@dataclass
class ScanResult:
    """Projects found by a scan plus per-manifest warnings."""

    projects: List[DiscoveredProject] = field(default_factory=list)
    warnings: List[Finding] = field(default_factory=list)


def iter_source_dirs(root: Path, extra_excludes: Iterable[str] = ()) -> Iterator[tuple[Path, List[str]]]:
    """Yield ``(directory, filenames)`` pairs, pruning build and tooling folders."""
    excluded: Set[str] = _EXCLUDED_DIRS | set(extra_excludes)
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(
            name for name in dirnames if name not in excluded and not name.startswith(".")
        )
        yield Path(dirpath), sorted(filenames)


class ManifestScanner:
    """Walks the repository and turns manifest files into discovered projects."""

    def __init__(self, exclude_dirs: Iterable[str] = ()) -> None:
        self._exclude_dirs = list(exclude_dirs)

    def scan(self, root: Path) -> ScanResult:
        root_path = root.expanduser().resolve()
        result = ScanResult()
        if not root_path.is_dir():
            return result

        for directory, filenames in iter_source_dirs(root_path, self._exclude_dirs):
            for filename in filenames:
                path = directory / filename
                kind = manifest_kind(path)
                if kind is None:
                    continue
                rel_path = path.relative_to(root_path).as_posix()
                try:
                    content = read_manifest(path)
                except ManifestError as exc:
                    logger.warning("Skipping manifest %s: %s", rel_path, exc)
                    result.warnings.append(
                        Finding(code="MANIFEST_PARSE_ERROR", message=str(exc), path=rel_path)
                    )
                    continue

                result.projects.append(
                    DiscoveredProject(
                        name=content.name,
                        type=classify(content),
                        path=rel_path,
                        manifest_kind=content.kind,
                        framework_version=content.framework_version,
                        dependency_count=len(content.dependencies),
                    )
                )

        result.projects.sort(key=lambda project: project.path)
        logger.debug("Discovered %d projects under %s", len(result.projects), root_path)
        return result


__all__ = ["ManifestScanner", "ScanResult", "iter_source_dirs"]
