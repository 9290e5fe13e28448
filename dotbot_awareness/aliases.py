"""Deterministic short identifiers for discovered projects."""

from __future__ import annotations

import re
from typing import Dict, Optional, Sequence

from .models import DiscoveredProject, ProjectType

_NAME_HINTS = (
    "admin",
    "mobile",
    "portal",
    "dashboard",
    "internal",
    "public",
    "client",
    "web",
)

_SPECIAL_CASES = (
    ("infrastructure", "infra"),
    ("migrations", "migr"),
    ("functions", "func"),
    ("contracts", "contracts"),
    ("shared", "shared"),
    ("common", "common"),
    ("domain", "domain"),
    ("worker", "worker"),
)

_TEST_SUFFIXES = (
    ".integrationtests",
    ".unittests",
    ".tests",
    ".test",
    "-tests",
    "-test",
    "_tests",
    "_test",
)


def infer_alias(project: DiscoveredProject, all_projects: Sequence[DiscoveredProject]) -> str:
    """Return the inferred alias for ``project`` given its siblings."""
    if project.type is ProjectType.FRONTEND_APP:
        return _role_alias("fe", project, all_projects)
    if project.type is ProjectType.WEB_SERVICE:
        return _role_alias("be", project, all_projects)
    if project.type is ProjectType.TEST:
        target = _test_target(project, all_projects)
        if target is None:
            return "test"
        return f"{infer_alias(target, all_projects)}-test"
    return _name_alias(project.name)


def infer_aliases(projects: Sequence[DiscoveredProject]) -> Dict[str, str]:
    """Return ``name -> inferred alias`` for every project."""
    return {project.name: infer_alias(project, projects) for project in projects}


def _role_alias(
    base: str, project: DiscoveredProject, all_projects: Sequence[DiscoveredProject]
) -> str:
    peers = [other for other in all_projects if other.type is project.type]
    if len(peers) < 2:
        return base
    hint = _name_hint(project.name)
    return f"{base}-{hint}" if hint else base


def _name_hint(name: str) -> Optional[str]:
    lowered = name.lower()
    for hint in _NAME_HINTS:
        if hint in lowered:
            return hint
    return None


def _test_target(
    project: DiscoveredProject, all_projects: Sequence[DiscoveredProject]
) -> Optional[DiscoveredProject]:
    lowered = project.name.lower()
    stem = None
    for suffix in _TEST_SUFFIXES:
        if lowered.endswith(suffix):
            stem = lowered[: -len(suffix)]
            break
    if not stem:
        return None
    for other in all_projects:
        if other.type is not ProjectType.TEST and other.name.lower() == stem:
            return other
    return None


def _name_alias(name: str) -> str:
    lowered = name.lower()
    for needle, alias in _SPECIAL_CASES:
        if needle in lowered:
            return alias
    cleaned = re.sub(r"[^a-z0-9]", "", lowered)
    return cleaned[:4] or "proj"


__all__ = ["infer_alias", "infer_aliases"]
