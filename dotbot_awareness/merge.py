"""Combine discovered projects with registry enrichment."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .aliases import infer_aliases
from .models import DiscoveredProject, Finding, MergedProject, ProjectType, Registry, RegistryEntry

_TYPE_DEFAULTS: Dict[ProjectType, Tuple[str, Tuple[str, ...]]] = {
    ProjectType.WEB_SERVICE: ("Backend web service", ("backend", "api")),
    ProjectType.FRONTEND_APP: ("Front-end application", ("frontend", "ui")),
    ProjectType.TEST: ("Automated test project", ("test",)),
    ProjectType.EXECUTABLE: ("Executable application", ("app",)),
    ProjectType.LIBRARY: ("Shared library", ("library",)),
    ProjectType.OTHER: ("Project", ()),
}


@dataclass
class MergeResult:
    """Merged views in discovery order plus merge-time warnings."""

    projects: List[MergedProject] = field(default_factory=list)
    warnings: List[Finding] = field(default_factory=list)


def merge(
    discovered: DiscoveredProject,
    entry: Optional[RegistryEntry],
    inferred_alias: str,
) -> MergedProject:
    """Structural fields always come from discovery; enrichment from the registry when set."""
    default_summary, default_tags = _TYPE_DEFAULTS[discovered.type]

    alias = inferred_alias
    alias_source = "inferred"
    summary = default_summary
    tags = list(default_tags)
    owner = None

    if entry is not None:
        if entry.alias:
            alias = entry.alias
            alias_source = "registry"
        if entry.summary:
            summary = entry.summary
        if entry.tags:
            tags = list(entry.tags)
        owner = entry.owner

    return MergedProject(
        name=discovered.name,
        type=discovered.type,
        path=discovered.path,
        manifest_kind=discovered.manifest_kind,
        framework_version=discovered.framework_version,
        dependency_count=discovered.dependency_count,
        alias=alias,
        summary=summary,
        tags=tags,
        owner=owner,
        registered=entry is not None,
        alias_source=alias_source,
    )


def merge_all(projects: Sequence[DiscoveredProject], registry: Registry) -> MergeResult:
    """Merge every discovered project and flag registry inconsistencies."""
    result = MergeResult()
    inferred = infer_aliases(projects)

    for project in projects:
        entry = registry.projects.get(project.name)
        result.projects.append(merge(project, entry, inferred[project.name]))

    # Only inferred aliases still in effect can be shadowed.
    inferred_owners: Dict[str, str] = {}
    for name, alias in inferred.items():
        registered = registry.projects.get(name)
        if registered is not None and registered.alias:
            continue
        inferred_owners.setdefault(alias.lower(), name)

    discovered_names = {project.name for project in projects}
    for name, entry in sorted(registry.projects.items()):
        if name not in discovered_names:
            result.warnings.append(
                Finding(
                    code="ORPHANED_REGISTRY_ENTRY",
                    message=f"Registered project '{name}' was not found on disk",
                    details={"project": name},
                )
            )
        if not entry.alias:
            continue
        other = inferred_owners.get(entry.alias.lower())
        if other is not None and other != name:
            result.warnings.append(
                Finding(
                    code="ALIAS_CONFLICT",
                    message=(
                        f"Registered alias '{entry.alias}' for '{name}' shadows the inferred alias of '{other}'"
                    ),
                    details={"alias": entry.alias, "projects": [name, other]},
                )
            )

    return result


__all__ = ["MergeResult", "merge", "merge_all"]
