"""Operation handlers and the explicit name -> handler registration table."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

from .config import ConfigError, DotbotConfig, find_repo_root, load_config
from .graph import ArtifactLoader, GraphAnalyzer, GraphBuilder
from .health import LEVELS, HealthChecker, InvalidLevelError
from .logging import get_logger
from .merge import merge_all
from .models import Finding, MergedProject, OperationResult, ProjectType, Registry, Severity
from .registry import RegistryError, RegistryStore
from .scanner import ManifestScanner

SCHEMA_ID = "dotbot.response/v1"
SOURCE = "dotbot-awareness"

Handler = Callable[[Mapping[str, Any], DotbotConfig], OperationResult]

logger = get_logger("operations")


@dataclass(frozen=True)
class Operation:
    """A named operation; ``requires_root`` operations fail without a ``.bot`` marker."""

    name: str
    version: str
    handler: Handler
    requires_root: bool = False


def _error(code: str, message: str, **kwargs: Any) -> OperationResult:
    return OperationResult(errors=[Finding(code=code, message=message, **kwargs)], summary=message)


def _require(request: Mapping[str, Any], key: str) -> Optional[str]:
    value = request.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _load_registry(config: DotbotConfig, result: OperationResult) -> Registry:
    try:
        return RegistryStore(config.registry_path).load()
    except RegistryError as exc:
        result.errors.append(Finding(code=exc.code, message=str(exc), path=str(config.registry_path), details=exc.details))
        return Registry()


def _merged_projects(config: DotbotConfig, result: OperationResult) -> List[MergedProject]:
    scan = ManifestScanner(config.exclude_dirs).scan(config.repo_root)
    result.warnings.extend(scan.warnings)
    registry = _load_registry(config, result)
    merged = merge_all(scan.projects, registry)
    result.warnings.extend(merged.warnings)
    return merged.projects


# ----------------------------------------------------------------------
# solution.*


def solution_structure(request: Mapping[str, Any], config: DotbotConfig) -> OperationResult:
    result = OperationResult()
    type_filter = _require(request, "type")
    if type_filter is not None and type_filter not in {item.value for item in ProjectType}:
        return _error("INVALID_PARAMETER", f"Unknown project type '{type_filter}'", details={"parameter": "type"})

    projects = _merged_projects(config, result)
    if type_filter is not None:
        projects = [project for project in projects if project.type.value == type_filter]

    result.data = {
        "repositoryRoot": str(config.repo_root),
        "count": len(projects),
        "projects": [project.to_dict() for project in projects],
    }
    result.summary = f"Found {len(projects)} projects"
    return result


def solution_project_get(request: Mapping[str, Any], config: DotbotConfig) -> OperationResult:
    name = _require(request, "name")
    if name is None:
        return _error("INVALID_PARAMETER", "Parameter 'name' is required", details={"parameter": "name"})

    result = OperationResult()
    projects = _merged_projects(config, result)
    match = next((project for project in projects if project.name == name), None)
    if match is None:
        aliased = [project for project in projects if project.alias.lower() == name.lower()]
        # A registered alias shadows an identical inferred one.
        aliased.sort(key=lambda project: project.alias_source != "registry")
        match = aliased[0] if aliased else None
    if match is None:
        result.errors.append(Finding(code="PROJECT_NOT_FOUND", message=f"No project named or aliased '{name}'"))
        result.summary = f"Project '{name}' not found"
        return result

    result.data = match.to_dict()
    result.summary = f"Project '{match.name}' ({match.type.value}) aliased '{match.alias}'"
    return result


def solution_project_register(request: Mapping[str, Any], config: DotbotConfig) -> OperationResult:
    name = _require(request, "name")
    if name is None:
        return _error("INVALID_PARAMETER", "Parameter 'name' is required", details={"parameter": "name"})

    tags = request.get("tags")
    if isinstance(tags, str):
        tags = [tag.strip() for tag in tags.split(",")]
    if tags is not None and not isinstance(tags, list):
        return _error("INVALID_PARAMETER", "Parameter 'tags' must be a list of strings", details={"parameter": "tags"})

    result = OperationResult()
    store = RegistryStore(config.registry_path)
    try:
        entry = store.register(
            name,
            alias=_require(request, "alias"),
            summary=_require(request, "summary"),
            tags=tags,
            owner=_require(request, "owner"),
        )
    except RegistryError as exc:
        return _error(exc.code, str(exc), path=str(config.registry_path), details=exc.details)

    scan = ManifestScanner(config.exclude_dirs).scan(config.repo_root)
    if name not in {project.name for project in scan.projects}:
        result.warnings.append(
            Finding(code="PROJECT_NOT_FOUND", message=f"'{name}' is registered but not currently discoverable")
        )

    result.data = {
        "projectName": entry.project_name,
        "alias": entry.alias,
        "summary": entry.summary,
        "tags": list(entry.tags),
        "owner": entry.owner,
        "registeredAt": entry.registered_at,
    }
    result.summary = f"Registered '{name}'"
    return result


def solution_project_unregister(request: Mapping[str, Any], config: DotbotConfig) -> OperationResult:
    name = _require(request, "name")
    if name is None:
        return _error("INVALID_PARAMETER", "Parameter 'name' is required", details={"parameter": "name"})
    try:
        removed = RegistryStore(config.registry_path).unregister(name)
    except RegistryError as exc:
        return _error(exc.code, str(exc), path=str(config.registry_path), details=exc.details)
    if not removed:
        return _error("PROJECT_NOT_FOUND", f"'{name}' is not registered")
    return OperationResult(data={"projectName": name, "removed": True}, summary=f"Unregistered '{name}'")


def solution_health_check(request: Mapping[str, Any], config: DotbotConfig) -> OperationResult:
    level = _require(request, "level") or "standard"
    try:
        health = HealthChecker(config).run(level)
    except InvalidLevelError as exc:
        return _error("INVALID_PARAMETER", str(exc), details={"parameter": "level", "allowed": list(LEVELS)})

    result = OperationResult(data=health.to_dict())
    for issue in health.issues:
        finding = Finding(code=issue.code, message=issue.message, path=issue.path, details=issue.detail)
        if issue.severity is Severity.ERROR:
            result.errors.append(finding)
        elif issue.severity is Severity.WARNING:
            result.warnings.append(finding)
    result.summary = (
        f"Health check ({level}) {health.status.value}: "
        f"{len(result.errors)} errors, {len(result.warnings)} warnings"
    )
    return result


# ----------------------------------------------------------------------
# artifact.*


def _artifact_path(request: Mapping[str, Any], loader: ArtifactLoader) -> Path | OperationResult:
    file_ref = _require(request, "file")
    if file_ref is None:
        return _error("INVALID_PARAMETER", "Parameter 'file' is required", details={"parameter": "file"})
    path = loader.resolve(file_ref)
    if not path.is_file():
        return _error("INVALID_PARAMETER", f"File not found: {file_ref}", path=loader.relative(path))
    return path


def artifact_frontmatter(request: Mapping[str, Any], config: DotbotConfig) -> OperationResult:
    loader = ArtifactLoader(config.repo_root, config.artifact_extension)
    path = _artifact_path(request, loader)
    if isinstance(path, OperationResult):
        return path

    artifact = loader.load(path)
    rel = loader.relative(path)
    result = OperationResult()
    if artifact is None or artifact.front_matter is None:
        result.warnings.append(Finding(code="FRONTMATTER_MISSING", message=f"{rel} has no front-matter block", path=rel))
        result.data = {"file": rel, "frontMatter": None, "violations": []}
        result.summary = f"{rel} has no front-matter"
        return result

    for violation in artifact.violations:
        result.warnings.append(
            Finding(
                code="FRONTMATTER_INVALID",
                message=f"{rel}:{violation.line}: {violation.message}",
                path=rel,
                details={"line": violation.line},
            )
        )
    result.data = {
        "file": rel,
        "declaredType": artifact.declared_type,
        "frontMatter": artifact.front_matter,
        "dependencies": artifact.raw_dependencies,
        "usedBy": artifact.used_by,
        "violations": [{"line": item.line, "message": item.message} for item in artifact.violations],
    }
    result.summary = f"Parsed {len(artifact.front_matter)} front-matter keys from {rel}"
    return result


def artifact_references(request: Mapping[str, Any], config: DotbotConfig) -> OperationResult:
    loader = ArtifactLoader(config.repo_root, config.artifact_extension)
    path = _artifact_path(request, loader)
    if isinstance(path, OperationResult):
        return path

    builder = GraphBuilder(loader)
    graph = builder.build([path])
    analyzer = GraphAnalyzer(loader)
    result = OperationResult()
    result.errors.extend(analyzer.find_broken_references(graph))
    result.errors.extend(analyzer.find_cycles(graph, starts=[str(path)]))

    artifact = loader.load(path)
    rel = loader.relative(path)
    result.data = {
        "file": rel,
        "references": artifact.references if artifact else [],
        "usedBy": artifact.used_by if artifact else [],
        "edges": [
            {
                "source": loader.relative(edge.source_path),
                "target": loader.relative(edge.target_path),
                "reference": edge.reference,
                "exists": Path(edge.target_path).is_file(),
            }
            for edge in graph.edges
        ],
    }
    result.summary = f"{rel} reaches {len(graph.artifacts) - 1} artifacts via {len(graph.edges)} references"
    return result


OPERATIONS: Dict[str, Operation] = {
    op.name: op
    for op in (
        Operation("solution.structure", "1.0", solution_structure),
        Operation("solution.project.get", "1.0", solution_project_get),
        Operation("solution.project.register", "1.0", solution_project_register, requires_root=True),
        Operation("solution.project.unregister", "1.0", solution_project_unregister, requires_root=True),
        Operation("solution.health_check", "1.0", solution_health_check),
        Operation("artifact.frontmatter", "1.0", artifact_frontmatter),
        Operation("artifact.references", "1.0", artifact_references),
    )
}


def dispatch(operation: str, request: Optional[Mapping[str, Any]] = None, *, start: Optional[Path] = None) -> OperationResult:
    """Locate the managed repository, build its config once, and run ``operation``."""
    request = request or {}
    op = OPERATIONS.get(operation)
    if op is None:
        return _error(
            "INVALID_PARAMETER",
            f"Unknown operation '{operation}'",
            details={"parameter": "operation", "allowed": sorted(OPERATIONS)},
        )

    start_path = Path(_require(request, "path") or start or Path.cwd()).expanduser().resolve()
    root = find_repo_root(start_path)
    if root is None:
        if op.requires_root:
            return _error("DOTBOT_NOT_FOUND", f"No .bot directory found at or above {start_path}")
        root = start_path if start_path.is_dir() else start_path.parent

    try:
        config = load_config(root)
    except ConfigError as exc:
        return _error("CONFIG_INVALID", str(exc), path=str(root))

    logger.debug("Dispatching %s for %s", operation, root)
    return op.handler(request, config)


def build_envelope(operation: str, result: OperationResult, started: float) -> Dict[str, Any]:
    """Wrap ``result`` in the response envelope consumed by callers."""
    op = OPERATIONS.get(operation)
    status = result.status
    summary = result.summary or f"{operation} finished with status {status}"
    return {
        "schema": SCHEMA_ID,
        "operation": operation,
        "version": op.version if op else None,
        "status": status,
        "summary": summary,
        "data": result.data,
        "errors": [item.to_dict() for item in result.errors],
        "warnings": [item.to_dict() for item in result.warnings],
        "audit": {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "duration_ms": round((time.monotonic() - started) * 1000, 2),
            "source": SOURCE,
        },
    }


__all__ = ["OPERATIONS", "Operation", "build_envelope", "dispatch"]
