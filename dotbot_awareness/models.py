"""Core data models shared across dotbot-awareness components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .references import unique_references


class ProjectType(str, Enum):
    """Classifier output for a discovered project."""

    LIBRARY = "library"
    EXECUTABLE = "executable"
    TEST = "test"
    WEB_SERVICE = "web-service"
    FRONTEND_APP = "frontend-app"
    OTHER = "other"


class Severity(str, Enum):
    """Status ladder shared by checks, categories and operation results."""

    PASS = "pass"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def worst(cls, statuses: Iterable["Severity"]) -> "Severity":
        result = cls.PASS
        for status in statuses:
            if status.rank > result.rank:
                result = status
        return result


_SEVERITY_RANK = {Severity.PASS: 0, Severity.WARNING: 1, Severity.ERROR: 2}


@dataclass
class ManifestContent:
    """Facts pulled out of a manifest file, fed to the classifier."""

    kind: str
    name: str
    sdk: Optional[str] = None
    output_type: Optional[str] = None
    dependencies: List[str] = field(default_factory=list)
    executable: bool = False
    framework_version: Optional[str] = None
    has_identity: bool = False


@dataclass(frozen=True)
class DiscoveredProject:
    """A buildable unit found on disk. Never persisted."""

    name: str
    type: ProjectType
    path: str
    manifest_kind: str
    framework_version: Optional[str] = None
    dependency_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "path": self.path,
            "manifestKind": self.manifest_kind,
            "frameworkVersion": self.framework_version,
            "dependencyCount": self.dependency_count,
        }


@dataclass
class RegistryEntry:
    """Curated enrichment for one project, owned by the Metadata Registry."""

    project_name: str
    alias: Optional[str] = None
    summary: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    owner: Optional[str] = None
    registered_at: Optional[str] = None


@dataclass
class Registry:
    """In-memory view of the solution registry file."""

    registry_version: int = 1
    last_updated: Optional[str] = None
    projects: Dict[str, RegistryEntry] = field(default_factory=dict)


@dataclass
class MergedProject:
    """Discovery facts combined with registry enrichment."""

    name: str
    type: ProjectType
    path: str
    manifest_kind: str
    framework_version: Optional[str]
    dependency_count: int
    alias: str
    summary: str
    tags: List[str]
    owner: Optional[str]
    registered: bool
    alias_source: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "path": self.path,
            "manifestKind": self.manifest_kind,
            "frameworkVersion": self.framework_version,
            "dependencyCount": self.dependency_count,
            "alias": self.alias,
            "aliasSource": self.alias_source,
            "summary": self.summary,
            "tags": list(self.tags),
            "owner": self.owner,
            "registered": self.registered,
        }


@dataclass
class Finding:
    """Structured error or warning entry: ``{code, message, path?, details?}``."""

    code: str
    message: str
    path: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.path is not None:
            payload["path"] = self.path
        if self.details is not None:
            payload["details"] = self.details
        return payload


@dataclass
class Violation:
    """A front-matter line the constrained grammar could not accept."""

    line: int
    message: str


@dataclass
class Artifact:
    """A managed document parsed from its current bytes."""

    file_path: str
    declared_type: Optional[str]
    front_matter: Optional[Dict[str, Any]]
    raw_dependencies: List[str] = field(default_factory=list)
    inline_references: List[str] = field(default_factory=list)
    used_by: List[str] = field(default_factory=list)
    violations: List[Violation] = field(default_factory=list)

    @property
    def references(self) -> List[str]:
        return unique_references([*self.raw_dependencies, *self.inline_references])


@dataclass(frozen=True)
class DependencyEdge:
    """Directed edge between two resolved artifact paths."""

    source_path: str
    target_path: str
    reference: str = ""


@dataclass
class ArtifactGraph:
    """Artifacts keyed by resolved path plus the edges between them."""

    artifacts: Dict[str, Artifact] = field(default_factory=dict)
    edges: List[DependencyEdge] = field(default_factory=list)

    def successors(self, path: str) -> List[str]:
        return [edge.target_path for edge in self.edges if edge.source_path == path]


@dataclass
class CheckEntry:
    """One named check inside a health category."""

    name: str
    status: Severity
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "status": self.status.value, "message": self.message}


@dataclass
class CategoryResult:
    """A named group of checks with its own rolled-up status."""

    name: str
    checks: List[CheckEntry] = field(default_factory=list)

    @property
    def status(self) -> Severity:
        return Severity.worst([check.status for check in self.checks])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "checks": [check.to_dict() for check in self.checks],
        }


@dataclass
class HealthIssue:
    """Flattened health finding."""

    severity: Severity
    category: str
    code: str
    message: str
    path: Optional[str] = None
    detail: Optional[Dict[str, Any]] = None
    recommendation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "severity": self.severity.value,
            "category": self.category,
            "code": self.code,
            "message": self.message,
        }
        if self.path is not None:
            payload["path"] = self.path
        if self.detail is not None:
            payload["detail"] = self.detail
        if self.recommendation is not None:
            payload["recommendation"] = self.recommendation
        return payload


@dataclass
class HealthCheckResult:
    """Outcome of one health-check run at a given level."""

    level: str
    categories: List[CategoryResult] = field(default_factory=list)
    issues: List[HealthIssue] = field(default_factory=list)

    @property
    def status(self) -> Severity:
        return Severity.worst([category.status for category in self.categories])

    def issues_with_code(self, code: str) -> List[HealthIssue]:
        return [issue for issue in self.issues if issue.code == code]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "status": self.status.value,
            "categories": [category.to_dict() for category in self.categories],
            "issues": [issue.to_dict() for issue in self.issues],
        }


@dataclass
class OperationResult:
    """Payload returned by every operation handler."""

    data: Any = None
    errors: List[Finding] = field(default_factory=list)
    warnings: List[Finding] = field(default_factory=list)
    summary: Optional[str] = None

    @property
    def status(self) -> str:
        if self.errors:
            return "error"
        if self.warnings:
            return "warning"
        return "ok"
