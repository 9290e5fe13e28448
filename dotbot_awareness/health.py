"""Tiered health checks over a managed repository."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .config import DotbotConfig
from .graph import ArtifactLoader, GraphAnalyzer, GraphBuilder
from .logging import get_logger
from .models import CategoryResult, CheckEntry, Finding, HealthCheckResult, HealthIssue, Severity
from .scanner import ManifestScanner, iter_source_dirs

LEVELS: Tuple[str, ...] = ("basic", "standard", "comprehensive")

REQUIRED_FIELDS: Dict[str, Tuple[str, ...]] = {
    "workflow": ("type", "id", "version"),
    "agent": ("type", "id", "name"),
    "standard": ("type", "id", "version"),
    "command": ("type", "id", "description"),
    "product-doc": (),
}

_COUNTED_DIRS = (
    ("agents", "prompts/agents"),
    ("workflows", "prompts/workflows"),
    ("standards", "prompts/standards"),
)

_PRODUCT_DOCS = (
    ("mission.md", "PRODUCT_DOC_MISSING"),
    ("roadmap.md", "PRODUCT_DOC_MISSING"),
    ("tech-stack.md", "TECH_STACK_MISSING"),
)

_SOURCE_SUFFIXES = {".py", ".cs", ".fs", ".vb", ".ts", ".tsx", ".js", ".jsx", ".go", ".java", ".kt", ".rs"}
_TEST_DIRS = {"test", "tests", "__tests__", "spec", "specs"}
_TEST_NAME = re.compile(
    r"(^test_.*\.py$)|(_test\.(py|go)$)|(\.(test|spec)\.[jt]sx?$)|(tests?\.(cs|fs|vb)$)|(test\.(java|kt)$)",
    re.IGNORECASE,
)

logger = get_logger("health")


class InvalidLevelError(ValueError):
    """Raised for a health-check level outside :data:`LEVELS`."""


class _Category:
    """Accumulates checks for one category and mirrors findings into issues."""

    def __init__(self, name: str, issues: List[HealthIssue]) -> None:
        self.result = CategoryResult(name=name)
        self._issues = issues

    def passed(self, name: str, message: str) -> None:
        self.result.checks.append(CheckEntry(name=name, status=Severity.PASS, message=message))

    def failed(
        self,
        name: str,
        severity: Severity,
        code: str,
        message: str,
        *,
        path: Optional[str] = None,
        detail: Optional[Dict[str, Any]] = None,
        recommendation: Optional[str] = None,
    ) -> None:
        self.result.checks.append(CheckEntry(name=name, status=severity, message=message))
        self._issues.append(
            HealthIssue(
                severity=severity,
                category=self.result.name,
                code=code,
                message=message,
                path=path,
                detail=detail,
                recommendation=recommendation,
            )
        )

    def finding(self, name: str, severity: Severity, finding: Finding, recommendation: Optional[str] = None) -> None:
        self.failed(
            name,
            severity,
            finding.code,
            finding.message,
            path=finding.path,
            detail=finding.details,
            recommendation=recommendation,
        )


class HealthChecker:
    """Runs the checks of one level; each level is a superset of the previous one."""

    def __init__(self, config: DotbotConfig, scanner: Optional[ManifestScanner] = None) -> None:
        self.config = config
        self.scanner = scanner or ManifestScanner(config.exclude_dirs)
        self.loader = ArtifactLoader(config.repo_root, config.artifact_extension)

    def run(self, level: str = "standard") -> HealthCheckResult:
        if level not in LEVELS:
            raise InvalidLevelError(f"Unknown health-check level '{level}'; expected one of {', '.join(LEVELS)}")
        depth = LEVELS.index(level)
        result = HealthCheckResult(level=level)
        logger.info("Running %s health check for %s", level, self.config.repo_root)

        structure = self._category("structure", result)
        if not self._check_structure(structure):
            # Nothing else is meaningful without the managed directory.
            return self._finish(result)
        self._check_state(self._category("state", result))

        if depth >= 1:
            self._check_artifact_counts(self._category("artifacts", result))
            self._check_product(self._category("product", result))
            self._check_projects(self._category("projects", result))

        if depth >= 2:
            self._check_front_matter(self._category("frontmatter", result))
            self._check_references(self._category("references", result))
            self._check_test_coverage(self._category("test_coverage", result))
            self._check_version_control(self._category("version_control", result))

        return self._finish(result)

    # ------------------------------------------------------------------
    # basic

    def _check_structure(self, category: _Category) -> bool:
        bot_dir = self.config.bot_dir
        if not bot_dir.is_dir():
            category.failed(
                "root_exists",
                Severity.ERROR,
                "DOTBOT_NOT_FOUND",
                f"No .bot directory found under {self.config.repo_root}",
                recommendation="Install the framework into this repository first.",
            )
            return False
        category.passed("root_exists", ".bot directory present")

        for directory in self.config.required_dirs:
            if (bot_dir / directory).is_dir():
                category.passed(f"dir:{directory}", f"{directory} present")
            else:
                category.failed(
                    f"dir:{directory}",
                    Severity.ERROR,
                    "REQUIRED_DIRECTORY_MISSING",
                    f"Required directory .bot/{directory} is missing",
                    path=f".bot/{directory}",
                    recommendation="Re-run the installer to restore the managed layout.",
                )
        return True

    def _check_state(self, category: _Category) -> None:
        state_path = self.config.state_path
        rel = self.loader.relative(state_path)
        if not state_path.exists():
            category.failed(
                "state_file",
                Severity.WARNING,
                "STATE_FILE_MISSING",
                "State file has not been created yet",
                path=rel,
            )
            return
        try:
            payload = json.loads(state_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            category.failed(
                "state_file",
                Severity.ERROR,
                "STATE_FILE_INVALID",
                f"State file could not be parsed: {exc}",
                path=rel,
                recommendation="Restore the state file from version control or delete it to reinitialise.",
            )
            return
        if not isinstance(payload, dict):
            category.failed(
                "state_file",
                Severity.ERROR,
                "STATE_FILE_INVALID",
                "State file must contain a JSON object",
                path=rel,
            )
            return
        category.passed("state_file", "State file parses")

    # ------------------------------------------------------------------
    # standard

    def _check_artifact_counts(self, category: _Category) -> None:
        bot_dir = self.config.bot_dir
        extension = self.config.artifact_extension
        for kind, directory in _COUNTED_DIRS:
            root = bot_dir / directory
            found = len([path for path in root.rglob(f"*{extension}") if path.is_file()]) if root.is_dir() else 0
            expected = self.config.expected_counts.get(kind)
            if kind == "standards" and found == 0:
                category.failed(
                    kind,
                    Severity.WARNING,
                    "STANDARDS_NOT_FOUND",
                    "No standards documents found",
                    path=f".bot/{directory}",
                    detail={"expected": expected, "found": found},
                    recommendation="Add coding standards under .bot/prompts/standards.",
                )
            elif expected is not None and found < expected:
                category.failed(
                    kind,
                    Severity.WARNING,
                    "ARTIFACT_COUNT_MISMATCH",
                    f"Expected at least {expected} {kind}, found {found}",
                    path=f".bot/{directory}",
                    detail={"expected": expected, "found": found},
                )
            else:
                category.passed(kind, f"{found} {kind} found")

    def _check_product(self, category: _Category) -> None:
        product_dir = self.config.bot_dir / "product"
        for filename, code in _PRODUCT_DOCS:
            rel = f".bot/product/{filename}"
            if (product_dir / filename).is_file():
                category.passed(filename, f"{rel} present")
            else:
                category.failed(
                    filename,
                    Severity.WARNING,
                    code,
                    f"{rel} is missing",
                    path=rel,
                    recommendation="Run the product planning workflow to generate it.",
                )

    def _check_projects(self, category: _Category) -> None:
        scan = self.scanner.scan(self.config.repo_root)
        for warning in scan.warnings:
            category.finding("manifest", Severity.WARNING, warning)
        if scan.projects:
            category.passed("discovery", f"{len(scan.projects)} projects discovered")
        else:
            category.failed(
                "discovery",
                Severity.WARNING,
                "NO_PROJECTS_FOUND",
                "No project manifests were discovered",
            )

    # ------------------------------------------------------------------
    # comprehensive

    def _check_front_matter(self, category: _Category) -> None:
        checked = 0
        for path in self.loader.managed_files():
            artifact = self.loader.load(path)
            if artifact is None:
                continue
            dir_type = self.loader.declared_type_for(path)
            rel = artifact.file_path
            if artifact.front_matter is None:
                if dir_type in REQUIRED_FIELDS and REQUIRED_FIELDS[dir_type]:
                    category.failed(
                        rel,
                        Severity.WARNING,
                        "FRONTMATTER_MISSING",
                        f"{rel} has no front-matter block",
                        path=rel,
                        recommendation="Add a front-matter block starting at the first line.",
                    )
                continue

            checked += 1
            for violation in artifact.violations:
                category.failed(
                    rel,
                    Severity.WARNING,
                    "FRONTMATTER_INVALID",
                    f"{rel}:{violation.line}: {violation.message}",
                    path=rel,
                    detail={"line": violation.line},
                )

            declared = artifact.front_matter.get("type")
            if isinstance(declared, str) and declared not in REQUIRED_FIELDS:
                category.failed(
                    rel,
                    Severity.WARNING,
                    "FRONTMATTER_INVALID",
                    f"{rel} declares unknown type '{declared}'",
                    path=rel,
                    detail={"type": declared},
                )
            elif isinstance(declared, str) and dir_type is not None and declared != dir_type:
                category.failed(
                    rel,
                    Severity.WARNING,
                    "FRONTMATTER_INVALID",
                    f"{rel} declares type '{declared}' but lives in a {dir_type} directory",
                    path=rel,
                    detail={"type": declared, "expected": dir_type},
                )

            schema_type = declared if isinstance(declared, str) and declared in REQUIRED_FIELDS else dir_type
            required = REQUIRED_FIELDS.get(schema_type or "", ())
            missing = [key for key in required if artifact.front_matter.get(key) in (None, "")]
            if missing:
                category.failed(
                    rel,
                    Severity.ERROR,
                    "FRONTMATTER_INVALID",
                    f"{rel} is missing required front-matter keys: {', '.join(missing)}",
                    path=rel,
                    detail={"type": schema_type, "missing": missing},
                    recommendation="Add the missing keys to the front-matter block.",
                )
        category.passed("parsed", f"{checked} front-matter blocks parsed")

    def _check_references(self, category: _Category) -> None:
        managed = self.loader.managed_files()
        graph = GraphBuilder(self.loader).build(managed)
        analyzer = GraphAnalyzer(self.loader)

        broken = analyzer.find_broken_references(graph)
        cycles = analyzer.find_cycles(graph)
        orphans = analyzer.find_orphans(self.config.entry_point_dirs)

        for finding in broken:
            category.finding(
                "broken_reference",
                Severity.ERROR,
                finding,
                recommendation="Fix the path or create the referenced file.",
            )
        for finding in cycles:
            category.finding(
                "circular_dependency",
                Severity.ERROR,
                finding,
                recommendation="Break the cycle by removing one of the dependencies.",
            )
        for finding in orphans:
            category.finding(
                "orphan",
                Severity.WARNING,
                finding,
                recommendation="Reference it from an entry point, declare used_by, or delete it.",
            )
        category.passed(
            "graph",
            f"{len(graph.artifacts)} artifacts, {len(graph.edges)} references analysed",
        )

    def _check_test_coverage(self, category: _Category) -> None:
        sources = 0
        tests = 0
        root = self.config.repo_root
        for directory, filenames in iter_source_dirs(root, self.config.exclude_dirs):
            parts = {part.lower() for part in directory.relative_to(root).parts}
            in_test_dir = bool(parts & _TEST_DIRS) or any(part.endswith(".tests") for part in parts)
            for filename in filenames:
                if Path(filename).suffix.lower() not in _SOURCE_SUFFIXES:
                    continue
                if in_test_dir or _TEST_NAME.search(filename):
                    tests += 1
                else:
                    sources += 1

        if sources == 0:
            category.passed("ratio", "No source files to measure")
            return
        ratio = tests / sources
        detail = {"tests": tests, "sources": sources, "ratio": round(ratio, 3)}
        if ratio < self.config.coverage_threshold:
            category.failed(
                "ratio",
                Severity.WARNING,
                "LOW_TEST_COVERAGE",
                f"Test-to-source file ratio {ratio:.2f} is below {self.config.coverage_threshold:.2f}",
                detail=detail,
                recommendation="Add tests alongside new source files.",
            )
        else:
            category.passed("ratio", f"Test-to-source file ratio {ratio:.2f}")

    def _check_version_control(self, category: _Category) -> None:
        if (self.config.repo_root / ".git").exists():
            category.passed("git", "Version control initialised")
        else:
            category.failed(
                "git",
                Severity.WARNING,
                "VCS_NOT_INITIALIZED",
                "Repository is not under version control",
                recommendation="Run `git init` so changes can be tracked.",
            )

    # ------------------------------------------------------------------

    def _category(self, name: str, result: HealthCheckResult) -> _Category:
        category = _Category(name, result.issues)
        result.categories.append(category.result)
        return category

    @staticmethod
    def _finish(result: HealthCheckResult) -> HealthCheckResult:
        order = {category.name: index for index, category in enumerate(result.categories)}
        result.issues.sort(key=lambda issue: (order.get(issue.category, 0), issue.path or "", issue.code))
        return result


__all__ = ["HealthChecker", "InvalidLevelError", "LEVELS", "REQUIRED_FIELDS"]
