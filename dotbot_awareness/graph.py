"""Artifact dependency graph construction and analysis."""

from __future__ import annotations

import os
from collections import deque
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .config import ARTIFACT_TYPE_DIRS, BOT_DIR_NAME
from .frontmatter import read_front_matter
from .logging import get_logger
from .models import Artifact, ArtifactGraph, DependencyEdge, Finding
from .references import extract_references

logger = get_logger("graph")


class ArtifactLoader:
    """Parses artifacts under a repository root, once per file per run."""

    def __init__(self, repo_root: Path, extension: str = ".md") -> None:
        self.repo_root = Path(os.path.normpath(repo_root.expanduser().resolve()))
        self.extension = extension
        self._cache: Dict[str, Optional[Artifact]] = {}

    def resolve(self, reference: str | Path) -> Path:
        """Resolve a reference against the repository root, independent of slash style."""
        text = str(reference).replace("\\", "/")
        candidate = Path(text)
        if not candidate.is_absolute():
            candidate = self.repo_root / candidate
        return Path(os.path.normpath(candidate))

    def relative(self, path: str | Path) -> str:
        target = Path(path)
        try:
            return target.relative_to(self.repo_root).as_posix()
        except ValueError:
            return target.as_posix()

    def managed_files(self) -> List[Path]:
        """Every artifact file below the ``.bot`` directory, sorted."""
        bot_dir = self.repo_root / BOT_DIR_NAME
        if not bot_dir.is_dir():
            return []
        return sorted(
            Path(os.path.normpath(path))
            for path in bot_dir.rglob(f"*{self.extension}")
            if path.is_file()
        )

    def load(self, path: Path) -> Optional[Artifact]:
        key = str(path)
        if key in self._cache:
            return self._cache[key]
        artifact = self._read(path)
        self._cache[key] = artifact
        return artifact

    def declared_type_for(self, path: Path) -> Optional[str]:
        rel = self.relative(path)
        prefix = f"{BOT_DIR_NAME}/"
        if not rel.startswith(prefix):
            return None
        inner = rel[len(prefix) :]
        for directory, artifact_type in ARTIFACT_TYPE_DIRS.items():
            if inner.startswith(f"{directory}/"):
                return artifact_type
        return None

    def _read(self, path: Path) -> Optional[Artifact]:
        try:
            result, text = read_front_matter(path)
        except OSError as exc:
            logger.debug("Unable to read artifact %s: %s", path, exc)
            return None

        front_matter = result.data if result is not None else None
        body = result.body if result is not None else text
        references = extract_references(body, front_matter)

        declared = front_matter.get("type") if front_matter else None
        return Artifact(
            file_path=self.relative(path),
            declared_type=declared if isinstance(declared, str) else self.declared_type_for(path),
            front_matter=front_matter,
            raw_dependencies=references.dependencies,
            inline_references=references.inline,
            used_by=references.used_by,
            violations=list(result.violations) if result is not None else [],
        )


class GraphBuilder:
    """Follows artifact references transitively into an :class:`ArtifactGraph`."""

    def __init__(self, loader: ArtifactLoader) -> None:
        self.loader = loader

    def resolve(self, root_path: Path | str, visited: Optional[Set[str]] = None) -> List[DependencyEdge]:
        """Return edges reachable from ``root_path``.

        ``visited`` is keyed by resolved absolute path; a revisit contributes
        nothing, which is what terminates cycles.
        """
        if visited is None:
            visited = set()
        source = self.loader.resolve(root_path)
        key = str(source)
        if key in visited:
            return []
        visited.add(key)

        artifact = self.loader.load(source) if source.is_file() else None
        if artifact is None:
            return []

        edges: List[DependencyEdge] = []
        for ref in artifact.references:
            target = self.loader.resolve(ref)
            edges.append(DependencyEdge(source_path=key, target_path=str(target), reference=ref))
            if target.is_file():
                edges.extend(self.resolve(target, visited))
        return edges

    def build(self, roots: Iterable[Path | str]) -> ArtifactGraph:
        """Build one graph covering every root and everything it reaches."""
        graph = ArtifactGraph()
        visited: Set[str] = set()
        for root in roots:
            graph.edges.extend(self.resolve(root, visited))
        for key in sorted(visited):
            artifact = self.loader.load(Path(key)) if Path(key).is_file() else None
            if artifact is not None:
                graph.artifacts[key] = artifact
        return graph


class GraphAnalyzer:
    """Cycle, broken-reference and orphan detection over an artifact graph."""

    def __init__(self, loader: ArtifactLoader) -> None:
        self.loader = loader

    def find_cycles(self, graph: ArtifactGraph, starts: Optional[Sequence[str]] = None) -> List[Finding]:
        adjacency = _adjacency(graph.edges, existing_only=True)
        order = list(starts) if starts is not None else sorted(graph.artifacts)
        state: Dict[str, int] = {}
        stack: List[str] = []
        seen: Set[Tuple[str, ...]] = set()
        findings: List[Finding] = []

        def visit(node: str) -> None:
            state[node] = _ON_STACK
            stack.append(node)
            for successor in adjacency.get(node, []):
                status = state.get(successor)
                if status == _ON_STACK:
                    cycle = stack[stack.index(successor) :] + [successor]
                    key = _canonical_cycle(cycle[:-1])
                    if key not in seen:
                        seen.add(key)
                        findings.append(self._cycle_finding(cycle))
                elif status is None:
                    visit(successor)
            stack.pop()
            state[node] = _DONE

        for start in order:
            if state.get(start) is None:
                visit(start)
        return findings

    def find_broken_references(self, graph: ArtifactGraph) -> List[Finding]:
        findings: List[Finding] = []
        for edge in graph.edges:
            if Path(edge.target_path).is_file():
                continue
            source = self.loader.relative(edge.source_path)
            target = self.loader.relative(edge.target_path)
            findings.append(
                Finding(
                    code="BROKEN_FILE_REFERENCE",
                    message=f"{source} references missing file {edge.reference}",
                    path=source,
                    details={"source": source, "reference": edge.reference, "target": target},
                )
            )
        return sorted(findings, key=lambda item: (item.path or "", item.message))

    def find_orphans(self, entry_point_dirs: Sequence[str]) -> List[Finding]:
        """Report managed artifacts unreachable from any entry point or used-by backlink."""
        managed = self.loader.managed_files()
        bot_dir = self.loader.repo_root / BOT_DIR_NAME
        entry_roots = [bot_dir / directory for directory in entry_point_dirs]

        managed_keys = {str(path) for path in managed}
        seeds: Set[str] = set()
        for path in managed:
            if any(_is_within(path, root) for root in entry_roots):
                seeds.add(str(path))
            artifact = self.loader.load(path)
            if artifact is None:
                continue
            # A live backlink keeps both ends of the used_by declaration alive.
            for ref in artifact.used_by:
                target = self.loader.resolve(ref)
                if target.is_file():
                    seeds.add(str(path))
                    if str(target) in managed_keys:
                        seeds.add(str(target))

        graph = GraphBuilder(self.loader).build(managed)
        adjacency = _adjacency(graph.edges, existing_only=True)
        reachable: Set[str] = set(seeds)
        queue = deque(sorted(seeds))
        while queue:
            node = queue.popleft()
            for successor in adjacency.get(node, []):
                if successor not in reachable:
                    reachable.add(successor)
                    queue.append(successor)

        findings: List[Finding] = []
        for path in managed:
            if str(path) in reachable:
                continue
            rel = self.loader.relative(path)
            findings.append(
                Finding(
                    code="ORPHAN_ARTIFACT",
                    message=f"{rel} is not reachable from any entry point",
                    path=rel,
                )
            )
        return findings

    def _cycle_finding(self, cycle: Sequence[str]) -> Finding:
        names = [self.loader.relative(node) for node in cycle]
        return Finding(
            code="CIRCULAR_DEPENDENCY",
            message="Circular dependency: " + " -> ".join(names),
            path=names[0],
            details={"cycle": names},
        )


_ON_STACK = 1
_DONE = 2


def _adjacency(edges: Iterable[DependencyEdge], *, existing_only: bool) -> Dict[str, List[str]]:
    adjacency: Dict[str, List[str]] = {}
    for edge in edges:
        if existing_only and not Path(edge.target_path).is_file():
            continue
        targets = adjacency.setdefault(edge.source_path, [])
        if edge.target_path not in targets:
            targets.append(edge.target_path)
    return adjacency


def _canonical_cycle(nodes: Sequence[str]) -> Tuple[str, ...]:
    pivot = nodes.index(min(nodes))
    return tuple(nodes[pivot:]) + tuple(nodes[:pivot])


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


__all__ = ["ArtifactLoader", "GraphAnalyzer", "GraphBuilder"]
