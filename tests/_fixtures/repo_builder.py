"""Helper utilities for constructing temporary repositories in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Iterable, Mapping

from dotbot_awareness.config import DotbotConfig, load_config
from dotbot_awareness.scanner import ManifestScanner, ScanResult

MANAGED_DIRS = (
    ".bot/prompts/agents",
    ".bot/prompts/workflows",
    ".bot/prompts/standards",
    ".bot/prompts/commands",
    ".bot/product",
)


class RepoBuilder:
    """Utility for writing files into a throwaway repository and rescanning it."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "repo"
        self.root.mkdir()
        self._scanner = ManifestScanner()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the repository."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def managed(self, directories: Iterable[str] = MANAGED_DIRS, *, state: str | None = "{}") -> None:
        """Create the .bot layout, optionally with a state file."""
        for directory in directories:
            (self.root / directory).mkdir(parents=True, exist_ok=True)
        (self.root / ".bot").mkdir(exist_ok=True)
        if state is not None:
            (self.root / ".bot" / "state.json").write_text(state, encoding="utf-8")

    def scan(self) -> ScanResult:
        """Return a fresh discovery scan of the repository contents."""
        return self._scanner.scan(self.root)

    def config(self) -> DotbotConfig:
        return load_config(self.root)

    def path(self) -> Path:
        """Return the repository root path."""
        return self.root


__all__ = ["RepoBuilder"]
