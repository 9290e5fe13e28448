from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a bare repository rooted under the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def managed_repo(repo_builder: RepoBuilder) -> RepoBuilder:
    """Repository with the .bot layout and an empty state file in place."""
    repo_builder.managed()
    return repo_builder
