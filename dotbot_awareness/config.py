"""Configuration loading for dotbot-awareness (.bot/dotbot.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

BOT_DIR_NAME = ".bot"
CONFIG_FILENAME = "dotbot.yml"
STATE_FILENAME = "state.json"
DEFAULT_REGISTRY_FILENAME = "solution-registry.json"

DEFAULT_ENTRY_POINT_DIRS: Tuple[str, ...] = (
    "prompts/commands",
    "prompts/specs",
    "prompts/rules",
    "product",
)

DEFAULT_REQUIRED_DIRS: Tuple[str, ...] = (
    "prompts",
    "prompts/agents",
    "prompts/workflows",
    "prompts/standards",
)

# Directory (relative to .bot/) -> declared artifact type.
ARTIFACT_TYPE_DIRS: Dict[str, str] = {
    "prompts/agents": "agent",
    "prompts/workflows": "workflow",
    "prompts/standards": "standard",
    "prompts/commands": "command",
    "product": "product-doc",
}


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class DotbotConfig:
    """Effective settings for one request, built once and passed down explicitly."""

    repo_root: Path
    exclude_dirs: List[str] = field(default_factory=list)
    registry_file: str = DEFAULT_REGISTRY_FILENAME
    entry_point_dirs: List[str] = field(default_factory=lambda: list(DEFAULT_ENTRY_POINT_DIRS))
    required_dirs: List[str] = field(default_factory=lambda: list(DEFAULT_REQUIRED_DIRS))
    expected_counts: Dict[str, int] = field(default_factory=dict)
    coverage_threshold: float = 0.2
    artifact_extension: str = ".md"

    @property
    def bot_dir(self) -> Path:
        return self.repo_root / BOT_DIR_NAME

    @property
    def registry_path(self) -> Path:
        return self.bot_dir / self.registry_file

    @property
    def state_path(self) -> Path:
        return self.bot_dir / STATE_FILENAME


def find_repo_root(start: Path) -> Optional[Path]:
    """Return the nearest directory at or above ``start`` holding a ``.bot`` marker."""
    current = start.expanduser().resolve()
    if current.is_file():
        current = current.parent
    for candidate in (current, *current.parents):
        if (candidate / BOT_DIR_NAME).is_dir():
            return candidate
    return None


def load_config(repo_root: Path) -> DotbotConfig:
    """Load configuration for ``repo_root``; a missing file yields defaults."""
    root = repo_root.expanduser().resolve()
    config_file = root / BOT_DIR_NAME / CONFIG_FILENAME
    if not config_file.exists():
        return DotbotConfig(repo_root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = DotbotConfig(repo_root=root)
    config.exclude_dirs = _as_str_list(data.get("exclude_dirs"))

    registry_file = _as_str(data.get("registry_file"))
    if registry_file:
        config.registry_file = registry_file

    if "entry_point_dirs" in data:
        config.entry_point_dirs = [_normalise_dir(item) for item in _as_str_list(data.get("entry_point_dirs"))]
    if "required_dirs" in data:
        config.required_dirs = [_normalise_dir(item) for item in _as_str_list(data.get("required_dirs"))]

    counts = data.get("expected_counts")
    if counts is not None:
        if not isinstance(counts, dict):
            raise ConfigError("expected_counts must be a mapping of artifact kind to count")
        for key, value in counts.items():
            parsed = _as_int(value)
            if parsed is None or parsed < 0:
                raise ConfigError(f"expected_counts.{key} must be a non-negative integer")
            config.expected_counts[str(key)] = parsed

    threshold = data.get("coverage_threshold")
    if threshold is not None:
        parsed_threshold = _as_float(threshold)
        if parsed_threshold is None or not 0.0 <= parsed_threshold <= 1.0:
            raise ConfigError("coverage_threshold must be a number between 0 and 1")
        config.coverage_threshold = parsed_threshold

    return config


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _normalise_dir(value: str) -> str:
    return value.replace("\\", "/").strip("/")


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    return []
