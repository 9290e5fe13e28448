"""Reference extraction from artifact bodies and front-matter."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Set

# @path/to/file.md, not preceded by a word character so e-mail addresses are ignored.
INLINE_REFERENCE = re.compile(r"(?<![\w@])@((?:[\w\-.]+[/\\])*[\w\-.]+\.md)\b")


@dataclass
class References:
    """References found in one artifact."""

    dependencies: List[str] = field(default_factory=list)
    inline: List[str] = field(default_factory=list)
    used_by: List[str] = field(default_factory=list)

    @property
    def all(self) -> List[str]:
        return unique_references([*self.dependencies, *self.inline])


def normalise_reference(ref: str) -> str:
    """Normalise slash style so equivalent references compare equal."""
    cleaned = ref.strip().replace("\\", "/")
    while cleaned.startswith("./"):
        cleaned = cleaned[2:]
    return cleaned


def unique_references(refs: Iterable[str]) -> List[str]:
    """Drop references equivalent to an earlier one, keeping the text as written."""
    found: List[str] = []
    keys: Set[str] = set()
    for ref in refs:
        key = normalise_reference(ref)
        if key not in keys:
            keys.add(key)
            found.append(ref.strip())
    return found


def extract_inline_references(text: str) -> List[str]:
    return unique_references(match.group(1) for match in INLINE_REFERENCE.finditer(text))


def extract_declared_files(front_matter: Optional[Mapping[str, Any]], key: str) -> List[str]:
    """Return file references declared under ``key`` (maps with ``file`` or plain strings)."""
    if not front_matter:
        return []
    raw = front_matter.get(key)
    if raw is None:
        return []
    if isinstance(raw, (str, dict)):
        raw = [raw]
    if not isinstance(raw, list):
        return []

    values: List[str] = []
    for item in raw:
        value: Any = item.get("file") if isinstance(item, dict) else item
        if isinstance(value, str) and value.strip():
            values.append(value)
    return unique_references(values)


def extract_references(body: str, front_matter: Optional[Mapping[str, Any]]) -> References:
    """Collect inline and declared references; ``used_by`` backlinks stay separate."""
    return References(
        dependencies=extract_declared_files(front_matter, "dependencies"),
        inline=extract_inline_references(body),
        used_by=extract_declared_files(front_matter, "used_by"),
    )


__all__ = [
    "INLINE_REFERENCE",
    "References",
    "extract_declared_files",
    "extract_inline_references",
    "extract_references",
    "normalise_reference",
    "unique_references",
]
