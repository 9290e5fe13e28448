"""Persistent solution registry holding curated project metadata."""

from __future__ import annotations

import json
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .logging import get_logger
from .models import Registry, RegistryEntry

REGISTRY_VERSION = 1

logger = get_logger("registry")


class RegistryError(RuntimeError):
    """Raised when the registry cannot be read or a save is rejected."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.code = code
        self.details = details


def utc_now() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


class RegistryStore:
    """Loads and atomically saves the registry file at ``path``."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Registry:
        """Return the stored registry, or an empty one when no file exists."""
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return Registry(registry_version=REGISTRY_VERSION)
        except OSError as exc:
            raise RegistryError("REGISTRY_PARSE_ERROR", f"Unable to read registry: {exc}") from exc

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            raise RegistryError(
                "REGISTRY_PARSE_ERROR",
                f"Registry file is not valid JSON: {exc}",
                {"path": str(self._path)},
            ) from exc
        if not isinstance(payload, dict):
            raise RegistryError(
                "REGISTRY_PARSE_ERROR",
                "Registry root must be a JSON object",
                {"path": str(self._path)},
            )
        return _registry_from_dict(payload)

    def save(self, registry: Registry) -> None:
        """Validate and persist ``registry``; nothing is written if validation fails."""
        validate_aliases(registry.projects.values())

        previous = registry.last_updated
        registry.last_updated = utc_now()
        payload = _registry_to_dict(registry)
        try:
            self._write_atomic(json.dumps(payload, indent=2, sort_keys=True) + "\n")
        except OSError as exc:
            registry.last_updated = previous
            raise RegistryError(
                "REGISTRY_WRITE_ERROR",
                f"Unable to write registry: {exc}",
                {"path": str(self._path)},
            ) from exc
        logger.info("Saved %d registry entries to %s", len(registry.projects), self._path)

    def register(
        self,
        project_name: str,
        *,
        alias: Optional[str] = None,
        summary: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        owner: Optional[str] = None,
    ) -> RegistryEntry:
        """Create or update an entry; unspecified fields keep their stored value."""
        registry = self.load()
        existing = registry.projects.get(project_name)
        entry = RegistryEntry(
            project_name=project_name,
            alias=alias if alias is not None else (existing.alias if existing else None),
            summary=summary if summary is not None else (existing.summary if existing else None),
            tags=_ordered_tags(tags) if tags is not None else (list(existing.tags) if existing else []),
            owner=owner if owner is not None else (existing.owner if existing else None),
            registered_at=existing.registered_at if existing and existing.registered_at else utc_now(),
        )
        registry.projects[project_name] = entry
        self.save(registry)
        return entry

    def unregister(self, project_name: str) -> bool:
        """Remove an entry; returns ``False`` if it was not registered."""
        registry = self.load()
        if project_name not in registry.projects:
            return False
        del registry.projects[project_name]
        self.save(registry)
        return True

    # ------------------------------------------------------------------
    # Internal helpers

    def _write_atomic(self, content: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path: Optional[Path] = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                delete=False,
                dir=str(self._path.parent),
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            ) as tmp:
                tmp_path = Path(tmp.name)
                tmp.write(content)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_path, self._path)
        except OSError:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise


def validate_aliases(entries: Iterable[RegistryEntry]) -> None:
    """Raise ``ALIAS_CONFLICT`` if two entries share an alias (case-insensitive)."""
    owners: Dict[str, str] = {}
    for entry in sorted(entries, key=lambda item: item.project_name):
        if not entry.alias:
            continue
        key = entry.alias.lower()
        other = owners.get(key)
        if other is not None and other != entry.project_name:
            raise RegistryError(
                "ALIAS_CONFLICT",
                f"Alias '{entry.alias}' is used by both '{other}' and '{entry.project_name}'",
                {"alias": entry.alias, "projects": [other, entry.project_name]},
            )
        owners[key] = entry.project_name


def _ordered_tags(tags: Iterable[str]) -> List[str]:
    ordered: List[str] = []
    for tag in tags:
        cleaned = str(tag).strip()
        if cleaned and cleaned not in ordered:
            ordered.append(cleaned)
    return ordered


def _registry_to_dict(registry: Registry) -> Dict[str, Any]:
    return {
        "registryVersion": registry.registry_version,
        "lastUpdated": registry.last_updated,
        "projects": {
            name: {
                "alias": entry.alias,
                "summary": entry.summary,
                "tags": list(entry.tags),
                "owner": entry.owner,
                "registeredAt": entry.registered_at,
            }
            for name, entry in sorted(registry.projects.items())
        },
    }


def _registry_from_dict(payload: Mapping[str, Any]) -> Registry:
    projects_payload = payload.get("projects") or {}
    if not isinstance(projects_payload, dict):
        raise RegistryError("REGISTRY_PARSE_ERROR", "Registry 'projects' must be an object")

    projects: Dict[str, RegistryEntry] = {}
    for name, raw in projects_payload.items():
        if not isinstance(raw, dict):
            raise RegistryError(
                "REGISTRY_PARSE_ERROR",
                f"Registry entry for '{name}' must be an object",
                {"project": name},
            )
        tags = raw.get("tags") or []
        projects[name] = RegistryEntry(
            project_name=name,
            alias=_optional_str(raw.get("alias")),
            summary=_optional_str(raw.get("summary")),
            tags=_ordered_tags(tags) if isinstance(tags, list) else [],
            owner=_optional_str(raw.get("owner")),
            registered_at=_optional_str(raw.get("registeredAt")),
        )

    version = payload.get("registryVersion", REGISTRY_VERSION)
    return Registry(
        registry_version=version if isinstance(version, int) else REGISTRY_VERSION,
        last_updated=_optional_str(payload.get("lastUpdated")),
        projects=projects,
    )


def _optional_str(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


__all__ = ["REGISTRY_VERSION", "RegistryError", "RegistryStore", "validate_aliases"]
