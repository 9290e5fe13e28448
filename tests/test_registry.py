"""Tests for the persistent solution registry."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from dotbot_awareness.models import RegistryEntry
from dotbot_awareness.registry import RegistryError, RegistryStore, validate_aliases


@pytest.fixture
def store(tmp_path: Path) -> RegistryStore:
    return RegistryStore(tmp_path / ".bot" / "solution-registry.json")


def test_missing_file_loads_empty_registry(store: RegistryStore) -> None:
    registry = store.load()

    assert registry.projects == {}
    assert registry.registry_version == 1
    assert not store.path.exists()


def test_invalid_json_raises_parse_error(store: RegistryStore) -> None:
    store.path.parent.mkdir(parents=True)
    store.path.write_text("{not json", encoding="utf-8")

    with pytest.raises(RegistryError) as excinfo:
        store.load()

    assert excinfo.value.code == "REGISTRY_PARSE_ERROR"


def test_non_object_projects_raise_parse_error(store: RegistryStore) -> None:
    store.path.parent.mkdir(parents=True)
    store.path.write_text(json.dumps({"projects": ["Acme.Api"]}), encoding="utf-8")

    with pytest.raises(RegistryError) as excinfo:
        store.load()

    assert excinfo.value.code == "REGISTRY_PARSE_ERROR"


def test_register_round_trips_fields(store: RegistryStore) -> None:
    store.register("Acme.Api", alias="api", summary="Public API", tags=["backend", "backend", "http"], owner="platform")

    registry = store.load()
    entry = registry.projects["Acme.Api"]

    assert entry.alias == "api"
    assert entry.summary == "Public API"
    assert entry.tags == ["backend", "http"]
    assert entry.owner == "platform"
    assert entry.registered_at is not None
    assert registry.last_updated is not None

    payload = json.loads(store.path.read_text(encoding="utf-8"))
    assert payload["registryVersion"] == 1
    assert set(payload["projects"]["Acme.Api"]) == {"alias", "summary", "tags", "owner", "registeredAt"}


def test_register_update_keeps_unspecified_fields(store: RegistryStore) -> None:
    first = store.register("Acme.Api", alias="api", summary="Public API")

    updated = store.register("Acme.Api", owner="platform")

    assert updated.alias == "api"
    assert updated.summary == "Public API"
    assert updated.owner == "platform"
    assert updated.registered_at == first.registered_at


def test_alias_conflict_rejects_save_and_leaves_file_untouched(store: RegistryStore) -> None:
    store.register("Acme.Api", alias="api")
    before = store.path.read_bytes()
    registry_before = store.load()

    with pytest.raises(RegistryError) as excinfo:
        store.register("Acme.Gateway", alias="API")

    assert excinfo.value.code == "ALIAS_CONFLICT"
    assert excinfo.value.details == {"alias": "API", "projects": ["Acme.Api", "Acme.Gateway"]}
    assert store.path.read_bytes() == before
    assert store.load() == registry_before
    assert not [path for path in store.path.parent.iterdir() if path.name.endswith(".tmp")]


def test_validate_aliases_ignores_unset_aliases() -> None:
    validate_aliases(
        [
            RegistryEntry(project_name="A"),
            RegistryEntry(project_name="B"),
            RegistryEntry(project_name="C", alias="c"),
        ]
    )


def test_unregister(store: RegistryStore) -> None:
    store.register("Acme.Api", alias="api")

    assert store.unregister("Acme.Api") is True
    assert store.unregister("Acme.Api") is False
    assert store.load().projects == {}


@pytest.mark.parametrize("failing", ["fsync", "replace"])
def test_failed_write_reports_error_and_leaves_no_temp_file(
    store: RegistryStore, monkeypatch: pytest.MonkeyPatch, failing: str
) -> None:
    store.register("Acme.Api", alias="api")
    before = store.path.read_bytes()

    def _fail(*args, **kwargs):
        raise OSError("disk full")

    monkeypatch.setattr(f"dotbot_awareness.registry.os.{failing}", _fail)

    with pytest.raises(RegistryError) as excinfo:
        store.register("Acme.Web", alias="web")

    assert excinfo.value.code == "REGISTRY_WRITE_ERROR"
    assert store.path.read_bytes() == before
    assert sorted(path.name for path in store.path.parent.iterdir()) == ["solution-registry.json"]
