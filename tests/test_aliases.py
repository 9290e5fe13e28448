"""Tests for deterministic alias inference."""

from __future__ import annotations

from dotbot_awareness.aliases import infer_alias, infer_aliases
from dotbot_awareness.models import DiscoveredProject, ProjectType


def _project(name: str, project_type: ProjectType) -> DiscoveredProject:
    return DiscoveredProject(name=name, type=project_type, path=f"{name}/manifest", manifest_kind="msbuild")


def test_single_frontend_and_backend_get_plain_aliases() -> None:
    projects = [_project("Acme.Web", ProjectType.FRONTEND_APP), _project("Acme.Api", ProjectType.WEB_SERVICE)]

    assert infer_aliases(projects) == {"Acme.Web": "fe", "Acme.Api": "be"}


def test_multiple_frontends_are_suffixed_with_name_hint() -> None:
    projects = [
        _project("Acme.Admin", ProjectType.FRONTEND_APP),
        _project("Acme.Mobile", ProjectType.FRONTEND_APP),
    ]

    assert infer_aliases(projects) == {"Acme.Admin": "fe-admin", "Acme.Mobile": "fe-mobile"}


def test_frontend_without_hint_keeps_base_alias_even_with_peers() -> None:
    projects = [
        _project("Storefront", ProjectType.FRONTEND_APP),
        _project("Backoffice.Admin", ProjectType.FRONTEND_APP),
    ]

    assert infer_alias(projects[0], projects) == "fe"
    assert infer_alias(projects[1], projects) == "fe-admin"


def test_test_project_borrows_target_alias() -> None:
    projects = [
        _project("Acme.Api", ProjectType.WEB_SERVICE),
        _project("Acme.Api.Tests", ProjectType.TEST),
        _project("Orphan.Specs", ProjectType.TEST),
    ]

    aliases = infer_aliases(projects)

    assert aliases["Acme.Api.Tests"] == "be-test"
    assert aliases["Orphan.Specs"] == "test"


def test_special_cases_and_fallback() -> None:
    projects = [
        _project("Acme.Infrastructure", ProjectType.LIBRARY),
        _project("Acme.Shared.Kernel", ProjectType.LIBRARY),
        _project("Acme.Billing", ProjectType.LIBRARY),
        _project("Acme.Cli", ProjectType.EXECUTABLE),
    ]

    aliases = infer_aliases(projects)

    assert aliases["Acme.Infrastructure"] == "infra"
    assert aliases["Acme.Shared.Kernel"] == "shared"
    assert aliases["Acme.Billing"] == "acme"
    assert aliases["Acme.Cli"] == "acme"


def test_inference_is_deterministic() -> None:
    projects = [
        _project("Acme.Admin", ProjectType.FRONTEND_APP),
        _project("Acme.Portal", ProjectType.FRONTEND_APP),
        _project("Acme.Api", ProjectType.WEB_SERVICE),
        _project("Acme.Api.Tests", ProjectType.TEST),
        _project("Acme.Domain", ProjectType.LIBRARY),
    ]

    first = infer_aliases(projects)
    for _ in range(5):
        assert infer_aliases(projects) == first
    assert infer_aliases(list(projects)) == first


def test_fallback_uses_leading_alphanumerics_of_whole_name() -> None:
    projects = [
        _project("Billing-Service", ProjectType.LIBRARY),
        _project("Go", ProjectType.EXECUTABLE),
        _project("__", ProjectType.OTHER),
    ]

    aliases = infer_aliases(projects)

    assert aliases == {"Billing-Service": "bill", "Go": "go", "__": "proj"}
