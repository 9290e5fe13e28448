"""Content heuristics that assign a project type to a manifest."""

from __future__ import annotations

from typing import Iterable, Set

from .models import ManifestContent, ProjectType

_TEST_MARKERS = {
    "xunit",
    "xunit.core",
    "nunit",
    "mstest.testframework",
    "microsoft.net.test.sdk",
    "jest",
    "vitest",
    "mocha",
    "cypress",
    "@playwright/test",
    "pytest",
}

_WEB_SDKS = {"microsoft.net.sdk.web"}

_WEB_MARKERS = {
    "microsoft.aspnetcore.app",
    "microsoft.aspnetcore.openapi",
    "swashbuckle.aspnetcore",
    "express",
    "fastify",
    "koa",
    "@nestjs/core",
    "fastapi",
    "flask",
    "django",
}

_FRONTEND_MARKERS = {
    "react",
    "react-dom",
    "next",
    "vue",
    "nuxt",
    "@angular/core",
    "svelte",
    "solid-js",
    "preact",
}


def classify(content: ManifestContent) -> ProjectType:
    """Return the project type for ``content``.

    Rules apply in order. Test projects reference the frameworks they
    exercise, so the test rule wins over web and front-end markers.
    """
    dependencies = _lowered(content.dependencies)
    sdk = (content.sdk or "").lower()

    if dependencies & _TEST_MARKERS or sdk.endswith(".test"):
        return ProjectType.TEST
    if sdk in _WEB_SDKS or dependencies & _WEB_MARKERS:
        return ProjectType.WEB_SERVICE
    if dependencies & _FRONTEND_MARKERS:
        return ProjectType.FRONTEND_APP
    if content.executable:
        return ProjectType.EXECUTABLE
    if content.has_identity or dependencies:
        return ProjectType.LIBRARY
    return ProjectType.OTHER


def _lowered(values: Iterable[str]) -> Set[str]:
    return {value.lower() for value in values}


__all__ = ["classify"]
