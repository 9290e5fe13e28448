"""Tests for dotbot_awareness.scanner and manifest readers."""

from __future__ import annotations

from dotbot_awareness.models import ProjectType


def test_scan_discovers_each_manifest_kind(repo_builder) -> None:
    repo_builder.write(
        {
            "src/Acme.Api/Acme.Api.csproj": """
                <Project Sdk="Microsoft.NET.Sdk.Web">
                  <PropertyGroup>
                    <TargetFramework>net8.0</TargetFramework>
                  </PropertyGroup>
                  <ItemGroup>
                    <PackageReference Include="Serilog" Version="3.1.1" />
                    <ProjectReference Include="..\\Acme.Core\\Acme.Core.csproj" />
                  </ItemGroup>
                </Project>
            """,
            "web/package.json": """
                {"name": "acme-web", "engines": {"node": ">=20"},
                 "dependencies": {"react": "18.2.0", "react-dom": "18.2.0"}}
            """,
            "tools/pyproject.toml": """
                [project]
                name = "acme-tools"
                requires-python = ">=3.11"
                dependencies = ["click>=8", "rich"]

                [project.scripts]
                acme = "acme_tools.cli:main"
            """,
        }
    )

    result = repo_builder.scan()
    projects = {project.name: project for project in result.projects}

    assert result.warnings == []
    assert [project.path for project in result.projects] == sorted(project.path for project in result.projects)

    api = projects["Acme.Api"]
    assert api.type is ProjectType.WEB_SERVICE
    assert api.manifest_kind == "msbuild"
    assert api.framework_version == "net8.0"
    assert api.dependency_count == 2
    assert api.path == "src/Acme.Api/Acme.Api.csproj"

    web = projects["acme-web"]
    assert web.type is ProjectType.FRONTEND_APP
    assert web.manifest_kind == "npm"
    assert web.framework_version == ">=20"

    tools = projects["acme-tools"]
    assert tools.type is ProjectType.EXECUTABLE
    assert tools.dependency_count == 2
    assert tools.framework_version == ">=3.11"


def test_scan_skips_build_and_dependency_directories(repo_builder) -> None:
    repo_builder.write(
        {
            "app/package.json": '{"name": "app"}',
            "app/node_modules/left-pad/package.json": '{"name": "left-pad"}',
            "bin/Debug/Stale.csproj": "<Project />",
            ".bot/prompts/package.json": '{"name": "hidden"}',
        }
    )

    names = [project.name for project in repo_builder.scan().projects]

    assert names == ["app"]


def test_scan_skips_malformed_manifest_with_warning(repo_builder) -> None:
    repo_builder.write(
        {
            "good/package.json": '{"name": "good"}',
            "bad/package.json": "{not json",
            "broken/Broken.csproj": "<Project><PropertyGroup></Project>",
        }
    )

    result = repo_builder.scan()

    assert [project.name for project in result.projects] == ["good"]
    assert sorted(warning.path for warning in result.warnings) == [
        "bad/package.json",
        "broken/Broken.csproj",
    ]
    assert {warning.code for warning in result.warnings} == {"MANIFEST_PARSE_ERROR"}


def test_scan_honours_extra_excludes(repo_builder) -> None:
    from dotbot_awareness.scanner import ManifestScanner

    repo_builder.write({"samples/package.json": '{"name": "sample"}', "api/package.json": '{"name": "api"}'})

    result = ManifestScanner(exclude_dirs=["samples"]).scan(repo_builder.path())

    assert [project.name for project in result.projects] == ["api"]


def test_scan_of_missing_root_is_empty(tmp_path) -> None:
    from dotbot_awareness.scanner import ManifestScanner

    result = ManifestScanner().scan(tmp_path / "missing")

    assert result.projects == []
    assert result.warnings == []
