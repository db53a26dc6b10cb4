"""
Shared fixtures: C# endpoint sources and on-disk .NET project trees.
"""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

import pytest

from permscan.models import AuthorizationState, EndpointDescriptor, ProjectEndpoint, Verb
from permscan.rules_loader import ScanRules, load_rules


def endpoint_source(
    class_name: str = "Endpoint",
    route_call: Optional[str] = "MapPost",
    route: str = "/users",
    auth: bool = True,
    permission: Optional[str] = None,
    capability: str = "IEndpoint",
) -> str:
    """Render a minimal-API endpoint class the way feature folders declare them."""
    chain = []
    if route_call:
        chain.append(f'app.{route_call}("{route}", () => Results.Ok())')
    else:
        chain.append("app.Ignore()")
    if auth:
        chain.append("    .RequireAuthorization()")
    if permission is not None:
        chain.append(f'    .RequirePermission("{permission}")')
    body = "\n            ".join(chain) + ";"

    return f"""using Microsoft.AspNetCore.Builder;

namespace App.Features;

public sealed class {class_name} : {capability}
{{
    public void MapEndpoint(IEndpointRouteBuilder app)
    {{
        {body}
    }}
}}
"""


ProjectFactory = Callable[..., Path]


@pytest.fixture
def make_project(tmp_path: Path) -> ProjectFactory:
    """Factory creating ``<tmp>/<name>/<name>.csproj`` plus the given source files."""

    def _make(name: str = "Api", files: Optional[dict[str, str]] = None) -> Path:
        project_dir = tmp_path / name
        project_dir.mkdir(parents=True, exist_ok=True)
        (project_dir / f"{name}.csproj").write_text('<Project Sdk="Microsoft.NET.Sdk.Web" />', encoding="utf-8")
        for relative, content in (files or {}).items():
            path = project_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return project_dir

    return _make


@pytest.fixture
def rules() -> ScanRules:
    return load_rules()


@pytest.fixture
def mismatched() -> list[ProjectEndpoint]:
    return [
        ProjectEndpoint(
            "Api",
            EndpointDescriptor(
                declaration_name="CreateUserEndpoint",
                source_location="Features/UserManagement/CreateUser/Endpoint.cs",
                http_verb=Verb.POST,
                route="/users",
                authorization_state=AuthorizationState.MISMATCHED_PERMISSION,
                declared_permission="User.Add",
                suggested_permission="Users.Create",
            ),
        ),
        ProjectEndpoint(
            "Api",
            EndpointDescriptor(
                declaration_name="DeleteOrderEndpoint",
                source_location="Features/Orders/DeleteOrder/Endpoint.cs",
                http_verb=Verb.DELETE,
                route="/orders/{id}",
                authorization_state=AuthorizationState.MISMATCHED_PERMISSION,
                declared_permission="Orders.Remove",
                suggested_permission="Orders.Delete",
            ),
        ),
    ]


@pytest.fixture(name="endpoint_source")
def endpoint_source_fixture() -> Callable[..., str]:
    return endpoint_source
