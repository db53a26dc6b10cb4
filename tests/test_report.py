"""
Tests for the JSON report and the generated C# constants.
"""

import json

from permscan.constants_writer import permission_names, render_constants, write_constants
from permscan.models import (
    DiscoveredPermission,
    ProjectScanResult,
    ScanResult,
    ScanSummary,
    ScanWarning,
    Verb,
)
from permscan.report import format_summary, result_to_dict, write_report


def sample_result() -> ScanResult:
    permissions = [
        DiscoveredPermission("Users.Create", "Create users permission", Verb.POST, "/users", "Api"),
        DiscoveredPermission("Users.Read", "Read users permission", Verb.GET, "/users/{id}", "Api"),
        DiscoveredPermission("Admin", "Admin permission", None, None, "Api"),
    ]
    summary = ScanSummary(
        total=4,
        public=1,
        needs_permission=2,
        already_protected=1,
        generated=3,
        warnings=[ScanWarning("MismatchedPermission", "Api/Features/X.cs", "does not match", "Users.Read")],
    )
    return ScanResult(projects=[ProjectScanResult("Api", "/src/Api", permissions)], summary=summary)


class TestReport:
    def test_shape(self):
        data = result_to_dict(sample_result())

        assert set(data) == {"tool_version", "generated_at", "generated_by", "projects", "summary"}
        project = data["projects"][0]
        assert set(project) == {"name", "path", "permissions"}
        assert project["permissions"][0] == {
            "name": "Users.Create",
            "description": "Create users permission",
            "http_method": "POST",
            "route": "/users",
            "project": "Api",
        }
        assert project["permissions"][2]["http_method"] is None

        summary = data["summary"]
        assert summary["total_endpoints"] == 4
        assert summary["public_endpoints"] == 1
        assert summary["auth_only_endpoints"] == 0
        assert summary["needs_permission_endpoints"] == 2
        assert summary["already_protected_endpoints"] == 1
        assert summary["generated_permissions"] == 3
        assert summary["warnings"] == [
            {
                "type": "MismatchedPermission",
                "endpoint": "Api/Features/X.cs",
                "message": "does not match",
                "suggestion": "Users.Read",
            }
        ]

    def test_write_report(self, tmp_path):
        out = write_report(tmp_path / "reports" / "permissions.json", sample_result())
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["summary"]["generated_permissions"] == 3

    def test_format_summary(self):
        text = format_summary(sample_result(), verbose=True)
        assert "Project: Api" in text
        assert "  - Users.Create" in text
        assert "HTTP Method: POST" in text
        assert "Total Endpoints: 4" in text
        assert "=== Warnings (1) ===" in text
        assert "Suggestion: Users.Read" in text

    def test_format_summary_quiet(self):
        text = format_summary(sample_result())
        assert "HTTP Method" not in text


class TestConstants:
    def test_names_are_unique_and_sorted(self):
        result = sample_result()
        result.projects.append(
            ProjectScanResult(
                "Other",
                "/src/Other",
                [DiscoveredPermission("Users.Read", "Read users permission", Verb.GET, "/u", "Other")],
            )
        )
        assert permission_names(result) == ["Admin", "Users.Create", "Users.Read"]

    def test_render(self):
        text = render_constants(sample_result(), "Shop.Constants")
        assert "namespace Shop.Constants;" in text
        assert "public static class AppPermissions" in text
        assert "    public static class Users" in text
        assert '        public const string Create = "Users.Create";' in text
        assert '        public const string Admin = "Admin";' in text
        assert "    public static class General" in text

    def test_identifiers_are_sanitized(self):
        result = ScanResult(
            projects=[
                ProjectScanResult(
                    "Api", "/src/Api", [DiscoveredPermission("Audit-Logs.2fa", "", Verb.GET, "/a", "Api")]
                )
            ]
        )
        text = render_constants(result, "App")
        assert "public static class Audit_Logs" in text
        assert 'public const string _2fa = "Audit-Logs.2fa";' in text

    def test_write_uses_file_stem_as_class(self, tmp_path):
        path = write_constants(tmp_path / "Permissions.cs", sample_result(), "App")
        assert "public static class Permissions" in path.read_text(encoding="utf-8")
