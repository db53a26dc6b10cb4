"""
Tests for folding classified endpoints into the scan result.
"""

from dataclasses import replace

from permscan.aggregate import count_permissions, fold, fold_reconciled, permission_for, summarize
from permscan.models import (
    AuthorizationState,
    EndpointDescriptor,
    ProjectEndpoint,
    ProjectScanResult,
    ScanResult,
    Verb,
)


def entry(state, declared=None, suggested=None, route="/users", verb=Verb.GET, project="Api") -> ProjectEndpoint:
    return ProjectEndpoint(
        project,
        EndpointDescriptor(
            declaration_name="Endpoint",
            source_location=f"Features/Users{route.replace('/', '_')}/Endpoint.cs",
            http_verb=verb,
            route=route,
            authorization_state=state,
            declared_permission=declared,
            suggested_permission=suggested,
        ),
    )


class TestPermissionFor:
    def test_needs_permission_uses_suggestion(self):
        e = entry(AuthorizationState.NEEDS_PERMISSION, suggested="Users.Read")
        permission = permission_for(e.descriptor, "Api")
        assert permission.name == "Users.Read"
        assert permission.description == "Read users permission"

    def test_protected_uses_declared(self):
        e = entry(AuthorizationState.ALREADY_PROTECTED, declared="Reports.Export", suggested="Users.Read")
        assert permission_for(e.descriptor, "Api").name == "Reports.Export"

    def test_nothing_for_other_states(self):
        for state in (AuthorizationState.PUBLIC, AuthorizationState.AUTH_ONLY, AuthorizationState.MISMATCHED_PERMISSION):
            assert permission_for(entry(state, declared="X.Y", suggested="Y.Z").descriptor, "Api") is None

    def test_nothing_for_unknown_declared_value(self):
        assert permission_for(entry(AuthorizationState.ALREADY_PROTECTED).descriptor, "Api") is None

    def test_fold_appends(self):
        project = ProjectScanResult(name="Api", path="/src/Api")
        fold(project, entry(AuthorizationState.NEEDS_PERMISSION, suggested="Users.Read").descriptor)
        fold(project, entry(AuthorizationState.PUBLIC).descriptor)
        assert [p.name for p in project.permissions] == ["Users.Read"]


class TestSummarize:
    def test_counts_by_state(self):
        entries = [
            entry(AuthorizationState.PUBLIC),
            entry(AuthorizationState.PUBLIC),
            entry(AuthorizationState.AUTH_ONLY),
            entry(AuthorizationState.NEEDS_PERMISSION, suggested="Users.Read"),
            entry(AuthorizationState.ALREADY_PROTECTED, declared="Users.Read"),
            entry(AuthorizationState.MISMATCHED_PERMISSION, declared="User.Get", suggested="Users.Read"),
        ]
        summary = summarize(entries)

        assert summary.total == 6
        assert summary.public == 2
        assert summary.auth_only == 1
        assert summary.needs_permission == 1
        assert summary.already_protected == 2
        assert summary.total == (
            summary.public + summary.auth_only + summary.needs_permission + summary.already_protected
        )

    def test_mismatch_warning(self):
        summary = summarize([entry(AuthorizationState.MISMATCHED_PERMISSION, declared="User.Get", suggested="Users.Read")])
        (warning,) = summary.warnings
        assert warning.kind == "MismatchedPermission"
        assert warning.suggestion == "Users.Read"
        assert "User.Get" in warning.message and "Users.Read" in warning.message

    def test_generated_counts_project_permissions(self):
        project = ProjectScanResult(name="Api", path="/src/Api")
        fold(project, entry(AuthorizationState.NEEDS_PERMISSION, suggested="Users.Read").descriptor)
        assert summarize([], [project]).generated == 1
        assert count_permissions([project, project]) == 2


class TestFoldReconciled:
    def result_with(self, *permissions_from) -> ScanResult:
        project = ProjectScanResult(name="Api", path="/src/Api")
        for e in permissions_from:
            fold(project, e.descriptor)
        return ScanResult(projects=[project])

    def test_adds_new_permission(self):
        result = self.result_with()
        resolved = entry(AuthorizationState.ALREADY_PROTECTED, declared="Users.Read")
        fold_reconciled(result, [resolved])
        assert [p.name for p in result.projects[0].permissions] == ["Users.Read"]
        assert result.summary.generated == 1

    def test_updates_matching_route_and_verb(self):
        existing = entry(AuthorizationState.ALREADY_PROTECTED, declared="User.Get")
        result = self.result_with(existing)
        updated = replace(existing.descriptor, declared_permission="Users.Read")
        fold_reconciled(result, [ProjectEndpoint("Api", updated)])

        (permission,) = result.projects[0].permissions
        assert permission.name == "Users.Read"
        assert permission.description == "Read users permission"
        assert result.summary.generated == 1

    def test_same_route_other_verb_is_separate(self):
        existing = entry(AuthorizationState.ALREADY_PROTECTED, declared="Users.Read")
        result = self.result_with(existing)
        other = entry(AuthorizationState.ALREADY_PROTECTED, declared="Users.Delete", verb=Verb.DELETE)
        fold_reconciled(result, [other])
        assert [p.name for p in result.projects[0].permissions] == ["Users.Read", "Users.Delete"]

    def test_routeless_permissions_are_never_merged(self):
        """Endpoints without a literal route must not overwrite each other."""
        other = entry(AuthorizationState.NEEDS_PERMISSION, suggested="Orders.Create", verb=Verb.POST)
        other = ProjectEndpoint("Api", replace(other.descriptor, route=None))
        result = self.result_with(other)

        reconciled = entry(AuthorizationState.ALREADY_PROTECTED, declared="Users.Create", verb=Verb.POST)
        fold_reconciled(result, [ProjectEndpoint("Api", replace(reconciled.descriptor, route=None))])

        assert [p.name for p in result.projects[0].permissions] == ["Orders.Create", "Users.Create"]
        assert result.summary.generated == 2

    def test_unknown_project_is_ignored(self):
        result = self.result_with()
        fold_reconciled(result, [entry(AuthorizationState.ALREADY_PROTECTED, declared="X.Read", project="Other")])
        assert result.projects[0].permissions == []
        assert result.summary.generated == 0
