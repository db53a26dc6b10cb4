import logging
from typing import Iterable, Optional

from permscan.conventions import describe_permission
from permscan.models import (
    AuthorizationState,
    DiscoveredPermission,
    EndpointDescriptor,
    ProjectEndpoint,
    ProjectScanResult,
    ScanResult,
    ScanSummary,
    ScanWarning,
)

log = logging.getLogger(__name__)

_STATE_COUNTERS = {
    AuthorizationState.PUBLIC: "public",
    AuthorizationState.AUTH_ONLY: "auth_only",
    AuthorizationState.NEEDS_PERMISSION: "needs_permission",
    AuthorizationState.ALREADY_PROTECTED: "already_protected",
    # still protected, only named against convention
    AuthorizationState.MISMATCHED_PERMISSION: "already_protected",
}


def permission_for(descriptor: EndpointDescriptor, project_name: str) -> Optional[DiscoveredPermission]:
    state = descriptor.authorization_state
    if state == AuthorizationState.NEEDS_PERMISSION:
        name = descriptor.suggested_permission
    elif state == AuthorizationState.ALREADY_PROTECTED:
        name = descriptor.declared_permission
    else:
        return None

    if not name:
        return None
    return DiscoveredPermission(
        name=name,
        description=describe_permission(name),
        http_verb=descriptor.http_verb,
        route=descriptor.route,
        project_name=project_name,
    )


def fold(project_result: ProjectScanResult, descriptor: EndpointDescriptor) -> Optional[DiscoveredPermission]:
    permission = permission_for(descriptor, project_result.name)
    if permission is not None:
        project_result.permissions.append(permission)
    return permission


def mismatch_warning(entry: ProjectEndpoint) -> ScanWarning:
    descriptor = entry.descriptor
    return ScanWarning(
        kind="MismatchedPermission",
        context=f"{entry.project_name}/{descriptor.source_location}",
        message=(
            f"RequirePermission('{descriptor.declared_permission}') does not match convention "
            f"(expected: '{descriptor.suggested_permission}'). Update it or mark it as a custom permission."
        ),
        suggestion=descriptor.suggested_permission,
    )


def summarize(entries: Iterable[ProjectEndpoint], projects: Iterable[ProjectScanResult] = ()) -> ScanSummary:
    """Tally endpoints by their classification before reconciliation."""
    summary = ScanSummary()
    for entry in entries:
        summary.total += 1
        counter = _STATE_COUNTERS[entry.descriptor.authorization_state]
        setattr(summary, counter, getattr(summary, counter) + 1)
        if entry.descriptor.authorization_state == AuthorizationState.MISMATCHED_PERMISSION:
            summary.warnings.append(mismatch_warning(entry))

    summary.generated = count_permissions(projects)
    return summary


def count_permissions(projects: Iterable[ProjectScanResult]) -> int:
    return sum(len(project.permissions) for project in projects)


def fold_reconciled(result: ScanResult, resolved: Iterable[ProjectEndpoint]) -> None:
    """
    Merge reconciled endpoints into their projects' permission lists.

    An existing permission for the same (route, verb) pair is updated in
    place, otherwise a new entry is added. Permissions without a literal
    route are always added. Endpoint tallies are left as they were, only
    ``generated`` is recomputed.
    """
    for entry in resolved:
        project = result.project(entry.project_name)
        if project is None:
            log.warning("Reconciled endpoint refers to unknown project %s", entry.project_name)
            continue

        permission = permission_for(entry.descriptor, project.name)
        if permission is None:
            continue

        existing = None
        # A missing route carries no identity, it never matches another endpoint.
        if permission.route is not None:
            existing = next(
                (
                    p
                    for p in project.permissions
                    if p.route == permission.route and p.http_verb == permission.http_verb
                ),
                None,
            )
        if existing is None:
            project.permissions.append(permission)
        else:
            existing.name = permission.name
            existing.description = permission.description

    result.summary.generated = count_permissions(result.projects)
