import json
import logging
from pathlib import Path

from permscan.models import DiscoveredPermission, ProjectScanResult, ScanResult, ScanWarning

log = logging.getLogger(__name__)


def _permission_to_dict(permission: DiscoveredPermission) -> dict:
    return {
        "name": permission.name,
        "description": permission.description,
        "http_method": permission.http_verb.value if permission.http_verb else None,
        "route": permission.route,
        "project": permission.project_name,
    }


def _project_to_dict(project: ProjectScanResult) -> dict:
    return {
        "name": project.name,
        "path": project.path,
        "permissions": [_permission_to_dict(p) for p in project.permissions],
    }


def _warning_to_dict(warning: ScanWarning) -> dict:
    return {
        "type": warning.kind,
        "endpoint": warning.context,
        "message": warning.message,
        "suggestion": warning.suggestion,
    }


def result_to_dict(result: ScanResult) -> dict:
    summary = result.summary
    return {
        "tool_version": result.tool_version,
        "generated_at": result.generated_at.isoformat(),
        "generated_by": result.generated_by,
        "projects": [_project_to_dict(p) for p in result.projects],
        "summary": {
            "total_endpoints": summary.total,
            "public_endpoints": summary.public,
            "auth_only_endpoints": summary.auth_only,
            "needs_permission_endpoints": summary.needs_permission,
            "already_protected_endpoints": summary.already_protected,
            "generated_permissions": summary.generated,
            "warnings": [_warning_to_dict(w) for w in summary.warnings],
        },
    }


def write_report(out_path: Path, result: ScanResult) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(result_to_dict(result), indent=2), encoding="utf-8")
    log.info("Wrote permission report with %d permissions to %s", result.summary.generated, out_path)
    return out_path


def format_summary(result: ScanResult, verbose: bool = False) -> str:
    summary = result.summary
    lines: list[str] = []

    for project in result.projects:
        if not project.permissions:
            continue
        lines.append(f"Project: {project.name}")
        lines.append(f"Path: {project.path}")
        for permission in project.permissions:
            lines.append(f"  - {permission.name}")
            if verbose:
                method = permission.http_verb.value if permission.http_verb else "-"
                lines.append(f"      Description: {permission.description}")
                lines.append(f"      HTTP Method: {method}")
                lines.append(f"      Route: {permission.route or '-'}")
        lines.append("")

    lines.extend(
        [
            "=== Scan Summary ===",
            f"Total Endpoints: {summary.total}",
            f"  Public: {summary.public}",
            f"  Auth Only: {summary.auth_only}",
            f"  Needs Permission: {summary.needs_permission}",
            f"  Already Protected: {summary.already_protected}",
            f"Generated Permissions: {summary.generated}",
        ]
    )

    if summary.warnings:
        lines.append("")
        lines.append(f"=== Warnings ({len(summary.warnings)}) ===")
        for warning in summary.warnings:
            lines.append(f"{warning.kind}: {warning.context}")
            lines.append(f"   {warning.message}")
            if warning.suggestion:
                lines.append(f"   Suggestion: {warning.suggestion}")
    return "\n".join(lines)
