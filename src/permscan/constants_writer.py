"""Render discovered permissions as a C# class of string constants."""

import logging
import re
from pathlib import Path

from permscan.models import ScanResult

log = logging.getLogger(__name__)

_NON_IDENTIFIER = re.compile(r"[^0-9A-Za-z_]")


def _identifier(text: str) -> str:
    identifier = _NON_IDENTIFIER.sub("_", text).strip("_") or "Permission"
    if identifier[0].isdigit():
        identifier = "_" + identifier
    return identifier


def permission_names(result: ScanResult) -> list[str]:
    names = {p.name for project in result.projects for p in project.permissions}
    return sorted(names, key=str.lower)


def render_constants(result: ScanResult, namespace: str, class_name: str = "AppPermissions") -> str:
    groups: dict[str, dict[str, str]] = {}
    for name in permission_names(result):
        resource, dot, action = name.partition(".")
        if not dot:
            resource, action = "General", name
        members = groups.setdefault(_identifier(resource), {})
        member = _identifier(action)
        if member in members and members[member] != name:
            log.warning("Permission %s collides with %s as constant %s, skipping", name, members[member], member)
            continue
        members[member] = name

    lines = [
        "// <auto-generated>",
        "//     Generated by permscan. Changes will be lost when regenerated.",
        "// </auto-generated>",
        "",
        f"namespace {namespace};",
        "",
        f"public static class {_identifier(class_name)}",
        "{",
    ]
    for index, (group, members) in enumerate(groups.items()):
        if index:
            lines.append("")
        lines.append(f"    public static class {group}")
        lines.append("    {")
        for member, value in members.items():
            escaped = value.replace("\\", "\\\\").replace('"', '\\"')
            lines.append(f'        public const string {member} = "{escaped}";')
        lines.append("    }")
    lines.append("}")
    return "\n".join(lines) + "\n"


def write_constants(out_path: Path, result: ScanResult, namespace: str) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    content = render_constants(result, namespace, class_name=out_path.stem)
    out_path.write_text(content, encoding="utf-8")
    log.info("Wrote %d permission constants to %s", len(permission_names(result)), out_path)
    return out_path
