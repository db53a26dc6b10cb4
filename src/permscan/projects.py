import fnmatch
import logging
import os

from permscan.errors import ScanError
from permscan.models import ProjectInfo
from permscan.rules_loader import SourceRules

log = logging.getLogger(__name__)


def list_projects(root: str, rules: SourceRules | None = None) -> list[ProjectInfo]:
    rules = rules or SourceRules()
    if not os.path.isdir(root):
        msg = f"Scan path not found: {root}"
        raise ScanError(msg)

    log.info("Looking for %s project files under %s", rules.project_file_glob, root)
    project_files: list[str] = []
    for dirpath, dirnames, files in os.walk(root):
        dirnames[:] = [d for d in dirnames if d not in rules.exclude_dirs]
        for file in files:
            if fnmatch.fnmatch(file, rules.project_file_glob):
                project_files.append(os.path.join(dirpath, file))

    projects = [_project_info(path, rules) for path in sorted(project_files)]
    log.info("Found %d projects", len(projects))
    return projects


def _project_info(project_file: str, rules: SourceRules) -> ProjectInfo:
    project_dir = os.path.dirname(project_file)
    name, _ = os.path.splitext(os.path.basename(project_file))

    source_files: list[str] = []
    for dirpath, dirnames, files in os.walk(project_dir):
        dirnames[:] = [d for d in dirnames if d not in rules.exclude_dirs]
        for file in files:
            _, ext = os.path.splitext(file)
            if ext.lower() in rules.extensions:
                source_files.append(os.path.join(dirpath, file))

    log.debug("Project %s: %d source files", name, len(source_files))
    return ProjectInfo(
        name=name,
        path=project_dir,
        project_file=project_file,
        source_files=sorted(source_files),
    )
