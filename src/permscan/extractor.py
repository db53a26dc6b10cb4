import logging
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional, Protocol

from permscan.classifier import apply_call
from permscan.models import Declaration, EndpointDescriptor, ProjectInfo
from permscan.progress import NullProgress, ProgressSink
from permscan.rules_loader import EndpointRules

log = logging.getLogger(__name__)


class SourceModelAdapter(Protocol):
    def list_declarations(self, path: str) -> list[Declaration]: ...


def discover(
    project: ProjectInfo,
    adapter: SourceModelAdapter,
    rules: EndpointRules,
    max_workers: int = 4,
    progress: ProgressSink | None = None,
    progress_share: float = 0.0,
) -> list[EndpointDescriptor]:
    """
    Find the endpoint declared in each source file of a project.

    Files are scanned in parallel. A file that cannot be scanned is skipped
    and logged, it never aborts the project. Descriptors come back sorted by
    source location.
    """
    progress = progress or NullProgress()
    if not project.source_files:
        progress.advance(progress_share)
        return []

    per_file = progress_share / len(project.source_files)
    endpoints: list[EndpointDescriptor] = []

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        future_to_file = {
            executor.submit(analyze_source_file, adapter, path, project.path, rules): path
            for path in project.source_files
        }

        for future in as_completed(future_to_file):
            path = future_to_file[future]
            try:
                endpoint = future.result()
                if endpoint:
                    endpoints.append(endpoint)
            except Exception as e:
                log.debug("Skipping %s: %s", path, e)
            progress.advance(per_file)

    endpoints.sort(key=lambda e: (e.source_location, e.declaration_name))
    log.info("Project %s: %d endpoints in %d files", project.name, len(endpoints), len(project.source_files))
    return endpoints


def analyze_source_file(
    adapter: SourceModelAdapter,
    path: str,
    project_root: str,
    rules: EndpointRules,
) -> Optional[EndpointDescriptor]:
    declarations = adapter.list_declarations(path)

    # Only the first endpoint declaration of a file is considered.
    declaration = next((d for d in declarations if is_endpoint(d, rules)), None)
    if declaration is None:
        return None

    method = declaration.method(rules.registration_method)
    if method is None:
        return None

    descriptor = EndpointDescriptor(
        declaration_name=declaration.name,
        source_location=relative_location(path, project_root),
    )
    for call in method.calls:
        descriptor = apply_call(descriptor, call, rules)
    return descriptor


def is_endpoint(declaration: Declaration, rules: EndpointRules) -> bool:
    return any(rules.capability in capability for capability in declaration.capabilities)


def relative_location(path: str, project_root: str) -> str:
    try:
        relative = os.path.relpath(os.path.abspath(path), os.path.abspath(project_root))
    except ValueError as exc:
        log.warning("Could not compute relative path for %s: %s", path, exc)
        return os.path.basename(path)
    return relative.replace("\\", "/")
