import logging
import os
from typing import Callable, Optional

from permscan.aggregate import fold, fold_reconciled, summarize
from permscan.conventions import ConventionRules, resolve
from permscan.csharp_source import CSharpSourceAdapter
from permscan.errors import ScanError
from permscan.extractor import SourceModelAdapter, discover
from permscan.models import (
    AuthorizationState,
    EndpointDescriptor,
    ProjectEndpoint,
    ProjectInfo,
    ProjectScanResult,
    ScanResult,
    ScanWarning,
)
from permscan.progress import NullProgress, ProgressSink
from permscan.projects import list_projects
from permscan.reconcile import DecisionProvider, Notifier, ReconcileOutcome, ReconcilePolicy, reconcile
from permscan.rules_loader import EndpointRules, ScanRules, SourceRules, load_rules

log = logging.getLogger(__name__)

ProjectLocator = Callable[[str, SourceRules], list[ProjectInfo]]

# Shares of overall progress, reported to the progress sink.
_LOCATE_SHARE = 0.2
_PROJECTS_SHARE = 0.6
_SUMMARY_SHARE = 0.2


def scan_projects(
    root: str,
    rules: Optional[ScanRules] = None,
    conventions: Optional[ConventionRules] = None,
    adapter: Optional[SourceModelAdapter] = None,
    locator: ProjectLocator = list_projects,
    max_workers: int = 4,
    progress: Optional[ProgressSink] = None,
) -> tuple[ScanResult, list[ProjectEndpoint]]:
    """
    Classify every endpoint under ``root``.

    Returns the aggregate result (before reconciliation) and the endpoints
    whose declared permission does not match the convention.
    """
    if not root or not str(root).strip():
        raise ScanError("Scan path cannot be empty.")
    root = os.path.abspath(root)
    if not os.path.isdir(root):
        raise ScanError(f"Scan path not found: {root}")

    rules = rules or load_rules()
    conventions = conventions or ConventionRules()
    adapter = adapter or CSharpSourceAdapter()
    progress = progress or NullProgress()

    try:
        projects = locator(root, rules.source)
    except OSError as exc:
        raise ScanError(f"Could not enumerate projects in {root}: {exc}") from exc
    progress.advance(_LOCATE_SHARE)

    result = ScanResult()
    if not projects:
        result.summary.warnings.append(
            ScanWarning(
                kind="No Projects",
                context="",
                message=f"No {rules.source.project_file_glob} files found in {root}",
                suggestion="Verify the scan path contains valid .NET projects",
            )
        )
        progress.advance(_PROJECTS_SHARE + _SUMMARY_SHARE)
        return result, []

    project_share = _PROJECTS_SHARE / len(projects)
    entries: list[ProjectEndpoint] = []
    project_warnings: list[ScanWarning] = []

    for project in projects:
        log.info("Analyzing project %s (%d source files)", project.name, len(project.source_files))
        try:
            project_result, descriptors = analyze_project(
                project,
                adapter,
                rules.endpoint,
                conventions,
                max_workers=max_workers,
                progress=progress,
                progress_share=project_share,
            )
        except Exception as e:
            log.warning("Failed to analyze project %s: %s", project.name, e)
            project_warnings.append(
                ScanWarning(
                    kind="Project Analysis Error",
                    context=project.name,
                    message=f"Failed to analyze project: {e}",
                    suggestion="Check project structure and dependencies",
                )
            )
            continue

        result.projects.append(project_result)
        entries.extend(ProjectEndpoint(project.name, d) for d in descriptors)

    summary = summarize(entries, result.projects)
    summary.warnings[:0] = project_warnings
    result.summary = summary
    progress.advance(_SUMMARY_SHARE)

    mismatched = [
        e for e in entries if e.descriptor.authorization_state == AuthorizationState.MISMATCHED_PERMISSION
    ]
    log.info(
        "Scanned %d endpoints in %d projects, %d permissions, %d mismatched",
        summary.total,
        len(result.projects),
        summary.generated,
        len(mismatched),
    )
    return result, mismatched


def analyze_project(
    project: ProjectInfo,
    adapter: SourceModelAdapter,
    rules: EndpointRules,
    conventions: ConventionRules,
    max_workers: int = 4,
    progress: Optional[ProgressSink] = None,
    progress_share: float = 0.0,
) -> tuple[ProjectScanResult, list[EndpointDescriptor]]:
    project_result = ProjectScanResult(name=project.name, path=project.path)
    descriptors = discover(
        project,
        adapter,
        rules,
        max_workers=max_workers,
        progress=progress,
        progress_share=progress_share,
    )

    resolved: list[EndpointDescriptor] = []
    for descriptor in descriptors:
        descriptor = resolve(descriptor, conventions)
        fold(project_result, descriptor)
        resolved.append(descriptor)
    return project_result, resolved


def apply_reconciliation(
    result: ScanResult,
    mismatched: list[ProjectEndpoint],
    policy: ReconcilePolicy,
    provider: Optional[DecisionProvider] = None,
    notifier: Optional[Notifier] = None,
) -> ReconcileOutcome:
    outcome = reconcile(mismatched, policy, provider=provider, notifier=notifier)
    result.summary.warnings.extend(outcome.warnings)
    # Skipped mismatches stay visible only as warnings.
    if policy != ReconcilePolicy.SKIP_ALL:
        fold_reconciled(result, outcome.resolved)
    log.info("Reconciled %d mismatched permissions: %d updated, %d kept", len(mismatched), outcome.updated, outcome.kept)
    return outcome


def run_scan(
    root: str,
    policy: ReconcilePolicy = ReconcilePolicy.SKIP_ALL,
    provider: Optional[DecisionProvider] = None,
    notifier: Optional[Notifier] = None,
    **options,
) -> ScanResult:
    result, mismatched = scan_projects(root, **options)
    if mismatched:
        apply_reconciliation(result, mismatched, policy, provider=provider, notifier=notifier)
    return result
