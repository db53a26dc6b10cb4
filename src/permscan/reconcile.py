import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, Optional, Protocol

from permscan.models import AuthorizationState, EndpointDescriptor, ProjectEndpoint, ScanWarning

log = logging.getLogger(__name__)

Notifier = Callable[[str], None]


class ReconcilePolicy(str, Enum):
    AUTO_ACCEPT_ALL = "accept"
    INTERACTIVE = "interactive"
    SKIP_ALL = "skip"


class DecisionKind(str, Enum):
    ACCEPT_SUGGESTED = "accept"
    KEEP_CURRENT = "keep"
    CUSTOM = "custom"


@dataclass(frozen=True)
class Decision:
    kind: DecisionKind
    value: Optional[str] = None

    @classmethod
    def accept(cls) -> "Decision":
        return cls(DecisionKind.ACCEPT_SUGGESTED)

    @classmethod
    def keep(cls) -> "Decision":
        return cls(DecisionKind.KEEP_CURRENT)

    @classmethod
    def custom(cls, value: str) -> "Decision":
        value = (value or "").strip()
        if not value:
            raise ValueError("A custom permission name cannot be empty")
        return cls(DecisionKind.CUSTOM, value)


class DecisionProvider(Protocol):
    def decide(self, descriptor: EndpointDescriptor, project_name: str) -> Decision: ...


@dataclass
class ReconcileOutcome:
    resolved: list[ProjectEndpoint] = field(default_factory=list)
    warnings: list[ScanWarning] = field(default_factory=list)
    updated: int = 0
    kept: int = 0


def apply_decision(descriptor: EndpointDescriptor, decision: Decision) -> EndpointDescriptor:
    if decision.kind == DecisionKind.ACCEPT_SUGGESTED and descriptor.suggested_permission:
        permission = descriptor.suggested_permission
    elif decision.kind == DecisionKind.CUSTOM and decision.value:
        permission = decision.value
    else:
        permission = descriptor.declared_permission
    return replace(
        descriptor,
        declared_permission=permission,
        authorization_state=AuthorizationState.ALREADY_PROTECTED,
    )


def reconcile(
    mismatched: list[ProjectEndpoint],
    policy: ReconcilePolicy,
    provider: Optional[DecisionProvider] = None,
    notifier: Optional[Notifier] = None,
) -> ReconcileOutcome:
    """
    Resolve every mismatched permission into a final declared value.

    Whatever the policy, each entry comes back AlreadyProtected with a
    declared permission. Interactive decisions are requested one at a time
    and a failing provider only affects the entry it failed on.
    """
    notifier = notifier or log.info
    outcome = ReconcileOutcome()

    if policy == ReconcilePolicy.INTERACTIVE and provider is None:
        raise ValueError("Interactive reconciliation requires a decision provider")

    for mismatch in mismatched:
        project_name, descriptor = mismatch.project_name, mismatch.descriptor

        if policy == ReconcilePolicy.AUTO_ACCEPT_ALL:
            decision = Decision.accept()
            notifier(
                f"Auto-accepted suggestion for {project_name}/{descriptor.declaration_name}: "
                f"'{descriptor.declared_permission}' -> '{descriptor.suggested_permission}'"
            )
        elif policy == ReconcilePolicy.INTERACTIVE:
            decision = _ask(provider, descriptor, project_name, outcome)
        else:
            decision = Decision.keep()

        resolved = apply_decision(descriptor, decision)
        if resolved.declared_permission == descriptor.declared_permission:
            outcome.kept += 1
        else:
            outcome.updated += 1
        log.debug(
            "%s/%s: %s -> %s (%s)",
            project_name,
            descriptor.declaration_name,
            descriptor.declared_permission,
            resolved.declared_permission,
            decision.kind.value,
        )
        outcome.resolved.append(ProjectEndpoint(project_name, resolved))

    return outcome


def _ask(
    provider: DecisionProvider,
    descriptor: EndpointDescriptor,
    project_name: str,
    outcome: ReconcileOutcome,
) -> Decision:
    try:
        decision = provider.decide(descriptor, project_name)
        if not isinstance(decision, Decision):
            raise TypeError(f"Decision provider returned {type(decision).__name__}, expected Decision")
        return decision
    except Exception as e:
        log.warning("Error handling permission for %s/%s: %s", project_name, descriptor.declaration_name, e)
        outcome.warnings.append(
            ScanWarning(
                kind="Decision Error",
                context=f"{project_name}/{descriptor.source_location}",
                message=f"Could not resolve permission '{descriptor.declared_permission}': {e}",
                suggestion=f"Review the permission manually, suggested '{descriptor.suggested_permission}'",
            )
        )
        return Decision.keep()
