from typing import Callable

from permscan.errors import DecisionError
from permscan.models import EndpointDescriptor, ProjectEndpoint
from permscan.reconcile import Decision

InputFunc = Callable[[str], str]

_CHOICES = {
    "a": "accept",
    "accept": "accept",
    "k": "keep",
    "keep": "keep",
    "c": "custom",
    "custom": "custom",
}


def confirm(question: str, default: bool = False, input_func: InputFunc = input) -> bool:
    hint = "[Y/n]" if default else "[y/N]"
    answer = input_func(f"{question} {hint}: ").strip().lower()
    if not answer:
        return default
    return answer in ("y", "yes")


def print_mismatches(mismatched: list[ProjectEndpoint]) -> None:
    print()
    print("=" * 80)
    print(f"Mismatched permissions ({len(mismatched)}):")
    for entry in mismatched:
        d = entry.descriptor
        verb = d.http_verb.value if d.http_verb else "?"
        print(f"  - {entry.project_name}/{d.declaration_name} {verb} {d.route or '-'}")
        print(f"      current: {d.declared_permission}  suggested: {d.suggested_permission}")
    print("=" * 80)


class TerminalDecisionProvider:
    """Asks on the terminal how to resolve each mismatched permission."""

    def __init__(self, input_func: InputFunc = input, max_attempts: int = 3):
        self.input_func = input_func
        self.max_attempts = max_attempts

    def decide(self, descriptor: EndpointDescriptor, project_name: str) -> Decision:
        verb = descriptor.http_verb.value if descriptor.http_verb else "?"
        print()
        print("Permission mismatch found")
        print(f"Project: {project_name}")
        print(f"Endpoint: {verb} {descriptor.route or '-'} ({descriptor.source_location})")
        print(f"Current permission: {descriptor.declared_permission}")
        print(f"Suggested permission: {descriptor.suggested_permission}")

        for _ in range(self.max_attempts):
            answer = self.input_func("[a]ccept suggested, [k]eep current, [c]ustom? [a/k/c]: ").strip().lower()
            choice = _CHOICES.get(answer)
            if choice == "accept":
                return Decision.accept()
            if choice == "keep":
                return Decision.keep()
            if choice == "custom":
                value = self.input_func(f"Custom permission name [{descriptor.declared_permission}]: ").strip()
                return Decision.custom(value or descriptor.declared_permission or "")
            print(f"Unrecognized answer {answer!r}")

        raise DecisionError(f"No valid answer after {self.max_attempts} attempts")
