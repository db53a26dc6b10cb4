import json
import logging
import re
from typing import Protocol

from permscan.errors import DecisionError
from permscan.models import EndpointDescriptor
from permscan.reconcile import Decision

log = logging.getLogger(__name__)


class CompletionClient(Protocol):
    def complete(self, messages, max_tokens: int = 512, system=None) -> str: ...


def extract_json_clean(text: str) -> dict:
    """
    Extracts a JSON object from model output, handling Markdown code blocks
    and surrounding conversational text.
    """
    match = re.search(r"```(?:json)?\s*(.*?)```", text, re.DOTALL)
    if match:
        text = match.group(1)

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1:
        text = text[start : end + 1]

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        log.warning("Failed to parse JSON from response: %s...", text[:50])
        return {}
    return data if isinstance(data, dict) else {}


class ClaudeDecisionProvider:
    """Lets the model decide how to resolve a mismatched permission."""

    def __init__(self, client: CompletionClient, max_tokens: int = 512):
        self.client = client
        self.max_tokens = max_tokens

    def decide(self, descriptor: EndpointDescriptor, project_name: str) -> Decision:
        raw = self.client.complete(
            _decision_prompt(descriptor, project_name),
            max_tokens=self.max_tokens,
            system=_SYSTEM,
        )
        data = extract_json_clean(raw)
        if not data:
            raise DecisionError("Model reply did not contain a JSON decision")

        choice = str(data.get("decision", "")).strip().lower()
        reason = data.get("reason", "")
        log.info("AI review for %s/%s: %s (%s)", project_name, descriptor.declaration_name, choice, reason)

        if choice == "accept":
            return Decision.accept()
        if choice == "keep":
            return Decision.keep()
        if choice == "custom":
            try:
                return Decision.custom(str(data.get("permission") or ""))
            except ValueError as exc:
                raise DecisionError(str(exc)) from exc
        raise DecisionError(f"Unknown decision {choice!r} in model reply")


_SYSTEM = "You review permission names for HTTP endpoints. Respond with JSON only."


def _decision_prompt(descriptor: EndpointDescriptor, project_name: str) -> list[tuple[str, str]]:
    instructions = """
An endpoint declares a permission that does not follow the naming convention
"{Resource}.{Action}", where Resource is the plural feature name and Action is
derived from the HTTP method (GET=Read, POST=Create, PUT/PATCH=Update, DELETE=Delete).

Decide how to resolve it:
- "accept": use the suggested permission.
- "keep": the current permission is intentionally custom (e.g. shared across endpoints
  or named after a business capability), keep it.
- "custom": neither fits; provide a better permission name in "permission".

Return a JSON object:
{
  "decision": "accept|keep|custom",
  "permission": "only for custom",
  "reason": "one short sentence"
}
"""
    meta = {
        "project": project_name,
        "endpoint": descriptor.declaration_name,
        "source_location": descriptor.source_location,
        "http_method": descriptor.http_verb.value if descriptor.http_verb else None,
        "route": descriptor.route,
        "current_permission": descriptor.declared_permission,
        "suggested_permission": descriptor.suggested_permission,
    }
    content = f"{instructions}\n--- ENDPOINT ---\n{json.dumps(meta, indent=2)}\n"
    return [("user", content)]
