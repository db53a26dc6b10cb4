"""
Permission naming convention.

A permission is named ``{Resource}.{Action}``. The resource comes from the
feature folder an endpoint lives in (``Features/<Feature>/...``), the action
from its HTTP verb:

    Features/UserManagement/CreateUser/Endpoint.cs + POST -> Users.Create
    Features/PolicyService/GetPolicy/Endpoint.cs   + GET  -> Policies.Read

Feature folder names lose at most one technical suffix ("Management",
"Service", ...), are mapped through a small table of known domain nouns and
otherwise pluralized with a simple English heuristic.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional

from permscan.models import AuthorizationState, EndpointDescriptor, Verb

log = logging.getLogger(__name__)

DEFAULT_VERB_ACTIONS: dict[Verb, str] = {
    Verb.GET: "Read",
    Verb.POST: "Create",
    Verb.PUT: "Update",
    Verb.PATCH: "Update",
    Verb.DELETE: "Delete",
}

FEATURE_ANCHOR = "Features"

SUFFIXES = (
    "Management",
    "Service",
    "Services",
    "Gateway",
    "Processing",
    "Handler",
    "Handlers",
    "Controller",
    "Controllers",
    "Feature",
    "Features",
)

IRREGULAR_RESOURCES = {
    "user": "Users",
    "role": "Roles",
    "permission": "Permissions",
    "tenant": "Tenants",
    "client": "Clients",
    "auth": "Auth",
    "authentication": "Auth",
    "authorization": "Auth",
    "order": "Orders",
    "product": "Products",
    "payment": "Payments",
    "notification": "Notifications",
    "email": "Emails",
    "sms": "Sms",
    "template": "Templates",
    "report": "Reports",
    "analytics": "Analytics",
    "dashboard": "Dashboards",
    "settings": "Settings",
    "config": "Config",
    "configuration": "Config",
    "health": "Health",
    "audit": "Audit",
    "log": "Logs",
    "logging": "Logs",
}

UNCOUNTABLE_ENDINGS = ("settings", "config", "health")

_PATH_SEPARATORS = re.compile(r"[\\/]")


@dataclass(frozen=True)
class ConventionRules:
    verb_to_action: dict[Verb, str] = field(default_factory=lambda: dict(DEFAULT_VERB_ACTIONS))
    anchor: str = FEATURE_ANCHOR

    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, str]]) -> "ConventionRules":
        """Build rules from configured ``http_method_actions``.

        A non-empty mapping replaces the defaults entirely, so verbs missing
        from it have no action.
        """
        if not mapping:
            return cls()

        verb_to_action: dict[Verb, str] = {}
        for verb_name, action in mapping.items():
            verb = Verb.parse(str(verb_name))
            if verb is None or not action:
                log.warning("Ignoring HTTP method action mapping %r -> %r", verb_name, action)
                continue
            verb_to_action[verb] = str(action)
        return cls(verb_to_action=verb_to_action)

    def action(self, verb: Optional[Verb]) -> Optional[str]:
        if verb is None:
            return None
        return self.verb_to_action.get(verb)


def strip_suffix(name: str) -> str:
    lowered = name.lower()
    for suffix in SUFFIXES:
        if lowered.endswith(suffix.lower()) and len(name) > len(suffix):
            return name[: -len(suffix)]
    return name


def pluralize(word: str) -> str:
    if not word:
        return word

    lowered = word.lower()
    if lowered.endswith("s") or lowered.endswith(UNCOUNTABLE_ENDINGS):
        return word

    if lowered.endswith("y") and len(word) > 1 and lowered[-2] not in "aeiou":
        return word[:-1] + "ies"

    if lowered.endswith(("ch", "sh", "ss", "x", "z")):
        return word + "es"

    return word + "s"


def resource_from_feature(feature: str) -> str:
    stem = strip_suffix(feature)
    return IRREGULAR_RESOURCES.get(stem.lower(), pluralize(stem))


def infer_resource(source_location: str, rules: ConventionRules) -> Optional[str]:
    parts = _PATH_SEPARATORS.split(source_location)
    anchor = rules.anchor.lower()
    for index, part in enumerate(parts[:-1]):
        # The feature must be a folder, the last segment is the file itself.
        if part.lower() == anchor and index + 1 < len(parts) - 1:
            return resource_from_feature(parts[index + 1])
    return None


def infer_action(verb: Optional[Verb], rules: ConventionRules) -> Optional[str]:
    return rules.action(verb)


def compose(resource: str, action: str) -> str:
    return f"{resource}.{action}"


def describe(resource: str, action: str) -> str:
    return f"{action} {resource.lower()} permission"


def describe_permission(name: str) -> str:
    resource, dot, action = name.rpartition(".")
    if not dot or not resource or not action:
        return f"{name} permission"
    return describe(resource, action)


def suggest(descriptor: EndpointDescriptor, rules: ConventionRules) -> Optional[str]:
    resource = infer_resource(descriptor.source_location, rules)
    action = infer_action(descriptor.http_verb, rules)
    if resource is None or action is None:
        return None
    return compose(resource, action)


def resolve(descriptor: EndpointDescriptor, rules: ConventionRules) -> EndpointDescriptor:
    state = descriptor.authorization_state
    if state == AuthorizationState.AUTH_ONLY:
        suggestion = suggest(descriptor, rules)
        if suggestion is None:
            log.debug("No permission convention applies to %s", descriptor.source_location)
            return descriptor
        return replace(
            descriptor,
            suggested_permission=suggestion,
            authorization_state=AuthorizationState.NEEDS_PERMISSION,
        )
    if state == AuthorizationState.ALREADY_PROTECTED:
        return validate(descriptor, rules)
    return descriptor


def validate(descriptor: EndpointDescriptor, rules: ConventionRules) -> EndpointDescriptor:
    declared = descriptor.declared_permission
    if declared is None:
        return descriptor

    suggestion = suggest(descriptor, rules)
    if suggestion is None:
        # Nothing to compare against, the declared permission is custom.
        return replace(descriptor, suggested_permission=None)

    if declared.casefold() == suggestion.casefold():
        return replace(descriptor, suggested_permission=suggestion)

    return replace(
        descriptor,
        suggested_permission=suggestion,
        authorization_state=AuthorizationState.MISMATCHED_PERMISSION,
    )
