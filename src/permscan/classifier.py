"""
Authorization posture of an endpoint, derived from the calls found in its
registration method.

Each transition takes a descriptor and returns a new one:

    Public --RequireAuthorization--> AuthOnly
    any    --RequirePermission-----> AlreadyProtected

NeedsPermission and MismatchedPermission are assigned later by the
convention engine.
"""

from dataclasses import replace
from typing import Optional

from permscan.models import AuthorizationState, CallExpr, EndpointDescriptor, Verb
from permscan.rules_loader import EndpointRules


def record_route(descriptor: EndpointDescriptor, verb: Verb, route: Optional[str]) -> EndpointDescriptor:
    return replace(descriptor, http_verb=verb, route=route)


def require_authentication(descriptor: EndpointDescriptor) -> EndpointDescriptor:
    if descriptor.authorization_state != AuthorizationState.PUBLIC:
        return descriptor
    return replace(descriptor, authorization_state=AuthorizationState.AUTH_ONLY)


def require_permission(descriptor: EndpointDescriptor, permission: Optional[str]) -> EndpointDescriptor:
    # A non-literal argument still protects the endpoint, its value is just unknown.
    return replace(
        descriptor,
        authorization_state=AuthorizationState.ALREADY_PROTECTED,
        declared_permission=permission,
    )


def apply_call(descriptor: EndpointDescriptor, call: CallExpr, rules: EndpointRules) -> EndpointDescriptor:
    verb = rules.route_calls.get(call.callee_name)
    if verb is not None:
        return record_route(descriptor, verb, call.first_literal_arg)
    if call.callee_name == rules.require_authentication:
        return require_authentication(descriptor)
    if call.callee_name == rules.require_permission:
        return require_permission(descriptor, call.first_literal_arg)
    return descriptor
