import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from permscan.errors import RulesError
from permscan.models import Verb

log = logging.getLogger(__name__)

DEFAULT_RULES_PATH = Path(__file__).with_name("rules.yaml")


@dataclass(frozen=True)
class EndpointRules:
    capability: str = "IEndpoint"
    registration_method: str = "MapEndpoint"
    require_authentication: str = "RequireAuthorization"
    require_permission: str = "RequirePermission"
    route_calls: dict[str, Verb] = field(default_factory=dict)


@dataclass(frozen=True)
class SourceRules:
    project_file_glob: str = "*.csproj"
    extensions: tuple[str, ...] = (".cs",)
    exclude_dirs: tuple[str, ...] = ("bin", "obj")


@dataclass(frozen=True)
class ScanRules:
    endpoint: EndpointRules
    source: SourceRules


def load_rules(config_path: Path | None = None) -> ScanRules:
    config_path = config_path or DEFAULT_RULES_PATH
    if not config_path.is_file():
        msg = f"Rules YAML not found: {config_path}"
        raise FileNotFoundError(msg)

    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise RulesError(f"Invalid rules YAML {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise RulesError(f"Rules YAML {config_path} must contain a mapping")

    return ScanRules(
        endpoint=_endpoint_rules(data.get("endpoint") or {}),
        source=_source_rules(data.get("source") or {}),
    )


def _endpoint_rules(entry: dict) -> EndpointRules:
    defaults = EndpointRules()
    route_calls: dict[str, Verb] = {}
    for call_name, verb_name in (entry.get("route_calls") or {}).items():
        verb = Verb.parse(str(verb_name))
        if verb is None:
            log.warning("Ignoring route call %s with unknown HTTP verb %r", call_name, verb_name)
            continue
        route_calls[str(call_name)] = verb

    return EndpointRules(
        capability=entry.get("capability") or defaults.capability,
        registration_method=entry.get("registration_method") or defaults.registration_method,
        require_authentication=entry.get("require_authentication") or defaults.require_authentication,
        require_permission=entry.get("require_permission") or defaults.require_permission,
        route_calls=route_calls,
    )


def _source_rules(entry: dict) -> SourceRules:
    defaults = SourceRules()
    extensions = entry.get("extensions") or defaults.extensions
    exclude_dirs = entry.get("exclude_dirs") or defaults.exclude_dirs
    return SourceRules(
        project_file_glob=entry.get("project_file_glob") or defaults.project_file_glob,
        extensions=tuple(ext.lower() for ext in extensions),
        exclude_dirs=tuple(exclude_dirs),
    )
