from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

TOOL_VERSION = "1.0.0"
GENERATED_BY = "permscan 1.0 - convention-based endpoint permission scanner"


class Verb(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, text: Optional[str]) -> Optional["Verb"]:
        if not text:
            return None
        try:
            return cls(text.strip().upper())
        except ValueError:
            return None


class AuthorizationState(str, Enum):
    PUBLIC = "Public"
    AUTH_ONLY = "AuthOnly"
    NEEDS_PERMISSION = "NeedsPermission"
    ALREADY_PROTECTED = "AlreadyProtected"
    MISMATCHED_PERMISSION = "MismatchedPermission"


@dataclass(frozen=True)
class CallExpr:
    callee_name: str
    first_literal_arg: Optional[str] = None


@dataclass(frozen=True)
class Method:
    name: str
    calls: tuple[CallExpr, ...] = ()


@dataclass(frozen=True)
class Declaration:
    name: str
    capabilities: tuple[str, ...] = ()
    methods: tuple[Method, ...] = ()

    def method(self, name: str) -> Optional[Method]:
        for method in self.methods:
            if method.name == name:
                return method
        return None


@dataclass
class ProjectInfo:
    name: str
    path: str
    project_file: str
    source_files: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class EndpointDescriptor:
    declaration_name: str
    source_location: str
    http_verb: Optional[Verb] = None
    route: Optional[str] = None
    authorization_state: AuthorizationState = AuthorizationState.PUBLIC
    declared_permission: Optional[str] = None
    suggested_permission: Optional[str] = None


@dataclass(frozen=True)
class ProjectEndpoint:
    project_name: str
    descriptor: EndpointDescriptor


@dataclass
class DiscoveredPermission:
    name: str
    description: str
    http_verb: Optional[Verb]
    route: Optional[str]
    project_name: str


@dataclass
class ScanWarning:
    kind: str
    context: str
    message: str
    suggestion: Optional[str] = None


@dataclass
class ScanSummary:
    total: int = 0
    public: int = 0
    auth_only: int = 0
    needs_permission: int = 0
    already_protected: int = 0
    generated: int = 0
    warnings: list[ScanWarning] = field(default_factory=list)


@dataclass
class ProjectScanResult:
    name: str
    path: str
    permissions: list[DiscoveredPermission] = field(default_factory=list)


@dataclass
class ScanResult:
    tool_version: str = TOOL_VERSION
    generated_by: str = GENERATED_BY
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    projects: list[ProjectScanResult] = field(default_factory=list)
    summary: ScanSummary = field(default_factory=ScanSummary)

    def project(self, name: str) -> Optional[ProjectScanResult]:
        for project in self.projects:
            if project.name == name:
                return project
        return None
