"""Data models shared by the scanner, generator, mutation engine, and verifier."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

Framework = Literal["next", "react", "express", "vue", "angular", "svelte", "unknown"]
AppType = Literal["web-app", "api-server", "unknown"]
OrmKind = Literal["mongoose", "prisma"]
IntegrationKind = Literal["auth", "database", "branding"]


@dataclass(frozen=True)
class ApiRoute:
    method: str
    path: str
    source_file: str
    framework: str


@dataclass(frozen=True)
class DataModel:
    name: str
    source_file: str
    orm_kind: OrmKind
    collection: Optional[str] = None


@dataclass(frozen=True)
class Component:
    name: str
    source_file: str


@dataclass(frozen=True)
class IntegrationPoint:
    """A discovered code location that needs a platform integration concern."""
    kind: IntegrationKind
    source_file: str
    rationale: str


def _freeze(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class AppModel:
    """Structured result of scanning one source tree.

    Built once by the scanner and never mutated afterwards. Every route,
    model, and component points at a file in the scanned tree, relative
    to ``root_path``.
    """
    root_path: str
    name: str
    framework: Framework = "unknown"
    app_type: AppType = "unknown"
    description: str = ""
    version: str = "1.0.0"
    dependencies: Mapping[str, str] = field(default_factory=dict)
    api_routes: Tuple[ApiRoute, ...] = ()
    models: Tuple[DataModel, ...] = ()
    components: Tuple[Component, ...] = ()
    has_auth: bool = False
    has_database: bool = False
    integration_points: Tuple[IntegrationPoint, ...] = ()
    structure: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "dependencies", _freeze(self.dependencies))
        object.__setattr__(self, "structure", _freeze(self.structure))
        for name in ("api_routes", "models", "components", "integration_points"):
            object.__setattr__(self, name, tuple(getattr(self, name)))

    @property
    def source_files(self) -> List[str]:
        """Distinct files referenced by routes, models, and components, in discovery order."""
        seen: Dict[str, None] = {}
        for item in (*self.api_routes, *self.models, *self.components):
            seen.setdefault(item.source_file, None)
        return list(seen)

    def summary(self) -> str:
        """Short plain-text description used in oracle requests."""
        lines = [
            f"- Name: {self.name}",
            f"- Framework: {self.framework}",
            f"- App type: {self.app_type}",
            f"- Has auth: {self.has_auth}",
            f"- Has database: {self.has_database}",
            f"- API routes: {len(self.api_routes)}",
            f"- Models: {len(self.models)}",
            f"- Components: {len(self.components)}",
        ]
        for route in self.api_routes[:20]:
            lines.append(f"  - route {route.method} {route.path} ({route.source_file})")
        for model in self.models:
            lines.append(f"  - model {model.name} [{model.orm_kind}] ({model.source_file})")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready view of the model."""
        return {
            "name": self.name,
            "root_path": self.root_path,
            "framework": self.framework,
            "app_type": self.app_type,
            "description": self.description,
            "version": self.version,
            "dependencies": dict(self.dependencies),
            "api_routes": [vars(r).copy() for r in self.api_routes],
            "models": [vars(m).copy() for m in self.models],
            "components": [vars(c).copy() for c in self.components],
            "has_auth": self.has_auth,
            "has_database": self.has_database,
            "integration_points": [vars(p).copy() for p in self.integration_points],
            "structure": dict(self.structure),
        }


@dataclass
class Preferences:
    """Caller choices that drive generation and mutation."""
    app_name: str
    description: str = ""
    category: str = "Productivity"
    add_auth: bool = True
    add_database: bool = True
    add_branding: bool = True

    @classmethod
    def for_model(cls, model: AppModel, **overrides: Any) -> "Preferences":
        prefs = cls(app_name=model.name, description=model.description)
        for key, value in overrides.items():
            if value is not None:
                setattr(prefs, key, value)
        return prefs


@dataclass(frozen=True)
class GeneratedFile:
    """One artifact written by the template generator."""
    type: str
    path: str
    description: str


@dataclass
class EditDirective:
    """One oracle-proposed rewrite, keyed by path relative to the app root."""
    file_path: str
    rationale: str = ""


@dataclass
class FileChangeResult:
    file: str
    success: bool
    error: Optional[str] = None
    backup_path: Optional[str] = None

    def __str__(self) -> str:
        if self.success:
            return f"✅ {self.file}"
        return f"❌ {self.file}: {self.error}"


@dataclass
class MutationReport:
    """Outcome of one mutation run, one entry per edit directive."""
    changes: List[FileChangeResult] = field(default_factory=list)

    @property
    def successful(self) -> int:
        return sum(1 for c in self.changes if c.success)

    @property
    def failed(self) -> int:
        return sum(1 for c in self.changes if not c.success)

    def summary(self) -> Dict[str, Any]:
        return {
            "total": len(self.changes),
            "successful": self.successful,
            "failed": self.failed,
            "files": [c.file for c in self.changes],
        }


@dataclass
class CheckResult:
    name: str
    passed: bool
    message: str = ""


@dataclass
class TestReport:
    """Aggregate of independently scored verification checks."""
    __test__ = False  # not a pytest test class

    checks: List[CheckResult] = field(default_factory=list)

    def record(self, name: str, passed: bool, message: str = "") -> None:
        self.checks.append(CheckResult(name=name, passed=passed, message=message))

    @property
    def passed(self) -> int:
        return sum(1 for c in self.checks if c.passed)

    @property
    def failed(self) -> int:
        return sum(1 for c in self.checks if not c.passed)

    @property
    def total(self) -> int:
        return len(self.checks)

    @property
    def errors(self) -> List[str]:
        return [c.message for c in self.checks if not c.passed]

    @property
    def success_rate(self) -> float:
        if not self.checks:
            return 0.0
        return round(self.passed / self.total * 100, 1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": {
                "total": self.total,
                "passed": self.passed,
                "failed": self.failed,
                "success_rate": self.success_rate,
            },
            "errors": self.errors,
            "timestamp": datetime.now().isoformat(),
        }
