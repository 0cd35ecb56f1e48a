"""Static scanner that classifies an unknown web-app tree into an AppModel."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from .detectors import DEFAULT_DETECTORS, DetectorSet
from .errors import ScanError
from .models import ApiRoute, AppModel, Component, DataModel, IntegrationPoint

logger = logging.getLogger(__name__)

MANIFEST_NAME = "package.json"


@dataclass(frozen=True)
class PathPattern:
    """Files with one of ``suffixes`` somewhere below a directory named ``directory``.

    An empty ``directory`` matches files at the app root only; ``stems``
    restricts the file name.
    """
    directory: str
    suffixes: Tuple[str, ...]
    name_contains: str = ""
    stems: Tuple[str, ...] = ()

    def matches(self, rel_path: PurePosixPath) -> bool:
        if not self.directory:
            if len(rel_path.parts) != 1:
                return False
        elif self.directory not in rel_path.parts[:-1]:
            return False
        if self.stems and rel_path.stem not in self.stems:
            return False
        if rel_path.suffix not in self.suffixes:
            return False
        return not self.name_contains or self.name_contains in rel_path.name


JS_TS = (".js", ".ts")
ANY_SCRIPT = (".js", ".jsx", ".ts", ".tsx")


@dataclass(frozen=True)
class ScannerConfig:
    """Fixed tables the scanner classifies against.

    ``framework_markers`` is checked in order; the first framework with at
    least half of its markers present wins.
    """
    framework_markers: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
        ("next", ("next.config.js", "next.config.ts", "pages/", "app/")),
        ("react", ("src/", "public/", "package.json")),
        ("express", ("server.js", "app.js", "index.js", "routes/")),
        ("vue", ("vue.config.js", "src/", "components/")),
        ("angular", ("angular.json", "src/", "package.json")),
        ("svelte", ("svelte.config.js", "src/", "package.json")),
    )
    # (runtime dependency, framework, app type), first hit wins
    dependency_frameworks: Tuple[Tuple[str, str, str], ...] = (
        ("next", "next", "web-app"),
        ("react", "react", "web-app"),
        ("express", "express", "api-server"),
        ("vue", "vue", "web-app"),
        ("@angular/core", "angular", "web-app"),
        ("svelte", "svelte", "web-app"),
    )
    route_patterns: Tuple[PathPattern, ...] = (
        PathPattern("api", JS_TS),
        PathPattern("routes", JS_TS),
        PathPattern("server", JS_TS),
        # entry files at the app root only
        PathPattern("", JS_TS, stems=("server", "app", "index")),
    )
    model_patterns: Tuple[PathPattern, ...] = (
        PathPattern("models", JS_TS),
        PathPattern("schemas", JS_TS),
        PathPattern("prisma", (".prisma",)),
    )
    component_patterns: Tuple[PathPattern, ...] = (
        PathPattern("components", ANY_SCRIPT),
        PathPattern("src", (".jsx", ".tsx")),
    )
    auth_patterns: Tuple[PathPattern, ...] = (
        PathPattern("auth", JS_TS),
        PathPattern("middleware", JS_TS),
        PathPattern("config", JS_TS, name_contains="auth"),
    )
    database_patterns: Tuple[PathPattern, ...] = (
        PathPattern("db", JS_TS),
        PathPattern("database", JS_TS),
        PathPattern("prisma", (".prisma",)),
    )
    auth_dependencies: FrozenSet[str] = frozenset({
        "iron-session", "passport", "auth0", "firebase-auth", "next-auth",
        "jwt", "jsonwebtoken", "bcrypt", "crypto",
    })
    database_dependencies: FrozenSet[str] = frozenset({
        "mongoose", "prisma", "@prisma/client", "sequelize", "typeorm",
        "mongodb", "mysql", "postgresql", "pg", "sqlite",
    })
    protected_path_fragments: Tuple[str, ...] = ("/api/", "/admin/", "/dashboard/", "/profile/")
    layout_name_fragments: Tuple[str, ...] = ("Header", "Navbar", "Navigation", "Layout", "App")
    ignored_dirs: FrozenSet[str] = frozenset({"node_modules", "dist", "build", "coverage"})
    structure_depth: int = 3


DEFAULT_SCANNER_CONFIG = ScannerConfig()


class AppScanner:
    """Walks a source tree, runs detectors, and builds an AppModel."""

    def __init__(
        self,
        config: ScannerConfig = DEFAULT_SCANNER_CONFIG,
        detectors: DetectorSet = DEFAULT_DETECTORS,
    ):
        self.config = config
        self.detectors = detectors

    def scan(self, app_root: Path | str) -> AppModel:
        """Scan ``app_root`` and return a new AppModel.

        Raises:
            ScanError: if the path is missing, not a directory, or its
                ``package.json`` is not a valid JSON object.
        """
        root = Path(app_root)
        if not root.exists():
            raise ScanError(f"App path does not exist: {root}")
        if not root.is_dir():
            raise ScanError(f"App path is not a directory: {root}")
        root = root.resolve()

        manifest = self._read_manifest(root)
        runtime_deps = manifest.get("dependencies", {})
        dependencies = {**runtime_deps, **manifest.get("devDependencies", {})}

        framework, app_type = self._framework_from_dependencies(runtime_deps)
        framework = self.detect_framework(root) or framework

        files = self._walk(root)
        contents = _ContentCache(root)

        api_routes = self._extract(files, self.config.route_patterns, self.detectors.routes, contents)
        models = self._extract(files, self.config.model_patterns, self.detectors.models, contents)
        components = self._extract(files, self.config.component_patterns, self.detectors.components, contents)

        has_auth = self._has_signal(dependencies, files, self.config.auth_dependencies, self.config.auth_patterns)
        has_database = self._has_signal(
            dependencies, files, self.config.database_dependencies, self.config.database_patterns
        )

        model = AppModel(
            root_path=str(root),
            name=str(manifest.get("name") or root.name),
            framework=framework,
            app_type=app_type,
            description=str(manifest.get("description") or ""),
            version=str(manifest.get("version") or "1.0.0"),
            dependencies=dependencies,
            api_routes=api_routes,
            models=models,
            components=components,
            has_auth=has_auth,
            has_database=has_database,
            integration_points=derive_integration_points(api_routes, models, components, self.config),
            structure=self._directory_structure(root, 0),
        )
        logger.info(
            "Scanned %s: framework=%s routes=%d models=%d components=%d",
            root, model.framework, len(api_routes), len(models), len(components),
        )
        return model

    def detect_framework(self, root: Path) -> Optional[str]:
        """Return the first framework with at least half of its markers present."""
        for framework, markers in self.config.framework_markers:
            matches = sum(1 for marker in markers if (root / marker.rstrip("/")).exists())
            if matches >= len(markers) / 2:
                logger.debug("Framework %s matched %d/%d markers", framework, matches, len(markers))
                return framework
        return None

    def _read_manifest(self, root: Path) -> Dict[str, Any]:
        manifest_path = root / MANIFEST_NAME
        if not manifest_path.exists():
            return {}
        try:
            manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ScanError(f"Cannot parse {manifest_path}: {exc}") from exc
        if not isinstance(manifest, dict):
            raise ScanError(f"{manifest_path} is not a JSON object")
        for key in ("dependencies", "devDependencies"):
            section = manifest.get(key) or {}
            if not isinstance(section, dict):
                raise ScanError(f"'{key}' in {manifest_path} is not an object")
            manifest[key] = {str(name): str(version) for name, version in section.items()}
        return manifest

    def _framework_from_dependencies(self, runtime_deps: Dict[str, str]) -> Tuple[str, str]:
        for dependency, framework, app_type in self.config.dependency_frameworks:
            if dependency in runtime_deps:
                return framework, app_type
        return "unknown", "unknown"

    def _walk(self, root: Path) -> List[PurePosixPath]:
        """Relative paths of every non-hidden file, sorted, skipping ignored directories."""
        found: List[PurePosixPath] = []
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(
                d for d in dirnames if not d.startswith(".") and d not in self.config.ignored_dirs
            )
            rel_dir = Path(dirpath).relative_to(root)
            for filename in sorted(filenames):
                if not filename.startswith("."):
                    found.append(PurePosixPath(rel_dir.as_posix()) / filename)
        return found

    def _extract(
        self,
        files: Sequence[PurePosixPath],
        patterns: Iterable[PathPattern],
        detectors: Iterable[Callable[[str, str], list]],
        contents: "_ContentCache",
    ) -> list:
        patterns = tuple(patterns)
        findings: list = []
        for rel_path in files:
            if not any(p.matches(rel_path) for p in patterns):
                continue
            content = contents.get(rel_path)
            if content is None:
                continue
            for detector in detectors:
                hits = detector(content, rel_path.as_posix())
                if hits:
                    name = getattr(detector, "__name__", "detector")
                    logger.debug("%s: %s found %d item(s)", rel_path, name, len(hits))
                findings.extend(hits)
        return findings

    @staticmethod
    def _has_signal(
        dependencies: Dict[str, str],
        files: Sequence[PurePosixPath],
        keywords: FrozenSet[str],
        patterns: Tuple[PathPattern, ...],
    ) -> bool:
        if any(name in keywords for name in dependencies):
            return True
        return any(p.matches(f) for f in files for p in patterns)

    def _directory_structure(self, directory: Path, depth: int) -> Dict[str, Any]:
        structure: Dict[str, Any] = {}
        try:
            entries = sorted(directory.iterdir())
        except OSError as exc:
            logger.warning("Cannot list %s: %s", directory, exc)
            return structure
        for entry in entries:
            if entry.name.startswith(".") or entry.name in self.config.ignored_dirs:
                continue
            if entry.is_dir():
                if depth + 1 < self.config.structure_depth:
                    structure[entry.name] = self._directory_structure(entry, depth + 1)
                else:
                    structure[entry.name] = None
            elif entry.is_file():
                structure[entry.name] = "file"
        return structure


class _ContentCache:
    """Reads each file at most once per scan; unreadable files become None."""

    def __init__(self, root: Path):
        self.root = root
        self._cache: Dict[PurePosixPath, Optional[str]] = {}

    def get(self, rel_path: PurePosixPath) -> Optional[str]:
        if rel_path not in self._cache:
            try:
                self._cache[rel_path] = (self.root / rel_path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Skipping unreadable file %s: %s", rel_path, exc)
                self._cache[rel_path] = None
        return self._cache[rel_path]


def derive_integration_points(
    api_routes: Sequence[ApiRoute],
    models: Sequence[DataModel],
    components: Sequence[Component],
    config: ScannerConfig = DEFAULT_SCANNER_CONFIG,
) -> List[IntegrationPoint]:
    """Link discovered code to the Weam auth, database, and branding concerns."""
    points: List[IntegrationPoint] = []
    for route in api_routes:
        if any(fragment in route.path for fragment in config.protected_path_fragments):
            points.append(IntegrationPoint(
                kind="auth",
                source_file=route.source_file,
                rationale=f"Add Weam authentication to {route.method} {route.path}",
            ))
    for model in models:
        points.append(IntegrationPoint(
            kind="database",
            source_file=model.source_file,
            rationale=f"Add user/company fields to {model.name} model",
        ))
    for component in components:
        if any(fragment in component.name for fragment in config.layout_name_fragments):
            points.append(IntegrationPoint(
                kind="branding",
                source_file=component.source_file,
                rationale=f"Apply Weam branding to {component.name} component",
            ))
    return points
