"""Heuristic detectors mapping file content to routes, models, and components.

Detectors never parse code. Each one is a plain function
``(content, source_file) -> list of findings`` and the scanner unions the
output of every detector in a family, so one file may yield overlapping
or duplicate findings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, List, Tuple

from .models import ApiRoute, Component, DataModel

RouteDetector = Callable[[str, str], List[ApiRoute]]
ModelDetector = Callable[[str, str], List[DataModel]]
ComponentDetector = Callable[[str, str], List[Component]]

HTTP_VERB_CALL = re.compile(
    r"\b(?:app|router)\.(get|post|put|delete|patch)\s*\(\s*['\"`]([^'\"`]+)['\"`]"
)
EXPORTED_HANDLER = re.compile(
    r"export\s+(?:default\s+)?(?:async\s+)?function\s+(GET|POST|PUT|DELETE|PATCH)\b",
    re.IGNORECASE,
)
MONGOOSE_MODEL = re.compile(
    r"(?:const|let|var)\s+(\w+)\s*=\s*mongoose\.model\s*\(\s*['\"`]([^'\"`]+)['\"`]"
)
PRISMA_MODEL = re.compile(r"\bmodel\s+(\w+)\s*\{")
EXPORTED_DECLARATION = re.compile(
    r"^\s*export\s+(?:default\s+)?(?:async\s+)?(?:function\*?|const|let|var|class)\s+([A-Za-z_$][\w$]*)",
    re.MULTILINE,
)


def route_path_from_file(source_file: str) -> str:
    """Derive a file-system route (``app/api/users/route.ts`` -> ``/api/users``)."""
    path = "/" + source_file.replace("\\", "/").lstrip("/")
    path = re.sub(r"^.*?/api/", "/api/", path)
    path = re.sub(r"/route\.(?:js|jsx|ts|tsx)$", "", path)
    return re.sub(r"\.(?:js|jsx|ts|tsx)$", "", path)


def detect_verb_calls(content: str, source_file: str) -> List[ApiRoute]:
    """Express-style ``app.get('/path', ...)`` registrations."""
    return [
        ApiRoute(method=m.group(1).upper(), path=m.group(2), source_file=source_file, framework="express")
        for m in HTTP_VERB_CALL.finditer(content)
    ]


def detect_exported_handlers(content: str, source_file: str) -> List[ApiRoute]:
    """Next.js route handlers: ``export async function GET(...)``."""
    routes = []
    for m in EXPORTED_HANDLER.finditer(content):
        routes.append(ApiRoute(
            method=m.group(1).upper(),
            path=route_path_from_file(source_file),
            source_file=source_file,
            framework="next",
        ))
    return routes


def detect_mongoose_models(content: str, source_file: str) -> List[DataModel]:
    return [
        DataModel(name=m.group(1), collection=m.group(2), source_file=source_file, orm_kind="mongoose")
        for m in MONGOOSE_MODEL.finditer(content)
    ]


def detect_prisma_models(content: str, source_file: str) -> List[DataModel]:
    return [
        DataModel(name=m.group(1), source_file=source_file, orm_kind="prisma")
        for m in PRISMA_MODEL.finditer(content)
    ]


def detect_exported_components(content: str, source_file: str) -> List[Component]:
    """Any exported top-level declaration with a capitalised name.

    Exported config objects such as ``export const API_CONFIG`` also match.
    """
    return [
        Component(name=m.group(1), source_file=source_file)
        for m in EXPORTED_DECLARATION.finditer(content)
        if m.group(1)[0].isupper()
    ]


@dataclass(frozen=True)
class DetectorSet:
    """Pluggable detector families applied by the scanner."""
    routes: Tuple[RouteDetector, ...] = (detect_verb_calls, detect_exported_handlers)
    models: Tuple[ModelDetector, ...] = (detect_mongoose_models, detect_prisma_models)
    components: Tuple[ComponentDetector, ...] = (detect_exported_components,)


DEFAULT_DETECTORS = DetectorSet()
