"""Line grammar for the oracle's planning response.

A response is a sequence of lines, each one of:

    Marker(path)   ``File: src/server.js``
    Body(text)     any other non-blank line
    Blank          whitespace only

Lines are tokenized first and then folded into edit directives: each
marker opens a directive and the body lines that follow, up to the next
marker, become its rationale. Body text before the first marker is
dropped.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from typing import Dict, List, Union

from .models import EditDirective

# Tolerates markdown decoration: "**File:** x", "- File: x", "### File: `x`"
MARKER_LINE = re.compile(r"^[\s>*#_\-]*File:[*_\s]*(?P<path>.*)$")


@dataclass(frozen=True)
class Marker:
    path: str


@dataclass(frozen=True)
class Body:
    text: str


@dataclass(frozen=True)
class Blank:
    pass


Token = Union[Marker, Body, Blank]


def _clean_path(raw: str) -> str:
    return raw.strip().strip("*_").strip().strip("`'\"").strip()


def normalize_path(path: str) -> str:
    """Collapse `.` segments and repeated slashes so equivalent paths compare equal."""
    if not path:
        return path
    return posixpath.normpath(path.replace("\\", "/"))


def tokenize_line(line: str) -> Token:
    if not line.strip():
        return Blank()
    match = MARKER_LINE.match(line)
    if match:
        return Marker(_clean_path(match.group("path")))
    return Body(line)


def tokenize(text: str) -> List[Token]:
    return [tokenize_line(line) for line in (text or "").splitlines()]


def parse_directives(text: str) -> List[EditDirective]:
    """Fold a planning response into edit directives.

    A marker with an empty path opens nothing, so its body lines are
    dropped too. A repeated path, after normalization, replaces the
    earlier rationale.
    """
    directives: Dict[str, EditDirective] = {}
    current = None
    for token in tokenize(text):
        if isinstance(token, Marker):
            if not token.path:
                current = None
                continue
            path = normalize_path(token.path)
            current = EditDirective(file_path=path)
            directives[path] = current
        elif isinstance(token, Body) and current is not None:
            current.rationale += token.text + "\n"
    return list(directives.values())
