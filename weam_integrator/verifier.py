"""Shallow, deterministic checks over a set of generated integration files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

from .models import GeneratedFile, TestReport
from .scanner import MANIFEST_NAME

logger = logging.getLogger(__name__)

SCRIPT_TOKENS = {
    ".js": ("const ", "function ", "module.exports"),
    ".jsx": ("const ", "function ", "module.exports"),
    ".ts": ("import ", "export ", "interface "),
    ".tsx": ("import ", "export ", "interface "),
}

# artifact type -> (check name, markers that must all appear)
REQUIRED_MARKERS: Dict[str, Tuple[str, Tuple[str, ...]]] = {
    "middleware": ("session middleware", ("iron-session", "weamSessionMiddleware")),
    "database": ("database connector", ("mongoose", "weamUserFields")),
    "proxy": ("proxy route", ("NextRequest", "fetch")),
    "config": ("environment config", ("WEAM_COOKIE_NAME", "MONGODB_URI", "PORT")),
}
# Artifacts every generation run emits; a missing one fails its marker check
ALWAYS_CHECKED = ("proxy", "config")


class IntegrationVerifier:
    """Scores generated files without executing the target app.

    Every check is recorded on the report; none of them aborts the run.
    """

    def __init__(self, check_startup: bool = False):
        self.check_startup = check_startup

    def verify(self, app_root: Path | str, generated_files: Sequence[GeneratedFile]) -> TestReport:
        root = Path(app_root)
        report = TestReport()

        for generated in generated_files:
            self._check_exists(report, self._resolve(root, generated.path))
        for generated in generated_files:
            self._check_syntax(report, generated, self._resolve(root, generated.path))
        for file_type, (check_name, markers) in REQUIRED_MARKERS.items():
            self._check_markers(report, root, generated_files, file_type, check_name, markers)
        if self.check_startup:
            self._check_start_script(report, root)

        logger.info("Verification: %d/%d checks passed", report.passed, report.total)
        return report

    @staticmethod
    def _resolve(root: Path, path: str) -> Path:
        candidate = Path(path)
        return candidate if candidate.is_absolute() else root / candidate

    def _check_exists(self, report: TestReport, path: Path) -> None:
        name = f"exists: {path.name}"
        if not path.is_file():
            report.record(name, False, f"{path} not found")
        elif path.stat().st_size == 0:
            report.record(name, False, f"{path} is empty")
        else:
            report.record(name, True, f"{path.name} generated")

    def _check_syntax(self, report: TestReport, generated: GeneratedFile, path: Path) -> None:
        name = f"syntax: {path.name}"
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            report.record(name, False, f"{path}: read error - {exc}")
            return

        if generated.type == "package" or path.suffix == ".json":
            try:
                json.loads(content)
            except json.JSONDecodeError as exc:
                report.record(name, False, f"{path}: invalid JSON - {exc}")
                return
            report.record(name, True, f"{path.name} is valid JSON")
            return

        tokens = SCRIPT_TOKENS.get(path.suffix)
        if tokens is None:
            report.record(name, True, f"{path.name}: file type not checked")
        elif any(token in content for token in tokens):
            report.record(name, True, f"{path.name}: structure looks good")
        else:
            report.record(name, False, f"{path} has unusual {path.suffix[1:]} structure")

    def _check_markers(
        self,
        report: TestReport,
        root: Path,
        generated_files: Sequence[GeneratedFile],
        file_type: str,
        check_name: str,
        markers: Tuple[str, ...],
    ) -> None:
        artifact = self._find(generated_files, file_type)
        if artifact is None:
            if file_type in ALWAYS_CHECKED:
                report.record(check_name, False, f"{check_name} not found")
            return

        path = self._resolve(root, artifact.path)
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            report.record(check_name, False, f"{check_name}: {exc}")
            return

        missing = [marker for marker in markers if marker not in content]
        if missing:
            report.record(check_name, False, f"{check_name} missing required markers: {', '.join(missing)}")
        else:
            report.record(check_name, True, f"{check_name} generated correctly")

    @staticmethod
    def _find(generated_files: Sequence[GeneratedFile], file_type: str) -> Optional[GeneratedFile]:
        for generated in generated_files:
            if generated.type == file_type:
                return generated
        return None

    def _check_start_script(self, report: TestReport, root: Path) -> None:
        manifest_path = root / MANIFEST_NAME
        try:
            manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            report.record("startup", False, f"cannot read {manifest_path}: {exc}")
            return
        scripts = manifest.get("scripts") if isinstance(manifest, dict) else None
        if isinstance(scripts, dict) and scripts.get("start"):
            report.record("startup", True, "start script available")
        else:
            report.record("startup", False, "no start script found in package.json")
