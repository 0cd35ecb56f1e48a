"""AI-assisted mutation engine that rewrites app files in place for Weam.

The oracle is untrusted: its planning answer is parsed with a tolerant
line grammar, every proposed path is confined to the app root, and each
rewrite is applied independently with a ``.bak`` copy of the previous
content.
"""

from __future__ import annotations

import logging
import os
import shutil
from contextlib import contextmanager
from pathlib import Path, PurePath
from typing import Iterator, List, Optional, Protocol

from .backups import BackupStore
from .config import LOCK_FILE_NAME
from .errors import BusyError, IntegratorError, MutationError, OracleResponseError
from .models import AppModel, EditDirective, FileChangeResult, MutationReport, Preferences
from .response_parser import parse_directives

logger = logging.getLogger(__name__)

WEAM_PLATFORM_CONTEXT = """
# Weam.ai Integration Context

## Authentication System
- Uses iron-session with cookie name "weam"
- Cookie password from WEAM_COOKIE_PASSWORD env var
- Session middleware: weamSessionMiddleware()
- Auth guard: requireWeamAuth()

## Database Integration
- MongoDB with Mongoose
- User fields: { id: String, email: String, name: String, avatar: String }
- Company field: companyId: String
- Timestamps: createdAt, updatedAt
- Public field: isPublic: Boolean

## Branding
- Weam logo component
- "Back to App" button linking to https://app.weam.ai
- Weam color scheme and styling
- Navigation with Weam branding

## API Integration
- Proxy routes in Weam for API forwarding
- CORS configuration for Weam domain
- Error handling with 401 redirects to login

## File Structure
- middleware/weamSession.js - Session handling
- lib/db.js - Database connection
- components/WeamLogo.jsx - Logo component
- components/WeamNavigation.jsx - Navigation
- styles/weam.css - Weam styling
""".strip()

FRAMEWORK_HINTS = {
    "express": {
        "auth": "Add Weam session middleware to the Express app. Import weamSessionMiddleware and "
                "requireWeamAuth, add the session middleware, protect API routes with auth.",
        "database": "Update Mongoose models to include Weam user/company fields. Add user: "
                    "{id, email, name, avatar}, companyId, isPublic, timestamps.",
        "branding": "Add Weam branding to the Express app. Include the Weam logo, a \"Back to App\" "
                    "button, and Weam styling.",
    },
    "next": {
        "auth": "Add Weam session handling to the Next.js app. Use iron-session, add session "
                "validation, protect API routes.",
        "database": "Update database models for Weam integration. Add user association and company fields.",
        "branding": "Add Weam components and styling to the Next.js app. Include the Weam logo and navigation.",
    },
    "react": {
        "auth": "Add Weam authentication to the React app. Handle session validation, API auth "
                "headers, redirect on 401.",
        "database": "Update API calls to include user context and company association.",
        "branding": "Add Weam branding components to the React app. Include logo, navigation, and styling.",
    },
}

PLANNER_SYSTEM = (
    "You are an expert developer specializing in Weam.ai integrations. You understand "
    "authentication, database design, and UI/UX patterns. Provide specific, actionable code changes."
)
EDITOR_SYSTEM = (
    "You are an expert code editor. Apply the requested changes to the file while preserving "
    "existing functionality. Return only the complete modified file content."
)

MAX_KEY_FILES = 10


class Oracle(Protocol):
    def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: float = 0.1,
        max_tokens: int = 4096,
    ) -> str:
        ...


class MutationEngine:
    """Plans edits with the oracle, then rewrites each file with backup-before-write."""

    def __init__(
        self,
        oracle: Oracle,
        platform_context: str = WEAM_PLATFORM_CONTEXT,
        backups: Optional[BackupStore] = None,
        temperature: float = 0.1,
    ):
        self.oracle = oracle
        self.platform_context = platform_context
        self.backups = backups or BackupStore()
        self.temperature = temperature

    def mutate(self, app_root: Path | str, model: AppModel, preferences: Preferences) -> MutationReport:
        """Apply oracle-proposed integration edits to ``app_root``.

        Raises:
            MutationError: if ``app_root`` is not a directory.
            BusyError: if another mutation holds the lock on this tree.
            OracleUnavailableError: if the planning request cannot reach
                the oracle; nothing has been written at that point.
        """
        root = Path(app_root)
        if not root.is_dir():
            raise MutationError(f"App path is not a directory: {root}")
        root = root.resolve()

        report = MutationReport()
        with self._lock(root):
            directives = self.plan(model, preferences)
            logger.info("Oracle proposed %d edit(s) for %s", len(directives), root)
            for directive in directives:
                report.changes.append(self.apply_directive(root, directive))
        return report

    def plan(self, model: AppModel, preferences: Preferences) -> List[EditDirective]:
        """Ask the oracle which files to change. A malformed answer means no edits."""
        prompt = self.build_plan_request(model, preferences)
        try:
            response = self.oracle.complete(prompt, system=PLANNER_SYSTEM, temperature=self.temperature)
        except OracleResponseError as exc:
            logger.warning("Discarding malformed planning response: %s", exc)
            return []
        return parse_directives(response)

    def apply_directive(self, root: Path, directive: EditDirective) -> FileChangeResult:
        """Rewrite one file. Failures are returned, never raised."""
        try:
            target = self._resolve_target(root, directive.file_path)
            current = target.read_text(encoding="utf-8") if target.is_file() else ""
            new_content = self.oracle.complete(
                self.build_rewrite_request(current, directive),
                system=EDITOR_SYSTEM,
                temperature=self.temperature,
            )
            data = new_content.encode("utf-8")
            backup = self.backups.create_backup(target)
            target.parent.mkdir(parents=True, exist_ok=True)
            self._replace(target, data)
        except (IntegratorError, OSError, ValueError) as exc:
            logger.warning("Failed to modify %s: %s", directive.file_path, exc)
            return FileChangeResult(file=directive.file_path, success=False, error=str(exc))

        logger.info("Modified %s", directive.file_path)
        return FileChangeResult(
            file=directive.file_path,
            success=True,
            backup_path=str(backup) if backup else None,
        )

    def build_plan_request(self, model: AppModel, preferences: Preferences) -> str:
        parts = [self.platform_context, "", "## App Analysis", model.summary(), ""]

        parts.append("## Integration Options")
        parts.append(f"- Add Auth: {preferences.add_auth}")
        parts.append(f"- Add Database: {preferences.add_database}")
        parts.append(f"- Add Branding: {preferences.add_branding}")
        parts.append(f"- App Name: {preferences.app_name}")
        parts.append(f"- Category: {preferences.category}")
        parts.append("")

        hints = FRAMEWORK_HINTS.get(model.framework)
        if hints:
            parts.append("## Framework Guidance")
            for concern, enabled in (
                ("auth", preferences.add_auth),
                ("database", preferences.add_database),
                ("branding", preferences.add_branding),
            ):
                if enabled:
                    parts.append(f"- {hints[concern]}")
            parts.append("")

        key_files = model.source_files[:MAX_KEY_FILES]
        if key_files:
            parts.append("## Key Files to Modify")
            parts.extend(f"- {path}" for path in key_files)
            parts.append("")

        parts.append(
            "Provide the code changes needed to integrate this app with Weam.ai. For each file that "
            "needs modification, start a line with `File: <path relative to the app root>` and follow "
            "it with the specific changes needed and code snippets to add or modify."
        )
        parts.append("")
        parts.append("Focus on:")
        parts.append("1. Adding Weam session middleware")
        parts.append("2. Updating database models with user/company fields")
        parts.append("3. Adding Weam branding components")
        parts.append("4. Protecting API routes with authentication")
        parts.append("5. Adding proper error handling and redirects")
        return "\n".join(parts)

    @staticmethod
    def build_rewrite_request(current_content: str, directive: EditDirective) -> str:
        return "\n".join([
            "Current file content:",
            "```",
            current_content,
            "```",
            "",
            "Required changes:",
            directive.rationale,
            "",
            "Please provide the complete modified file content with all changes applied. Make sure to:",
            "1. Preserve existing functionality",
            "2. Add the required Weam integration code",
            "3. Maintain proper code formatting",
            "4. Include necessary imports",
            "5. Follow best practices",
            "",
            "Return only the complete file content, no explanations.",
        ])

    @staticmethod
    def _resolve_target(root: Path, file_path: str) -> Path:
        if "\x00" in file_path:
            raise MutationError(f"Refusing path with a NUL byte: {file_path!r}")
        relative = PurePath(file_path)
        if relative.is_absolute():
            raise MutationError(f"Refusing absolute path {file_path}")
        target = (root / relative).resolve()
        if root not in target.parents:
            raise MutationError(f"Refusing path outside the app root: {file_path}")
        if target.name == LOCK_FILE_NAME:
            raise MutationError(f"Refusing to overwrite the lock file: {file_path}")
        return target

    @staticmethod
    def _replace(target: Path, data: bytes) -> None:
        """Write beside ``target`` and swap it in; a failed write leaves the old file intact."""
        staging = target.with_name(f".{target.name}.weamint.tmp")
        try:
            staging.write_bytes(data)
            if target.exists():
                shutil.copymode(target, staging)
            os.replace(staging, target)
        finally:
            staging.unlink(missing_ok=True)

    @contextmanager
    def _lock(self, root: Path) -> Iterator[Path]:
        lock_path = root / LOCK_FILE_NAME
        try:
            fd = os.open(lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError as exc:
            raise BusyError(f"Another mutation is running on {root} (remove {lock_path} if stale)") from exc
        except OSError as exc:
            raise MutationError(f"Cannot create lock file {lock_path}: {exc}") from exc
        with os.fdopen(fd, "w") as fh:
            fh.write(str(os.getpid()))
        try:
            yield lock_path
        finally:
            lock_path.unlink(missing_ok=True)
