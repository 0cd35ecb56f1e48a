"""Template-driven generator for Weam integration artifacts."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError

from .errors import GenerationError
from .models import AppModel, GeneratedFile, Preferences
from .scanner import MANIFEST_NAME

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).parent / "templates"

# Output file names, relative to the output root
SESSION_MIDDLEWARE_PATH = "middleware/weamSession.js"
DATABASE_CONNECTOR_PATH = "lib/db.js"
MODELS_DIR = "models"
LOGO_PATH = "components/WeamLogo.jsx"
NAVIGATION_PATH = "components/WeamNavigation.jsx"
STYLESHEET_PATH = "styles/weam.css"
PROXY_ROUTE_PATH = "weam-proxy/[...path]/route.ts"
LANDING_PAGE_PATH = "weam-page/page.tsx"
ENV_CONFIG_PATH = ".env.weam"
DOCUMENTATION_PATH = "WEAM_INTEGRATION.md"
MANIFEST_PATCH_PATH = "package.json.weam"

REQUIRED_DEPENDENCIES = {
    "iron-session": "^6.3.1",
    "cors": "^2.8.5",
    "axios": "^1.6.0",
}
INTEGRATION_SCRIPTS = {
    "weam:integrate": "node weam-integration/setup.js",
    "weam:test": "node weam-integration/test.js",
}

DEFAULT_PORTS = {
    "next": 3000,
    "react": 3000,
    "express": 3001,
    "vue": 3000,
    "angular": 4200,
}
FALLBACK_PORT = 3000


def slugify(value: str) -> str:
    """Lowercase, dash-separated form of an app name for URIs."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "app"


def get_app_port(model: AppModel) -> int:
    """Default dev-server port for the detected framework."""
    return DEFAULT_PORTS.get(model.framework, FALLBACK_PORT)


class TemplateGenerator:
    """Renders an AppModel and Preferences into files under one output root.

    Rendering is pure: the same model, preferences, and templates always
    produce byte-identical files. A failure part-way through leaves the
    files already written in place.
    """

    def __init__(self, output_dir: Path | str, templates_dir: Optional[Path] = None):
        self.output_dir = Path(output_dir)
        self.templates_dir = Path(templates_dir) if templates_dir else TEMPLATES_DIR
        self.env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self.env.filters["slug"] = slugify

    def generate(self, model: AppModel, preferences: Preferences) -> List[GeneratedFile]:
        """Write every artifact the preferences call for.

        Raises:
            GenerationError: wrapping the first template or filesystem
                failure, or if the output root lies inside the scanned app.
        """
        self._check_output_root(model)
        files: List[GeneratedFile] = []
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)

            if preferences.add_auth:
                files.append(self.generate_session_middleware(model))
            if preferences.add_database:
                files.extend(self.generate_database_integration(model))
            if preferences.add_branding:
                files.extend(self.generate_branding(preferences))

            files.append(self.generate_proxy_route(model, preferences))
            files.append(self.generate_landing_page(preferences))
            files.append(self.generate_environment_config(model, preferences))
            files.append(self.generate_documentation(model, preferences))
            files.append(self.generate_manifest_patch(model))
        except (TemplateError, OSError, ValueError) as exc:
            raise GenerationError(f"{type(exc).__name__}: {exc}") from exc

        logger.info("Generated %d file(s) in %s", len(files), self.output_dir)
        return files

    def generate_session_middleware(self, model: AppModel) -> GeneratedFile:
        content = self._render("session_middleware.js.j2", app_name=model.name, framework=model.framework)
        return self._write(
            SESSION_MIDDLEWARE_PATH, content, "middleware", "Weam session middleware for authentication"
        )

    def generate_database_integration(self, model: AppModel) -> List[GeneratedFile]:
        files = [self._write(
            DATABASE_CONNECTOR_PATH,
            self._render("database.js.j2", app_name=model.name, models=model.models),
            "database",
            "Database connection with Weam integration",
        )]
        for data_model in model.models:
            content = self._render(
                "model_update.js.j2",
                model_name=data_model.name,
                orm_kind=data_model.orm_kind,
                source_file=data_model.source_file,
                app_name=model.name,
            )
            files.append(self._write(
                f"{MODELS_DIR}/{data_model.name}.js",
                content,
                "model",
                f"Updated {data_model.name} model with Weam user/company fields",
            ))
        return files

    def generate_branding(self, preferences: Preferences) -> List[GeneratedFile]:
        return [
            self._write(
                LOGO_PATH,
                self._render("weam_logo.jsx.j2", app_name=preferences.app_name),
                "component",
                "Weam logo component",
            ),
            self._write(
                NAVIGATION_PATH,
                self._render(
                    "weam_navigation.jsx.j2", app_name=preferences.app_name, category=preferences.category
                ),
                "component",
                "Weam navigation component with branding",
            ),
            self._write(
                STYLESHEET_PATH,
                self._render("weam_styles.css.j2", app_name=preferences.app_name),
                "styles",
                "Weam brand styling",
            ),
        ]

    def generate_proxy_route(self, model: AppModel, preferences: Preferences) -> GeneratedFile:
        content = self._render(
            "proxy_route.ts.j2",
            app_name=preferences.app_name,
            api_routes=model.api_routes,
            port=get_app_port(model),
        )
        return self._write(PROXY_ROUTE_PATH, content, "proxy", "Weam proxy route for API forwarding")

    def generate_landing_page(self, preferences: Preferences) -> GeneratedFile:
        content = self._render(
            "weam_page.tsx.j2",
            app_name=preferences.app_name,
            description=preferences.description,
            category=preferences.category,
        )
        return self._write(LANDING_PAGE_PATH, content, "page", "Weam page component for Supersolutions")

    def generate_environment_config(self, model: AppModel, preferences: Preferences) -> GeneratedFile:
        content = self._render(
            "env_config.j2",
            app_name=preferences.app_name,
            port=get_app_port(model),
            has_auth=preferences.add_auth,
            has_database=preferences.add_database,
        )
        return self._write(ENV_CONFIG_PATH, content, "config", "Environment configuration for Weam integration")

    def generate_documentation(self, model: AppModel, preferences: Preferences) -> GeneratedFile:
        content = self._render(
            "integration_doc.md.j2",
            app_name=preferences.app_name,
            description=preferences.description,
            category=preferences.category,
            port=get_app_port(model),
            model=model,
            preferences=preferences,
        )
        return self._write(DOCUMENTATION_PATH, content, "documentation", "Integration documentation and setup guide")

    def generate_manifest_patch(self, model: AppModel) -> GeneratedFile:
        """Merge Weam packages and scripts into a copy of the app's package.json.

        Required packages overwrite existing pins of the same name. The
        result goes to ``package.json.weam``; the live manifest is untouched.
        """
        manifest = self._load_manifest(Path(model.root_path) / MANIFEST_NAME)
        manifest["dependencies"] = {**(manifest.get("dependencies") or {}), **REQUIRED_DEPENDENCIES}
        manifest["scripts"] = {**(manifest.get("scripts") or {}), **INTEGRATION_SCRIPTS}
        content = json.dumps(manifest, indent=2) + "\n"
        return self._write(MANIFEST_PATCH_PATH, content, "package", "Updated package.json with Weam dependencies")

    @staticmethod
    def _load_manifest(manifest_path: Path) -> Dict[str, Any]:
        if not manifest_path.exists():
            return {}
        manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
        if not isinstance(manifest, dict):
            raise ValueError(f"{manifest_path} is not a JSON object")
        return manifest

    def _check_output_root(self, model: AppModel) -> None:
        output_root = self.output_dir.resolve()
        app_root = Path(model.root_path).resolve()
        if output_root == app_root or app_root in output_root.parents:
            raise GenerationError(f"Output directory {output_root} is inside the scanned app {app_root}")

    def _render(self, template_name: str, **context: Any) -> str:
        return self.env.get_template(template_name).render(**context)

    def _write(self, rel_path: str, content: str, file_type: str, description: str) -> GeneratedFile:
        path = self.output_dir / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.debug("Wrote %s", path)
        return GeneratedFile(type=file_type, path=str(path), description=description)
