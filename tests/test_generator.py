"""Tests for TemplateGenerator."""

import json
import shutil
from collections import Counter
from pathlib import Path

import pytest

from weam_integrator.errors import GenerationError
from weam_integrator.generator import (
    REQUIRED_DEPENDENCIES,
    TEMPLATES_DIR,
    TemplateGenerator,
    get_app_port,
    slugify,
)
from weam_integrator.models import AppModel, Preferences
from weam_integrator.scanner import AppScanner

UNCONDITIONAL_TYPES = ["proxy", "page", "config", "documentation", "package"]


@pytest.fixture
def express_model(express_app: Path) -> AppModel:
    return AppScanner().scan(express_app)


def _snapshot(root: Path) -> dict:
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


class TestConditionalEmission:

    def test_everything_enabled(self, express_model, output_dir):
        files = TemplateGenerator(output_dir).generate(express_model, Preferences.for_model(express_model))

        types = Counter(f.type for f in files)
        assert types == Counter({
            "middleware": 1, "database": 1, "model": 2, "component": 2, "styles": 1,
            "proxy": 1, "page": 1, "config": 1, "documentation": 1, "package": 1,
        })
        for generated in files:
            assert Path(generated.path).is_file()
            assert generated.description

    def test_only_unconditional_artifacts(self, express_model, output_dir):
        prefs = Preferences.for_model(express_model, add_auth=False, add_database=False, add_branding=False)

        files = TemplateGenerator(output_dir).generate(express_model, prefs)

        assert [f.type for f in files] == UNCONDITIONAL_TYPES
        assert not (output_dir / "middleware").exists()
        assert not (output_dir / "lib").exists()
        assert not (output_dir / "components").exists()

    def test_two_models_give_two_model_files(self, express_model, output_dir):
        prefs = Preferences.for_model(express_model, add_auth=False, add_branding=False)

        files = TemplateGenerator(output_dir).generate(express_model, prefs)

        assert [f.type for f in files].count("database") == 1
        model_files = sorted(Path(f.path).name for f in files if f.type == "model")
        assert model_files == ["Task.js", "User.js"]

    def test_empty_model_still_gets_unconditional_files(self, make_app, output_dir):
        model = AppScanner().scan(make_app({"README.md": "hi\n"}))

        files = TemplateGenerator(output_dir).generate(model, Preferences.for_model(model))

        assert [f.type for f in files if f.type in UNCONDITIONAL_TYPES] == UNCONDITIONAL_TYPES
        assert [f.type for f in files].count("model") == 0


class TestPurity:

    def test_byte_identical_output(self, express_model, output_dir):
        prefs = Preferences.for_model(express_model, category="Sales")
        generator = TemplateGenerator(output_dir)

        generator.generate(express_model, prefs)
        first = _snapshot(output_dir)
        shutil.rmtree(output_dir)
        generator.generate(express_model, prefs)

        assert _snapshot(output_dir) == first

    def test_app_tree_is_untouched(self, express_model, express_app, output_dir):
        before = _snapshot(express_app)

        TemplateGenerator(output_dir).generate(express_model, Preferences.for_model(express_model))

        assert _snapshot(express_app) == before


class TestArtifactContent:

    def test_session_middleware_markers(self, express_model, output_dir):
        TemplateGenerator(output_dir).generate(express_model, Preferences.for_model(express_model))

        content = (output_dir / "middleware" / "weamSession.js").read_text()
        assert "iron-session" in content
        assert "weamSessionMiddleware" in content
        assert "requireWeamAuth" in content

    def test_database_connector_markers(self, express_model, output_dir):
        TemplateGenerator(output_dir).generate(express_model, Preferences.for_model(express_model))

        content = (output_dir / "lib" / "db.js").read_text()
        assert "mongoose" in content
        assert "weamUserFields" in content

    def test_env_uses_framework_port(self, express_model, output_dir):
        TemplateGenerator(output_dir).generate(express_model, Preferences.for_model(express_model))

        env = (output_dir / ".env.weam").read_text()
        assert "PORT=3001" in env
        assert "WEAM_COOKIE_NAME" in env
        assert "MONGODB_URI=mongodb://localhost:27017/task-api" in env

    def test_env_keeps_database_variable_when_disabled(self, express_model, output_dir):
        prefs = Preferences.for_model(express_model, add_database=False)

        TemplateGenerator(output_dir).generate(express_model, prefs)

        env = (output_dir / ".env.weam").read_text()
        assert "# MONGODB_URI" in env

    def test_proxy_lists_known_routes(self, express_model, output_dir):
        TemplateGenerator(output_dir).generate(express_model, Preferences.for_model(express_model))

        proxy = (output_dir / "weam-proxy" / "[...path]" / "route.ts").read_text()
        assert "NextRequest" in proxy
        assert "fetch" in proxy
        assert "DELETE /api/users/:id" in proxy

    def test_preferences_reach_documentation(self, express_model, output_dir):
        prefs = Preferences.for_model(express_model, app_name="Task Board", category="Sales")

        TemplateGenerator(output_dir).generate(express_model, prefs)

        doc = (output_dir / "WEAM_INTEGRATION.md").read_text()
        assert doc.startswith("# Task Board: Weam Integration")
        assert "Sales" in doc


class TestManifestPatch:

    def test_merges_required_packages(self, express_model, express_app, output_dir):
        live_manifest = (express_app / "package.json").read_text()

        TemplateGenerator(output_dir).generate(express_model, Preferences.for_model(express_model))

        patched = json.loads((output_dir / "package.json.weam").read_text())
        for name, version in REQUIRED_DEPENDENCIES.items():
            assert patched["dependencies"][name] == version
        assert patched["dependencies"]["express"] == "^4.18.2"
        assert patched["dependencies"]["axios"] == REQUIRED_DEPENDENCIES["axios"]
        assert patched["scripts"]["start"] == "node server.js"
        assert "weam:integrate" in patched["scripts"]
        assert "weam:test" in patched["scripts"]
        assert (express_app / "package.json").read_text() == live_manifest

    def test_app_without_manifest(self, make_app, output_dir):
        model = AppScanner().scan(make_app({"index.js": ""}))

        TemplateGenerator(output_dir).generate(model, Preferences.for_model(model))

        patched = json.loads((output_dir / "package.json.weam").read_text())
        assert set(patched) == {"dependencies", "scripts"}


class TestGenerationErrors:

    def test_output_inside_app_is_rejected(self, express_model, express_app):
        with pytest.raises(GenerationError, match="inside the scanned app"):
            TemplateGenerator(express_app / "weam-integration").generate(
                express_model, Preferences.for_model(express_model)
            )
        assert not (express_app / "weam-integration").exists()

    def test_template_failure_keeps_partial_output(self, express_model, output_dir, tmp_path):
        templates = tmp_path / "templates"
        shutil.copytree(TEMPLATES_DIR, templates)
        (templates / "weam_page.tsx.j2").write_text("{{ no_such_variable }}\n")

        with pytest.raises(GenerationError) as excinfo:
            TemplateGenerator(output_dir, templates_dir=templates).generate(
                express_model, Preferences.for_model(express_model)
            )

        assert str(excinfo.value).startswith("generate failed:")
        assert (output_dir / "middleware" / "weamSession.js").is_file()
        assert not (output_dir / "weam-page").exists()

    def test_filesystem_failure(self, express_model, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(GenerationError):
            TemplateGenerator(blocker / "out").generate(express_model, Preferences.for_model(express_model))


def test_slugify():
    assert slugify("My Cool App!") == "my-cool-app"
    assert slugify("***") == "app"


def test_ports(express_model):
    assert get_app_port(express_model) == 3001
    assert get_app_port(AppModel(root_path="/x", name="x")) == 3000
