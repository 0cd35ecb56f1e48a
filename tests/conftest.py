"""Pytest configuration and fixtures for Weam integrator tests."""

import shutil
from pathlib import Path
from typing import Callable, List, Optional, Union

import pytest

from weam_integrator.errors import OracleUnavailableError

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class FakeOracle:
    """Scripted stand-in for CodeOracle.

    The first call gets ``plan``; each later call is a rewrite request and
    gets ``rewrite(prompt)``. Every prompt is kept in ``prompts``.
    """

    def __init__(
        self,
        plan: Union[str, Exception] = "",
        rewrite: Optional[Callable[[str], str]] = None,
    ):
        self.plan = plan
        self.rewrite = rewrite or (lambda prompt: "// rewritten for Weam\nconst weam = true;\n")
        self.prompts: List[str] = []
        self.systems: List[Optional[str]] = []
        self.temperatures: List[float] = []
        self.provider = self
        self.name = "fake"
        self.model = "fake-model"

    def complete(self, prompt, system=None, temperature=0.1, max_tokens=4096):
        self.prompts.append(prompt)
        self.systems.append(system)
        self.temperatures.append(temperature)
        if len(self.prompts) == 1:
            if isinstance(self.plan, Exception):
                raise self.plan
            return self.plan
        return self.rewrite(prompt)


@pytest.fixture(autouse=True)
def fake_oracle(monkeypatch) -> FakeOracle:
    """Replace the real oracle everywhere so no test touches the network.

    Tests script the fake by setting ``fake_oracle.plan`` and
    ``fake_oracle.rewrite``.
    """
    oracle = FakeOracle(plan=OracleUnavailableError("network disabled in tests"))

    def _factory(*args, **kwargs):
        return oracle

    monkeypatch.setattr("weam_integrator.cli.CodeOracle", _factory)
    return oracle


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch) -> Path:
    """Point the config file at a temporary location."""
    config_file = tmp_path / "home" / "config.toml"
    monkeypatch.setattr("weam_integrator.config.CONFIG_FILE", config_file)
    return config_file


def _copy_fixture(name: str, destination: Path) -> Path:
    target = destination / name
    shutil.copytree(FIXTURES_DIR / name, target)
    return target


@pytest.fixture
def express_app(tmp_path: Path) -> Path:
    """Writable copy of the Express + Mongoose sample app."""
    return _copy_fixture("express_app", tmp_path / "apps")


@pytest.fixture
def next_app(tmp_path: Path) -> Path:
    """Writable copy of the Next.js sample app."""
    return _copy_fixture("next_app", tmp_path / "apps")


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Generation output root outside every sample app."""
    return tmp_path / "out"


@pytest.fixture
def make_app(tmp_path: Path) -> Callable[..., Path]:
    """Build a small app tree from a ``{relative path: content}`` mapping."""

    def _make(files: dict, name: str = "custom_app") -> Path:
        root = tmp_path / "apps" / name
        root.mkdir(parents=True, exist_ok=True)
        for rel_path, content in files.items():
            path = root / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return root

    return _make
