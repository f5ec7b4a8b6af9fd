"""
Shared test fixtures and configuration.
"""

import textwrap
from pathlib import Path
from typing import Any

import pytest

from aphadon.core.config.loader import parse_manifest
from aphadon.core.models.manifest import Manifest
from aphadon.core.models.platform import Platform
from aphadon.core.services.platform import parse_platform

SAMPLE_MANIFEST = textwrap.dedent("""\
    packages:
      git:
        default: git
        tags: [core]
      tmux:
        default: tmux
        tags: [core]
      neovim:
        default: neovim
        tags: [core]
        debian:
          method: function
      lazygit:
        default: lazygit
        tags: [dev]
        fedora:
          method: copr:atim/lazygit
        debian:
          method: function
      yazi:
        default: yazi
        tags: [core]
        fedora:
          method: copr:atim/lazygit
      fd:
        default: fd
        tags: [dev]
        fedora: fd-find
        debian: fd-find
      ghostty:
        default: ghostty
        tags: [desktop, gui]
        debian:
          skip: true
      docker:
        default: docker
        tags: [server]
        debian: docker.io
        macos:
          method: manual
      curl:
        default: curl
    stow:
      - nvim
      - tmux
""")


@pytest.fixture
def manifest() -> Manifest:
    return parse_manifest(SAMPLE_MANIFEST)


@pytest.fixture
def fedora() -> Platform:
    return parse_platform("fedora", version="40", arch="x86_64")


@pytest.fixture
def ubuntu() -> Platform:
    return parse_platform("ubuntu", version="24.04", arch="x86_64")


@pytest.fixture
def macos() -> Platform:
    return parse_platform("macos", arch="arm64")


@pytest.fixture
def dotfiles(tmp_path: Path) -> Path:
    """A dotfiles checkout with install/packages.yaml and two stow dirs."""
    root = tmp_path / "dotfiles"
    (root / "install").mkdir(parents=True)
    (root / "install" / "packages.yaml").write_text(SAMPLE_MANIFEST)
    (root / "nvim").mkdir()
    (root / "tmux").mkdir()
    return root


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated $HOME without install settings in the environment."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    for key in ("INSTALL_PROFILE", "EXCLUDE_TAGS", "SHELL_CHOICE"):
        monkeypatch.delenv(key, raising=False)
    return home_dir


class FakeRunner:
    """Records commands; answers with queued or default results."""

    def __init__(self, default: dict[str, Any] | None = None):
        self.calls: list[tuple[list[str], dict[str, Any]]] = []
        self._default = default or {"ok": True, "stdout": ""}
        self._queue: list[dict[str, Any]] = []

    def queue(self, *results: dict[str, Any]) -> None:
        self._queue.extend(results)

    @property
    def commands(self) -> list[list[str]]:
        return [cmd for cmd, _kwargs in self.calls]

    def __call__(self, cmd: list[str], **kwargs: Any) -> dict[str, Any]:
        self.calls.append((list(cmd), kwargs))
        if self._queue:
            return self._queue.pop(0)
        return dict(self._default)


class FakeReleaseInstaller:
    """Stands in for install_release_binary."""

    def __init__(self, result: dict[str, Any] | None = None):
        self.calls: list[dict[str, Any]] = []
        self._result = result or {"ok": True, "path": "/fake/bin"}

    def __call__(self, url: str, binary_name: str, install_dir: Path, **kwargs: Any) -> dict[str, Any]:
        self.calls.append({
            "url": url,
            "binary_name": binary_name,
            "install_dir": install_dir,
            **kwargs,
        })
        return dict(self._result)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def fake_release() -> FakeReleaseInstaller:
    return FakeReleaseInstaller()
