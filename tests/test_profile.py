"""
Tests for install settings — profile file, env and CLI precedence.
"""

from pathlib import Path

import pytest

from aphadon.core.config.loader import ConfigError
from aphadon.core.config.profile import (
    InstallSettings,
    read_profile_file,
    resolve_settings,
    save_profile_file,
)


def _profile(tmp_path: Path, body: str) -> Path:
    path = tmp_path / ".install-profile"
    path.write_text(body)
    return path


class TestReadProfileFile:
    def test_shell_syntax(self, tmp_path):
        path = _profile(tmp_path, (
            "# my machine\n"
            'export INSTALL_PROFILE="core,dev"\n'
            "EXCLUDE_TAGS=gui  # no desktop here\n"
            "\n"
            "SHELL_CHOICE='bash'\n"
        ))
        assert read_profile_file(path) == {
            "INSTALL_PROFILE": "core,dev",
            "EXCLUDE_TAGS": "gui",
            "SHELL_CHOICE": "bash",
        }

    def test_missing(self, tmp_path):
        assert read_profile_file(tmp_path / "nope") == {}

    def test_unbalanced_quote(self, tmp_path):
        path = _profile(tmp_path, 'INSTALL_PROFILE="core\n')
        with pytest.raises(ConfigError, match=":1:"):
            read_profile_file(path)

    def test_line_without_assignment_ignored(self, tmp_path):
        path = _profile(tmp_path, "echo hi\nINSTALL_PROFILE=core\n")
        assert read_profile_file(path) == {"INSTALL_PROFILE": "core"}


class TestResolveSettings:
    def test_defaults(self, tmp_path):
        s = resolve_settings(environ={}, profile_path=tmp_path / "none")
        assert s.profile == "full"
        assert s.exclude == ""
        assert s.shell_choice is None
        assert s.sources["profile"] == "default"
        assert s.selection.is_full

    def test_file_then_env_then_cli(self, tmp_path):
        path = _profile(tmp_path, "INSTALL_PROFILE=core\nEXCLUDE_TAGS=gui\nSHELL_CHOICE=bash\n")

        s = resolve_settings(environ={}, profile_path=path)
        assert (s.profile, s.exclude, s.shell_choice) == ("core", "gui", "bash")
        assert s.sources == {"profile": "file", "exclude": "file", "shell_choice": "file"}

        s = resolve_settings(environ={"INSTALL_PROFILE": "dev"}, profile_path=path)
        assert s.profile == "dev"
        assert s.sources["profile"] == "env"

        s = resolve_settings("server", "", "zsh", environ={"INSTALL_PROFILE": "dev"}, profile_path=path)
        assert (s.profile, s.exclude, s.shell_choice) == ("server", "", "zsh")
        assert s.sources["exclude"] == "cli"

    def test_empty_env_value_falls_through(self, tmp_path):
        path = _profile(tmp_path, "INSTALL_PROFILE=core\n")
        s = resolve_settings(environ={"INSTALL_PROFILE": ""}, profile_path=path)
        assert s.profile == "core"

    def test_blank_profile_is_full(self, tmp_path):
        s = resolve_settings(" ", environ={}, profile_path=tmp_path / "none")
        assert s.profile == "full"

    def test_invalid_shell(self, tmp_path):
        with pytest.raises(ConfigError, match="Invalid install settings"):
            resolve_settings(shell_choice="fish", environ={}, profile_path=tmp_path / "none")

    def test_tags(self, tmp_path):
        s = resolve_settings("core, dev", "gui,server", environ={}, profile_path=tmp_path / "x")
        assert s.selection.profile == ["core", "dev"]
        assert s.exclude_tags == ["gui", "server"]


class TestSaveProfileFile:
    def test_written_file_reads_back(self, tmp_path):
        path = tmp_path / ".install-profile"
        save_profile_file(InstallSettings(profile="core,dev", exclude="gui", shell_choice="zsh"), path)
        assert read_profile_file(path) == {
            "INSTALL_PROFILE": "core,dev",
            "EXCLUDE_TAGS": "gui",
            "SHELL_CHOICE": "zsh",
        }

    def test_shell_choice_normalized(self):
        assert InstallSettings(shell_choice=" BASH ").shell_choice == "bash"
        assert InstallSettings(shell_choice="").shell_choice is None
