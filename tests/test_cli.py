"""
Tests for CLI commands — install, plan, tags, status, history and global options.

Every install here runs with ``--mock``; nothing touches the system.
"""

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from aphadon.core.models.state import InstallState
from aphadon.core.persistence.state_file import default_state_path, save_state
from aphadon.main import cli, install


def _json(output: str) -> dict:
    """Parse the JSON document in CLI output (logs may precede it)."""
    return json.loads(output[output.index("{"):])


@pytest.fixture
def manifest_args(dotfiles, home) -> list[str]:
    return ["-q", "-m", str(dotfiles / "install" / "packages.yaml")]


class TestCLIGlobal:
    """Tests for global CLI behavior."""

    def test_help(self):
        result = CliRunner().invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "dotfiles installer" in result.output
        for command in ("install", "plan", "tags", "post-install", "status", "history",
                        "manifest", "aerospace"):
            assert command in result.output

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_install_help_lists_profiles_and_tags(self):
        result = CliRunner().invoke(cli, ["install", "--help"])
        assert result.exit_code == 0
        assert "--profile" in result.output
        assert "--exclude" in result.output
        assert "Common profiles:" in result.output
        assert "server" in result.output

    def test_standalone_install_help(self):
        result = CliRunner().invoke(install, ["--help"])
        assert result.exit_code == 0
        assert "--profile" in result.output


class TestInstallCommand:
    """Mock installs against the sample dotfiles checkout."""

    def test_mock_install_json(self, manifest_args):
        result = CliRunner().invoke(
            cli, manifest_args + ["install", "--platform", "fedora", "--mock", "--json"],
        )
        assert result.exit_code == 0, result.output
        data = _json(result.output)
        assert data["ok"] is True
        assert data["platform"]["id"] == "fedora"
        assert data["profile"] == "full"
        assert data["report"]["failed"] == 0
        assert data["shell_choice"] == "zsh"

    def test_profile_and_exclude(self, manifest_args):
        result = CliRunner().invoke(cli, manifest_args + [
            "install", "--platform", "ubuntu", "--mock", "--json",
            "--profile", "core,dev", "--exclude", "dev", "--no-post-install",
        ])
        assert result.exit_code == 0, result.output
        data = _json(result.output)
        assert data["exclude"] == ["dev"]
        assert data["filtered"]["lazygit"] == "excluded (tag: dev)"
        assert data["filtered"]["docker"] == "not in profile"
        assert "post_install" not in data

    def test_human_output(self, manifest_args):
        result = CliRunner().invoke(cli, manifest_args + [
            "install", "--platform", "ubuntu", "--mock", "--shell", "skip",
        ])
        assert result.exit_code == 0, result.output
        assert "[mock] install" in result.output
        assert "ghostty" in result.output
        assert "Next steps:" not in result.output  # -q
        assert "Installation complete" in result.output

    def test_dry_run_writes_audit_not_state(self, manifest_args, dotfiles):
        result = CliRunner().invoke(cli, manifest_args + [
            "install", "--platform", "arch", "--dry-run", "--shell", "skip",
        ])
        assert result.exit_code == 0, result.output
        assert (dotfiles / ".state" / "audit.ndjson").is_file()
        assert not default_state_path(dotfiles).exists()

    def test_unsupported_platform(self, manifest_args):
        result = CliRunner().invoke(cli, manifest_args + ["install", "--platform", "gentoo", "--mock"])
        assert result.exit_code == 1
        assert "Unsupported OS: gentoo" in result.output

    def test_missing_manifest(self, home, tmp_path):
        result = CliRunner().invoke(cli, [
            "-m", str(tmp_path / "nope.yaml"), "install", "--platform", "fedora", "--mock",
        ])
        assert result.exit_code == 1
        assert "Manifest not found" in result.output

    def test_save_profile(self, manifest_args, home):
        result = CliRunner().invoke(cli, manifest_args + [
            "install", "--platform", "fedora", "--mock", "--no-post-install",
            "--profile", "core", "--save-profile",
        ])
        assert result.exit_code == 0, result.output
        text = (home / ".install-profile").read_text()
        assert "export INSTALL_PROFILE=core" in text

    def test_profile_file_is_used(self, manifest_args, home):
        (home / ".install-profile").write_text("INSTALL_PROFILE=server\n")
        result = CliRunner().invoke(cli, manifest_args + [
            "install", "--platform", "fedora", "--mock", "--json", "--no-post-install",
        ])
        data = _json(result.output)
        assert data["profile"] == "server"
        assert "git" in data["filtered"]

    def test_env_overrides_profile_file(self, manifest_args, home, monkeypatch):
        (home / ".install-profile").write_text("INSTALL_PROFILE=server\n")
        monkeypatch.setenv("INSTALL_PROFILE", "dev")
        result = CliRunner().invoke(cli, manifest_args + [
            "install", "--platform", "fedora", "--mock", "--json", "--no-post-install",
        ])
        assert _json(result.output)["profile"] == "dev"

    def test_invalid_shell_in_profile_file(self, manifest_args, home):
        (home / ".install-profile").write_text("SHELL_CHOICE=fish\n")
        result = CliRunner().invoke(cli, manifest_args + ["install", "--platform", "fedora", "--mock"])
        assert result.exit_code == 1
        assert "Invalid install settings" in result.output


class TestPlanCommand:
    def test_plan_text(self, manifest_args):
        result = CliRunner().invoke(cli, manifest_args + ["plan", "--platform", "ubuntu"])
        assert result.exit_code == 0, result.output
        assert "Package manager: apt" in result.output
        assert "fd → fd-find" in result.output
        assert "ghostty" in result.output

    def test_plan_json(self, manifest_args):
        result = CliRunner().invoke(cli, manifest_args + [
            "plan", "--platform", "fedora", "--profile", "dev", "--json",
        ])
        assert result.exit_code == 0, result.output
        data = _json(result.output)
        names = [p["name"] for p in data["packages"]]
        assert names == ["lazygit", "fd", "curl"]
        adapters = [a["adapter"] for a in data["actions"]]
        assert "repo" in adapters


class TestTagsCommand:
    def test_tags(self, manifest_args):
        result = CliRunner().invoke(cli, manifest_args + ["tags"])
        assert result.exit_code == 0
        assert "core" in result.output
        assert "Untagged (always installed): 1" in result.output

    def test_tags_json(self, manifest_args):
        result = CliRunner().invoke(cli, manifest_args + ["tags", "--json"])
        assert _json(result.output)["tags"]["server"] == 1


class TestManifestCheckCommand:
    def test_valid(self, manifest_args):
        result = CliRunner().invoke(cli, manifest_args + ["manifest", "check"])
        assert result.exit_code == 0, result.output
        assert "Manifest is valid" in result.output

    def test_invalid(self, home, tmp_path):
        path = tmp_path / "packages.yaml"
        path.write_text("packages:\n  x:\n    fedora:\n      method: 'copr:'\n")
        result = CliRunner().invoke(cli, ["-q", "-m", str(path), "manifest", "check", "--json"])
        assert result.exit_code == 1
        assert _json(result.output)["valid"] is False


class TestStatusAndHistory:
    def test_status_without_state(self, manifest_args):
        result = CliRunner().invoke(cli, manifest_args + ["status"])
        assert result.exit_code == 0
        assert "No install recorded yet" in result.output

    def test_status_with_state(self, manifest_args, dotfiles):
        state = InstallState(platform_id="fedora", profile="core")
        state.set_package_state("git", method="dnf", last_action_status="ok")
        state.set_package_state("tmux", method="dnf", last_action_status="failed", last_error="boom")
        save_state(state, default_state_path(dotfiles))

        result = CliRunner().invoke(cli, manifest_args + ["status"])
        assert result.exit_code == 0
        assert "Platform: fedora" in result.output
        assert "git via dnf" in result.output
        assert "boom" in result.output

    def test_history_after_mock_install(self, manifest_args):
        runner = CliRunner()
        runner.invoke(cli, manifest_args + ["install", "--platform", "fedora", "--mock", "--shell", "skip"])
        result = runner.invoke(cli, manifest_args + ["history", "--json"])
        assert result.exit_code == 0
        entries = _json(result.output)["entries"]
        assert [e["automation"] for e in entries] == ["install", "post-install"]
        assert entries[0]["context"]["mock"] is True

    def test_history_empty(self, manifest_args):
        result = CliRunner().invoke(cli, manifest_args + ["history"])
        assert "No install history yet." in result.output


class TestAerospaceCommand:
    def test_build(self, tmp_path: Path):
        (tmp_path / "aerospace.main.toml").write_text("gaps = 8\n")
        result = CliRunner().invoke(cli, ["-q", "aerospace", "build", "--dir", str(tmp_path)])
        assert result.exit_code == 0, result.output
        assert (tmp_path / "aerospace.toml").is_file()

    def test_build_missing_main(self, tmp_path: Path):
        result = CliRunner().invoke(cli, ["-q", "aerospace", "build", "--dir", str(tmp_path)])
        assert result.exit_code == 1
        assert "aerospace.main.toml not found" in result.output


class TestInstallUseCase:
    def test_homebrew_required_on_macos(self, macos, fedora):
        from aphadon.core.use_cases.install import check_preconditions

        assert "Homebrew is not installed" in check_preconditions(macos, which=lambda _: None)
        assert check_preconditions(macos, which=lambda name: f"/opt/homebrew/bin/{name}") is None
        assert check_preconditions(fedora, which=lambda _: None) is None

    def test_record_report(self, manifest, fedora):
        from aphadon.adapters.mock import MockAdapter
        from aphadon.core.engine.executor import execute_plan
        from aphadon.core.services.planning import build_install_plan
        from aphadon.core.services.selection import Selection
        from aphadon.core.use_cases.install import build_registry, record_report

        registry = build_registry(mock_mode=True, installers={})
        mock = MockAdapter()
        mock.fail_package("fd", "No match for argument: fd-find")
        registry.set_mock_mode(True, mock)
        plan = build_install_plan(manifest, fedora, Selection(), installers={})
        report = execute_plan(plan, registry, platform=fedora)

        state = InstallState()
        record_report(state, plan, report)
        assert state.last_operation.status == "partial"
        assert state.packages["fd"].last_action_status == "failed"
        assert state.packages["fd"].last_error == "No match for argument: fd-find"
        assert state.packages["lazygit"].method == "dnf"
        assert state.packages["fd"].installed_as == "fd-find"

    def test_post_install_keeps_last_install_record(self, manifest, fedora, dotfiles, home):
        from aphadon.core.engine.executor import execute_plan
        from aphadon.core.services.planning import build_install_plan
        from aphadon.core.services.post_install import build_post_install_plan
        from aphadon.core.services.selection import Selection
        from aphadon.core.use_cases.install import build_registry, record_report

        registry = build_registry(mock_mode=True, installers={})
        state = InstallState()

        plan = build_install_plan(manifest, fedora, Selection(), installers={}, operation_id="op1")
        record_report(state, plan, execute_plan(plan, registry, platform=fedora))
        post = build_post_install_plan(manifest, dotfiles, home, "skip", operation_id="op1-post")
        record_report(state, post, execute_plan(post, registry, platform=fedora))

        assert state.last_operation.automation == "install"
        assert state.last_operation.operation_id == "op1"
        assert state.last_post_install.automation == "post-install"
        assert state.last_post_install.operation_id == "op1-post"

    def test_status_shows_install_and_post_install(self, manifest_args, dotfiles):
        state = InstallState(platform_id="fedora")
        state.last_operation.operation_id = "op1"
        state.last_operation.automation = "install"
        state.last_operation.status = "ok"
        state.last_post_install.operation_id = "op1-post"
        state.last_post_install.automation = "post-install"
        state.last_post_install.status = "partial"
        save_state(state, default_state_path(dotfiles))

        result = CliRunner().invoke(cli, manifest_args + ["status"])
        assert result.exit_code == 0
        assert "Last install:" in result.output
        assert "Last post-install:" in result.output
