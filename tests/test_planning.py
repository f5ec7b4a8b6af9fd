"""
Tests for install planning — ordering, repositories, custom installers.
"""

from aphadon.core.services.planning import build_install_plan, find_installer_key
from aphadon.core.services.platform import parse_platform
from aphadon.core.services.selection import Selection

FULL = Selection()


def _ids(plan) -> list[str]:
    return [a.id.split(":", 1)[1] for a in plan.actions]


class TestBootstrapAndFinalize:
    def test_fedora_order(self, manifest, fedora):
        plan = build_install_plan(manifest, fedora, FULL, installers={}, operation_id="op")
        phases = [a.phase for a in plan.actions]
        assert phases[:2] == ["bootstrap", "bootstrap"]
        assert phases[-1] == "package"  # no finalize on fedora
        update = plan.actions[0]
        assert update.params["command"] == ["dnf", "-y", "update"]
        assert update.critical
        rpmfusion = plan.actions[1]
        assert rpmfusion.adapter == "repo"
        assert rpmfusion.params == {"kind": "rpmfusion", "fedora_version": "40"}

    def test_nobara_leaves_version_to_rpm(self, manifest):
        plan = build_install_plan(manifest, parse_platform("nobara", version="40"), FULL)
        assert plan.actions[1].params["fedora_version"] == ""

    def test_debian_bootstrap_and_finalize(self, manifest, ubuntu):
        plan = build_install_plan(manifest, ubuntu, FULL, installers={}, operation_id="op")
        assert plan.actions[0].params["command"] == ["apt-get", "update"]
        base = plan.actions[1]
        assert base.adapter == "apt"
        assert "software-properties-common" in base.params["packages"]
        last = plan.actions[-1]
        assert last.phase == "finalize"
        assert last.params["command"] == ["apt-get", "upgrade", "-y"]

    def test_rocky_epel(self, manifest):
        plan = build_install_plan(manifest, parse_platform("rocky"), FULL)
        assert plan.actions[1].params == {"kind": "epel"}

    def test_arch_sync(self, manifest):
        plan = build_install_plan(manifest, parse_platform("arch"), FULL)
        assert plan.actions[0].params["command"] == ["pacman", "-Syu", "--noconfirm"]

    def test_macos_update_and_cleanup(self, manifest, macos):
        plan = build_install_plan(manifest, macos, FULL)
        assert plan.actions[0].params["command"] == ["brew", "update"]
        assert plan.actions[-1].params["command"] == ["brew", "cleanup"]

    def test_without_system_steps(self, manifest, fedora):
        plan = build_install_plan(manifest, fedora, FULL, include_system=False)
        assert {a.phase for a in plan.actions} == {"package"}


class TestPackageActions:
    def test_manifest_order(self, manifest, fedora):
        plan = build_install_plan(manifest, fedora, FULL, installers={})
        assert list(plan.package_actions) == list(manifest.packages)

    def test_standard_install_uses_platform_manager(self, manifest, fedora):
        plan = build_install_plan(manifest, fedora, FULL, installers={})
        fd = plan.package_actions["fd"]
        assert len(fd) == 1
        assert fd[0].adapter == "dnf"
        assert fd[0].params == {"packages": ["fd-find"]}

    def test_copr_enabled_once(self, manifest, fedora):
        plan = build_install_plan(manifest, fedora, FULL, installers={})
        lazygit = plan.package_actions["lazygit"]
        yazi = plan.package_actions["yazi"]
        assert [a.adapter for a in lazygit] == ["repo", "dnf"]
        assert lazygit[0].params == {"kind": "copr", "repo": "atim/lazygit"}
        # same COPR: only the install
        assert [a.adapter for a in yazi] == ["dnf"]

    def test_function_uses_installer(self, manifest, ubuntu):
        plan = build_install_plan(manifest, ubuntu, FULL, installers={"neovim": object()})
        neovim = plan.package_actions["neovim"]
        assert neovim[0].adapter == "function"
        assert neovim[0].params == {"installer": "neovim"}

    def test_function_falls_back_to_standard(self, manifest, ubuntu):
        plan = build_install_plan(manifest, ubuntu, FULL, installers={})
        lazygit = plan.package_actions["lazygit"]
        assert lazygit[0].adapter == "apt"
        assert lazygit[0].params == {"packages": ["lazygit"]}

    def test_function_without_package_name(self, ubuntu):
        from aphadon.core.config.loader import parse_manifest

        m = parse_manifest("packages:\n  lazygit:\n    tags: [dev]\n    debian:\n      method: function\n")
        plan = build_install_plan(m, ubuntu, FULL, installers={"lazygit": object()})
        assert [(a.adapter, a.params) for a in plan.package_actions["lazygit"]] == [
            ("function", {"installer": "lazygit"}),
        ]

        fallback = build_install_plan(m, ubuntu, FULL, installers={})
        assert fallback.package_actions["lazygit"][0].params == {"packages": ["lazygit"]}

    def test_skip_becomes_notice(self, manifest, ubuntu):
        plan = build_install_plan(manifest, ubuntu, FULL, installers={})
        notice = plan.package_actions["ghostty"][0]
        assert notice.adapter == "notice"
        assert "marked as skip" in notice.params["reason"]

    def test_manual_becomes_notice(self, manifest, macos):
        plan = build_install_plan(manifest, macos, FULL, installers={})
        notice = plan.package_actions["docker"][0]
        assert notice.adapter == "notice"
        assert notice.params["reason"] == "Manual installation may be required for: docker (manual)"

    def test_copr_on_apt_is_notice(self, ubuntu):
        from aphadon.core.config.loader import parse_manifest

        m = parse_manifest("packages:\n  x:\n    default: x\n    ubuntu:\n      method: copr:a/b\n")
        plan = build_install_plan(m, ubuntu, FULL, installers={})
        assert plan.package_actions["x"][0].adapter == "notice"

    def test_ppa_then_install(self, ubuntu):
        from aphadon.core.config.loader import parse_manifest

        m = parse_manifest(
            "packages:\n  ff:\n    default: fastfetch\n    ubuntu:\n"
            "      method: ppa:zhangsongcui3371/fastfetch\n"
        )
        plan = build_install_plan(m, ubuntu, FULL, installers={})
        assert [a.adapter for a in plan.package_actions["ff"]] == ["repo", "apt"]
        assert plan.package_actions["ff"][0].params == {
            "kind": "ppa", "repo": "zhangsongcui3371/fastfetch",
        }

    def test_filtered_not_planned(self, manifest, fedora):
        plan = build_install_plan(manifest, fedora, Selection.from_strings("core", None))
        assert "docker" not in plan.package_actions
        assert plan.filtered["docker"] == "not in profile"
        # untagged entries are always planned
        assert "curl" in plan.package_actions

    def test_action_ids_unique(self, manifest, fedora):
        plan = build_install_plan(manifest, fedora, FULL, operation_id="op")
        ids = _ids(plan)
        assert len(ids) == len(set(ids))


class TestFindInstallerKey:
    def test_dash_underscore(self):
        assert find_installer_key("tree_sitter", {"tree-sitter": 1}) == "tree-sitter"
        assert find_installer_key("missing", {"tree-sitter": 1}) is None
