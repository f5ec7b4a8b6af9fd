"""
Tests for manifest loading and validation.
"""

import pytest

from aphadon.core.config.loader import (
    ConfigError,
    find_manifest_file,
    load_manifest,
    parse_manifest,
    resolve_dotfiles_root,
)
from aphadon.core.use_cases.manifest_check import check_manifest, validate_manifest


class TestLoader:
    def test_find_walks_up(self, dotfiles):
        nested = dotfiles / "nvim" / "lua"
        nested.mkdir()
        assert find_manifest_file(nested) == (dotfiles / "install" / "packages.yaml").resolve()

    def test_dotfiles_root_of_install_dir(self, dotfiles):
        assert resolve_dotfiles_root(dotfiles / "install" / "packages.yaml") == dotfiles.resolve()

    def test_load_explicit(self, dotfiles):
        manifest, path = load_manifest(dotfiles / "install" / "packages.yaml")
        assert path == dotfiles / "install" / "packages.yaml"
        assert "lazygit" in manifest.packages

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_manifest(tmp_path / "packages.yaml")

    def test_bundled_fallback(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        manifest, path = load_manifest()
        assert path is None
        assert "git" in manifest.packages
        assert manifest.stow

    def test_invalid_yaml(self):
        with pytest.raises(ConfigError):
            parse_manifest("packages: [unclosed")

    def test_not_a_mapping(self):
        with pytest.raises(ConfigError):
            parse_manifest("- a\n- b\n")

    def test_schema_error(self):
        with pytest.raises(ConfigError):
            parse_manifest("packages:\n  x:\n    tags: 5\n")


class TestValidateManifest:
    def test_sample_is_clean(self, manifest):
        errors, warnings = validate_manifest(manifest, installers={"neovim": 1, "lazygit": 1})
        assert errors == []
        assert warnings == []

    def test_problems(self):
        manifest = parse_manifest(
            "packages:\n"
            "  a:\n"
            "    fedora:\n"
            "      method: 'copr:'\n"
            "  b:\n"
            "    default: b\n"
            "    gentoo: b\n"
            "  c:\n"
            "    default: c\n"
            "    debian:\n"
            "      method: function\n"
            "    arch:\n"
            "      method: yay\n"
            "  d: {}\n"
        )
        errors, warnings = validate_manifest(manifest, installers={})
        assert errors == ["a.fedora: 'copr:' names no repository"]
        assert "b.gentoo: unknown platform key" in warnings
        assert any(w.startswith("c.debian: no custom installer") for w in warnings)
        assert "c.arch: unknown method 'yay' (installed normally)" in warnings
        assert "d: no default and no platform entries (always skipped)" in warnings

    def test_empty(self):
        assert validate_manifest(parse_manifest("packages: {}\n"))[1] == ["Manifest defines no packages"]


class TestCheckManifest:
    def test_valid_file(self, dotfiles):
        result = check_manifest(dotfiles / "install" / "packages.yaml")
        assert result.valid
        data = result.to_dict()
        assert data["package_count"] == 9
        assert data["tags"]["core"] == 4

    def test_broken_file(self, tmp_path):
        path = tmp_path / "packages.yaml"
        path.write_text("packages: [")
        result = check_manifest(path)
        assert not result.valid
        assert result.errors

    def test_bundled_manifest_is_valid(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = check_manifest()
        assert result.errors == []
        assert result.to_dict()["manifest_path"] == "bundled"
