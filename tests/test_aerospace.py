"""
Tests for AeroSpace config assembly.
"""

from aphadon.core.services.aerospace import (
    LOCAL_FILE,
    LOCAL_MARKER,
    MAIN_FILE,
    TARGET_FILE,
    build_aerospace_config,
)


class TestBuildAerospaceConfig:
    def test_main_only(self, tmp_path):
        (tmp_path / MAIN_FILE).write_text("gaps = 8\n")
        result = build_aerospace_config(tmp_path)
        assert result == {"ok": True, "path": str(tmp_path / TARGET_FILE), "local": False}
        assert (tmp_path / TARGET_FILE).read_text() == "gaps = 8\n"

    def test_with_local_rules(self, tmp_path):
        (tmp_path / MAIN_FILE).write_text("gaps = 8\n")
        (tmp_path / LOCAL_FILE).write_text("[[on-window-detected]]\n")
        result = build_aerospace_config(tmp_path)
        assert result["local"] is True
        assert (tmp_path / TARGET_FILE).read_text() == (
            "gaps = 8\n" + LOCAL_MARKER + "[[on-window-detected]]\n"
        )

    def test_rebuild_overwrites(self, tmp_path):
        (tmp_path / MAIN_FILE).write_text("a\n")
        build_aerospace_config(tmp_path)
        (tmp_path / MAIN_FILE).write_text("b\n")
        build_aerospace_config(tmp_path)
        assert (tmp_path / TARGET_FILE).read_text() == "b\n"

    def test_missing_main(self, tmp_path):
        result = build_aerospace_config(tmp_path)
        assert not result["ok"]
        assert MAIN_FILE in result["error"]

    def test_explicit_target(self, tmp_path):
        (tmp_path / MAIN_FILE).write_text("x\n")
        target = tmp_path / "out.toml"
        assert build_aerospace_config(tmp_path, target)["path"] == str(target)
        assert target.read_text() == "x\n"
