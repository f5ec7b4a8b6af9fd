"""
AeroSpace config assembly.

AeroSpace reads a single ``aerospace.toml``. The shared part lives in
``aerospace.main.toml``; per-machine rules in an optional, untracked
``aerospace.local.toml`` are appended after a marker comment.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from aphadon.adapters.shell.runner import run_command

logger = logging.getLogger(__name__)

MAIN_FILE = "aerospace.main.toml"
LOCAL_FILE = "aerospace.local.toml"
TARGET_FILE = "aerospace.toml"
LOCAL_MARKER = "\n# --- Machine Specific Rules ---\n"

DEFAULT_CONFIG_DIR = Path("~/.config/aerospace")


def build_aerospace_config(config_dir: Path, target: Path | None = None) -> dict[str, Any]:
    """Write ``aerospace.toml`` from the main and local parts.

    Returns:
        ``{"ok": True, "path": ..., "local": bool}`` or ``{"ok": False, "error": ...}``.
    """
    main = config_dir / MAIN_FILE
    target = target or config_dir / TARGET_FILE
    if not main.is_file():
        return {"ok": False, "error": f"{MAIN_FILE} not found in {config_dir}"}

    local = config_dir / LOCAL_FILE
    try:
        content = main.read_text(encoding="utf-8")
        has_local = local.is_file()
        if has_local:
            content += LOCAL_MARKER + local.read_text(encoding="utf-8")
        target.write_text(content, encoding="utf-8")
    except OSError as e:
        return {"ok": False, "error": f"Cannot write {target}: {e}"}

    logger.info("Wrote %s%s", target, " (with local rules)" if has_local else "")
    return {"ok": True, "path": str(target), "local": has_local}


def reload_aerospace() -> dict[str, Any]:
    """Ask the running AeroSpace to reload its config."""
    return run_command(["aerospace", "reload-config"], timeout=30)
