"""
Core subprocess runner.

The SINGLE PLACE where ``subprocess.run`` is called for install
operations. Sudo handling, logging, and error handling are centralised
here; everything above it deals in result dicts.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 1800

# Tail kept from stdout/stderr in results
_OUTPUT_TAIL = 2000


def is_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def with_sudo(cmd: list[str]) -> list[str]:
    """Prefix ``sudo`` unless we are already root."""
    if is_root() or (cmd and cmd[0] == "sudo"):
        return list(cmd)
    return ["sudo"] + list(cmd)


def run_command(
    cmd: list[str],
    *,
    needs_sudo: bool = False,
    timeout: int = DEFAULT_TIMEOUT,
    env_overrides: dict[str, str] | None = None,
    cwd: str | None = None,
) -> dict[str, Any]:
    """Run a command and capture its result.

    Sudo prompts go to the controlling terminal, so ``sudo`` works with
    captured output.

    Args:
        cmd: Command list for ``subprocess.run()``.
        needs_sudo: Whether the command requires root.
        timeout: Seconds before ``TimeoutExpired``.
        env_overrides: Extra env vars (e.g. ``RUNZSH=no``).
        cwd: Working directory for the command.

    Returns:
        ``{"ok": True, "stdout": "...", "elapsed_ms": N}`` on success,
        ``{"ok": False, "error": "...", ...}`` on failure.
    """
    if not cmd:
        return {"ok": False, "error": "Empty command"}

    if needs_sudo:
        if not is_root() and shutil.which("sudo") is None:
            return {
                "ok": False,
                "needs_sudo": True,
                "error": f"'{cmd[0]}' requires root and sudo is not available",
            }
        cmd = with_sudo(cmd)

    env = os.environ.copy()
    if env_overrides:
        for key, value in env_overrides.items():
            env[key] = os.path.expandvars(value)

    logger.debug("Executing: %s (cwd=%s)", " ".join(cmd), cwd)
    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired:
        return {"ok": False, "error": f"Command timed out ({timeout}s)", "command": cmd}
    except FileNotFoundError:
        return {"ok": False, "error": f"Command not found: {cmd[0]}", "command": cmd}
    except OSError as e:
        logger.exception("Subprocess error: %s", cmd)
        return {"ok": False, "error": str(e), "command": cmd}

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = result.stdout[-_OUTPUT_TAIL:] if result.stdout else ""

    if result.returncode == 0:
        return {"ok": True, "stdout": stdout, "elapsed_ms": elapsed_ms, "command": cmd}

    stderr = result.stderr[-_OUTPUT_TAIL:] if result.stderr else ""
    return {
        "ok": False,
        "error": f"Command failed (exit {result.returncode})",
        "returncode": result.returncode,
        "stderr": stderr,
        "stdout": stdout,
        "elapsed_ms": elapsed_ms,
        "command": cmd,
    }


def command_output(cmd: list[str], *, timeout: int = 60) -> str:
    """Stdout of a read-only query command, or "" when it fails."""
    result = run_command(cmd, timeout=timeout)
    if not result["ok"]:
        return ""
    return result.get("stdout", "")
