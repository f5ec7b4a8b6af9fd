"""
Custom installers — packages that need more than ``<pm> install``.

A manifest entry with ``method: function`` is installed by the function
registered here under the same name. Each installer branches on the
platform family and returns a result dict (``{"ok": bool, ...}``); it
never raises.

To add one, write ``def install_<name>(ctx) -> dict`` and register it in
``CUSTOM_INSTALLERS``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from aphadon.adapters.shell.runner import run_command
from aphadon.core.models.platform import Platform
from aphadon.core.services.github_release import install_release_binary, release_url

logger = logging.getLogger(__name__)

LAZYGIT_VERSION = "0.45.1"
YAZI_VERSION = "0.4.2"
NEOVIM_VERSION = "v0.11.5"
TREE_SITTER_VERSION = "v0.25.1"

_PATH_LINE = 'export PATH="$HOME/bin:$PATH"'

Runner = Callable[..., dict[str, Any]]
ReleaseInstaller = Callable[..., dict[str, Any]]


@dataclass
class InstallerContext:
    """What a custom installer gets to work with.

    ``run`` and ``install_release`` are injectable so tests can record
    calls instead of touching the system.
    """

    platform: Platform
    home: Path = field(default_factory=Path.home)
    run: Runner = run_command
    install_release: ReleaseInstaller = install_release_binary
    environ: MutableMapping[str, str] = field(default_factory=lambda: os.environ)

    @property
    def family(self) -> str:
        return self.platform.family

    @property
    def arch(self) -> str:
        return self.platform.arch

    @property
    def user_bin(self) -> Path:
        return self.home / "bin"


def _unsupported(what: str, ctx: InstallerContext) -> dict[str, Any]:
    logger.error("Unsupported distro for %s: %s", what, ctx.platform.id)
    return {"ok": False, "error": f"Unsupported distro for {what}: {ctx.platform.id}"}


def _unsupported_arch(what: str, ctx: InstallerContext) -> dict[str, Any]:
    logger.error("Unsupported architecture for %s: %s", what, ctx.arch)
    return {"ok": False, "error": f"Unsupported architecture for {what}: {ctx.arch}"}


def _pacman(ctx: InstallerContext, pkg: str) -> dict[str, Any]:
    logger.info("Installing %s via pacman...", pkg)
    return ctx.run(["pacman", "-S", "--needed", "--noconfirm", pkg], needs_sudo=True)


def _dnf(ctx: InstallerContext, pkg: str) -> dict[str, Any]:
    return ctx.run(["dnf", "-y", "install", pkg], needs_sudo=True)


def setup_user_bin(ctx: InstallerContext) -> Path:
    """Ensure ``~/bin`` exists and is on PATH.

    When missing from PATH, the export line is appended to ``~/.zshrc``
    and ``~/.bashrc`` (once) and the current process PATH is updated.
    """
    user_bin = ctx.user_bin
    user_bin.mkdir(parents=True, exist_ok=True)

    path_entries = ctx.environ.get("PATH", "").split(os.pathsep)
    if str(user_bin) in path_entries:
        return user_bin

    logger.info("Adding ~/bin to PATH")
    for rc_name in (".zshrc", ".bashrc"):
        rc = ctx.home / rc_name
        existing = rc.read_text(encoding="utf-8") if rc.is_file() else ""
        if _PATH_LINE in existing:
            continue
        with rc.open("a", encoding="utf-8") as f:
            if existing and not existing.endswith("\n"):
                f.write("\n")
            f.write(f"{_PATH_LINE}\n")
    ctx.environ["PATH"] = os.pathsep.join([str(user_bin)] + [p for p in path_entries if p])
    return user_bin


# ═══════════════════════════════════════════════════════════════════
# lazygit — terminal UI for git
# ═══════════════════════════════════════════════════════════════════

_LAZYGIT_ARCH = {"x86_64": "x86_64", "arm64": "arm64", "armv7": "armv6"}


def install_lazygit(ctx: InstallerContext) -> dict[str, Any]:
    if ctx.family == "fedora":
        logger.warning("lazygit should use COPR on Fedora")
        return _dnf(ctx, "lazygit")

    if ctx.family == "debian":
        gh_arch = _LAZYGIT_ARCH.get(ctx.arch)
        if gh_arch is None:
            return _unsupported_arch("lazygit", ctx)
        logger.info("Installing lazygit from GitHub releases...")
        user_bin = setup_user_bin(ctx)
        v = LAZYGIT_VERSION
        url = release_url(
            "jesseduffield/lazygit", f"v{v}", f"lazygit_{v}_Linux_{gh_arch}.tar.gz",
        )
        return ctx.install_release(url, "lazygit", user_bin)

    if ctx.family == "arch":
        return _pacman(ctx, "lazygit")

    return _unsupported("lazygit", ctx)


# ═══════════════════════════════════════════════════════════════════
# yazi — terminal file manager
# ═══════════════════════════════════════════════════════════════════

_YAZI_ARCH = {
    "x86_64": "x86_64-unknown-linux-musl",
    "arm64": "aarch64-unknown-linux-musl",
}


def install_yazi(ctx: InstallerContext) -> dict[str, Any]:
    if ctx.family == "fedora":
        logger.warning("yazi should use COPR on Fedora")
        return _dnf(ctx, "yazi")

    if ctx.family == "debian":
        gh_arch = _YAZI_ARCH.get(ctx.arch)
        if gh_arch is None:
            return _unsupported_arch("yazi", ctx)
        logger.info("Installing yazi from GitHub releases...")
        user_bin = setup_user_bin(ctx)
        url = release_url("sxyazi/yazi", f"v{YAZI_VERSION}", f"yazi-{gh_arch}.zip")
        return ctx.install_release(
            url, "yazi", user_bin, member_path=f"yazi-{gh_arch}/yazi",
        )

    if ctx.family == "arch":
        return _pacman(ctx, "yazi")

    return _unsupported("yazi", ctx)


# ═══════════════════════════════════════════════════════════════════
# neovim — distro packages lag behind on Debian/Ubuntu
# ═══════════════════════════════════════════════════════════════════


def install_neovim(ctx: InstallerContext) -> dict[str, Any]:
    if ctx.family == "fedora":
        logger.info("Installing neovim via DNF...")
        return _dnf(ctx, "neovim")

    if ctx.family == "debian":
        if ctx.arch == "arm64":
            logger.info("Installing neovim from GitHub release (ARM64)...")
            user_bin = setup_user_bin(ctx)
            target = Path("/usr/local/bin")
            install_dir = target if os.access(target, os.W_OK) else user_bin
            url = release_url("neovim/neovim", NEOVIM_VERSION, "nvim-linux-arm64.tar.gz")
            return ctx.install_release(
                url, "nvim", install_dir, member_path="nvim-linux-arm64/bin/nvim",
            )

        logger.info("Adding neovim unstable PPA...")
        for cmd in (
            ["add-apt-repository", "-y", "ppa:neovim-ppa/unstable"],
            ["apt-get", "update"],
            ["apt-get", "install", "-y", "neovim"],
        ):
            result = ctx.run(cmd, needs_sudo=True)
            if not result.get("ok"):
                return result
        return result

    if ctx.family == "arch":
        return _pacman(ctx, "neovim")

    return _unsupported("neovim custom install", ctx)


# ═══════════════════════════════════════════════════════════════════
# tree-sitter — parser generator CLI
# ═══════════════════════════════════════════════════════════════════

_TREE_SITTER_ARCH = {"x86_64": "x86_64", "arm64": "arm64"}


def install_tree_sitter(ctx: InstallerContext) -> dict[str, Any]:
    if ctx.family in ("fedora", "debian"):
        gh_arch = _TREE_SITTER_ARCH.get(ctx.arch)
        if gh_arch is None:
            return _unsupported_arch("tree-sitter", ctx)
        logger.info("Installing tree-sitter from GitHub release (%s)...", gh_arch)
        user_bin = setup_user_bin(ctx)
        url = release_url(
            "tree-sitter/tree-sitter",
            TREE_SITTER_VERSION,
            f"tree-sitter-linux-{gh_arch}.gz",
        )
        return ctx.install_release(url, "tree-sitter", user_bin)

    if ctx.family == "arch":
        return _pacman(ctx, "tree-sitter")

    return _unsupported("tree-sitter custom install", ctx)


InstallerFn = Callable[[InstallerContext], dict[str, Any]]

CUSTOM_INSTALLERS: dict[str, InstallerFn] = {
    "lazygit": install_lazygit,
    "yazi": install_yazi,
    "neovim": install_neovim,
    "tree-sitter": install_tree_sitter,
}

