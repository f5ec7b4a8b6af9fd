"""
GitHub release binaries — download, unpack, install.

Used by the custom installers for tools whose distro packages are
missing or too old (lazygit and yazi on Debian, neovim and tree-sitter
on ARM). Supports tar.gz, zip, single-file gzip and raw binary assets.
"""

from __future__ import annotations

import gzip
import logging
import os
import shutil
import tarfile
import tempfile
import urllib.request
import zipfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

_USER_AGENT = "aphadon-installer/1.0"


def release_url(repo: str, tag: str, asset: str) -> str:
    """Download URL of a pinned release asset."""
    return f"https://github.com/{repo}/releases/download/{tag}/{asset}"


def download(url: str, dest: Path, *, timeout: int = 120) -> dict[str, Any]:
    """Stream ``url`` into ``dest``."""
    try:
        req = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            with open(dest, "wb") as f:
                while True:
                    chunk = resp.read(8192)
                    if not chunk:
                        break
                    f.write(chunk)
    except Exception as exc:
        return {"ok": False, "error": f"Download failed: {exc}", "url": url}
    return {"ok": True, "path": str(dest), "url": url}


def unpack(archive: Path, dest_dir: Path, binary_name: str) -> dict[str, Any]:
    """Unpack an asset into ``dest_dir`` according to its suffix."""
    name = archive.name
    try:
        if name.endswith((".tar.gz", ".tgz")):
            with tarfile.open(archive, "r:gz") as tf:
                tf.extractall(dest_dir, filter="data")
        elif name.endswith(".zip"):
            with zipfile.ZipFile(archive, "r") as zf:
                zf.extractall(dest_dir)
        elif name.endswith(".gz"):
            with gzip.open(archive, "rb") as src, open(dest_dir / binary_name, "wb") as out:
                shutil.copyfileobj(src, out)
        else:
            shutil.copy2(archive, dest_dir / binary_name)
    except (OSError, tarfile.TarError, zipfile.BadZipFile) as exc:
        return {"ok": False, "error": f"Extract failed: {exc}"}
    return {"ok": True}


def find_binary(root: Path, binary_name: str) -> Path | None:
    """First regular file named ``binary_name`` below ``root``."""
    direct = root / binary_name
    if direct.is_file():
        return direct
    for p in sorted(root.rglob(binary_name)):
        if p.is_file():
            return p
    return None


def install_release_binary(
    url: str,
    binary_name: str,
    install_dir: Path,
    *,
    member_path: str = "",
) -> dict[str, Any]:
    """Download a release asset and install one binary from it.

    Args:
        url: Asset download URL.
        binary_name: Name of the executable to install.
        install_dir: Destination directory (created if missing).
        member_path: Path of the binary inside the archive, when the
            archive contains more than one file with that name.

    Returns:
        ``{"ok": True, "path": "..."}`` or ``{"ok": False, "error": "..."}``.
        Never raises.
    """
    asset_name = url.rsplit("/", 1)[-1]
    with tempfile.TemporaryDirectory(prefix="aphadon-release-") as tmp:
        tmp_dir = Path(tmp)
        archive = tmp_dir / asset_name

        logger.info("Downloading %s...", asset_name)
        fetched = download(url, archive)
        if not fetched["ok"]:
            return fetched

        extract_dir = tmp_dir / "extracted"
        extract_dir.mkdir()
        unpacked = unpack(archive, extract_dir, binary_name)
        if not unpacked["ok"]:
            return unpacked

        found = extract_dir / member_path if member_path else find_binary(extract_dir, binary_name)
        if found is None or not found.is_file():
            available = [p.name for p in extract_dir.rglob("*") if p.is_file()]
            return {
                "ok": False,
                "error": f"Binary '{binary_name}' not found in {asset_name}",
                "available_files": available[:10],
            }

        try:
            install_dir.mkdir(parents=True, exist_ok=True)
            target = install_dir / binary_name
            shutil.copy2(found, target)
            os.chmod(target, 0o755)
        except OSError as exc:
            return {"ok": False, "error": f"Install to {install_dir} failed: {exc}"}

    logger.info("Installed %s to %s", binary_name, target)
    return {"ok": True, "path": str(target), "asset": asset_name}
