"""
Platform model — where the installer is running.
"""

from __future__ import annotations

from pydantic import BaseModel


class Platform(BaseModel):
    """A detected (or explicitly requested) target platform.

    ``id`` is the specific distribution (``nobara``, ``ubuntu``, ``macos``),
    ``family`` the installation recipe it shares with its relatives
    (``fedora``, ``rocky``, ``debian``, ``arch``, ``macos``).
    """

    id: str
    family: str
    package_manager: str
    version: str = ""
    arch: str = "unknown"
    system: str = "Linux"
    pretty_name: str = ""

    @property
    def is_macos(self) -> bool:
        return self.family == "macos"

    @property
    def lookup_keys(self) -> list[str]:
        """Manifest override keys to try, most specific first."""
        keys = [self.id]
        if self.family not in keys:
            keys.append(self.family)
        return keys

    @property
    def label(self) -> str:
        return self.pretty_name or (f"{self.id} {self.version}".strip())
