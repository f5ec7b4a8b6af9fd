"""
Domain models — Pydantic types for the installer.

All models are re-exported here for convenient access:

    from aphadon.core.models import Manifest, PackageEntry, Action, Receipt
"""

from aphadon.core.models.action import Action, Receipt
from aphadon.core.models.manifest import Manifest, PackageEntry, PlatformOverride
from aphadon.core.models.platform import Platform
from aphadon.core.models.state import InstallState, OperationRecord, PackageState

__all__ = [
    # action.py
    "Action",
    "Receipt",
    # manifest.py
    "Manifest",
    "PackageEntry",
    "PlatformOverride",
    # platform.py
    "Platform",
    # state.py
    "InstallState",
    "OperationRecord",
    "PackageState",
]
