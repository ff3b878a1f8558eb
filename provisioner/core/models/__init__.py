"""
Domain models — Pydantic types for the provisioner.

All models are re-exported here for convenient access:

    from provisioner.core.models import SystemProfile, Credential, Receipt
"""

from provisioner.core.models.credential import Credential, CredentialOrigin
from provisioner.core.models.link import ConnectionLink
from provisioner.core.models.profile import OsFamily, PackageManager, SystemProfile
from provisioner.core.models.receipt import Receipt
from provisioner.core.models.release import FetchResult, ReleaseCandidate
from provisioner.core.models.service import (
    ServiceDescriptor,
    ServiceKind,
    ServiceUnit,
    UnitOutcome,
)

__all__ = [
    # link.py
    "ConnectionLink",
    # credential.py
    "Credential",
    "CredentialOrigin",
    # release.py
    "FetchResult",
    # profile.py
    "OsFamily",
    "PackageManager",
    # receipt.py
    "Receipt",
    "ReleaseCandidate",
    # service.py
    "ServiceDescriptor",
    "ServiceKind",
    "ServiceUnit",
    "SystemProfile",
    "UnitOutcome",
]
