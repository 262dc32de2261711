"""Certificate lifecycle services for the remote certificate service."""

from cert_lifecycle_manager.services.cloud.chain import assemble_chain, verify_leaf
from cert_lifecycle_manager.services.cloud.manager import CloudCertificateManager
from cert_lifecycle_manager.services.cloud.poller import IssuancePoller, PollPolicy
from cert_lifecycle_manager.services.cloud.resolver import (
    FingerprintMatch,
    IdentityResolver,
    normalize_fingerprint,
)

__all__ = [
    "CloudCertificateManager",
    "FingerprintMatch",
    "IdentityResolver",
    "IssuancePoller",
    "PollPolicy",
    "assemble_chain",
    "normalize_fingerprint",
    "verify_leaf",
]
