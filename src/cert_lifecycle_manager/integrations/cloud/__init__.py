"""Remote certificate service integration."""

from cert_lifecycle_manager.integrations.cloud.client import CloudClient
from cert_lifecycle_manager.integrations.cloud.config import CloudConfig, normalize_url
from cert_lifecycle_manager.integrations.cloud.exceptions import (
    AmbiguousIdentityError,
    CertificateMismatchError,
    CertificatePendingError,
    CloudAPIError,
    CloudAuthError,
    CloudBadDataError,
    CloudConfigError,
    CloudConnectionError,
    CloudDecodeError,
    CloudError,
    CloudNotFoundError,
    CloudUnavailableError,
    CloudValidationError,
    ImportInconsistencyError,
    IssuanceFailedError,
    LineageMismatchError,
    RetrieveTimeoutError,
)
from cert_lifecycle_manager.integrations.cloud.models import Session

__all__ = [
    "AmbiguousIdentityError",
    "CertificateMismatchError",
    "CertificatePendingError",
    "CloudAPIError",
    "CloudAuthError",
    "CloudBadDataError",
    "CloudClient",
    "CloudConfig",
    "CloudConfigError",
    "CloudConnectionError",
    "CloudDecodeError",
    "CloudError",
    "CloudNotFoundError",
    "CloudUnavailableError",
    "CloudValidationError",
    "ImportInconsistencyError",
    "IssuanceFailedError",
    "LineageMismatchError",
    "RetrieveTimeoutError",
    "Session",
]
