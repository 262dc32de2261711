"""Certificate service exceptions.

Each failure kind is its own class carrying the identifiers needed to
diagnose it. Message formatting happens in ``__str__``; callers that need
to branch on a failure should read the typed attributes instead.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cert_lifecycle_manager.integrations.cloud.models import (
        CertificateStatus,
        ResponseError,
    )


class CloudError(Exception):
    """Base exception for certificate service errors."""

    def __init__(self, message: str, details: str | None = None) -> None:
        """Initialize exception.

        Args:
            message: Error message.
            details: Additional details.
        """
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class CloudConfigError(CloudError):
    """Raised when configuration is invalid or missing."""


class CloudConnectionError(CloudError):
    """Raised when the HTTPS transport fails before a response arrives."""


class CloudValidationError(CloudError):
    """Raised when the caller supplies contradictory or unsupported input."""


class CloudAuthError(CloudError):
    """Raised when authentication fails or no company context is available."""


class CloudDecodeError(CloudError):
    """Raised when a response body or PEM payload cannot be parsed locally."""


class CloudNotFoundError(CloudError):
    """Raised when a lookup or search matches nothing."""

    def __init__(
        self,
        message: str,
        resource: str | None = None,
        key: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.resource = resource
        self.key = key


class AmbiguousIdentityError(CloudError):
    """Raised when one fingerprint maps to more than one certificate request."""

    def __init__(self, fingerprint: str, request_ids: list[str]) -> None:
        """Initialize exception.

        Args:
            fingerprint: Normalized fingerprint that was searched.
            request_ids: Request id of every matching record, in search order.
        """
        super().__init__(
            "More than one certificate request was found with the same fingerprint"
        )
        self.fingerprint = fingerprint
        self.request_ids = request_ids

    def __str__(self) -> str:
        return f"{self.message} {self.fingerprint}: {', '.join(self.request_ids)}"


class CertificatePendingError(CloudError):
    """Raised when issuance or signing has not finished yet.

    This is not a hard failure: callers may re-poll later with the same
    pickup id.
    """

    def __init__(self, pickup_id: str, status: str | None = None) -> None:
        super().__init__("Issuance pending for certificate request")
        self.pickup_id = pickup_id
        self.status = status

    def __str__(self) -> str:
        if self.status:
            return f"{self.message} {self.pickup_id} (status: {self.status})"
        return f"{self.message} {self.pickup_id}"


class RetrieveTimeoutError(CloudError):
    """Raised when issuance does not complete within the caller's timeout."""

    def __init__(self, pickup_id: str, timeout: float) -> None:
        super().__init__("Timed out waiting for certificate request")
        self.pickup_id = pickup_id
        self.timeout = timeout

    def __str__(self) -> str:
        return f"{self.message} {self.pickup_id} after {self.timeout:g}s"


class IssuanceFailedError(CloudError):
    """Raised when the remote service reports a terminal FAILED status."""

    def __init__(self, pickup_id: str, status: CertificateStatus) -> None:
        super().__init__("Certificate issuance failed")
        self.pickup_id = pickup_id
        self.status = status

    def __str__(self) -> str:
        return f"{self.message} for request {self.pickup_id}. Status: {self.status!r}"


class LineageMismatchError(CloudError):
    """Raised when a renewal targets a request that is no longer the latest one.

    This happens when the certificate was renewed since, or was revoked.
    """

    def __init__(
        self,
        request_id: str,
        certificate_id: str,
        latest_request_id: str,
        fingerprint: str | None = None,
    ) -> None:
        super().__init__("Certificate request is not the latest for its certificate")
        self.request_id = request_id
        self.certificate_id = certificate_id
        self.latest_request_id = latest_request_id
        self.fingerprint = fingerprint

    def __str__(self) -> str:
        with_thumbprint = f" with thumbprint {self.fingerprint}" if self.fingerprint else ""
        return (
            f"Certificate under request {self.request_id}{with_thumbprint} is not the "
            f"latest under certificate {self.certificate_id}. The latest request is "
            f"{self.latest_request_id}. This may happen when a revoked certificate "
            "is requested to be renewed"
        )


class CertificateMismatchError(CloudError):
    """Raised when a retrieved leaf certificate does not match the request's CSR key."""


class ImportInconsistencyError(CloudError):
    """Raised when an imported certificate cannot be found exactly once afterwards."""

    def __init__(self, fingerprint: str, matches: int) -> None:
        super().__init__("Certificate was imported but could not be found on the platform")
        self.fingerprint = fingerprint
        self.matches = matches

    def __str__(self) -> str:
        return f"{self.message} (fingerprint {self.fingerprint}, {self.matches} matches)"


class CloudAPIError(CloudError):
    """Raised when the service answers with an unexpected status code.

    Attributes:
        status_code: HTTP status code.
        status_text: HTTP reason phrase.
        errors: Decoded ``{code, message}`` records, empty if the body had none.
        body: Raw response body.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        status_text: str | None = None,
        errors: list[ResponseError] | None = None,
        body: bytes | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.status_code = status_code
        self.status_text = status_text
        self.errors = errors or []
        self.body = body

    def __str__(self) -> str:
        text = self.message
        if self.status_code is not None:
            text += f". Status: {self.status_code}"
        for error in self.errors:
            text += f"\nError Code: {error.code} Error: {error.message}"
        if self.details:
            text += f"\n{self.details}"
        return text


class CloudBadDataError(CloudAPIError):
    """Raised when the service rejects submitted data (400, 403, 409)."""


class CloudUnavailableError(CloudAPIError):
    """Raised when the service is temporarily unavailable (5xx or transport failure)."""
