"""Identity resolution.

Works out which certificate request, certificate, application and template
a follow-up call should target when the caller only knows a fingerprint,
a request id or a zone.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

from cert_lifecycle_manager.integrations.cloud.exceptions import (
    AmbiguousIdentityError,
    CloudNotFoundError,
    CloudValidationError,
    LineageMismatchError,
)
from cert_lifecycle_manager.integrations.cloud.models import (
    CertificateSearchResponse,
    Expression,
    Operand,
    SearchOperator,
    SearchRequest,
)
from cert_lifecycle_manager.logging import get_logger

if TYPE_CHECKING:
    from cert_lifecycle_manager.core.certificate import RenewalRequest
    from cert_lifecycle_manager.integrations.cloud.client import CloudClient
    from cert_lifecycle_manager.integrations.cloud.models import (
        ApplicationDetails,
        ManagedCertificate,
        Session,
    )

logger = get_logger(__name__)


def normalize_fingerprint(fingerprint: str) -> str:
    """Strip ``:`` and ``.`` separators and upper-case a fingerprint."""
    return fingerprint.replace(":", "").replace(".", "").upper()


class FingerprintMatch(NamedTuple):
    """Result of resolving a fingerprint."""

    request_id: str
    certificate_id: str | None


class IdentityResolver:
    """Resolves caller-supplied identifiers to service identifiers.

    Args:
        client: Certificate service client.
    """

    def __init__(self, client: CloudClient) -> None:
        self._client = client

    def search_by_fingerprint(
        self, session: Session, fingerprint: str
    ) -> CertificateSearchResponse:
        """Search certificates whose fingerprint exactly matches ``fingerprint``."""
        search = SearchRequest(
            expression=Expression(
                operands=[
                    Operand(
                        field="fingerprint",
                        operator=SearchOperator.MATCH,
                        value=normalize_fingerprint(fingerprint),
                    )
                ]
            )
        )
        return self._client.search_certificates(session, search)

    def resolve_by_fingerprint(self, session: Session, fingerprint: str) -> FingerprintMatch:
        """Resolve a fingerprint to the one certificate request that owns it.

        Args:
            session: Authenticated session.
            fingerprint: Fingerprint in any case, with or without separators.

        Returns:
            The owning request id and, when present, the certificate id.

        Raises:
            CloudNotFoundError: If no certificate matches.
            AmbiguousIdentityError: If matches disagree on the request id.
        """
        normalized = normalize_fingerprint(fingerprint)
        result = self.search_by_fingerprint(session, normalized)
        if not result.certificates:
            raise CloudNotFoundError(
                f"No certificate found using fingerprint {normalized}",
                resource="certificate",
                key=normalized,
            )

        distinct = list(
            dict.fromkeys(
                c.certificate_request_id
                for c in result.certificates
                if c.certificate_request_id
            )
        )
        if len(distinct) > 1:
            logger.warning(
                "Fingerprint matches several certificate requests",
                fingerprint=normalized,
                request_ids=distinct,
            )
            raise AmbiguousIdentityError(normalized, distinct)

        certificate_id = None
        for certificate in result.certificates:
            if certificate.id:
                certificate_id = certificate.id
        request_id = distinct[0] if distinct else ""
        if not request_id and not certificate_id:
            raise CloudNotFoundError(
                f"No certificate request found using fingerprint {normalized}",
                resource="certificate request",
                key=normalized,
            )

        logger.debug(
            "Resolved fingerprint",
            fingerprint=normalized,
            request_id=request_id,
            certificate_id=certificate_id,
        )
        return FingerprintMatch(request_id=request_id, certificate_id=certificate_id)

    def resolve_application(self, session: Session, app_name: str) -> ApplicationDetails:
        """Look up an application's id and its template alias map by name."""
        return self._client.get_application_by_name(session, app_name)

    def resolve_renewal_target(self, session: Session, renewal: RenewalRequest) -> str:
        """Determine the certificate request a renewal targets.

        A thumbprint is resolved through a fingerprint search; a certificate
        DN is the request id itself.

        Raises:
            CloudValidationError: Unless exactly one of thumbprint and DN is set.
        """
        if renewal.thumbprint and renewal.certificate_dn:
            raise CloudValidationError(
                "Failed to create renewal request",
                details="Specify either CertificateDN or Thumbprint, not both",
            )
        if renewal.thumbprint:
            match = self.resolve_by_fingerprint(session, renewal.thumbprint)
            if not match.request_id:
                raise CloudNotFoundError(
                    "No certificate request found using fingerprint "
                    f"{normalize_fingerprint(renewal.thumbprint)}",
                    resource="certificate request",
                    key=renewal.thumbprint,
                )
            return match.request_id
        if renewal.certificate_dn:
            return renewal.certificate_dn
        raise CloudValidationError(
            "Failed to create renewal request",
            details="CertificateDN or Thumbprint required",
        )

    def verify_renewal_lineage(
        self,
        session: Session,
        certificate_id: str,
        expected_request_id: str,
        fingerprint: str | None = None,
    ) -> ManagedCertificate:
        """Check that ``expected_request_id`` is the latest request of the certificate.

        Returns:
            The certificate record.

        Raises:
            LineageMismatchError: If the certificate was produced by another request since.
        """
        certificate = self._client.get_certificate(session, certificate_id)
        if certificate.certificate_request_id != expected_request_id:
            raise LineageMismatchError(
                request_id=expected_request_id,
                certificate_id=certificate_id,
                latest_request_id=certificate.certificate_request_id,
                fingerprint=fingerprint,
            )
        return certificate
