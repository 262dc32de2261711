"""Unit tests for identity resolution."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from cert_lifecycle_manager.core.certificate import RenewalRequest
from cert_lifecycle_manager.integrations.cloud.exceptions import (
    AmbiguousIdentityError,
    CloudNotFoundError,
    CloudValidationError,
    LineageMismatchError,
)
from cert_lifecycle_manager.integrations.cloud.models import ManagedCertificate, Session
from cert_lifecycle_manager.services.cloud.resolver import (
    FingerprintMatch,
    IdentityResolver,
    normalize_fingerprint,
)


@pytest.fixture
def resolver(mock_cloud_client: MagicMock) -> IdentityResolver:
    """Resolver on a mock client."""
    return IdentityResolver(mock_cloud_client)


class TestNormalizeFingerprint:
    """Tests for normalize_fingerprint."""

    @pytest.mark.unit
    def test_strips_separators_and_uppercases(self) -> None:
        """Colons and dots are removed and hex is upper-cased."""
        assert normalize_fingerprint("ab:cd.ef:01") == "ABCDEF01"


class TestResolveByFingerprint:
    """Tests for IdentityResolver.resolve_by_fingerprint."""

    @pytest.mark.unit
    def test_searches_normalized_fingerprint(
        self,
        resolver: IdentityResolver,
        mock_cloud_client: MagicMock,
        session: Session,
        search_factory: Any,
    ) -> None:
        """The search uses the normalized fingerprint as a MATCH operand."""
        mock_cloud_client.search_certificates.return_value = search_factory(
            {"id": "cert-1", "certificateRequestId": "req-1"}
        )

        resolver.resolve_by_fingerprint(session, "ab:cd")

        search = mock_cloud_client.search_certificates.call_args.args[1]
        operand = search.expression.operands[0]
        assert operand.field == "fingerprint"
        assert operand.operator.value == "MATCH"
        assert operand.value == "ABCD"

    @pytest.mark.unit
    def test_no_match_raises_not_found(
        self,
        resolver: IdentityResolver,
        mock_cloud_client: MagicMock,
        session: Session,
        search_factory: Any,
    ) -> None:
        """An empty search result is a not-found error."""
        mock_cloud_client.search_certificates.return_value = search_factory()

        with pytest.raises(CloudNotFoundError) as exc_info:
            resolver.resolve_by_fingerprint(session, "AB")

        assert exc_info.value.key == "AB"

    @pytest.mark.unit
    def test_single_request_id(
        self,
        resolver: IdentityResolver,
        mock_cloud_client: MagicMock,
        session: Session,
        search_factory: Any,
    ) -> None:
        """Records sharing one request id resolve to it."""
        mock_cloud_client.search_certificates.return_value = search_factory(
            {"id": "cert-1", "certificateRequestId": "req-1"},
            {"id": "cert-2", "certificateRequestId": "req-1"},
        )

        match = resolver.resolve_by_fingerprint(session, "AB")

        assert match == FingerprintMatch(request_id="req-1", certificate_id="cert-2")

    @pytest.mark.unit
    def test_distinct_request_ids_are_ambiguous(
        self,
        resolver: IdentityResolver,
        mock_cloud_client: MagicMock,
        session: Session,
        search_factory: Any,
    ) -> None:
        """Different request ids for one fingerprint are rejected, listing every id."""
        mock_cloud_client.search_certificates.return_value = search_factory(
            {"id": "cert-1", "certificateRequestId": "req-1"},
            {"id": "cert-2", "certificateRequestId": "req-2"},
            {"id": "cert-3", "certificateRequestId": "req-1"},
        )

        with pytest.raises(AmbiguousIdentityError) as exc_info:
            resolver.resolve_by_fingerprint(session, "ab")

        assert exc_info.value.fingerprint == "AB"
        assert exc_info.value.request_ids == ["req-1", "req-2"]

    @pytest.mark.unit
    def test_certificate_without_request(
        self,
        resolver: IdentityResolver,
        mock_cloud_client: MagicMock,
        session: Session,
        search_factory: Any,
    ) -> None:
        """A match with only a certificate id resolves to that certificate."""
        mock_cloud_client.search_certificates.return_value = search_factory({"id": "cert-1"})

        match = resolver.resolve_by_fingerprint(session, "AB")

        assert match == FingerprintMatch(request_id="", certificate_id="cert-1")


class TestResolveRenewalTarget:
    """Tests for IdentityResolver.resolve_renewal_target."""

    @pytest.mark.unit
    def test_both_identifiers_rejected(
        self, resolver: IdentityResolver, mock_cloud_client: MagicMock, session: Session
    ) -> None:
        """Thumbprint and DN together are contradictory."""
        with pytest.raises(CloudValidationError):
            resolver.resolve_renewal_target(
                session, RenewalRequest(certificate_dn="req-1", thumbprint="AB")
            )
        mock_cloud_client.search_certificates.assert_not_called()

    @pytest.mark.unit
    def test_neither_identifier_rejected(
        self, resolver: IdentityResolver, session: Session
    ) -> None:
        """One identifier is required."""
        with pytest.raises(CloudValidationError) as exc_info:
            resolver.resolve_renewal_target(session, RenewalRequest())

        assert "CertificateDN or Thumbprint required" in str(exc_info.value)

    @pytest.mark.unit
    def test_dn_is_the_request_id(
        self, resolver: IdentityResolver, mock_cloud_client: MagicMock, session: Session
    ) -> None:
        """A certificate DN needs no lookup."""
        assert resolver.resolve_renewal_target(session, RenewalRequest(certificate_dn="req-9")) == (
            "req-9"
        )
        mock_cloud_client.search_certificates.assert_not_called()

    @pytest.mark.unit
    def test_thumbprint_resolves_request(
        self,
        resolver: IdentityResolver,
        mock_cloud_client: MagicMock,
        session: Session,
        search_factory: Any,
    ) -> None:
        """A thumbprint resolves to the owning request id."""
        mock_cloud_client.search_certificates.return_value = search_factory(
            {"id": "cert-1", "certificateRequestId": "req-1"}
        )

        assert resolver.resolve_renewal_target(session, RenewalRequest(thumbprint="AB")) == "req-1"

    @pytest.mark.unit
    def test_thumbprint_without_request_not_found(
        self,
        resolver: IdentityResolver,
        mock_cloud_client: MagicMock,
        session: Session,
        search_factory: Any,
    ) -> None:
        """A thumbprint with no owning request cannot be renewed."""
        mock_cloud_client.search_certificates.return_value = search_factory({"id": "cert-1"})

        with pytest.raises(CloudNotFoundError):
            resolver.resolve_renewal_target(session, RenewalRequest(thumbprint="AB"))


class TestVerifyRenewalLineage:
    """Tests for IdentityResolver.verify_renewal_lineage."""

    @pytest.mark.unit
    def test_latest_request_passes(
        self, resolver: IdentityResolver, mock_cloud_client: MagicMock, session: Session
    ) -> None:
        """The certificate record is returned when lineage matches."""
        record = ManagedCertificate(id="cert-1", certificate_request_id="req-1")
        mock_cloud_client.get_certificate.return_value = record

        assert resolver.verify_renewal_lineage(session, "cert-1", "req-1") is record

    @pytest.mark.unit
    def test_stale_request_rejected(
        self, resolver: IdentityResolver, mock_cloud_client: MagicMock, session: Session
    ) -> None:
        """A newer request on the certificate fails the check."""
        mock_cloud_client.get_certificate.return_value = ManagedCertificate(
            id="cert-1", certificate_request_id="req-2"
        )

        with pytest.raises(LineageMismatchError) as exc_info:
            resolver.verify_renewal_lineage(session, "cert-1", "req-1", fingerprint="AB")

        assert exc_info.value.latest_request_id == "req-2"
        assert exc_info.value.fingerprint == "AB"
