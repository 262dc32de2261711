"""Certificate lifecycle manager.

Composes identity resolution, issuance polling and chain assembly into the
public operations: authenticate, request, retrieve, renew, import and list.
Every operation is a blocking sequence of service calls; the only wait is
the fixed poll interval while a request is in flight, plus the short
settle delay after an import.
"""

from __future__ import annotations

import base64
import socket
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from pydantic import SecretStr

from cert_lifecycle_manager.core.certificate import (
    CertificateFilter,
    CertificateInfo,
    ChainOption,
    CsrOrigin,
    ImportResponse,
    origin_from,
)
from cert_lifecycle_manager.core.zone import Zone
from cert_lifecycle_manager.integrations.cloud import endpoints
from cert_lifecycle_manager.integrations.cloud.client import CloudClient
from cert_lifecycle_manager.integrations.cloud.decoder import (
    decode_model,
    parse_response_errors,
)
from cert_lifecycle_manager.integrations.cloud.exceptions import (
    CertificatePendingError,
    CloudAPIError,
    CloudAuthError,
    CloudBadDataError,
    CloudConnectionError,
    CloudDecodeError,
    CloudNotFoundError,
    CloudUnavailableError,
    CloudValidationError,
    ImportInconsistencyError,
)
from cert_lifecycle_manager.integrations.cloud.models import (
    ApiClientInformation,
    CertificateUsageMetadata,
    CreateCertificateRequest,
    Expression,
    ImportCertificateInfo,
    ImportCertificatesRequest,
    ImportCertificatesResponse,
    IssuanceStatus,
    LogicalOperator,
    Operand,
    Paging,
    SearchOperator,
    SearchRequest,
    Session,
)
from cert_lifecycle_manager.logging import get_logger
from cert_lifecycle_manager.services.cloud.chain import (
    assemble_chain,
    chain_order_for,
    verify_leaf,
)
from cert_lifecycle_manager.services.cloud.poller import IssuancePoller, PollPolicy
from cert_lifecycle_manager.services.cloud.resolver import IdentityResolver

if TYPE_CHECKING:
    from cert_lifecycle_manager.core.certificate import (
        CertificateRequest,
        CustomField,
        ImportRequest,
        Location,
        PEMCollection,
        RenewalRequest,
    )
    from cert_lifecycle_manager.integrations.cloud.config import CloudConfig
    from cert_lifecycle_manager.integrations.cloud.decoder import RawResponse
    from cert_lifecycle_manager.integrations.cloud.models import CertificateTemplate

logger = get_logger(__name__)

# Listing limit when the caller sets none
UNBOUNDED_LIMIT = 100_000_000


def local_ip() -> str:
    """Best-effort address of this host, reported as the client identifier."""
    try:
        return socket.gethostbyname(socket.gethostname())
    except OSError:
        return "127.0.0.1"


def _usage_metadata(location: Location | None) -> list[CertificateUsageMetadata] | None:
    if location is None:
        return None
    return [
        CertificateUsageMetadata(
            app_name=location.workload or endpoints.DEFAULT_APP_NAME,
            node_name=location.instance,
        )
    ]


class CloudCertificateManager:
    """Orchestrates the certificate lifecycle against the certificate service.

    Args:
        client: Certificate service client.
        zone: Default zone (``Application\\TemplateAlias``) for requests,
            imports and listings that do not name one.
        poll_policy: Interval between issuance status reads.
        import_settle_delay: Seconds to wait after an import before looking
            the certificate up again.
        sleep: Function used for every wait.
        client_identifier: Identifier reported in apiClientInformation;
            defaults to the local IP address.

    Example:
        ```python
        config = CloudConfig.load()
        manager = CloudCertificateManager.from_config(config)
        session = manager.authenticate(config.api_key)
        pickup_id = manager.request_certificate(session, request)
        pem = manager.retrieve_certificate(session, request)
        ```
    """

    def __init__(
        self,
        client: CloudClient,
        *,
        zone: str | None = None,
        poll_policy: PollPolicy | None = None,
        import_settle_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        client_identifier: str | None = None,
    ) -> None:
        self._client = client
        self._zone = zone
        self._import_settle_delay = import_settle_delay
        self._sleep = sleep
        self._client_identifier = client_identifier or local_ip()
        self.resolver = IdentityResolver(client)
        self.poller = IssuancePoller(client, poll_policy, sleep)

    @classmethod
    def from_config(cls, config: CloudConfig) -> CloudCertificateManager:
        """Build a manager and its client from configuration."""
        return cls(
            CloudClient(config),
            zone=config.zone,
            poll_policy=PollPolicy(interval=config.poll_interval),
            import_settle_delay=config.import_settle_delay,
        )

    def __enter__(self) -> CloudCertificateManager:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def close(self) -> None:
        """Close the underlying service client."""
        self._client.close()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_session(session: Session | None, action: str) -> Session:
        if session is None or session.user.company is None:
            raise CloudAuthError(f"Must be authenticated to {action}")
        return session

    def _zone_for(self, override: str | None) -> Zone:
        zone = override or self._zone
        if not zone:
            raise CloudValidationError("Empty zone")
        try:
            return Zone.parse(zone)
        except ValueError as e:
            raise CloudValidationError("Invalid zone", details=str(e)) from e

    def _resolve_zone(self, session: Session, zone: Zone) -> tuple[str, str | None]:
        """Resolve a zone to its application id and template id.

        An empty template alias resolves to None, leaving the choice to the
        service default.
        """
        app = self.resolver.resolve_application(session, zone.application_name)
        if not zone.template_alias:
            return app.application_id, None
        template_id = app.template_alias_map.get(zone.template_alias)
        if template_id is None:
            raise CloudNotFoundError(
                f"Issuing template alias '{zone.template_alias}' not found in "
                f"application '{zone.application_name}'",
                resource="issuing template",
                key=str(zone),
            )
        return app.application_id, template_id

    def _client_information(self, custom_fields: list[CustomField]) -> ApiClientInformation:
        return ApiClientInformation(
            type=origin_from(custom_fields, endpoints.SDK_NAME),
            identifier=self._client_identifier,
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def authenticate(self, api_key: SecretStr | str | None) -> Session:
        """Authenticate with an API key.

        Returns:
            Session to pass to every other operation.

        Raises:
            CloudValidationError: If no API key is given.
            CloudAuthError: If the key is rejected or has no company context.
        """
        if isinstance(api_key, str):
            api_key = SecretStr(api_key)
        if api_key is None or not api_key.get_secret_value():
            raise CloudValidationError("Failed to authenticate: missing credentials")

        user = self._client.get_user_details(api_key)
        if user.company is None:
            raise CloudAuthError("Authenticated account has no company context")

        logger.info(
            "Authenticated with certificate service",
            username=user.user.username if user.user else None,
            company_id=user.company.id,
        )
        return Session(api_key=api_key, user=user)

    def read_zone_configuration(
        self, session: Session, zone: str | None = None
    ) -> CertificateTemplate:
        """Read the issuing template behind a zone."""
        self._require_session(session, "read the zone configuration")
        parsed = self._zone_for(zone)
        if not parsed.template_alias:
            raise CloudValidationError(
                "Zone has no issuing template alias",
                details=str(parsed),
            )
        return self._client.get_issuing_template(
            session, parsed.application_name, parsed.template_alias
        )

    def request_certificate(self, session: Session, request: CertificateRequest) -> str:
        """Submit a certificate request.

        Records the assigned pickup id on ``request``.

        Returns:
            Pickup id of the new request.

        Raises:
            CloudValidationError: If the CSR is service-generated or missing.
            CloudAuthError: If not authenticated.
        """
        if request.csr_origin is CsrOrigin.SERVICE_GENERATED:
            raise CloudValidationError(
                "Service generated CSR is not supported by the certificate service"
            )
        self._require_session(session, "request a certificate")
        if not request.csr:
            raise CloudValidationError("A CSR is required to request a certificate")

        zone = self._zone_for(request.zone)
        application_id, template_id = self._resolve_zone(session, zone)

        body = CreateCertificateRequest(
            csr=request.csr,
            application_id=application_id,
            template_id=template_id,
            api_client_information=self._client_information(request.custom_fields),
            certificate_usage_metadata=_usage_metadata(request.location),
        )
        if request.validity_hours > 0:
            body.validity_period = f"PT{request.validity_hours}H"

        response = self._client.create_certificate_request(session, body)
        request_id = response.certificate_requests[0].id
        request.pickup_id = request_id
        logger.info(
            "Certificate request submitted",
            request_id=request_id,
            zone=str(zone),
        )
        return request_id

    def retrieve_certificate(self, session: Session, request: CertificateRequest) -> PEMCollection:
        """Retrieve an issued certificate.

        Resolution order: explicit certificate id, then pickup id (waiting
        up to ``request.timeout`` for issuance), then thumbprint (resolved
        to a pickup id first).

        Raises:
            CertificatePendingError: If the certificate is not issued or signed yet.
            RetrieveTimeoutError: If issuance did not finish within the timeout.
            CertificateMismatchError: If the leaf does not match the request's CSR.
        """
        self._require_session(session, "retrieve a certificate")

        if not request.pickup_id and not request.certificate_id and request.thumbprint:
            match = self.resolver.resolve_by_fingerprint(session, request.thumbprint)
            if not match.request_id:
                if match.certificate_id is None:
                    raise CloudDecodeError(
                        "Fingerprint match has neither a request id nor a certificate id",
                        details=request.thumbprint,
                    )
                return self._fetch_certificate(session, match.certificate_id)
            request.pickup_id = match.request_id

        if request.certificate_id:
            return self._fetch_certificate(session, request.certificate_id)

        if request.pickup_id:
            certificate_id = self.poller.await_issuance(session, request.pickup_id, request.timeout)
            if certificate_id is None:
                raise CloudDecodeError(
                    "Issuance finished without a certificate id",
                    details=request.pickup_id,
                )
            return self._fetch_chain(session, request, certificate_id)

        raise CloudValidationError(
            "Couldn't retrieve certificate because pickup id, certificate id "
            "and thumbprint are all empty"
        )

    def _fetch_certificate(self, session: Session, certificate_id: str) -> PEMCollection:
        """Fetch a single certificate by id; chain order does not apply."""
        response = self._client.get_certificate_contents(session, certificate_id)
        if response.status_code != 200:
            raise self._retrieve_error(response)
        return assemble_chain(response.body, ChainOption.IGNORE)

    def _fetch_chain(
        self, session: Session, request: CertificateRequest, certificate_id: str
    ) -> PEMCollection:
        response = self._client.get_certificate_contents(
            session, certificate_id, chain_order_for(request.chain_option)
        )
        if response.status_code == 409:
            # not signed by the CA yet
            logger.warning("Certificate not yet signed", request_id=request.pickup_id)
            raise CertificatePendingError(
                request.pickup_id or certificate_id, IssuanceStatus.ISSUED.value
            )
        if response.status_code != 200:
            raise self._retrieve_error(response)

        collection = assemble_chain(response.body, request.chain_option)
        verify_leaf(request, collection)
        logger.info(
            "Certificate retrieved",
            request_id=request.pickup_id,
            certificate_id=certificate_id,
            chain_length=len(collection),
        )
        return collection

    @staticmethod
    def _retrieve_error(response: RawResponse) -> CloudAPIError:
        return CloudAPIError(
            "Failed to retrieve certificate",
            status_code=response.status_code,
            status_text=response.status_text,
            errors=parse_response_errors(response.body),
            body=response.body,
            details=response.body.decode("utf-8", errors="replace") or None,
        )

    def renew_certificate(self, session: Session, renewal: RenewalRequest) -> str:
        """Submit a renewal for an existing certificate.

        Returns:
            Pickup id of the renewal request, also recorded on
            ``renewal.certificate_request``.

        Raises:
            CloudValidationError: If no fresh CSR is supplied, or the target
                is not given by exactly one of thumbprint and certificate DN.
            AmbiguousIdentityError: If the thumbprint matches several requests.
            LineageMismatchError: If the target is not the certificate's latest request.
        """
        self._require_session(session, "renew a certificate")
        new_request = renewal.certificate_request
        if new_request is None or not new_request.csr:
            raise CloudValidationError(
                "reuseCSR option is not currently available for the renew certificate "
                "operation. A new CSR must be provided in the request"
            )

        request_id = self.resolver.resolve_renewal_target(session, renewal)

        previous = self._client.get_certificate_status(session, request_id)
        certificate_id = previous.certificate_id
        empty_field = None
        if not certificate_id:
            empty_field = "certificateId"
        elif not previous.application_id:
            empty_field = "applicationId"
        elif not previous.template_id:
            empty_field = "templateId"
        if empty_field:
            raise CloudNotFoundError(
                f"Failed to submit renewal request for certificate: {empty_field} is empty, "
                f"certificate status is {previous.status.value}",
                resource=empty_field,
                key=request_id,
            )

        self.resolver.verify_renewal_lineage(
            session, certificate_id, request_id, fingerprint=renewal.thumbprint
        )

        body = CreateCertificateRequest(
            csr=new_request.csr,
            application_id=previous.application_id,
            template_id=previous.template_id,
            existing_certificate_id=certificate_id,
            certificate_usage_metadata=_usage_metadata(new_request.location),
            reuse_csr=False,
        )
        response = self._client.create_certificate_request(session, body)
        new_request_id = response.certificate_requests[0].id
        new_request.pickup_id = new_request_id
        logger.info(
            "Renewal request submitted",
            previous_request_id=request_id,
            certificate_id=certificate_id,
            request_id=new_request_id,
        )
        return new_request_id

    def import_certificate(self, session: Session, request: ImportRequest) -> ImportResponse:
        """Import a certificate issued outside the service.

        Raises:
            CloudDecodeError: If the certificate PEM cannot be parsed.
            CloudBadDataError: If the service rejects the certificate.
            CloudUnavailableError: If the service is temporarily unavailable.
            ImportInconsistencyError: If the imported certificate is not found
                exactly once afterwards.
        """
        self._require_session(session, "import a certificate")
        try:
            certificate = x509.load_pem_x509_certificate(request.certificate_data.encode("utf-8"))
        except ValueError as e:
            raise CloudDecodeError("Can't parse certificate", details=str(e)) from e

        application_id = request.application_id
        if not application_id:
            zone = self._zone_for(request.zone)
            application_id = self.resolver.resolve_application(
                session, zone.application_name
            ).application_id

        der = certificate.public_bytes(serialization.Encoding.DER)
        fingerprint = certificate.fingerprint(hashes.SHA1()).hex().upper()
        body = ImportCertificatesRequest(
            certificates=[
                ImportCertificateInfo(
                    certificate=base64.b64encode(der).decode("ascii"),
                    application_ids=[application_id],
                    api_client_information=self._client_information(request.custom_fields),
                )
            ]
        )

        try:
            response = self._client.import_certificates(session, body)
        except CloudConnectionError as e:
            raise CloudUnavailableError(
                "Certificate service temporarily unavailable",
                details=e.details,
            ) from e

        status = response.status_code
        error_fields = {
            "status_code": status,
            "status_text": response.status_text,
            "errors": parse_response_errors(response.body),
            "body": response.body,
        }
        if status in (400, 403, 409):
            raise CloudBadDataError("Certificate can't be imported", **error_fields)
        if 500 <= status < 600:
            raise CloudUnavailableError("Certificate service temporarily unavailable", **error_fields)
        if not response.is_success:
            raise CloudAPIError("Certificate service error", **error_fields)

        result = decode_model(ImportCertificatesResponse, response.body, "certificate import")
        if len(result.certificate_informations) != 1:
            raise CloudBadDataError(
                "Certificate was not imported for an unknown reason", **error_fields
            )

        # TODO: retry the lookup on a miss instead of a single fixed delay
        self._sleep(self._import_settle_delay)
        found = self.resolver.search_by_fingerprint(session, fingerprint)
        if len(found.certificates) != 1:
            raise ImportInconsistencyError(fingerprint, len(found.certificates))

        imported = found.certificates[0]
        logger.info(
            "Certificate imported",
            certificate_id=imported.id,
            fingerprint=fingerprint,
            application_id=application_id,
        )
        return ImportResponse(
            certificate_dn=imported.subject_cn[0] if imported.subject_cn else "",
            certificate_id=imported.id,
        )

    def list_certificates(
        self,
        session: Session,
        certificate_filter: CertificateFilter | None = None,
        zone: str | None = None,
    ) -> list[CertificateInfo]:
        """List the zone application's certificates.

        Pages of ``SEARCH_PAGE_SIZE`` are fetched until the data runs out or
        the filter's limit is reached; the last page is trimmed to the limit.
        """
        self._require_session(session, "list certificates")
        certificate_filter = certificate_filter or CertificateFilter()
        parsed = self._zone_for(zone)
        application_id = self.resolver.resolve_application(
            session, parsed.application_name
        ).application_id

        page_size = endpoints.SEARCH_PAGE_SIZE
        limit = (
            certificate_filter.limit if certificate_filter.limit is not None else UNBOUNDED_LIMIT
        )
        infos: list[CertificateInfo] = []
        page = 0
        while limit > 0:
            batch = self._certificates_page(
                session, application_id, page, page_size, certificate_filter.with_expired
            )
            if len(batch) > limit:
                batch = batch[:limit]
            infos.extend(batch)
            if len(batch) < page_size:
                break
            limit -= page_size
            page += 1

        logger.debug("Listed certificates", zone=str(parsed), count=len(infos), pages=page + 1)
        return infos

    def _certificates_page(
        self,
        session: Session,
        application_id: str,
        page: int,
        page_size: int,
        with_expired: bool,
    ) -> list[CertificateInfo]:
        operands = [
            Operand(field="appstackIds", operator=SearchOperator.MATCH, value=application_id)
        ]
        if not with_expired:
            operands.append(
                Operand(
                    field="validityEnd",
                    operator=SearchOperator.GTE,
                    value=datetime.now(UTC).isoformat(timespec="seconds"),
                )
            )
        search = SearchRequest(
            expression=Expression(operands=operands, operator=LogicalOperator.AND),
            paging=Paging(page_number=page, page_size=page_size),
        )
        result = self._client.search_certificates(session, search)
        return [c.to_certificate_info() for c in result.certificates]
