"""Certificate service HTTPS client."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from cert_lifecycle_manager.integrations.cloud import endpoints
from cert_lifecycle_manager.integrations.cloud.decoder import (
    RawResponse,
    decode,
    decode_application_details,
    decode_user_details,
)
from cert_lifecycle_manager.integrations.cloud.exceptions import CloudConnectionError
from cert_lifecycle_manager.integrations.cloud.models import (
    ApplicationDetails,
    CertificateRequestsResponse,
    CertificateSearchResponse,
    CertificateStatus,
    CertificateTemplate,
    ChainOrder,
    CloudModel,
    CreateCertificateRequest,
    ImportCertificatesRequest,
    ManagedCertificate,
    SearchRequest,
    UserDetails,
)
from cert_lifecycle_manager.logging import get_logger

if TYPE_CHECKING:
    from pydantic import SecretStr

    from cert_lifecycle_manager.integrations.cloud.config import CloudConfig
    from cert_lifecycle_manager.integrations.cloud.models import Session

logger = get_logger(__name__)


def _escape(segment: str) -> str:
    """Escape a value for use as a single URL path segment."""
    return quote(segment, safe="")


class CloudClient:
    """HTTPS client for the certificate service.

    Every call is attempted exactly once; the caller decides whether and
    when to try again. Authenticated calls take the session explicitly.

    Example:
        ```python
        from cert_lifecycle_manager.integrations.cloud import CloudClient, CloudConfig

        config = CloudConfig.load()
        with CloudClient(config) as client:
            user = client.get_user_details(config.api_key)
        ```
    """

    def __init__(self, config: CloudConfig) -> None:
        """Initialize the client.

        Args:
            config: Service configuration with base URL and timeouts.
        """
        self.config = config
        self._client = httpx.Client(
            base_url=config.base_url,
            timeout=httpx.Timeout(float(config.timeout)),
            verify=config.verify_ssl,
            headers={
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
        )
        logger.info("Certificate service client initialized", base_url=config.base_url)

    def __enter__(self) -> CloudClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def request(
        self,
        method: str,
        path: str,
        *,
        api_key: SecretStr | None = None,
        payload: CloudModel | dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> RawResponse:
        """Send one request.

        Args:
            method: HTTP method.
            path: Path relative to the base URL.
            api_key: API key for authenticated calls.
            payload: JSON body.
            params: Query parameters.

        Returns:
            Status code, reason phrase and raw body.

        Raises:
            CloudConnectionError: If no response was received.
        """
        headers: dict[str, str] = {}
        if api_key is not None:
            headers[endpoints.API_KEY_HEADER] = api_key.get_secret_value()
        body = payload.to_payload() if isinstance(payload, CloudModel) else payload

        logger.debug("Certificate service request", method=method, path=path)
        try:
            response = self._client.request(
                method, path, json=body, params=params, headers=headers
            )
        except httpx.TimeoutException as e:
            logger.error("Certificate service timeout", path=path, error=str(e))
            raise CloudConnectionError(
                "Request to certificate service timed out",
                details=str(e),
            ) from e
        except httpx.HTTPError as e:
            logger.error("Certificate service connection error", path=path, error=str(e))
            raise CloudConnectionError(
                "Failed to connect to certificate service",
                details=str(e),
            ) from e

        return RawResponse(
            status_code=response.status_code,
            status_text=response.reason_phrase,
            body=response.content,
        )

    def get_user_details(self, api_key: SecretStr) -> UserDetails:
        """Look up the account owning ``api_key``."""
        response = self.request("GET", endpoints.USER_ACCOUNTS, api_key=api_key)
        return decode_user_details(response)

    def create_certificate_request(
        self, session: Session, body: CreateCertificateRequest
    ) -> CertificateRequestsResponse:
        """Submit a new or renewal certificate request."""
        response = self.request(
            "POST", endpoints.CERTIFICATE_REQUESTS, api_key=session.api_key, payload=body
        )
        return decode(
            response,
            CertificateRequestsResponse,
            "certificate request",
            expected_status=201,
        )

    def get_certificate_status(self, session: Session, request_id: str) -> CertificateStatus:
        """Read the state of a certificate request."""
        path = endpoints.CERTIFICATE_REQUEST_BY_ID.format(request_id=_escape(request_id))
        response = self.request("GET", path, api_key=session.api_key)
        return decode(response, CertificateStatus, "certificate request status")

    def get_certificate(self, session: Session, certificate_id: str) -> ManagedCertificate:
        """Read a certificate record."""
        path = endpoints.CERTIFICATE_BY_ID.format(certificate_id=_escape(certificate_id))
        response = self.request("GET", path, api_key=session.api_key)
        return decode(response, ManagedCertificate, "certificate lookup")

    def search_certificates(
        self, session: Session, search: SearchRequest
    ) -> CertificateSearchResponse:
        """Run a structured certificate search."""
        response = self.request(
            "POST", endpoints.CERTIFICATE_SEARCH, api_key=session.api_key, payload=search
        )
        return decode(response, CertificateSearchResponse, "certificate search")

    def get_application_by_name(self, session: Session, app_name: str) -> ApplicationDetails:
        """Look up an application and its template aliases by name."""
        path = endpoints.APPLICATION_BY_NAME.format(app_name=_escape(app_name))
        response = self.request("GET", path, api_key=session.api_key)
        return decode_application_details(response, app_name)

    def get_issuing_template(
        self, session: Session, app_name: str, alias: str
    ) -> CertificateTemplate:
        """Read the issuing template behind an application/alias pair."""
        path = endpoints.ISSUING_TEMPLATE.format(
            app_name=_escape(app_name), alias=_escape(alias)
        )
        response = self.request("GET", path, api_key=session.api_key)
        return decode(response, CertificateTemplate, "issuing template lookup")

    def get_certificate_contents(
        self,
        session: Session,
        certificate_id: str,
        chain_order: ChainOrder | None = None,
    ) -> RawResponse:
        """Fetch certificate PEM content.

        Without ``chain_order`` only the certificate itself is requested.
        The raw response is returned so the caller can tell a not-yet-signed
        certificate (409) apart from other failures.
        """
        path = endpoints.CERTIFICATE_CONTENTS.format(certificate_id=_escape(certificate_id))
        params = None
        if chain_order is not None:
            params = {"chainOrder": chain_order.value, "format": "PEM"}
        return self.request("GET", path, api_key=session.api_key, params=params)

    def import_certificates(
        self, session: Session, body: ImportCertificatesRequest
    ) -> RawResponse:
        """Upload externally issued certificates.

        The raw response is returned so the caller can classify the status code.
        """
        return self.request(
            "POST", endpoints.CERTIFICATES, api_key=session.api_key, payload=body
        )
