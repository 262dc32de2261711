"""Caller-facing certificate lifecycle types.

These models describe what a caller asks for (a new certificate, a renewal,
an import, a listing) and what it gets back. They carry no transport detail.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from cryptography import x509
from pydantic import BaseModel, ConfigDict, Field


class CsrOrigin(str, Enum):
    """Where the CSR of a request comes from."""

    LOCAL_GENERATED = "local"
    SERVICE_GENERATED = "service"
    USER_PROVIDED = "provided"


class ChainOption(str, Enum):
    """Requested order of a returned certificate chain."""

    ROOT_LAST = "root-last"
    ROOT_FIRST = "root-first"
    IGNORE = "ignore"


class CustomFieldType(str, Enum):
    """Kind of a custom field."""

    PLAIN = "plain"
    ORIGIN = "origin"


class CustomField(BaseModel):
    """Caller metadata attached to a request.

    An ORIGIN field overrides the client type reported to the service.
    """

    name: str = ""
    value: str
    type: CustomFieldType = CustomFieldType.PLAIN


class Location(BaseModel):
    """Workload and node where the certificate will be installed."""

    instance: str = ""
    workload: str = ""


def origin_from(custom_fields: list[CustomField], default: str) -> str:
    """Return the value of the last ORIGIN custom field, or ``default``."""
    origin = default
    for field in custom_fields:
        if field.type is CustomFieldType.ORIGIN:
            origin = field.value
    return origin


class CertificateRequest(BaseModel):
    """A certificate request.

    Attributes:
        csr: PEM-encoded CSR generated by the caller.
        csr_origin: Where the CSR comes from; service-generated CSRs are rejected.
        zone: Zone override as ``Application\\TemplateAlias``.
        location: Optional workload/node labels.
        custom_fields: Caller metadata.
        validity_hours: Requested validity, 0 for the template default.
        chain_option: Requested chain order on retrieval.
        timeout: Seconds to wait for issuance on retrieval, 0 to not wait.
        pickup_id: Id of the submitted request, recorded on submission.
        certificate_id: Id of an issued certificate to retrieve directly.
        thumbprint: Fingerprint of an issued certificate to retrieve.
    """

    csr: str | None = None
    csr_origin: CsrOrigin = CsrOrigin.LOCAL_GENERATED
    zone: str | None = None
    location: Location | None = None
    custom_fields: list[CustomField] = Field(default_factory=list)
    validity_hours: int = 0
    chain_option: ChainOption = ChainOption.ROOT_LAST
    timeout: float = 0
    pickup_id: str | None = None
    certificate_id: str | None = None
    thumbprint: str | None = None

    def matches_certificate(self, certificate_pem: str) -> bool:
        """Check the certificate carries the public key of this request's CSR.

        Requests without a CSR (e.g. retrieval by thumbprint) match any certificate.

        Raises:
            ValueError: If the CSR or certificate cannot be parsed.
        """
        if not self.csr:
            return True
        csr_object = x509.load_pem_x509_csr(self.csr.encode("utf-8"))
        cert_object = x509.load_pem_x509_certificate(certificate_pem.encode("utf-8"))
        return csr_object.public_key() == cert_object.public_key()


class RenewalRequest(BaseModel):
    """Renewal of an existing certificate.

    Exactly one of ``certificate_dn`` (the id of the request that produced
    the certificate) and ``thumbprint`` identifies the target. The nested
    request must carry a fresh CSR.
    """

    certificate_dn: str | None = None
    thumbprint: str | None = None
    certificate_request: CertificateRequest | None = None


class ImportRequest(BaseModel):
    """Import of a certificate issued elsewhere.

    Attributes:
        certificate_data: PEM-encoded certificate.
        application_id: Destination application id.
        zone: Zone whose application is used when ``application_id`` is unset.
        custom_fields: Caller metadata.
    """

    certificate_data: str
    application_id: str | None = None
    zone: str | None = None
    custom_fields: list[CustomField] = Field(default_factory=list)


class ImportResponse(BaseModel):
    """Result of a successful import."""

    certificate_dn: str
    certificate_id: str


class CertificateFilter(BaseModel):
    """Listing filter. ``limit=None`` lists everything."""

    limit: int | None = Field(default=None, ge=0)
    with_expired: bool = False


class CertificateInfo(BaseModel):
    """Summary of a managed certificate."""

    id: str
    cn: str = ""
    dns_names: list[str] = Field(default_factory=list)
    serial: str = ""
    thumbprint: str = ""
    valid_from: datetime | None = None
    valid_to: datetime | None = None


class PEMCollection(BaseModel):
    """Leaf certificate followed by its chain, in the order the service returned them."""

    model_config = ConfigDict(frozen=True)

    certificate: str
    chain: list[str] = Field(default_factory=list)

    @property
    def blocks(self) -> list[str]:
        """All PEM blocks, leaf first."""
        return [self.certificate, *self.chain]

    def __len__(self) -> int:
        return 1 + len(self.chain)
