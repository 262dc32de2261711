"""Certificate service wire models.

Wire strings (statuses, search operators, chain orders) are decoded once
into closed enums here; the rest of the package never compares raw strings.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from cert_lifecycle_manager.core.certificate import CertificateInfo
from cert_lifecycle_manager.integrations.cloud.exceptions import CloudAuthError


class IssuanceStatus(str, Enum):
    """Status of a certificate request as reported by the service."""

    REQUESTED = "REQUESTED"
    PENDING = "PENDING"
    ISSUED = "ISSUED"
    FAILED = "FAILED"

    @property
    def in_flight(self) -> bool:
        """True while the service is still working on the request."""
        return self in (IssuanceStatus.REQUESTED, IssuanceStatus.PENDING)


class ChainOrder(str, Enum):
    """Chain order parameter understood by the certificate contents endpoint."""

    ROOT_FIRST = "ROOT_FIRST"
    EE_FIRST = "EE_FIRST"


class SearchOperator(str, Enum):
    """Comparison operators for a search operand."""

    MATCH = "MATCH"
    EQ = "EQ"
    FIND = "FIND"
    GT = "GT"
    GTE = "GTE"
    LT = "LT"
    LTE = "LTE"
    IN = "IN"


class LogicalOperator(str, Enum):
    """Operators combining search operands."""

    AND = "AND"
    OR = "OR"


class CloudModel(BaseModel):
    """Base class for service models.

    Fields use snake_case names with camelCase aliases matching the wire format.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_payload(self) -> dict[str, Any]:
        """Serialize for a request body, dropping unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# ---------------------------------------------------------------------------
# Error payloads
# ---------------------------------------------------------------------------


class ResponseError(CloudModel):
    """One ``{code, message}`` entry of an error response."""

    code: int
    message: str = ""
    args: list[Any] | None = None


class ResponseErrors(CloudModel):
    """Error response body."""

    errors: list[ResponseError]


# ---------------------------------------------------------------------------
# Accounts and session
# ---------------------------------------------------------------------------


class UserAccount(CloudModel):
    """User record returned by the account lookup."""

    id: str
    username: str = ""
    company_id: str | None = Field(default=None, alias="companyId")


class Company(CloudModel):
    """Company owning the authenticated user."""

    id: str
    name: str = ""


class UserDetails(CloudModel):
    """Response of the user account lookup."""

    user: UserAccount | None = None
    company: Company | None = None


class Session(BaseModel):
    """Authenticated session.

    Returned by authentication and passed explicitly to every operation.
    """

    model_config = ConfigDict(frozen=True)

    api_key: SecretStr
    user: UserDetails

    @property
    def company_id(self) -> str:
        """Id of the company the session acts for."""
        if self.user.company is None:
            raise CloudAuthError("Session has no company context")
        return self.user.company.id


# ---------------------------------------------------------------------------
# Applications and templates
# ---------------------------------------------------------------------------


class ApplicationDetails(CloudModel):
    """Application record looked up by name."""

    application_id: str = Field(alias="id")
    name: str = ""
    template_alias_map: dict[str, str] = Field(
        default_factory=dict, alias="certificateIssuingTemplateAliasIdMap"
    )


class CertificateTemplate(CloudModel):
    """Issuing template, the policy behind a zone."""

    id: str
    company_id: str | None = Field(default=None, alias="companyId")
    name: str = ""
    certificate_authority: str | None = Field(default=None, alias="certificateAuthority")
    key_types: list[dict[str, Any]] = Field(default_factory=list, alias="keyTypes")
    subject_cn_regexes: list[str] = Field(default_factory=list, alias="subjectCNRegexes")
    san_regexes: list[str] = Field(default_factory=list, alias="sanRegexes")
    validity_period: str | None = Field(default=None, alias="validityPeriod")


# ---------------------------------------------------------------------------
# Certificate requests
# ---------------------------------------------------------------------------


class CertificateUsageMetadata(CloudModel):
    """Workload/node labels attached to a request."""

    app_name: str = Field(alias="appName")
    node_name: str | None = Field(default=None, alias="nodeName")


class ApiClientInformation(CloudModel):
    """Identifies the client submitting a request."""

    type: str
    identifier: str


class CreateCertificateRequest(CloudModel):
    """Body of a new or renewal certificate request."""

    csr: str | None = Field(default=None, alias="certificateSigningRequest")
    application_id: str = Field(alias="applicationId")
    template_id: str | None = Field(default=None, alias="certificateIssuingTemplateId")
    existing_certificate_id: str | None = Field(default=None, alias="existingCertificateId")
    api_client_information: ApiClientInformation | None = Field(
        default=None, alias="apiClientInformation"
    )
    certificate_usage_metadata: list[CertificateUsageMetadata] | None = Field(
        default=None, alias="certificateUsageMetadata"
    )
    reuse_csr: bool | None = Field(default=None, alias="reuseCSR")
    validity_period: str | None = Field(default=None, alias="validityPeriod")


class CertificateRequestRecord(CloudModel):
    """One created certificate request."""

    id: str
    status: str | None = None


class CertificateRequestsResponse(CloudModel):
    """Response of a create certificate request call."""

    certificate_requests: list[CertificateRequestRecord] = Field(
        alias="certificateRequests", min_length=1
    )


class CertificateStatus(CloudModel):
    """State of a certificate request."""

    id: str = ""
    status: IssuanceStatus
    application_id: str = Field(default="", alias="applicationId")
    template_id: str = Field(default="", alias="certificateIssuingTemplateId")
    certificate_ids: list[str] = Field(default_factory=list, alias="certificateIds")
    error_information: dict[str, Any] | None = Field(default=None, alias="errorInformation")

    @property
    def certificate_id(self) -> str:
        """First resulting certificate id, empty until issued."""
        return self.certificate_ids[0] if self.certificate_ids else ""


# ---------------------------------------------------------------------------
# Certificates and search
# ---------------------------------------------------------------------------


class ManagedCertificate(CloudModel):
    """Certificate record.

    ``certificate_request_id`` points at the request that most recently
    produced this certificate.
    """

    id: str
    company_id: str | None = Field(default=None, alias="companyId")
    certificate_request_id: str = Field(default="", alias="certificateRequestId")


class CertificateSummary(CloudModel):
    """One certificate in a search result."""

    id: str = ""
    certificate_request_id: str = Field(default="", alias="certificateRequestId")
    subject_cn: list[str] = Field(default_factory=list, alias="subjectCN")
    fingerprint: str = ""
    serial_number: str = Field(default="", alias="serialNumber")
    validity_start: datetime | None = Field(default=None, alias="validityStart")
    validity_end: datetime | None = Field(default=None, alias="validityEnd")
    subject_alternative_names_by_type: dict[str, list[str] | None] = Field(
        default_factory=dict, alias="subjectAlternativeNamesByType"
    )

    def to_certificate_info(self) -> CertificateInfo:
        """Convert to the caller-facing certificate summary."""
        return CertificateInfo(
            id=self.id,
            cn=self.subject_cn[0] if self.subject_cn else "",
            dns_names=list(self.subject_alternative_names_by_type.get("dNSName") or []),
            serial=self.serial_number,
            thumbprint=self.fingerprint,
            valid_from=self.validity_start,
            valid_to=self.validity_end,
        )


class CertificateSearchResponse(CloudModel):
    """Response of the certificate search endpoint."""

    count: int = 0
    certificates: list[CertificateSummary] = Field(default_factory=list)


class Operand(CloudModel):
    """Single search condition."""

    field: str
    operator: SearchOperator
    value: Any


class Expression(CloudModel):
    """Search conditions combined with one logical operator."""

    operands: list[Operand]
    operator: LogicalOperator | None = None


class Paging(CloudModel):
    """Search paging window."""

    page_number: int = Field(alias="pageNumber")
    page_size: int = Field(alias="pageSize")


class SearchRequest(CloudModel):
    """Body of a certificate search."""

    expression: Expression
    paging: Paging | None = None


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


class ImportCertificateInfo(CloudModel):
    """One certificate to import."""

    certificate: str
    application_ids: list[str] = Field(alias="applicationIds")
    api_client_information: ApiClientInformation = Field(alias="apiClientInformation")


class ImportCertificatesRequest(CloudModel):
    """Body of a certificate import."""

    certificates: list[ImportCertificateInfo]


class ImportCertificatesResponse(CloudModel):
    """Response of a certificate import."""

    certificate_informations: list[dict[str, Any]] = Field(
        default_factory=list, alias="certificateInformations"
    )
