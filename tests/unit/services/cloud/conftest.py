"""Shared fixtures for certificate service tests."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import MagicMock

import pytest

from cert_lifecycle_manager.integrations.cloud.client import CloudClient
from cert_lifecycle_manager.integrations.cloud.decoder import RawResponse
from cert_lifecycle_manager.integrations.cloud.models import (
    CertificateSearchResponse,
    CertificateStatus,
    CertificateSummary,
)


@pytest.fixture
def mock_cloud_client() -> MagicMock:
    """Create a mock CloudClient."""
    return MagicMock(spec=CloudClient)


def make_status(status: str, **fields: Any) -> CertificateStatus:
    """Build a certificate request status from wire field names."""
    return CertificateStatus.model_validate({"status": status, **fields})


def make_search(*certificates: dict[str, Any]) -> CertificateSearchResponse:
    """Build a search response from wire-format certificate records."""
    return CertificateSearchResponse(
        count=len(certificates),
        certificates=[CertificateSummary.model_validate(c) for c in certificates],
    )


def make_raw(status_code: int, body: bytes | str | dict[str, Any] = b"") -> RawResponse:
    """Build a transport response."""
    if isinstance(body, dict):
        body = json.dumps(body)
    if isinstance(body, str):
        body = body.encode()
    return RawResponse(status_code=status_code, status_text="", body=body)


@pytest.fixture
def status_factory() -> Any:
    """Factory for certificate request statuses."""
    return make_status


@pytest.fixture
def search_factory() -> Any:
    """Factory for search responses."""
    return make_search


@pytest.fixture
def raw_factory() -> Any:
    """Factory for transport responses."""
    return make_raw
