"""Shared pytest fixtures for cert_lifecycle_manager tests."""

from __future__ import annotations

import datetime
import os
from collections.abc import Callable

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID
from pydantic import SecretStr

from cert_lifecycle_manager.integrations.cloud.models import (
    Company,
    Session,
    UserAccount,
    UserDetails,
)


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Clear CERTLM_ environment variables for each test."""
    for key in list(os.environ.keys()):
        if key.startswith("CERTLM_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def session() -> Session:
    """An authenticated session."""
    return Session(
        api_key=SecretStr("test-api-key"),
        user=UserDetails(
            user=UserAccount(id="user-1", username="automation@example.com", company_id="co-1"),
            company=Company(id="co-1", name="Example"),
        ),
    )


def _name(cn: str) -> x509.Name:
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])


def _build_cert(
    subject: str,
    key: ec.EllipticCurvePrivateKey,
    issuer: str,
    issuer_key: ec.EllipticCurvePrivateKey,
) -> str:
    now = datetime.datetime.now(datetime.UTC)
    cert = (
        x509.CertificateBuilder()
        .subject_name(_name(subject))
        .issuer_name(_name(issuer))
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=30))
        .sign(issuer_key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")


@pytest.fixture
def make_key() -> Callable[[], ec.EllipticCurvePrivateKey]:
    """Factory for fresh EC private keys."""
    return lambda: ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def leaf_key(make_key: Callable[[], ec.EllipticCurvePrivateKey]) -> ec.EllipticCurvePrivateKey:
    """Key of the leaf certificate."""
    return make_key()


@pytest.fixture
def csr_pem(leaf_key: ec.EllipticCurvePrivateKey) -> str:
    """CSR for the leaf key."""
    csr = (
        x509.CertificateSigningRequestBuilder()
        .subject_name(_name("svc.example.com"))
        .sign(leaf_key, hashes.SHA256())
    )
    return csr.public_bytes(serialization.Encoding.PEM).decode("ascii")


@pytest.fixture
def chain_pems(
    leaf_key: ec.EllipticCurvePrivateKey,
    make_key: Callable[[], ec.EllipticCurvePrivateKey],
) -> list[str]:
    """Leaf, intermediate and root certificates, leaf first."""
    root_key = make_key()
    intermediate_key = make_key()
    root = _build_cert("Example Root CA", root_key, "Example Root CA", root_key)
    intermediate = _build_cert("Example Issuing CA", intermediate_key, "Example Root CA", root_key)
    leaf = _build_cert("svc.example.com", leaf_key, "Example Issuing CA", intermediate_key)
    return [leaf, intermediate, root]


@pytest.fixture
def leaf_pem(chain_pems: list[str]) -> str:
    """Leaf certificate PEM."""
    return chain_pems[0]


@pytest.fixture
def other_cert_pem(make_key: Callable[[], ec.EllipticCurvePrivateKey]) -> str:
    """Self-signed certificate for an unrelated key."""
    key = make_key()
    return _build_cert("other.example.com", key, "other.example.com", key)
