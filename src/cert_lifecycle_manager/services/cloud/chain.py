"""Certificate chain assembly."""

from __future__ import annotations

from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.primitives import serialization

from cert_lifecycle_manager.core.certificate import ChainOption, PEMCollection
from cert_lifecycle_manager.integrations.cloud.exceptions import (
    CertificateMismatchError,
    CloudDecodeError,
)
from cert_lifecycle_manager.integrations.cloud.models import ChainOrder
from cert_lifecycle_manager.logging import get_logger

if TYPE_CHECKING:
    from cert_lifecycle_manager.core.certificate import CertificateRequest

logger = get_logger(__name__)


def chain_order_for(option: ChainOption) -> ChainOrder:
    """Map a caller chain option to the service's chainOrder parameter."""
    if option is ChainOption.ROOT_FIRST:
        return ChainOrder.ROOT_FIRST
    return ChainOrder.EE_FIRST


def assemble_chain(raw: bytes, order: ChainOption) -> PEMCollection:
    """Split a multi-PEM body into a leaf and its chain.

    The service already emits the blocks in the requested ``order``; the
    blocks are kept in received order and the first one is the leaf.

    Raises:
        CloudDecodeError: If the body holds no parseable certificate.
    """
    try:
        certificates = x509.load_pem_x509_certificates(raw)
    except ValueError as e:
        raise CloudDecodeError("Failed to parse certificate PEM data", details=str(e)) from e

    blocks = [
        cert.public_bytes(serialization.Encoding.PEM).decode("ascii") for cert in certificates
    ]
    logger.debug("Assembled certificate chain", blocks=len(blocks), order=order.value)
    return PEMCollection(certificate=blocks[0], chain=blocks[1:])


def verify_leaf(request: CertificateRequest, collection: PEMCollection) -> None:
    """Check the leaf was issued for the request's CSR key.

    Raises:
        CertificateMismatchError: If the public keys differ.
        CloudDecodeError: If the CSR cannot be parsed.
    """
    try:
        matches = request.matches_certificate(collection.certificate)
    except ValueError as e:
        raise CloudDecodeError("Failed to parse certificate signing request", details=str(e)) from e
    if not matches:
        raise CertificateMismatchError(
            "Retrieved certificate does not match the request's public key",
            details=request.pickup_id,
        )
