"""Unit tests for chain assembly."""

from __future__ import annotations

import pytest

from cert_lifecycle_manager.core.certificate import CertificateRequest, ChainOption, PEMCollection
from cert_lifecycle_manager.integrations.cloud.exceptions import (
    CertificateMismatchError,
    CloudDecodeError,
)
from cert_lifecycle_manager.integrations.cloud.models import ChainOrder
from cert_lifecycle_manager.services.cloud.chain import (
    assemble_chain,
    chain_order_for,
    verify_leaf,
)


@pytest.mark.unit
class TestChainOrderFor:
    """Tests for chain_order_for."""

    @pytest.mark.parametrize(
        ("option", "expected"),
        [
            (ChainOption.ROOT_FIRST, ChainOrder.ROOT_FIRST),
            (ChainOption.ROOT_LAST, ChainOrder.EE_FIRST),
            (ChainOption.IGNORE, ChainOrder.EE_FIRST),
        ],
    )
    def test_mapping(self, option: ChainOption, expected: ChainOrder) -> None:
        """Only ROOT_FIRST asks the service for root-first order."""
        assert chain_order_for(option) is expected


@pytest.mark.unit
class TestAssembleChain:
    """Tests for assemble_chain."""

    def test_leaf_first(self, chain_pems: list[str]) -> None:
        """The first block is the leaf and the rest is the chain."""
        collection = assemble_chain("".join(chain_pems).encode(), ChainOption.ROOT_LAST)

        assert collection.certificate == chain_pems[0]
        assert collection.chain == chain_pems[1:]
        assert len(collection) == 3

    def test_received_order_kept(self, chain_pems: list[str]) -> None:
        """Blocks are not reordered locally."""
        body = "".join(reversed(chain_pems)).encode()

        collection = assemble_chain(body, ChainOption.ROOT_FIRST)

        assert collection.blocks == list(reversed(chain_pems))

    def test_single_certificate(self, leaf_pem: str) -> None:
        """A lone certificate has an empty chain."""
        collection = assemble_chain(leaf_pem.encode(), ChainOption.IGNORE)

        assert collection.certificate == leaf_pem
        assert collection.chain == []

    @pytest.mark.parametrize("body", [b"", b"garbage"])
    def test_unparseable_body(self, body: bytes) -> None:
        """A body without certificates is a decode error."""
        with pytest.raises(CloudDecodeError):
            assemble_chain(body, ChainOption.ROOT_LAST)


@pytest.mark.unit
class TestVerifyLeaf:
    """Tests for verify_leaf."""

    def test_matching_leaf(self, csr_pem: str, leaf_pem: str) -> None:
        """A leaf for the CSR key passes."""
        verify_leaf(CertificateRequest(csr=csr_pem), PEMCollection(certificate=leaf_pem))

    def test_mismatched_leaf(self, csr_pem: str, other_cert_pem: str) -> None:
        """A leaf for another key is rejected."""
        request = CertificateRequest(csr=csr_pem, pickup_id="req-1")

        with pytest.raises(CertificateMismatchError) as exc_info:
            verify_leaf(request, PEMCollection(certificate=other_cert_pem))

        assert exc_info.value.details == "req-1"

    def test_unparseable_csr(self, leaf_pem: str) -> None:
        """A broken CSR is a decode error."""
        with pytest.raises(CloudDecodeError):
            verify_leaf(CertificateRequest(csr="not a csr"), PEMCollection(certificate=leaf_pem))
