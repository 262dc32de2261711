"""Issuance polling.

A submitted certificate request moves through REQUESTED/PENDING to ISSUED
or FAILED on the service side. The poller only observes those transitions:
it re-reads the status at a fixed interval until a terminal state or the
caller's timeout, and never resubmits anything.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tenacity import RetryError, Retrying, retry_if_result, stop_after_delay, wait_fixed

from cert_lifecycle_manager.integrations.cloud.exceptions import (
    CertificatePendingError,
    CloudDecodeError,
    IssuanceFailedError,
    RetrieveTimeoutError,
)
from cert_lifecycle_manager.integrations.cloud.models import CertificateStatus, IssuanceStatus
from cert_lifecycle_manager.logging import get_logger

if TYPE_CHECKING:
    from cert_lifecycle_manager.integrations.cloud.client import CloudClient
    from cert_lifecycle_manager.integrations.cloud.models import Session

logger = get_logger(__name__)


@dataclass(frozen=True)
class PollPolicy:
    """Constant-interval retry policy for status reads."""

    interval: float = 2.0


def _in_flight(status: CertificateStatus) -> bool:
    return status.status.in_flight


class IssuancePoller:
    """Waits for a certificate request to be issued.

    Args:
        client: Certificate service client.
        policy: Interval between status reads.
        sleep: Function used to wait between reads.
    """

    def __init__(
        self,
        client: CloudClient,
        policy: PollPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._policy = policy or PollPolicy()
        self._sleep = sleep

    def _observe(self, session: Session, request_id: str, timeout: float) -> CertificateStatus:
        """Read the status once and act on terminal or no-wait outcomes."""
        status = self._client.get_certificate_status(session, request_id)
        if status.status is IssuanceStatus.FAILED:
            logger.error(
                "Certificate issuance failed",
                request_id=request_id,
                error=status.error_information,
            )
            raise IssuanceFailedError(request_id, status)
        if status.status.in_flight and timeout == 0:
            raise CertificatePendingError(request_id, status.status.value)
        return status

    def await_issuance(self, session: Session, request_id: str | None, timeout: float) -> str | None:
        """Wait until ``request_id`` is issued.

        Args:
            session: Authenticated session.
            request_id: Pickup id. When empty there is nothing to wait for.
            timeout: Seconds to keep polling; 0 reads the status once.

        Returns:
            Id of the issued certificate, or None if ``request_id`` was empty.

        Raises:
            CertificatePendingError: If still in flight and ``timeout`` is 0.
            RetrieveTimeoutError: If still in flight when ``timeout`` elapses.
            IssuanceFailedError: If the service reports FAILED.
        """
        if not request_id:
            return None

        retrying = Retrying(
            retry=retry_if_result(_in_flight),
            stop=stop_after_delay(timeout),
            wait=wait_fixed(self._policy.interval),
            sleep=self._sleep,
        )
        try:
            status = retrying(self._observe, session, request_id, timeout)
        except RetryError as e:
            logger.warning("Timed out waiting for issuance", request_id=request_id, timeout=timeout)
            raise RetrieveTimeoutError(request_id, timeout) from e

        if not status.certificate_id:
            raise CloudDecodeError(
                "Certificate request is ISSUED but lists no certificate",
                details=request_id,
            )
        logger.info(
            "Certificate issued",
            request_id=request_id,
            certificate_id=status.certificate_id,
        )
        return status.certificate_id
