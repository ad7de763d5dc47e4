"""
HTTP delivery of joined batches to the collection endpoint.

One call to send() is one POST. Only a 2xx response counts as delivered;
non-2xx statuses and transport errors (refused connection, timeout, DNS)
are both reported as Failed. Retrying is the publisher's job.
"""

import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
CONTENT_TYPE = "application/x-ndjson"


@dataclass(frozen=True)
class Delivered:
    """The endpoint accepted the batch."""

    status_code: int

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failed:
    """The batch was not accepted; reason is human readable."""

    reason: str
    status_code: int | None = None

    @property
    def ok(self) -> bool:
        return False


DeliveryOutcome = Delivered | Failed


class HttpDeliveryClient:
    """
    POSTs batch payloads to a single endpoint.

    An httpx.Client may be supplied for transport customisation; otherwise
    one is created with the given timeout and closed by close().
    """

    def __init__(
        self,
        endpoint: str,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        headers: dict[str, str] | None = None,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self.headers = {"Content-Type": CONTENT_TYPE, **(headers or {})}
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def send(self, payload: bytes) -> DeliveryOutcome:
        """POST the payload once and classify the result."""
        try:
            response = self._client.post(
                self.endpoint,
                content=payload,
                headers=self.headers,
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            reason = str(e) or type(e).__name__
            logger.debug(f"POST to {self.endpoint} failed: {reason}")
            return Failed(reason=reason)

        if response.is_success:
            return Delivered(status_code=response.status_code)

        return Failed(
            reason=f"HTTP {response.status_code}: {response.reason_phrase}",
            status_code=response.status_code,
        )

    def close(self):
        """Close the underlying client if this object created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
