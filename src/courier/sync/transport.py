"""Async HTTP transport delivering queued messages to the server."""

import json
import time
from dataclasses import asdict
from typing import Any

import httpx

from courier import __version__
from courier.sync.coordinator import SendResult
from courier.sync.queue import QueuedMessage


class HttpMessageSender:
    """Single-attempt HTTP sender and connectivity probe.

    Uses httpx.AsyncClient for connection pooling. It does not retry on its
    own: a failed send is reported back to the engine, which applies the
    retry policy on the next sync cycle.
    """

    def __init__(
        self,
        server_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the sender.

        Args:
            server_url: Base URL of the message server (e.g., http://localhost:3000)
            timeout: Request timeout in seconds
            transport: Optional httpx transport, used to stub the network
        """
        self.server_url = server_url.rstrip("/")
        self.timeout = timeout

        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={
                "User-Agent": f"courier-agent/{__version__}",
            },
            transport=transport,
        )

    def _body(self, message: QueuedMessage) -> dict[str, Any]:
        body = asdict(message)
        body["priority"] = message.priority.value
        body["status"] = message.status.value
        body["offline_sync"] = True
        body["sync_timestamp"] = int(time.time() * 1000)
        return body

    async def send(self, message: QueuedMessage) -> SendResult:
        """Deliver one message.

        Args:
            message: Message to POST to /api/messages

        Returns:
            SendResult with success status or the error text
        """
        try:
            response = await self._client.post(
                f"{self.server_url}/api/messages",
                content=json.dumps(self._body(message)),
                headers={"Content-Type": "application/json"},
            )
        except httpx.ConnectError as e:
            return SendResult(success=False, error=f"Connection error: {e}")
        except httpx.TimeoutException as e:
            return SendResult(success=False, error=f"Timeout: {e}")
        except httpx.HTTPError as e:
            return SendResult(success=False, error=f"HTTP error: {e}")

        if response.is_success:
            return SendResult(success=True)

        if 400 <= response.status_code < 500:
            return SendResult(
                success=False,
                error=f"Client error: {response.status_code} - {response.text}",
            )
        return SendResult(
            success=False,
            error=f"Server error: {response.status_code} - {response.text}",
        )

    async def probe(self) -> bool:
        """Check if the server is reachable.

        Any HTTP response counts as reachable; only a transport failure
        means the server is offline.

        Returns:
            True if the server answered, False otherwise
        """
        try:
            await self._client.head(
                f"{self.server_url}/health",
                timeout=httpx.Timeout(min(self.timeout, 5.0)),
            )
            return True
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> "HttpMessageSender":
        """Enter async context manager."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        """Exit async context manager."""
        await self.close()
