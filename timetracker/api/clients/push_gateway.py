"""
Outline
send()
send_all()
"""

from collections.abc import Sequence
from typing import Optional

import httpx

from timetracker.core.config import settings
from timetracker.core.logging import get_logger
from timetracker.models.notification import DeliveryResult, PushMessage

logger = get_logger(__name__)

# Ceiling imposed by the push platform on one batch call
MAX_BATCH_SIZE = 500


class PushGatewayClient:
    """
    Client for the push notification gateway.
    Submits messages in batches and reports a per-message delivery outcome.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        batch_size: int = MAX_BATCH_SIZE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the push gateway client.

        Args:
            base_url: Base URL of the push gateway
            api_key: Bearer key for the gateway, empty for none
            timeout: Request timeout in seconds
            batch_size: Messages per batch call, capped at MAX_BATCH_SIZE
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.batch_size = max(1, min(batch_size, MAX_BATCH_SIZE))
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        return httpx.AsyncClient(
            timeout=self.timeout, headers=headers, transport=self._transport
        )

    async def send(self, message: PushMessage) -> DeliveryResult:
        """
        Deliver a single message.
        """
        results = await self.send_all([message])
        return results[0]

    async def send_all(self, messages: Sequence[PushMessage]) -> list[DeliveryResult]:
        """
        Deliver messages in chunks of ``batch_size``.

        A failed batch call marks every message of that chunk as undelivered;
        later chunks are still attempted.

        Returns:
            One DeliveryResult per message, in input order
        """
        results: list[DeliveryResult] = []
        async with self._client() as client:
            for start in range(0, len(messages), self.batch_size):
                chunk = list(messages[start : start + self.batch_size])
                results.extend(await self._send_chunk(client, chunk))

        failures = sum(1 for r in results if not r.delivered)
        logger.info(
            f"Push batch complete: {len(results) - failures} delivered, {failures} failed"
        )
        return results

    async def _send_chunk(
        self, client: httpx.AsyncClient, chunk: list[PushMessage]
    ) -> list[DeliveryResult]:
        try:
            response = await client.post(
                f"{self.base_url}/v1/messages:batchSend",
                json={"messages": [m.to_wire() for m in chunk]},
            )
        except httpx.RequestError as e:
            logger.error(f"Error submitting push batch of {len(chunk)}: {str(e)}")
            return [DeliveryResult(delivered=False, error=str(e)) for _ in chunk]

        if response.status_code != 200:
            logger.warning(
                f"Push batch rejected (status: {response.status_code})"
            )
            error = f"gateway status {response.status_code}"
            return [DeliveryResult(delivered=False, error=error) for _ in chunk]

        responses = response.json().get("responses", [])
        results = []
        for index, message in enumerate(chunk):
            if index >= len(responses):
                results.append(
                    DeliveryResult(delivered=False, error="missing gateway response")
                )
                continue
            item = responses[index]
            if item.get("success"):
                results.append(
                    DeliveryResult(delivered=True, message_id=item.get("messageId"))
                )
            else:
                error = str(item.get("error") or "unknown error")
                logger.error(f"Failed to send to token {message.token}: {error}")
                results.append(DeliveryResult(delivered=False, error=error))
        return results


def build_push_client() -> PushGatewayClient:
    return PushGatewayClient(
        base_url=settings.PUSH_GATEWAY_URL,
        api_key=settings.PUSH_GATEWAY_API_KEY,
        timeout=settings.PUSH_GATEWAY_TIMEOUT,
        batch_size=settings.PUSH_BATCH_SIZE,
    )
