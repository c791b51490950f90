"""Anchoring backends that accept a batch digest and return a transaction id."""

from __future__ import annotations

import asyncio
import logging
import secrets
from typing import Optional, Protocol

import httpx

from services.errors import AnchorUnavailable
from settings import Settings

logger = logging.getLogger(__name__)


class Anchor(Protocol):
    async def submit(self, digest: str) -> str:
        ...


class SimulatedAnchor:
    """Stand-in ledger that answers with a random transaction id after a delay.

    Set ``fail_with`` to make every submission raise, which lets callers rehearse
    the unavailable path without a real ledger.
    """

    def __init__(self, delay: float = 2.0, fail_with: Optional[str] = None) -> None:
        self.delay = delay
        self.fail_with = fail_with
        self.submitted: list[str] = []

    async def submit(self, digest: str) -> str:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise AnchorUnavailable(self.fail_with)
        self.submitted.append(digest)
        return "0x" + secrets.token_hex(32)


class HttpAnchor:
    """Posts digests to an HTTP anchoring endpoint.

    The endpoint receives ``{"digest": "0x..."}`` and must answer with a 2xx
    JSON body containing a string ``transaction_id``.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def submit(self, digest: str) -> str:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json={"digest": digest})
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise AnchorUnavailable(
                f"Anchor rejected digest with status {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            raise AnchorUnavailable(f"Anchor request failed: {exc}") from exc
        except ValueError as exc:
            raise AnchorUnavailable("Anchor returned a non-JSON response.") from exc

        transaction_id = payload.get("transaction_id") if isinstance(payload, dict) else None
        if not isinstance(transaction_id, str) or not transaction_id:
            raise AnchorUnavailable("Anchor response is missing transaction_id.")
        return transaction_id


def build_anchor(settings: Settings) -> Anchor:
    if settings.anchor_mode == "http":
        if not settings.anchor_url:
            raise ValueError("ANCHOR_URL must be set when ANCHOR_MODE is 'http'.")
        logger.info("Using HTTP anchor at %s", settings.anchor_url)
        return HttpAnchor(settings.anchor_url, timeout=settings.anchor_timeout)
    logger.info("Using simulated anchor with %.1fs delay", settings.anchor_simulated_delay)
    return SimulatedAnchor(delay=settings.anchor_simulated_delay)
