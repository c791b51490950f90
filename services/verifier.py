"""Batch verification: fetch, canonicalize, digest, anchor."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, Optional, Sequence

from models.records import Reading, VerificationRecord, parse_reading
from services.anchor import Anchor, build_anchor
from services.canonical import digest_batch
from services.errors import AnchorUnavailable, EmptyBatch, SourceUnavailable
from settings import get_settings

logger = logging.getLogger(__name__)

Fetch = Callable[[int], Any]


class BatchVerifier:
    """Produces verification records for the most recent readings.

    Each call is independent: nothing is cached between calls and no lock is
    shared with the window, so concurrent verifications run side by side.
    """

    def __init__(
        self,
        anchor: Anchor,
        fetch_timeout: Optional[float] = 5.0,
        anchor_timeout: Optional[float] = 10.0,
        default_count: int = 5,
    ) -> None:
        self.anchor = anchor
        self.fetch_timeout = fetch_timeout
        self.anchor_timeout = anchor_timeout
        self.default_count = default_count

    async def verify(self, fetch: Fetch, n: Optional[int] = None) -> VerificationRecord:
        count = self.default_count if n is None else n
        if count < 1:
            raise ValueError("Batch size must be a positive integer.")

        start_time = time.perf_counter()
        try:
            batch = await self._fetch(fetch, count)
            if not batch:
                raise EmptyBatch()

            digest = digest_batch(batch)
            transaction_id = await self._submit(digest)
        except (SourceUnavailable, EmptyBatch, AnchorUnavailable) as exc:
            logger.warning("Verification aborted", extra={"reason": str(exc)})
            raise

        record = VerificationRecord(
            digest=digest,
            transaction_id=transaction_id,
            timestamp=datetime.now(timezone.utc),
            record_count=len(batch),
        )
        logger.info(
            "Verification complete",
            extra={
                "record_count": record.record_count,
                "digest": record.digest,
                "transaction_id": record.transaction_id,
                "elapsed_ms": int((time.perf_counter() - start_time) * 1000),
            },
        )
        return record

    async def _fetch(self, fetch: Fetch, count: int) -> list[Reading]:
        try:
            if inspect.iscoroutinefunction(fetch):
                pending = fetch(count)
            else:
                pending = asyncio.to_thread(fetch, count)
            result = await asyncio.wait_for(pending, timeout=self.fetch_timeout)
            # Plain callables may hand back a coroutine from an async store.
            if inspect.isawaitable(result):
                result = await asyncio.wait_for(result, timeout=self.fetch_timeout)
            if result is None:
                raise SourceUnavailable("Readings store returned no result.")
            rows: Sequence[Any] = list(result)
        except SourceUnavailable:
            raise
        except asyncio.TimeoutError as exc:
            raise SourceUnavailable(
                f"Readings store did not answer within {self.fetch_timeout}s."
            ) from exc
        except Exception as exc:
            raise SourceUnavailable(f"Failed to fetch data for verification: {exc}") from exc

        return [row if isinstance(row, Reading) else parse_reading(row) for row in rows]

    async def _submit(self, digest: str) -> str:
        try:
            return await asyncio.wait_for(self.anchor.submit(digest), timeout=self.anchor_timeout)
        except AnchorUnavailable:
            raise
        except asyncio.TimeoutError as exc:
            raise AnchorUnavailable(
                f"Anchor did not answer within {self.anchor_timeout}s."
            ) from exc
        except Exception as exc:
            raise AnchorUnavailable(f"Anchor submission failed: {exc}") from exc


@lru_cache
def build_default_verifier() -> BatchVerifier:
    """Factory that wires the verifier with the configured anchor."""
    settings = get_settings()
    return BatchVerifier(
        anchor=build_anchor(settings),
        fetch_timeout=settings.fetch_timeout,
        anchor_timeout=settings.anchor_timeout,
        default_count=settings.verify_batch_size,
    )
