from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import AsyncIterator

import httpx

from gwreplay.config import TargetConfig
from gwreplay.metrics import ErrorType, RequestOutcome
from gwreplay.trace import TraceRecord, accept_header

logger = logging.getLogger(__name__)

CACHE_STATUS_HEADER = "saturn-cache-status"
CACHE_HIT = "HIT"


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000.0)


def _describe(exc: BaseException) -> str:
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


def request_headers(record: TraceRecord, target: TargetConfig) -> dict[str, str]:
    headers = {"user-agent": target.user_agent}
    accept = accept_header(record.format)
    if accept:
        headers["accept"] = accept
    return headers


@dataclass(slots=True)
class _Transfer:
    response: httpx.Response | None = None
    chunks: AsyncIterator[bytes] | None = None
    first_byte_ms: int | None = None
    received: int = 0
    capped: bool = False


async def send_request(
    client: httpx.AsyncClient,
    record: TraceRecord,
    target: TargetConfig,
) -> RequestOutcome:
    """Fetch ``record.url`` once and measure it.

    ``target.timeout_sec`` bounds the whole exchange, headers and body
    together. Failures never escape; they end up in the outcome's
    ``error_type``/``error`` while any status, TTFB and byte count observed
    before the failure are kept.
    """
    transfer = _Transfer()
    error_type: ErrorType | None = None
    error: str | None = None

    start = time.perf_counter()
    try:
        await asyncio.wait_for(_fetch(client, record, target, transfer, start), target.timeout_sec)
    except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
        if transfer.response is None:
            error_type = ErrorType.TIMEOUT_AWAITING_HEADERS
        else:
            error_type = ErrorType.TIMEOUT_READING_BODY
        error = _describe(exc)
    except httpx.ConnectError as exc:
        error_type, error = ErrorType.CONNECT, _describe(exc)
    except (httpx.ReadError, httpx.RemoteProtocolError) as exc:
        error_type, error = ErrorType.READ, _describe(exc)
    except Exception as exc:
        # transports can leak their own errors (h2 protocol errors among them)
        error_type, error = ErrorType.OTHER, _describe(exc)

    response = transfer.response
    if response is not None:
        await _release(response, transfer.chunks if transfer.capped else None, record.url)

    outcome = RequestOutcome(
        ttfb_ms=transfer.first_byte_ms or 0,
        cache_hit=response is not None and response.headers.get(CACHE_STATUS_HEADER) == CACHE_HIT,
        status=response.status_code if response is not None else 0,
        format=record.format,
        duration_ms=_elapsed_ms(start),
        bytes_received=transfer.received,
        error_type=error_type,
        error=error,
    )
    if error_type is not None:
        logger.debug("Request to %s failed: %s", record.url, error)
    return outcome


async def _fetch(
    client: httpx.AsyncClient,
    record: TraceRecord,
    target: TargetConfig,
    transfer: _Transfer,
    start: float,
) -> None:
    request = client.build_request("GET", record.url, headers=request_headers(record, target))
    transfer.response = await client.send(request, stream=True)
    transfer.chunks = transfer.response.aiter_raw()
    async for chunk in transfer.chunks:
        if not chunk:
            continue
        if transfer.first_byte_ms is None:
            transfer.first_byte_ms = _elapsed_ms(start)
        transfer.received += len(chunk)
        if transfer.received >= target.max_download_bytes:
            transfer.received = target.max_download_bytes
            transfer.capped = True
            break


async def _release(
    response: httpx.Response,
    remaining: AsyncIterator[bytes] | None,
    url: str,
) -> None:
    # the rest of a capped body is read and discarded so the connection can be reused
    try:
        if remaining is not None:
            async for _ in remaining:
                pass
    except httpx.HTTPError as exc:
        logger.debug("Draining %s failed: %s", url, _describe(exc))
    finally:
        await response.aclose()
