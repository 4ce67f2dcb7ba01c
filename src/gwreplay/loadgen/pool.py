from __future__ import annotations

import logging
import random
from types import TracebackType
from typing import Callable, Iterable

import httpx

from gwreplay.config import PoolConfig, TargetConfig

logger = logging.getLogger(__name__)

TransportFactory = Callable[[], httpx.AsyncBaseTransport]


class ClientPool:
    """Fixed set of long-lived clients shared by every request of a run.

    Each client owns its own connection pool. A request picks one uniformly
    at random, so load spreads over ``size`` independent pools. With
    ``per_format`` every content format seen in the trace gets its own
    ``size`` clients instead, and no shared set is built.
    """

    def __init__(
        self,
        config: PoolConfig,
        target: TargetConfig,
        formats: Iterable[str] = (),
        transport_factory: TransportFactory | None = None,
        seed: int | None = None,
    ) -> None:
        self.config = config
        self.target = target
        self._transport_factory = transport_factory
        self._rng = random.Random(seed)
        self._partitions: dict[str, list[httpx.AsyncClient]] = {}
        if config.per_format:
            for fmt in sorted(set(formats)):
                self._partitions[fmt] = self._build(config.size)
        self._shared = [] if self._partitions else self._build(config.size)
        logger.debug(
            "Client pool ready: size=%d http=%d partitions=%s",
            config.size,
            target.http_version,
            sorted(self._partitions) or ["shared"],
        )

    def _build(self, size: int) -> list[httpx.AsyncClient]:
        return [self._new_client() for _ in range(size)]

    def _new_client(self) -> httpx.AsyncClient:
        limits = httpx.Limits(
            max_connections=1000,
            max_keepalive_connections=1000,
            keepalive_expiry=90.0,
        )
        kwargs: dict[str, object] = {
            "timeout": httpx.Timeout(self.target.timeout_sec),
            "limits": limits,
            "verify": False,
            "follow_redirects": True,
        }
        if self._transport_factory is not None:
            kwargs["transport"] = self._transport_factory()
        elif self.target.http_version == 2:
            # http1=False lets cleartext URLs use HTTP/2 with prior knowledge
            kwargs["http1"] = False
            kwargs["http2"] = True
        return httpx.AsyncClient(**kwargs)

    def clients(self) -> list[httpx.AsyncClient]:
        out = list(self._shared)
        for partition in self._partitions.values():
            out.extend(partition)
        return out

    def client_for(self, fmt: str = "") -> httpx.AsyncClient:
        partition = self._partitions.get(fmt) or self._shared
        if not partition:
            # unknown format on a partitioned pool borrows the first partition
            partition = next(iter(self._partitions.values()))
        return self._rng.choice(partition)

    async def aclose(self) -> None:
        for client in self.clients():
            await client.aclose()

    async def __aenter__(self) -> ClientPool:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
