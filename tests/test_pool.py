from __future__ import annotations

import asyncio

import httpx
import pytest

from gwreplay.config import PoolConfig, TargetConfig
from gwreplay.loadgen.pool import ClientPool


def _transport() -> httpx.AsyncBaseTransport:
    return httpx.MockTransport(lambda request: httpx.Response(200))


def test_pool_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        PoolConfig(size=0)


def test_http_version_is_validated() -> None:
    with pytest.raises(ValueError):
        TargetConfig(http_version=3)


def test_shared_pool_spreads_requests() -> None:
    pool = ClientPool(PoolConfig(size=4), TargetConfig(), transport_factory=_transport, seed=3)
    try:
        assert len(pool.clients()) == 4
        picked = {id(pool.client_for("raw")) for _ in range(200)}
        assert picked == {id(c) for c in pool.clients()}
    finally:
        asyncio.run(pool.aclose())


def test_per_format_partitions() -> None:
    pool = ClientPool(
        PoolConfig(size=2, per_format=True),
        TargetConfig(),
        formats=["car", "raw", "car"],
        transport_factory=_transport,
        seed=1,
    )
    try:
        assert len(pool.clients()) == 4
        car = {id(pool.client_for("car")) for _ in range(50)}
        raw = {id(pool.client_for("raw")) for _ in range(50)}
        other = {id(pool.client_for("dag-json")) for _ in range(50)}
        assert len(car) == len(raw) == 2
        assert car.isdisjoint(raw)
        assert other == car
    finally:
        asyncio.run(pool.aclose())


def test_http2_clients_are_built_without_transport_override() -> None:
    async def build() -> int:
        async with ClientPool(PoolConfig(size=2), TargetConfig(http_version=2)) as pool:
            return len(pool.clients())

    assert asyncio.run(build()) == 2


def test_partitioned_pool_without_formats_keeps_shared_clients() -> None:
    pool = ClientPool(PoolConfig(size=3, per_format=True), TargetConfig(), transport_factory=_transport, seed=2)
    try:
        assert len(pool.clients()) == 3
        assert pool.client_for("car") in pool.clients()
    finally:
        asyncio.run(pool.aclose())
