from __future__ import annotations

from pathlib import Path

from gwreplay.storage.duckdb_store import Storage


def default_storage() -> Storage:
    return Storage(Path(".gwreplay/gwreplay.duckdb"))


__all__ = ["Storage", "default_storage"]
