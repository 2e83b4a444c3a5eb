"""Fingerprint ledger backends."""

from __future__ import annotations

from pathlib import Path

from scangate.config.schema import StoreConfig, Workspace
from scangate.store.base import FingerprintStore, MemoryFingerprintStore
from scangate.store.file import FileFingerprintStore


def open_store(config: StoreConfig, workspace: Workspace) -> FingerprintStore:
    """Build the backend selected by *config*."""
    if config.backend == "mongo":
        from scangate.store.mongo import MongoFingerprintStore

        return MongoFingerprintStore(
            config.mongo_uri,
            database=config.database,
            collection=config.collection,
            jobs_collection=config.jobs_collection,
        )
    if config.backend == "file":
        return FileFingerprintStore(workspace.resolve(Path(config.ledger_path)))
    return MemoryFingerprintStore()


__all__ = [
    "FileFingerprintStore",
    "FingerprintStore",
    "MemoryFingerprintStore",
    "open_store",
]
