"""MongoDB-backed ledger shared by every pipeline run."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from pymongo import MongoClient, UpdateOne
from pymongo.errors import BulkWriteError, PyMongoError

from scangate.errors import StoreUnavailableError
from scangate.store.base import FingerprintStore

logger = logging.getLogger(__name__)

_DUPLICATE_KEY = 11000


class MongoFingerprintStore(FingerprintStore):
    """Fingerprints are document ``_id``s, so the unique index is free."""

    def __init__(
        self,
        uri: str,
        database: str = "scangate",
        collection: str = "fingerprints",
        jobs_collection: str = "jobs",
        client: Optional[MongoClient] = None,
    ) -> None:
        try:
            self._client = client if client is not None else MongoClient(uri)
        except PyMongoError as exc:
            raise StoreUnavailableError(f"cannot connect to MongoDB: {exc}") from exc
        db = self._client[database]
        self._fingerprints = db[collection]
        self._jobs = db[jobs_collection]

    def bulk_check(self, hashes: Set[str]) -> Set[str]:
        if not hashes:
            return set()
        try:
            cursor = self._fingerprints.find({"_id": {"$in": sorted(hashes)}}, {"_id": 1})
            found = {doc["_id"] for doc in cursor}
        except PyMongoError as exc:
            raise StoreUnavailableError(f"fingerprint lookup failed: {exc}") from exc
        return found & hashes

    def register_many(self, hashes: Iterable[str]) -> None:
        now = datetime.now(timezone.utc)
        operations = [
            UpdateOne({"_id": h}, {"$setOnInsert": {"first_seen": now}}, upsert=True)
            for h in dict.fromkeys(hashes)
        ]
        if not operations:
            return
        try:
            self._fingerprints.bulk_write(operations, ordered=False)
        except BulkWriteError as exc:
            # Concurrent upserts of the same _id race into duplicate-key errors
            errors = exc.details.get("writeErrors", [])
            if any(e.get("code") != _DUPLICATE_KEY for e in errors):
                raise StoreUnavailableError(f"fingerprint registration failed: {exc}") from exc
            logger.debug("Ignored %d duplicate fingerprint insert(s)", len(errors))
        except PyMongoError as exc:
            raise StoreUnavailableError(f"fingerprint registration failed: {exc}") from exc

    def record_job(
        self,
        job_id: str,
        reason: str,
        exit_code: int,
        results: List[Dict[str, Any]],
    ) -> None:
        try:
            self._jobs.insert_one({
                "job_id": job_id,
                "reason": reason,
                "exit_code": exit_code,
                "results": results,
                "created_at": datetime.now(timezone.utc),
            })
        except PyMongoError as exc:
            raise StoreUnavailableError(f"job record insert failed: {exc}") from exc

    def close(self) -> None:
        self._client.close()
