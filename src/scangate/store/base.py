"""Fingerprint store interface and the in-process backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Set


class FingerprintStore(ABC):
    """Append-only ledger of fingerprints reported in earlier runs.

    There is no update or delete: a fingerprint, once registered, stays.
    """

    @abstractmethod
    def bulk_check(self, hashes: Set[str]) -> Set[str]:
        """Return the subset of *hashes* already in the ledger (one round trip)."""

    @abstractmethod
    def register_many(self, hashes: Iterable[str]) -> None:
        """Insert *hashes*; existing entries are left untouched."""

    def register(self, fingerprint: str) -> None:
        """Idempotent single insert."""
        self.register_many([fingerprint])

    @abstractmethod
    def record_job(
        self,
        job_id: str,
        reason: str,
        exit_code: int,
        results: List[Dict[str, Any]],
    ) -> None:
        """Persist the outcome of a gated run under *job_id*."""

    def close(self) -> None:
        """Release backend resources."""

    def __enter__(self) -> "FingerprintStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class MemoryFingerprintStore(FingerprintStore):
    """Ephemeral ledger; every finding is new on each fresh instance."""

    def __init__(self, known: Optional[Iterable[str]] = None) -> None:
        self._known: Set[str] = set(known or ())
        self.jobs: Dict[str, Dict[str, Any]] = {}

    @property
    def known(self) -> Set[str]:
        return set(self._known)

    def bulk_check(self, hashes: Set[str]) -> Set[str]:
        return hashes & self._known

    def register_many(self, hashes: Iterable[str]) -> None:
        self._known.update(hashes)

    def record_job(self, job_id, reason, exit_code, results) -> None:
        self.jobs[job_id] = {"reason": reason, "exit_code": exit_code, "results": results}
