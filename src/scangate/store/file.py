"""Local append-only JSON-lines ledger."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Set

from scangate.errors import StoreUnavailableError
from scangate.store.base import FingerprintStore

logger = logging.getLogger(__name__)

_UNSAFE_JOB_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class FileFingerprintStore(FingerprintStore):
    """One ``{"fingerprint", "first_seen"}`` object per line.

    Lines are only ever appended; a fingerprint written twice by racing
    runs is harmless because reads collapse into a set.
    """

    def __init__(self, ledger_path: Path) -> None:
        self.ledger_path = ledger_path

    @property
    def jobs_dir(self) -> Path:
        return self.ledger_path.parent / "jobs"

    def _read(self) -> Set[str]:
        if not self.ledger_path.exists():
            return set()
        known: Set[str] = set()
        try:
            with open(self.ledger_path, encoding="utf-8") as f:
                for lineno, line in enumerate(f, 1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        known.add(json.loads(line)["fingerprint"])
                    except (json.JSONDecodeError, KeyError, TypeError):
                        logger.warning("Ignoring corrupt ledger line %d in %s", lineno, self.ledger_path)
        except OSError as exc:
            raise StoreUnavailableError(f"cannot read ledger {self.ledger_path}: {exc}") from exc
        return known

    def bulk_check(self, hashes: Set[str]) -> Set[str]:
        return hashes & self._read()

    def register_many(self, hashes: Iterable[str]) -> None:
        pending = [h for h in dict.fromkeys(hashes) if h not in self._read()]
        if not pending:
            return
        now = datetime.now(timezone.utc).isoformat()
        try:
            self.ledger_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.ledger_path, "a", encoding="utf-8") as f:
                for h in pending:
                    f.write(json.dumps({"fingerprint": h, "first_seen": now}) + "\n")
        except OSError as exc:
            raise StoreUnavailableError(f"cannot append to ledger {self.ledger_path}: {exc}") from exc

    def record_job(
        self,
        job_id: str,
        reason: str,
        exit_code: int,
        results: List[Dict[str, Any]],
    ) -> None:
        record = {
            "job_id": job_id,
            "reason": reason,
            "exit_code": exit_code,
            "results": results,
            "recorded_at": datetime.now(timezone.utc).isoformat(),
        }
        path = self.jobs_dir / f"{_UNSAFE_JOB_CHARS.sub('_', job_id)}.json"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(record, indent=2), encoding="utf-8")
        except OSError as exc:
            raise StoreUnavailableError(f"cannot write job record {path}: {exc}") from exc
