"""Finding deduplication against the ledger, and per-run aggregation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from scangate.findings.fingerprint import fingerprint
from scangate.findings.models import (
    CANONICAL_SEVERITIES,
    Finding,
    ScanKind,
    ScanOutcome,
    TriagedFinding,
    empty_counts,
)
from scangate.store.base import FingerprintStore

logger = logging.getLogger(__name__)


def deduplicate(findings: List[Finding]) -> List[Tuple[Finding, str]]:
    """Collapse findings with identical fingerprints, keeping first occurrence.

    Dedup key: the content fingerprint, so two scanner rows describing the
    same issue produce one report entry.
    """
    merged: Dict[str, Finding] = {}
    for finding in findings:
        merged.setdefault(fingerprint(finding), finding)
    return [(f, fp) for fp, f in merged.items()]


def triage(kind: ScanKind, findings: List[Finding], store: FingerprintStore) -> ScanOutcome:
    """Mark each finding NEW or known with one batched ledger lookup.

    NEW hashes are registered before returning, so a replay of the same
    run sees them as known.
    """
    unique = deduplicate(findings)
    hashes = {fp for _, fp in unique}
    known = store.bulk_check(hashes) if hashes else set()

    outcome = ScanOutcome(kind=kind)
    fresh: List[str] = []
    for finding, fp in unique:
        is_new = fp not in known
        outcome.findings.append(TriagedFinding(finding=finding, fingerprint=fp, is_new=is_new))
        if is_new:
            fresh.append(fp)

    if fresh:
        store.register_many(fresh)
    logger.info(
        "%s: %d finding(s), %d new, %d already reported",
        kind.value, len(unique), len(fresh), len(unique) - len(fresh),
    )
    return outcome


@dataclass
class Aggregate:
    """Counts and identifier sets consumed by the policy evaluator."""

    counts: Dict[ScanKind, Dict[str, int]] = field(default_factory=dict)
    new_totals: Dict[ScanKind, int] = field(default_factory=dict)
    packages: List[str] = field(default_factory=list)  # package@version, NEW SCA only
    detectors: List[str] = field(default_factory=list)  # NEW secrets only
    licenses: List[str] = field(default_factory=list)  # lower-cased, ALL entries

    def count(self, kind: ScanKind, severity: str) -> int:
        return self.counts.get(kind, {}).get(severity, 0)

    def add(self, outcome: ScanOutcome) -> None:
        kind = outcome.kind
        counts = self.counts.setdefault(kind, empty_counts())
        new = outcome.new_findings
        self.new_totals[kind] = self.new_totals.get(kind, 0) + len(new)

        for triaged in new:
            sev = triaged.finding.severity
            if sev in CANONICAL_SEVERITIES:
                counts[sev] += 1

        if kind is ScanKind.SCA:
            for triaged in new:
                meta = triaged.finding.sca
                if meta is not None and meta.package_ref not in self.packages:
                    self.packages.append(meta.package_ref)
        elif kind is ScanKind.SECRET:
            for triaged in new:
                if triaged.finding.identifier not in self.detectors:
                    self.detectors.append(triaged.finding.identifier)
        elif kind is ScanKind.LICENSE:
            # Not fingerprint-gated: known license entries still count.
            for triaged in outcome.findings:
                meta = triaged.finding.license
                for name in meta.licenses if meta else ():
                    lowered = name.lower()
                    if lowered not in self.licenses:
                        self.licenses.append(lowered)
