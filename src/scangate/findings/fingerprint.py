"""Content fingerprints for findings.

A fingerprint is the SHA-256 of a fixed-order canonical text built from a
finding's stable fields. Commit provenance appended to the message is
stripped first, so re-attribution never changes the hash.
"""

from __future__ import annotations

import hashlib
from typing import List, Tuple

from scangate.findings.models import Finding, ScanKind


def canonical_text(finding: Finding) -> str:
    """Return the canonical record hashed for *finding*."""
    loc = finding.location
    message = finding.base_message
    if finding.kind is ScanKind.SAST:
        fields: List[Tuple[str, object]] = [
            ("Rule", finding.identifier),
            ("Path", f"{loc.path}:{loc.start_line or 0}"),
            ("Severity", finding.severity),
            ("Message", message),
        ]
    elif finding.kind is ScanKind.SCA:
        meta = finding.sca
        assert meta is not None
        fields = [
            ("Manifest", loc.manifest or loc.path),
            ("Package", meta.package_ref),
            ("Advisory", finding.identifier),
            ("Severity", finding.severity),
            ("Summary", message),
            ("CWE ID", meta.cwe_id),
            ("Aliases", meta.alias),
        ]
    elif finding.kind is ScanKind.SECRET:
        meta = finding.secret
        assert meta is not None
        fields = [
            ("File", loc.path),
            ("Line", loc.start_line or 0),
            ("Raw", meta.raw),
            ("Detector Name", meta.detector),
        ]
    else:
        meta = finding.license
        assert meta is not None
        fields = [
            ("Manifest", loc.path),
            ("Package", finding.identifier),
            ("Licenses", ", ".join(meta.licenses)),
        ]
    body = "\n".join(f"{label}: {value}" for label, value in fields)
    return f"Kind: {finding.kind.value}\n{body}"


def fingerprint(finding: Finding) -> str:
    """Deterministic content hash of *finding* (hex SHA-256)."""
    return hashlib.sha256(canonical_text(finding).encode("utf-8")).hexdigest()

