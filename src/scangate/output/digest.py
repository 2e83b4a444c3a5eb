"""Plain-text digest of NEW findings for chat alerts."""

from __future__ import annotations

from typing import Iterable, List

from scangate.findings.models import ScanKind, ScanOutcome, TriagedFinding
from scangate.findings.redactor import redact, redact_credentials
from scangate.policy.models import GateResult
from scangate.output.sarif import commit_ref

_RULE = "=================="


def _entry(t: TriagedFinding, base: str) -> str:
    f = t.finding
    if f.kind is ScanKind.SAST:
        return f"Path: {f.location.display}\nSeverity: {f.severity}\nMessage: {f.base_message}"
    if f.kind is ScanKind.SCA and f.sca is not None:
        return (
            f"Package: {f.sca.package_ref}\nSeverity: {f.severity.upper()}\n"
            f"Summary: {f.base_message}\nCWE ID: {f.sca.cwe_id}\nAliases: {f.sca.alias}"
        )
    if f.kind is ScanKind.SECRET and f.secret is not None:
        commit = commit_ref(base, t.attribution.commit_hash) or "UNKNOWN"
        return (
            f"File: {f.location.path}\nLine: {f.location.start_line or 0}\n"
            f"Raw: {redact(f.secret.raw, ci_mode=True)}\n"
            f"Detector Name: {f.secret.detector}\nCommit: {commit}"
        )
    licenses = ", ".join(f.license.licenses) if f.license else ""
    return f"Package: {f.identifier}\nLicenses: {licenses}"


def _heading(kind: ScanKind) -> str:
    label = {
        ScanKind.SAST: "SAST Results",
        ScanKind.SCA: "SCA Results",
        ScanKind.SECRET: "Secret Results",
        ScanKind.LICENSE: "License Details",
    }[kind]
    return f"{_RULE} {label} {_RULE}"


def render(
    outcomes: Iterable[ScanOutcome],
    gate: GateResult,
    source_url: str = "",
    base: str = "",
) -> str:
    """Build the digest text; sections appear only for kinds with NEW findings."""
    target = redact_credentials(source_url) if source_url else "this repository"
    parts: List[str] = [f"🔎 Security Scan Results for {target}"]
    for outcome in outcomes:
        new = outcome.new_findings
        if not new:
            continue
        parts.append(_heading(outcome.kind))
        parts.extend(_entry(t, base) for t in new)

    if gate.failed:
        parts.append(f"{_RULE} ❌ Pipeline Failed {_RULE}\nReason: {gate.reason}\n{gate.exit_class.message}")
    else:
        parts.append(f"{_RULE} ✅ Pipeline Passed {_RULE}")
    return "\n\n".join(parts)
