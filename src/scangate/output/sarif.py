"""SARIF v2.1.0 report of NEW findings.

Secret values are always redacted in the report; there is no option to
reveal them.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from scangate import __version__
from scangate.errors import ReportWriteError
from scangate.findings.models import ScanOutcome, TriagedFinding
from scangate.findings.redactor import strip_credentials

SCHEMA_URI = "https://json.schemastore.org/sarif-2.1.0.json"

_SEVERITY_MAP = {
    "critical": "error",
    "high": "error",
    "error": "error",
    "medium": "warning",
    "warning": "warning",
    "low": "note",
    "info": "note",
}


def commit_base(source_url: str) -> str:
    """Browsable repository URL without credentials or ``.git`` suffix."""
    base = strip_credentials(source_url).rstrip("/")
    return base[:-4] if base.endswith(".git") else base


def commit_ref(base: str, commit_hash: Optional[str]) -> Optional[str]:
    if not commit_hash:
        return None
    return f"{base}/commit/{commit_hash}" if base else commit_hash


def result_entry(triaged: TriagedFinding, base: str = "") -> Dict[str, Any]:
    """One SARIF result for a NEW finding."""
    f = triaged.finding
    info = triaged.attribution

    ref = commit_ref(base, info.commit_hash)
    message = f.with_provenance(ref) if ref else f.base_message

    region: Dict[str, Any] = {}
    if f.location.start_line:
        region["startLine"] = f.location.start_line
        if f.location.end_line and f.location.end_line >= f.location.start_line:
            region["endLine"] = f.location.end_line
        if f.snippet:
            region["snippet"] = {"text": f.snippet}
    physical: Dict[str, Any] = {"artifactLocation": {"uri": f"file://{f.location.path}"}}
    if region:
        physical["region"] = region

    tags: List[str] = []
    if info.name:
        tags.append(info.name)
    tags.append(f.kind.tag)

    return {
        "ruleId": f.identifier,
        "level": _SEVERITY_MAP.get(f.severity, "none"),
        "message": {"text": message},
        "locations": [{"physicalLocation": physical}],
        "partialFingerprints": {"scangate/v1": triaged.fingerprint},
        "properties": {
            "severity": f.severity,
            "tags": tags,
        },
    }


def build_results(outcomes: Iterable[ScanOutcome], base: str = "") -> List[Dict[str, Any]]:
    return [
        result_entry(t, base)
        for outcome in outcomes
        for t in outcome.new_findings
    ]


def to_dict(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Wrap result entries in a single-run SARIF document."""
    rules: List[Dict[str, Any]] = []
    seen_rules: set[str] = set()
    for r in results:
        # Rule definition (only once per ruleId)
        if r["ruleId"] not in seen_rules:
            seen_rules.add(r["ruleId"])
            rules.append({
                "id": r["ruleId"],
                "shortDescription": {"text": r["ruleId"]},
                "properties": {"tags": [r["properties"]["tags"][-1]]},
            })

    return {
        "$schema": SCHEMA_URI,
        "version": "2.1.0",
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": "scangate",
                        "version": __version__,
                        "informationUri": "https://github.com/scangate/scangate",
                        "rules": rules,
                    }
                },
                "results": results,
            }
        ],
    }


def render(results: List[Dict[str, Any]]) -> str:
    """Return SARIF JSON string."""
    return json.dumps(to_dict(results), indent=2)


def write(results: List[Dict[str, Any]], path: Path) -> Path:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render(results), encoding="utf-8")
    except OSError as exc:
        raise ReportWriteError(f"cannot write SARIF report {path}: {exc}") from exc
    return path
