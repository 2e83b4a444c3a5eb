"""Scanner output normalization — raw results document to canonical Findings.

Optional fields that are missing or of the wrong type become explicit
``unknown``/empty sentinels. Only a wrong top-level shape for a whole
section (or for a container inside it) raises MalformedInputError.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from scangate.errors import MalformedInputError
from scangate.findings.models import (
    UNKNOWN,
    Finding,
    LicenseMeta,
    Location,
    ScaMeta,
    ScanKind,
    SecretMeta,
)
from scangate.findings.redactor import redact

logger = logging.getLogger(__name__)


def load_results(path: Path) -> Optional[Dict[str, Any]]:
    """Read the results document. Returns None when it does not exist."""
    if not path.is_file():
        return None
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise MalformedInputError("results", f"cannot read {path}: {exc}") from exc
    if not isinstance(document, dict):
        raise MalformedInputError("results", "top level must be a JSON object")
    return document


# ---- typed field access ----


def _dig(obj: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _text(value: Any, default: str = UNKNOWN) -> str:
    return value if isinstance(value, str) else default


def _line(value: Any) -> Optional[int]:
    # bool is an int subclass; never a line number
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value
    return None


def _expect(value: Any, kind: type, scan_type: str, where: str) -> Any:
    if not isinstance(value, kind):
        raise MalformedInputError(
            scan_type, f"{where} must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


# ---- per scan type ----


def normalize_sast(section: Any) -> List[Finding]:
    """One Finding per raw semgrep-style result."""
    findings: List[Finding] = []
    for idx, result in enumerate(_expect(section, list, "sast", "sast")):
        _expect(result, dict, "sast", f"sast[{idx}]")
        start = _line(_dig(result, "start", "line"))
        end = _line(_dig(result, "end", "line"))
        findings.append(
            Finding(
                kind=ScanKind.SAST,
                identifier=_text(result.get("check_id")),
                location=Location(
                    path=_text(result.get("path"), "UNKNOWN"),
                    start_line=start or 0,
                    end_line=end if end is not None else start,
                ),
                severity=_text(_dig(result, "extra", "severity")).lower(),
                message=_text(_dig(result, "extra", "message"), ""),
                snippet=_text(_dig(result, "extra", "lines"), ""),
            )
        )
    return findings


def _sca_severity(vuln: Dict[str, Any]) -> str:
    severity = _text(_dig(vuln, "database_specific", "severity"), "UNKNOWN")
    if severity == "MODERATE":
        severity = "MEDIUM"
    return severity.lower()


def _first_text(value: Any) -> str:
    if isinstance(value, list) and value and isinstance(value[0], str):
        return value[0]
    return ""


def normalize_sca(section: Any) -> List[Finding]:
    """One Finding per (package, vulnerability) pair, per manifest."""
    findings: List[Finding] = []
    for manifest, result in _expect(section, dict, "sca", "sca").items():
        packages = _expect(result, dict, "sca", f"sca[{manifest!r}]").get("packages") or []
        _expect(packages, list, "sca", f"sca[{manifest!r}].packages")
        if not packages:
            continue
        for package in packages:
            _expect(package, dict, "sca", f"package in {manifest}")
            meta_base = package.get("package") or {}
            vulns = package.get("vulnerabilities") or []
            _expect(vulns, list, "sca", f"vulnerabilities in {manifest}")
            for vuln in vulns:
                _expect(vuln, dict, "sca", f"vulnerability in {manifest}")
                meta = ScaMeta(
                    package=_text(_dig(meta_base, "name")),
                    version=_text(_dig(meta_base, "version")),
                    ecosystem=_text(_dig(meta_base, "ecosystem")),
                    cwe_id=_first_text(_dig(vuln, "database_specific", "cwe_id")),
                    alias=_first_text(vuln.get("aliases")),
                    details=_text(vuln.get("details"), "UNKNOWN"),
                )
                findings.append(
                    Finding(
                        kind=ScanKind.SCA,
                        identifier=_text(vuln.get("id"), "UNKNOWN"),
                        location=Location(path=manifest, manifest=manifest),
                        severity=_sca_severity(vuln),
                        message=_text(vuln.get("summary"), "UNKNOWN"),
                        sca=meta,
                    )
                )
    return findings


def _secret_source(result: Dict[str, Any]) -> Dict[str, Any]:
    data = _dig(result, "SourceMetadata", "Data") or {}
    for source in ("Filesystem", "Git"):
        candidate = _dig(data, source)
        if isinstance(candidate, dict) and candidate.get("file"):
            return candidate
    return {}


def normalize_secret(section: Any) -> List[Finding]:
    """One Finding per trufflehog-style detected secret."""
    results = _expect(section, dict, "secret", "secret").get("results") or []
    findings: List[Finding] = []
    for idx, result in enumerate(_expect(results, list, "secret", "secret.results")):
        _expect(result, dict, "secret", f"secret.results[{idx}]")
        source = _secret_source(result)
        detector = _text(result.get("DetectorName"), "")
        raw = _text(result.get("Raw"), "")
        line = _line(source.get("line"))
        findings.append(
            Finding(
                kind=ScanKind.SECRET,
                identifier=detector.upper(),
                location=Location(
                    path=_text(source.get("file"), ""),
                    start_line=line,
                    end_line=line,
                ),
                severity="high",
                message=f"Secret of {detector} with value {redact(raw, ci_mode=True)} exposed",
                secret=SecretMeta(
                    raw=raw,
                    detector=detector.upper(),
                    decoder=_text(result.get("DecoderName"), ""),
                ),
            )
        )
    return findings


def normalize_license(section: Any) -> List[Finding]:
    """One synthetic Finding per (manifest, package) with its license list."""
    findings: List[Finding] = []
    for manifest, packages in _expect(section, dict, "license", "license").items():
        _expect(packages, dict, "license", f"license[{manifest!r}]")
        for package, licenses in packages.items():
            if isinstance(licenses, str):
                licenses = [licenses]
            names = tuple(x for x in licenses if isinstance(x, str)) if isinstance(licenses, list) else ()
            findings.append(
                Finding(
                    kind=ScanKind.LICENSE,
                    identifier=package,
                    location=Location(path=manifest, manifest=manifest),
                    severity=UNKNOWN,
                    message=f"Package {package} is distributed under {', '.join(names) or UNKNOWN}",
                    license=LicenseMeta(licenses=names),
                )
            )
    return findings


_NORMALIZERS: Dict[ScanKind, Callable[[Any], List[Finding]]] = {
    ScanKind.SAST: normalize_sast,
    ScanKind.SCA: normalize_sca,
    ScanKind.SECRET: normalize_secret,
    ScanKind.LICENSE: normalize_license,
}


def normalize_section(kind: ScanKind, document: Dict[str, Any]) -> List[Finding]:
    """Normalize one section; an absent or null section yields no findings."""
    section = document.get(kind.value)
    if section is None:
        logger.debug("No '%s' section in results document", kind.value)
        return []
    findings = _NORMALIZERS[kind](section)
    logger.info("Normalized %d %s finding(s)", len(findings), kind.value)
    return findings
