"""Finding data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

UNKNOWN = "unknown"

# Severity keys that policy threshold rules can reference.
CANONICAL_SEVERITIES: tuple[str, ...] = (
    "high",
    "critical",
    "medium",
    "low",
    "info",
    "warning",
    "error",
)

PROVENANCE_MARKER = "\n\nCommit:"


class ScanKind(str, Enum):
    SAST = "sast"
    SCA = "sca"
    SECRET = "secret"
    LICENSE = "license"

    @property
    def tag(self) -> str:
        return self.value.upper()


@dataclass(frozen=True)
class Location:
    path: str
    start_line: Optional[int] = None
    end_line: Optional[int] = None
    manifest: Optional[str] = None

    @property
    def display(self) -> str:
        if self.start_line:
            return f"{self.path}:{self.start_line}"
        return self.path


@dataclass(frozen=True)
class ScaMeta:
    package: str
    version: str
    ecosystem: str
    cwe_id: str = ""
    alias: str = ""
    details: str = UNKNOWN

    @property
    def package_ref(self) -> str:
        return f"{self.package}@{self.version}"


@dataclass(frozen=True)
class SecretMeta:
    raw: str
    detector: str
    decoder: str = ""


@dataclass(frozen=True)
class LicenseMeta:
    licenses: tuple[str, ...] = ()


@dataclass
class Finding:
    """A single normalized issue from any scanner."""

    kind: ScanKind
    identifier: str
    location: Location
    severity: str
    message: str
    sca: Optional[ScaMeta] = None
    secret: Optional[SecretMeta] = None
    license: Optional[LicenseMeta] = None
    snippet: str = ""  # SAST matched lines, display only

    @property
    def base_message(self) -> str:
        """Message with any appended commit provenance removed."""
        return self.message.split(PROVENANCE_MARKER, 1)[0]

    def with_provenance(self, commit_ref: str) -> str:
        return f"{self.base_message}{PROVENANCE_MARKER} {commit_ref}"


@dataclass(frozen=True)
class AttributionInfo:
    name: Optional[str] = None
    email: Optional[str] = None
    commit_hash: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return bool(self.name or self.email or self.commit_hash)


@dataclass
class TriagedFinding:
    """A finding paired with its fingerprint, dedup status, and attribution."""

    finding: Finding
    fingerprint: str
    is_new: bool
    attribution: AttributionInfo = field(default_factory=AttributionInfo)


@dataclass
class ScanOutcome:
    """Everything one scan type produced during a run."""

    kind: ScanKind
    findings: List[TriagedFinding] = field(default_factory=list)
    skipped_reason: Optional[str] = None

    @property
    def new_findings(self) -> List[TriagedFinding]:
        return [t for t in self.findings if t.is_new]

    @property
    def known_count(self) -> int:
        return sum(1 for t in self.findings if not t.is_new)


def empty_counts() -> Dict[str, int]:
    return {sev: 0 for sev in CANONICAL_SEVERITIES}
