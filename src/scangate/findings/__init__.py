"""Finding models, normalization, fingerprints, and aggregation."""

from scangate.findings.aggregator import Aggregate, deduplicate, triage
from scangate.findings.fingerprint import fingerprint
from scangate.findings.models import AttributionInfo, Finding, Location, ScanKind, ScanOutcome
from scangate.findings.redactor import redact

__all__ = [
    "Aggregate",
    "AttributionInfo",
    "Finding",
    "Location",
    "ScanKind",
    "ScanOutcome",
    "deduplicate",
    "fingerprint",
    "redact",
    "triage",
]
