"""Exception taxonomy shared by every pipeline stage."""

from __future__ import annotations


class ScanGateError(Exception):
    """Base class for errors that terminate a run with exit code 2."""


class ConfigError(ScanGateError):
    """Raised when config is malformed or unreadable."""


class MalformedInputError(ScanGateError):
    """Raised when a results section has an unexpected top-level shape."""

    def __init__(self, scan_type: str, detail: str) -> None:
        super().__init__(f"malformed '{scan_type}' section: {detail}")
        self.scan_type = scan_type
        self.detail = detail


class StoreUnavailableError(ScanGateError):
    """Raised when the fingerprint store cannot be queried or written."""


class PolicySourceError(ScanGateError):
    """Raised when the policy document cannot be fetched, parsed, or validated."""


class ReportWriteError(ScanGateError):
    """Raised when the SARIF report cannot be written."""


class ForwardError(Exception):
    """Raised by a downstream forwarder; always caught and logged by the emitter."""
