"""scangate — security-scan result gate for CI pipelines."""

__version__ = "1.0.0"
