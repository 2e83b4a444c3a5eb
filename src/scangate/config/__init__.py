"""Configuration loading, schema, and defaults."""

from scangate.config.loader import load_config
from scangate.config.schema import ScanGateConfig, Workspace

__all__ = ["ScanGateConfig", "Workspace", "load_config"]
