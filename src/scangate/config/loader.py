"""Load and merge configuration from .scangate.toml, CLI flags, and env vars."""

from __future__ import annotations

import dataclasses
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from scangate.config.schema import (
    AttributionConfig,
    NotifyConfig,
    OutputConfig,
    PolicyConfig,
    ScanGateConfig,
    ScansConfig,
    StoreConfig,
    TrackerConfig,
    WorkspaceConfig,
)
from scangate.errors import ConfigError

CONFIG_FILENAME = ".scangate.toml"

# env var -> (section, field)
_ENV_STRINGS = {
    "SCANGATE_RESULTS": ("workspace", "results_path"),
    "SCANGATE_REPORT": ("workspace", "report_path"),
    "SCANGATE_REPO_DIR": ("workspace", "repo_dir"),
    "SCANGATE_SOURCE_URL": ("workspace", "source_url"),
    "SCANGATE_POLICY": ("policy", "source"),
    "SCANGATE_MONGO_URI": ("store", "mongo_uri"),
    "SCANGATE_MONGO_DATABASE": ("store", "database"),
    "SCANGATE_LEDGER": ("store", "ledger_path"),
    "SCANGATE_SLACK_URL": ("notify", "chat_webhook_url"),
    "SCANGATE_JOB_ID": ("notify", "job_id"),
    "SCANGATE_DEFECTDOJO_URL": ("tracker", "url"),
    "SCANGATE_DEFECTDOJO_TOKEN": ("tracker", "token"),
    "SCANGATE_PRODUCT_NAME": ("tracker", "product_name"),
    "SCANGATE_ENGAGEMENT_NAME": ("tracker", "engagement_name"),
}


def find_config_file(root: Path, override: Optional[str] = None) -> Optional[Path]:
    """Locate the config file. *override* takes precedence."""
    if override:
        p = Path(override)
        if not p.is_file():
            raise ConfigError(f"Config file not found: {override}")
        return p
    candidate = root / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def _parse_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc


def _build_section(data: Dict[str, Any], cls: type, section: str):
    """Build a dataclass from a TOML section dict, ignoring unknown keys."""
    raw = data.get(section, {})
    if not isinstance(raw, dict):
        raise ConfigError(f"[{section}] must be a table")
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in raw.items() if k in valid_fields}
    return cls(**filtered)


def _merge_env_overrides(cfg: ScanGateConfig) -> None:
    """Apply SCANGATE_* environment variable overrides."""
    for var, (section, name) in _ENV_STRINGS.items():
        if val := os.environ.get(var):
            setattr(getattr(cfg, section), name, val)
    if val := os.environ.get("SCANGATE_STORE"):
        if val in ("mongo", "file", "memory"):
            cfg.store.backend = val  # type: ignore[assignment]
    if val := os.environ.get("SCANGATE_SCANS"):
        wanted = {s.strip().lower() for s in val.split(",") if s.strip()}
        for scan_type in ("sast", "sca", "secret", "license"):
            setattr(cfg.scans, scan_type, scan_type in wanted)
    # A Mongo URI without an explicit backend implies the shared ledger
    if cfg.store.mongo_uri and "SCANGATE_STORE" not in os.environ and cfg.store.backend == "memory":
        cfg.store.backend = "mongo"


def load_config(
    root: Path,
    config_override: Optional[str] = None,
) -> ScanGateConfig:
    """Load, validate, and return a ScanGateConfig."""
    config_path = find_config_file(root, config_override)

    if config_path is None:
        cfg = ScanGateConfig()
    else:
        raw = _parse_toml(config_path)
        cfg = ScanGateConfig(
            version=str(raw.get("version", "1.0")),
            workspace=_build_section(raw, WorkspaceConfig, "workspace"),
            scans=_build_section(raw, ScansConfig, "scans"),
            policy=_build_section(raw, PolicyConfig, "policy"),
            store=_build_section(raw, StoreConfig, "store"),
            notify=_build_section(raw, NotifyConfig, "notify"),
            tracker=_build_section(raw, TrackerConfig, "tracker"),
            attribution=_build_section(raw, AttributionConfig, "attribution"),
            output=_build_section(raw, OutputConfig, "output"),
        )

    _merge_env_overrides(cfg)

    if cfg.store.backend not in ("mongo", "file", "memory"):
        raise ConfigError(f"Unknown store backend: {cfg.store.backend}")
    if cfg.store.backend == "mongo" and not cfg.store.mongo_uri:
        raise ConfigError("store.backend = 'mongo' requires store.mongo_uri")
    return cfg
