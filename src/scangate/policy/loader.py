"""Fetch, parse, and validate the YAML policy document."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import yaml

from scangate.errors import PolicySourceError
from scangate.findings.models import CANONICAL_SEVERITIES
from scangate.policy.models import ContainmentRule, Operator, Policy, ThresholdRule

logger = logging.getLogger(__name__)

KNOWN_SECTIONS = ("sast", "dep", "sca", "secret", "license")


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def fetch_policy_text(source: str, client: httpx.Client) -> str:
    """Return the raw policy text from a URL or a local path."""
    if _is_url(source):
        # Cache-busting query param so CDN-fronted policies are always fresh
        params = {"cache": str(time.time_ns() % 100)}
        try:
            response = client.get(source, params=params)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise PolicySourceError(f"Invalid or unable to reach policy file: {exc}") from exc
        return response.text

    try:
        return Path(source).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise PolicySourceError(f"Invalid or unable to reach policy file: {exc}") from exc


def _severity_key(raw_key: Any, section: str) -> str:
    if not isinstance(raw_key, str):
        raise PolicySourceError(f"{section}: rule keys must be strings, got {raw_key!r}")
    key = raw_key.lower()
    if key.endswith("_count"):
        key = key[: -len("_count")]
    if key not in CANONICAL_SEVERITIES:
        raise PolicySourceError(
            f"{section}: unknown severity '{raw_key}' "
            f"(expected one of {', '.join(CANONICAL_SEVERITIES)})"
        )
    return key


def _threshold(key: str, node: Any, section: str) -> ThresholdRule:
    if not isinstance(node, dict):
        raise PolicySourceError(f"{section}.{key}: expected a mapping with operator and value")
    try:
        operator = Operator(node.get("operator"))
    except ValueError:
        raise PolicySourceError(
            f"{section}.{key}: unknown operator {node.get('operator')!r}"
        ) from None
    value = node.get("value")
    if not isinstance(value, int) or isinstance(value, bool):
        raise PolicySourceError(f"{section}.{key}: value must be an integer, got {value!r}")
    return ThresholdRule(key=key, operator=operator, value=value)


def _thresholds(node: Any, section: str) -> List[ThresholdRule]:
    if not isinstance(node, dict):
        raise PolicySourceError(f"{section}: expected a mapping of severity rules")
    return [_threshold(_severity_key(k, section), v, section) for k, v in node.items()]


def _containment(node: Any, section: str) -> Optional[ContainmentRule]:
    if not isinstance(node, dict):
        raise PolicySourceError(f"{section}: expected a mapping")
    if "contains" not in node:
        return None
    items = node["contains"]
    if items is None:
        items = []
    if not isinstance(items, list) or not all(isinstance(i, str) for i in items):
        raise PolicySourceError(f"{section}.contains: expected a list of strings")
    return ContainmentRule(contains=tuple(items))


def parse_policy(data: Any, source: str = "") -> Policy:
    """Validate a decoded YAML document into a Policy."""
    if data is None:
        return Policy(source=source)
    if not isinstance(data, dict):
        raise PolicySourceError("policy document must be a mapping")

    unknown = [k for k in data if k not in KNOWN_SECTIONS]
    if unknown:
        logger.warning("Ignoring unknown policy section(s): %s", ", ".join(map(str, unknown)))

    policy = Policy(source=source)
    if data.get("sast") is not None:
        policy.sast = _thresholds(data["sast"], "sast")
    if data.get("sca") is not None:
        policy.sca = _thresholds(data["sca"], "sca")
    if data.get("dep") is not None:
        policy.dep = _containment(data["dep"], "dep")
    if data.get("secret") is not None:
        node: Dict[str, Any] = data["secret"]
        policy.secret = _containment(node, "secret")
        if "operator" in node or "value" in node:
            policy.secret_count = _threshold("total", node, "secret")
    if data.get("license") is not None:
        policy.license = _containment(data["license"], "license")
    return policy


def load_policy(source: str, client: httpx.Client) -> Policy:
    """Fetch and parse the policy at *source* (URL or path)."""
    text = fetch_policy_text(source, client)
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise PolicySourceError(f"Invalid policy YAML: {exc}") from exc
    policy = parse_policy(data, source=source)
    logger.info("Loaded policy from %s", source if not _is_url(source) else "remote URL")
    return policy
