"""Declarative policy — model, loader, evaluator."""

from scangate.policy.evaluator import evaluate
from scangate.policy.loader import load_policy, parse_policy
from scangate.policy.models import (
    ContainmentRule,
    ExitClass,
    GateResult,
    Operator,
    Policy,
    ThresholdRule,
    Violation,
)

__all__ = [
    "ContainmentRule",
    "ExitClass",
    "GateResult",
    "Operator",
    "Policy",
    "ThresholdRule",
    "Violation",
    "evaluate",
    "load_policy",
    "parse_policy",
]
