"""Policy rule model and gate result."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional


class Operator(str, Enum):
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    EQUAL_TO = "equal_to"

    @property
    def phrase(self) -> str:
        return self.value.replace("_", " ")

    def triggers(self, actual: int, threshold: int) -> bool:
        if self is Operator.GREATER_THAN:
            return actual > threshold
        if self is Operator.LESS_THAN:
            return actual < threshold
        return actual == threshold


class ExitClass(IntEnum):
    """Process exit code per failing scan type."""

    PASS = 0
    LICENSE = 101
    SCA = 102
    SAST = 103
    SECRET = 104

    @property
    def message(self) -> str:
        return _EXIT_MESSAGES[self]


_EXIT_MESSAGES = {
    ExitClass.PASS: "Pipeline passed",
    ExitClass.LICENSE: "License scan failed",
    ExitClass.SCA: "SCA failed",
    ExitClass.SAST: "SAST failed",
    ExitClass.SECRET: "Secret scan failed",
}


@dataclass(frozen=True)
class ThresholdRule:
    key: str  # canonical severity key, or "total" for the secret count
    operator: Operator
    value: int


@dataclass(frozen=True)
class ContainmentRule:
    contains: tuple[str, ...] = ()


@dataclass
class Policy:
    """Parsed policy document. Missing sections never fail the gate."""

    source: str = ""
    sast: List[ThresholdRule] = field(default_factory=list)
    sca: List[ThresholdRule] = field(default_factory=list)
    dep: Optional[ContainmentRule] = None
    secret: Optional[ContainmentRule] = None
    secret_count: Optional[ThresholdRule] = None
    license: Optional[ContainmentRule] = None

    @property
    def is_empty(self) -> bool:
        return not (
            self.sast or self.sca or self.dep or self.secret
            or self.secret_count or self.license
        )


@dataclass(frozen=True)
class Violation:
    scan_type: str  # sast | dep | sca | secret | license
    reason: str
    exit_class: ExitClass


@dataclass
class GateResult:
    """Gate verdict.

    ``reason`` and ``exit_class`` come from the last violation evaluated;
    ``violations`` keeps all of them in evaluation order.
    """

    failed: bool = False
    reason: str = ""
    exit_class: ExitClass = ExitClass.PASS
    violations: List[Violation] = field(default_factory=list)
    policy_supplied: bool = True

    def add(self, violation: Violation) -> None:
        self.violations.append(violation)
        self.failed = True
        self.reason = violation.reason
        self.exit_class = violation.exit_class

    @property
    def exit_code(self) -> int:
        return int(self.exit_class) if self.failed else 0
