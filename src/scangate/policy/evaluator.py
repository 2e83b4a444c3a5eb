"""Apply a Policy to the run's aggregate and produce a GateResult.

Scan types are evaluated in the fixed order sast → dep → sca → secret →
license. Every triggered rule is recorded; the last one determines the
reported reason and exit class.
"""

from __future__ import annotations

import logging
from typing import Collection, List, Optional

from scangate.findings.aggregator import Aggregate
from scangate.findings.models import ScanKind
from scangate.policy.models import (
    ExitClass,
    GateResult,
    Policy,
    ThresholdRule,
    Violation,
)

logger = logging.getLogger(__name__)

NO_POLICY_REASON = "No policy file provided, skipping policy check"


def _check_thresholds(
    result: GateResult,
    rules: List[ThresholdRule],
    aggregate: Aggregate,
    kind: ScanKind,
    exit_class: ExitClass,
) -> None:
    for rule in rules:
        actual = aggregate.count(kind, rule.key)
        if rule.operator.triggers(actual, rule.value):
            result.add(Violation(
                scan_type=kind.value,
                reason=(
                    f"Pipeline failed because {rule.key} count is {actual} "
                    f"which is {rule.operator.phrase} {rule.value}"
                ),
                exit_class=exit_class,
            ))


def _check_dep(result: GateResult, policy: Policy, aggregate: Aggregate) -> None:
    if policy.dep is None or not aggregate.packages:
        return
    blocked = [b.lower() for b in policy.dep.contains]
    if not blocked:
        return
    for pkg in aggregate.packages:
        if any(b in pkg.lower() for b in blocked):
            result.add(Violation(
                scan_type="dep",
                reason=f"Pipeline failed because {pkg} package is present in blocked list",
                exit_class=ExitClass.SCA,
            ))
            break


def _check_secret(result: GateResult, policy: Policy, aggregate: Aggregate) -> None:
    if policy.secret is not None:
        blocked = set(policy.secret.contains)
        for detector in aggregate.detectors:
            if detector in blocked:
                result.add(Violation(
                    scan_type="secret",
                    reason=f"Pipeline failed because {detector} is present in blocked list",
                    exit_class=ExitClass.SECRET,
                ))
    rule = policy.secret_count
    if rule is not None:
        exposed = aggregate.new_totals.get(ScanKind.SECRET, 0)
        if rule.operator.triggers(exposed, rule.value):
            result.add(Violation(
                scan_type="secret",
                reason=(
                    f"Pipeline failed because {exposed} secrets exposed "
                    f"which is {rule.operator.phrase} {rule.value}"
                ),
                exit_class=ExitClass.SECRET,
            ))


def _check_license(result: GateResult, policy: Policy, aggregate: Aggregate) -> None:
    if policy.license is None:
        return
    blocked = {b.lower() for b in policy.license.contains}
    for license_name in aggregate.licenses:
        if license_name.lower() in blocked:
            result.add(Violation(
                scan_type="license",
                reason=f"Pipeline failed because {license_name} license is present in blocked list",
                exit_class=ExitClass.LICENSE,
            ))


def evaluate(
    policy: Optional[Policy],
    aggregate: Aggregate,
    enabled: Collection[ScanKind],
) -> GateResult:
    """Evaluate *policy* against *aggregate* for the enabled scan types."""
    if policy is None:
        return GateResult(reason=NO_POLICY_REASON, policy_supplied=False)

    result = GateResult()
    if ScanKind.SAST in enabled:
        _check_thresholds(result, policy.sast, aggregate, ScanKind.SAST, ExitClass.SAST)
    if ScanKind.SCA in enabled:
        _check_dep(result, policy, aggregate)
        _check_thresholds(result, policy.sca, aggregate, ScanKind.SCA, ExitClass.SCA)
    if ScanKind.SECRET in enabled:
        _check_secret(result, policy, aggregate)
    if ScanKind.LICENSE in enabled:
        _check_license(result, policy, aggregate)

    if len(result.violations) > 1:
        logger.info(
            "%d policy violations; reporting the last: %s",
            len(result.violations), result.reason,
        )
    return result
