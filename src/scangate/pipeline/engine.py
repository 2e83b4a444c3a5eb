"""Core gate engine — orchestrates the full pipeline.

normalize → dedup/aggregate (per scan type) → attribute → evaluate → emit.
The policy is fetched before any fingerprint is registered, so a bad policy
source aborts the run without consuming this run's NEW findings.
"""

from __future__ import annotations

import contextlib
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx

from scangate.config.schema import ScanGateConfig
from scangate.errors import MalformedInputError
from scangate.findings.aggregator import Aggregate, triage
from scangate.findings.models import ScanKind, ScanOutcome
from scangate.findings.normalizer import load_results, normalize_section
from scangate.git.attribution import AttributionResolver, build_resolver
from scangate.notify.dispatch import DispatchSummary, dispatch
from scangate.output import digest, sarif
from scangate.policy.evaluator import evaluate
from scangate.policy.loader import load_policy
from scangate.policy.models import GateResult, Policy
from scangate.store import FingerprintStore, open_store

logger = logging.getLogger(__name__)

SCAN_ORDER = (ScanKind.SAST, ScanKind.SCA, ScanKind.SECRET, ScanKind.LICENSE)

# Only code locations can be blamed; SCA/license point at manifests.
_ATTRIBUTED = (ScanKind.SAST, ScanKind.SECRET)


@dataclass
class PipelineResult:
    """Complete result of a gate run."""

    results_found: bool = True
    outcomes: List[ScanOutcome] = field(default_factory=list)
    aggregate: Aggregate = field(default_factory=Aggregate)
    gate: GateResult = field(default_factory=GateResult)
    report: List[Dict[str, Any]] = field(default_factory=list)
    report_path: Optional[Path] = None
    dispatch: Optional[DispatchSummary] = None
    duration_ms: float = 0.0

    @property
    def total_new(self) -> int:
        return sum(len(o.new_findings) for o in self.outcomes)

    @property
    def exit_code(self) -> int:
        return self.gate.exit_code


def enabled_kinds(config: ScanGateConfig) -> List[ScanKind]:
    return [k for k in SCAN_ORDER if getattr(config.scans, k.value)]


def attribute(outcomes: List[ScanOutcome], resolver: AttributionResolver) -> None:
    """Resolve authorship for every NEW code finding in place."""
    for outcome in outcomes:
        if outcome.kind not in _ATTRIBUTED:
            continue
        for triaged in outcome.new_findings:
            loc = triaged.finding.location
            if not loc.path:
                continue
            triaged.attribution = resolver.resolve(loc.path, loc.start_line, loc.end_line)


def collect(
    document: Dict[str, Any],
    kinds: List[ScanKind],
    store: FingerprintStore,
    *,
    skip_malformed: bool = False,
) -> tuple[List[ScanOutcome], Aggregate]:
    """Normalize, triage against the ledger, and aggregate each scan type."""
    outcomes: List[ScanOutcome] = []
    aggregate = Aggregate()
    for kind in kinds:
        try:
            findings = normalize_section(kind, document)
        except MalformedInputError as exc:
            if not skip_malformed:
                raise
            logger.warning("Skipping %s results: %s", kind.value, exc.detail)
            outcomes.append(ScanOutcome(kind=kind, skipped_reason=exc.detail))
            continue
        outcome = triage(kind, findings, store)
        aggregate.add(outcome)
        outcomes.append(outcome)
    return outcomes, aggregate


def run(
    config: ScanGateConfig,
    *,
    store: Optional[FingerprintStore] = None,
    client: Optional[httpx.Client] = None,
    resolver: Optional[AttributionResolver] = None,
) -> PipelineResult:
    """Execute the gate pipeline described by *config*."""
    start = time.perf_counter()
    workspace = config.build_workspace()

    document = load_results(workspace.results_file)
    if document is None:
        logger.info("No results document at %s; nothing to gate", workspace.results_file)
        return PipelineResult(results_found=False)

    with contextlib.ExitStack() as stack:
        if client is None:
            client = stack.enter_context(httpx.Client(follow_redirects=True))
        if store is None:
            store = stack.enter_context(open_store(config.store, workspace))

        policy: Optional[Policy] = None
        if config.policy.source:
            policy = load_policy(config.policy.source, client)

        kinds = enabled_kinds(config)
        outcomes, aggregate = collect(
            document, kinds, store, skip_malformed=config.scans.skip_malformed
        )

        if resolver is None:
            resolver = build_resolver(config.attribution, workspace, client)
        attribute(outcomes, resolver)

        gate = evaluate(policy, aggregate, kinds)

        base = sarif.commit_base(workspace.source_url)
        report = sarif.build_results(outcomes, base)
        report_path = sarif.write(report, workspace.report_file)
        logger.info("SARIF report generated at %s", report_path)

        text = digest.render(outcomes, gate, workspace.source_url, base)
        summary = dispatch(
            gate=gate,
            results=report,
            digest=text,
            report_path=report_path,
            store=store,
            notify=config.notify,
            tracker=config.tracker,
            client=client,
        )

    return PipelineResult(
        outcomes=outcomes,
        aggregate=aggregate,
        gate=gate,
        report=report,
        report_path=report_path,
        dispatch=summary,
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
    )
