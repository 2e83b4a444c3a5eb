"""Best-effort forwarding of the run outcome.

The job record, chat alert, and tracker upload are independent: each one
is attempted on its own and a failure is logged without affecting the
others or the run's exit code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import httpx

from scangate.config.schema import NotifyConfig, TrackerConfig
from scangate.errors import ForwardError, StoreUnavailableError
from scangate.notify.chat import ChatWebhook
from scangate.notify.tracker import DefectDojoUploader
from scangate.policy.models import GateResult
from scangate.store.base import FingerprintStore

logger = logging.getLogger(__name__)

SENT = "sent"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class DispatchSummary:
    steps: Dict[str, str] = field(default_factory=dict)

    def __getitem__(self, name: str) -> str:
        return self.steps[name]


def dispatch(
    *,
    gate: GateResult,
    results: List[Dict[str, Any]],
    digest: str,
    report_path: Path,
    store: FingerprintStore,
    notify: NotifyConfig,
    tracker: TrackerConfig,
    client: httpx.Client,
) -> DispatchSummary:
    summary = DispatchSummary()

    # (a) job outcome record, whenever a policy gated the run
    if gate.policy_supplied and notify.job_id:
        try:
            store.record_job(notify.job_id, gate.reason, gate.exit_code, results)
            summary.steps["job"] = SENT
            logger.info("Recorded outcome for job %s", notify.job_id)
        except StoreUnavailableError as exc:
            summary.steps["job"] = FAILED
            logger.warning("Could not record job %s: %s", notify.job_id, exc)
    else:
        summary.steps["job"] = SKIPPED

    # (b) chat digest, only when something new surfaced
    if results and notify.chat_webhook_url:
        try:
            ChatWebhook(client, notify.chat_webhook_url).send(digest)
            summary.steps["chat"] = SENT
        except ForwardError as exc:
            summary.steps["chat"] = FAILED
            logger.warning("Chat alert failed: %s", exc)
    else:
        if not results:
            logger.info("No new issues found in scan results, so chat alert is not sent")
        summary.steps["chat"] = SKIPPED

    # (c) tracker upload
    if tracker.configured and results:
        try:
            DefectDojoUploader(client, tracker).send(report_path)
            summary.steps["tracker"] = SENT
        except ForwardError as exc:
            summary.steps["tracker"] = FAILED
            logger.warning("DefectDojo upload failed: %s", exc)
    else:
        if not tracker.configured:
            logger.info(
                "Skipping DefectDojo upload: missing url, token, product_name, or engagement_name"
            )
        summary.steps["tracker"] = SKIPPED

    return summary
