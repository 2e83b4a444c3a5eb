"""DefectDojo import-scan upload of the SARIF report."""

from __future__ import annotations

import logging
from pathlib import Path

from scangate.config.schema import TrackerConfig
from scangate.errors import ForwardError
from scangate.notify.base import Forwarder

logger = logging.getLogger(__name__)


class DefectDojoUploader(Forwarder):
    name = "defectdojo"

    def __init__(self, client, config: TrackerConfig) -> None:
        super().__init__(client)
        self.config = config

    @property
    def endpoint(self) -> str:
        return f"{self.config.url.rstrip('/')}/api/v2/import-scan/"

    def send(self, report_path: Path) -> None:
        try:
            content = report_path.read_bytes()
        except OSError as exc:
            raise ForwardError(f"{self.name}: cannot read report {report_path}: {exc}") from exc

        self._post(
            self.endpoint,
            headers={"Authorization": f"Token {self.config.token}"},
            data={
                "scan_type": "SARIF",
                "product_name": self.config.product_name,
                "engagement_name": self.config.engagement_name,
                "auto_create_context": "true",
                "active": "true",
                "verified": "true",
                "close_old_findings": "false",
            },
            files={"file": (report_path.name, content, "application/json")},
        )
        logger.info(
            "Uploaded SARIF report to DefectDojo (%s / %s)",
            self.config.product_name, self.config.engagement_name,
        )
