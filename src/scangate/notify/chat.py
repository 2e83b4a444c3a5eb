"""Chat webhook alert (Slack-compatible incoming webhook)."""

from __future__ import annotations

import logging

from scangate.notify.base import Forwarder

logger = logging.getLogger(__name__)


class ChatWebhook(Forwarder):
    name = "chat"

    def __init__(self, client, webhook_url: str) -> None:
        super().__init__(client)
        self.webhook_url = webhook_url

    def send(self, text: str) -> None:
        self._post(self.webhook_url, json={"text": text})
        logger.info("Chat alert sent")
