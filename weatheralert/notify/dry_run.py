"""Dry-run notifier: logs messages instead of delivering them."""

import logging

from weatheralert.notify.messages import AlertMessage

logger = logging.getLogger(__name__)


class DryRunNotifier:
    def __init__(self) -> None:
        self.sent: list[AlertMessage] = []

    def send(self, to: str, subject: str, text: str, html: str = "") -> None:
        logger.info("DRY-RUN: email to %s: %s", to, subject)
        self.sent.append(AlertMessage(to=to, subject=subject, text=text, html=html))
