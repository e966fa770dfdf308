"""Notifier interface and factory."""

from typing import Protocol

from weatheralert.config.schema import NotifierConfig, NotifierMode
from weatheralert.notify.dry_run import DryRunNotifier
from weatheralert.notify.email_notifier import EmailNotifier


class Notifier(Protocol):
    def send(self, to: str, subject: str, text: str, html: str = "") -> None:
        """Deliver a message. Raises NotificationError on failure."""
        ...


def build_notifier(config: NotifierConfig) -> Notifier:
    if config.mode == NotifierMode.SMTP:
        return EmailNotifier(config.email)
    return DryRunNotifier()
