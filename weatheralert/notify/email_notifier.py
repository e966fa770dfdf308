"""SMTP email notifier."""

import logging
import smtplib
from email.message import EmailMessage

from weatheralert.config.schema import EmailConfig
from weatheralert.errors import NotificationError

logger = logging.getLogger(__name__)

SMTP_SSL_PORT = 465


class EmailNotifier:
    """Sends multipart (plain + HTML) mail through one SMTP session per message.

    Port 465 uses implicit TLS; other ports upgrade with STARTTLS when
    ``use_tls`` is set.
    """

    def __init__(self, config: EmailConfig, timeout: float = 30.0):
        self.config = config
        self.timeout = timeout

    def send(self, to: str, subject: str, text: str, html: str = "") -> None:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.config.from_address
        msg["To"] = to
        msg.set_content(text)
        if html:
            msg.add_alternative(html, subtype="html")

        try:
            with self._open() as smtp:
                if self.config.username:
                    smtp.login(self.config.username, self.config.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Error sending email to %s: %s", to, e)
            raise NotificationError(f"Failed to send email to {to}: {e}") from e

        logger.info("Email sent to %s: %s", to, subject)

    def _open(self) -> smtplib.SMTP:
        cfg = self.config
        if cfg.port == SMTP_SSL_PORT:
            return smtplib.SMTP_SSL(cfg.host, cfg.port, timeout=self.timeout)
        smtp = smtplib.SMTP(cfg.host, cfg.port, timeout=self.timeout)
        if cfg.use_tls:
            smtp.starttls()
        return smtp
