"""Fire-and-forget notifications for standout findings.

send() never raises: delivery failures are logged and reported as False so
a flaky mail server can never abort a scan cycle.
"""

import asyncio
import smtplib
from abc import ABC, abstractmethod
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from finder.config import AlertSettings
from finder.logging import get_logger
from finder.models import Finding

logger = get_logger(__name__)


def is_standout(finding: Finding, settings: AlertSettings) -> bool:
    """Standout = profit and margin both at or above the alert thresholds."""
    return finding.profit >= settings.min_profit and finding.margin >= settings.min_margin


def format_alert(finding: Finding) -> tuple[str, str]:
    """Return (subject, plain-text body) for a finding."""
    subject = f"Hot product: {finding.name} - ${finding.profit:.2f} profit"
    lines = [
        f"{finding.name} ({finding.category})",
        "",
        f"Buy price:   ${finding.buy_price:.2f}",
        f"Sell price:  ${finding.sell_price:.2f}",
        f"Profit:      ${finding.profit:.2f}",
        f"Margin:      {finding.margin:.1f}%",
        f"Competition: {finding.competition.value}",
        f"Sold:        {finding.sold_count} units",
    ]
    return subject, "\n".join(lines)


class AlertSink(ABC):
    """Destination for standout-finding notifications."""

    @abstractmethod
    async def send(self, finding: Finding) -> bool:
        """Deliver a notification. Returns False on failure, never raises."""
        ...


class LogAlertSink(AlertSink):
    """Logs alerts instead of delivering them (no mail server configured)."""

    async def send(self, finding: Finding) -> bool:
        logger.info(
            "standout_finding",
            keyword=finding.keyword,
            profit=str(finding.profit),
            margin=str(round(finding.margin, 1)),
        )
        return True


class SmtpAlertSink(AlertSink):
    """Sends alerts as plain-text email over SMTP with STARTTLS.

    Args:
        settings: SMTP host/port, credentials, sender and recipient.
    """

    def __init__(self, settings: AlertSettings) -> None:
        self._settings = settings

    async def send(self, finding: Finding) -> bool:
        subject, body = format_alert(finding)
        try:
            await asyncio.to_thread(self._deliver, subject, body)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("alert_delivery_failed", keyword=finding.keyword, error=str(e))
            return False
        logger.info("alert_sent", keyword=finding.keyword, to=self._settings.to_email)
        return True

    def _deliver(self, subject: str, body: str) -> None:
        s = self._settings
        msg = MIMEMultipart()
        msg["From"] = s.from_email
        msg["To"] = s.to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain", "utf-8"))

        with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.timeout_seconds) as server:
            server.starttls()
            if s.smtp_username:
                server.login(s.smtp_username, s.smtp_password.get_secret_value())
            server.sendmail(s.from_email, [s.to_email], msg.as_string())


def build_alert_sink(settings: AlertSettings) -> AlertSink:
    """SMTP when a host and recipient are configured, logging otherwise."""
    if settings.smtp_host and settings.to_email:
        return SmtpAlertSink(settings)
    return LogAlertSink()
