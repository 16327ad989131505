from datetime import datetime, timezone
from html import escape
from typing import Callable, Optional
from api.services.alerting import AlertKind
from api.services.email_service import EmailService
from api.services.targets import Observation, Target
from db.repositories.settings_repository import SettingsRepository
import logging
import time

logger = logging.getLogger(__name__)

# Rows of {"name", "url", "status", "checked_at"} for every active website
StatusSummary = Callable[[], list[dict]]


def build_email_service(settings_repo: Optional[SettingsRepository]) -> Optional[EmailService]:
    """EmailService from settings (env vars or database), or None when SMTP is not configured"""
    if settings_repo is None or not settings_repo.is_smtp_configured():
        logger.info("SMTP not configured, email alerts disabled")
        return None
    try:
        email_service = EmailService(settings_repo.get_smtp_config())
    except ValueError as e:
        logger.warning(f"Failed to initialize email service: {e}")
        return None
    logger.info("Email service initialized successfully")
    return email_service


class EmailNotifier:
    def __init__(
        self,
        email_service: Optional[EmailService],
        recipient: Optional[str],
        status_summary: Optional[StatusSummary] = None,
        attempts: int = 3,
        retry_delay: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.email_service = email_service
        self.recipient = recipient
        self.status_summary = status_summary
        self.attempts = attempts
        self.retry_delay = retry_delay
        self.sleep = sleep

    def send_alert(
        self, target: Target, kind: AlertKind, observation: Optional[Observation] = None
    ) -> tuple[bool, str]:
        if not self.email_service:
            logger.warning("Email service not configured, skipping alert")
            return False, "email service not configured"
        if not self.recipient:
            logger.warning("No alert recipient configured, skipping alert")
            return False, "no alert recipient configured"

        subject, html_content, text_content = self.render(target, kind, observation)

        message = ""
        for attempt in range(1, self.attempts + 1):
            success, message = self.email_service.send_alert(
                to_email=self.recipient,
                subject=subject,
                html_content=html_content,
                text_content=text_content,
            )
            if success:
                return True, message
            logger.warning(f"Alert email attempt {attempt} failed: {message}")
            if attempt < self.attempts:
                self.sleep(self.retry_delay)

        return False, f"failed to send email after {self.attempts} attempts: {message}"

    def render(
        self, target: Target, kind: AlertKind, observation: Optional[Observation]
    ) -> tuple[str, str, str]:
        name = target.name or target.address
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")

        if kind == AlertKind.DOWN:
            subject = f"🔴 The Ark Alert: {name} is down"
            headline = f"{name} is down"
        else:
            subject = f"🟢 The Ark: {name} has recovered"
            headline = f"{name} is back up"

        details = [("Website", name), ("URL", target.address), ("Alert", kind.value), ("Time", timestamp)]
        if observation is not None:
            details.append(("Status code", str(observation.status_code or "none")))
            details.append(("Response time", f"{observation.latency_ms} ms"))
            if observation.error:
                details.append(("Error", observation.error))

        rows = self._summary_rows()

        html_details = "".join(f"<li><strong>{escape(k)}:</strong> {escape(v)}</li>" for k, v in details)
        html_rows = "".join(
            f"<tr><td>{escape(r['name'])}</td><td>{escape(r['url'])}</td>"
            f"<td>{escape(r['status'])}</td><td>{escape(r['checked_at'])}</td></tr>"
            for r in rows
        )
        html_content = f"""
        <h2>{escape(headline)}</h2>
        <ul>{html_details}</ul>
        <h3>All websites</h3>
        <table>
            <tr><th>Name</th><th>URL</th><th>Status</th><th>Last checked</th></tr>
            {html_rows}
        </table>
        <hr>
        <p style="color: #666; font-size: 12px;">This alert was sent by The Ark uptime monitor.</p>
        """

        text_lines = [headline, ""] + [f"{k}: {v}" for k, v in details]
        if rows:
            text_lines += ["", "All websites:"]
            text_lines += [f"- {r['name']} ({r['url']}): {r['status']} at {r['checked_at']}" for r in rows]
        return subject, html_content, "\n".join(text_lines)

    def _summary_rows(self) -> list[dict]:
        if self.status_summary is None:
            return []
        try:
            return self.status_summary()
        except Exception:
            # The alert still goes out without the table
            logger.exception("Failed to build website status summary for alert email")
            return []
