"""
Logistics Task Management
Email Service — review decision e-mails.

Sends submission review outcomes to the submitter. When SMTP is not
configured the e-mail is recorded and logged but not sent (dev/test mode).

Configuration (env vars):
    MAIL_SERVER     SMTP host (default: None → log-only mode)
    MAIL_PORT       SMTP port (default: 587)
    MAIL_USE_TLS    Use TLS (default: true)
    MAIL_USERNAME   SMTP username
    MAIL_PASSWORD   SMTP password
    MAIL_DEFAULT_SENDER  Default from address
    APP_BASE_URL    Link target in the e-mail body

All e-mails are recorded in EmailLog.
"""

from __future__ import annotations

import logging
import smtplib
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any

from flask import current_app

from logitask.models import db
from logitask.models.notification import EmailLog

logger = logging.getLogger(__name__)


_LAYOUT = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <div style="background: {accent}; color: white; padding: 16px 24px; border-radius: 8px 8px 0 0;">
        <h2 style="margin: 0; font-size: 18px;">{heading}</h2>
    </div>
    <div style="background: #f8fafc; padding: 24px; border: 1px solid #e2e8f0; border-top: none;">
        <p style="color: #334155;">Hello {recipient_name},</p>
        <p style="color: #334155; line-height: 1.6;">{intro}</p>
        <table style="width: 100%; border-collapse: collapse; margin: 12px 0;">
            <tr><td style="padding: 6px; color: #64748b;">Task</td><td style="padding: 6px;">{task_title}</td></tr>
            <tr><td style="padding: 6px; color: #64748b;">Requirement</td><td style="padding: 6px;">{attachment_title}</td></tr>
        </table>
        {comments_block}
        <p><a href="{task_url}" style="color: #2563eb;">Open the task</a></p>
    </div>
    <div style="background: #f1f5f9; padding: 12px 24px; border-radius: 0 0 8px 8px;
                border: 1px solid #e2e8f0; border-top: none; text-align: center;">
        <p style="color: #94a3b8; font-size: 12px; margin: 0;">BMT Logistics automated notification</p>
    </div>
</div>
"""

_TEMPLATES: dict[str, dict[str, str]] = {
    "submission_approved": {
        "subject": "Submission approved: {attachment_title}",
        "heading": "Submission approved",
        "intro": "Your submission has been approved. No further action is needed.",
        "accent": "#16a34a",
    },
    "submission_rejected": {
        "subject": "Action required: {attachment_title} was rejected",
        "heading": "Submission rejected",
        "intro": "Your submission was rejected. Please review the comments and submit again.",
        "accent": "#dc2626",
    },
    "submission_flagged": {
        "subject": "Action required: {attachment_title} was flagged",
        "heading": "Submission flagged",
        "intro": "Your submission was flagged for attention. Please review the comments and submit again.",
        "accent": "#d97706",
    },
}


class EmailService:
    """
    Email sending service with template support.

    In development/test mode (no MAIL_SERVER configured), emails are
    logged to the database but not actually sent via SMTP.
    """

    @staticmethod
    def is_configured() -> bool:
        """Check if SMTP is configured."""
        return bool(current_app.config.get("MAIL_SERVER"))

    @staticmethod
    def get_template(template_name: str) -> dict[str, str] | None:
        return _TEMPLATES.get(template_name)

    @classmethod
    def send(
        cls,
        *,
        to_email: str,
        to_name: str | None = None,
        subject: str,
        html_body: str,
        template_name: str | None = None,
        submission_id: int | None = None,
    ) -> EmailLog:
        """
        Send an email and log it.

        Returns:
            The EmailLog record for this email (flushed, not committed).
        """
        log = EmailLog(
            recipient_email=to_email,
            recipient_name=to_name,
            subject=subject,
            template_name=template_name,
            status="queued",
            submission_id=submission_id,
        )
        db.session.add(log)
        db.session.flush()

        if not cls.is_configured():
            # Dev/test mode: log only
            log.status = "sent"
            log.sent_at = datetime.now(timezone.utc)
            logger.info(
                "Email (dev mode): to=%s subject='%s' template=%s",
                to_email, subject, template_name,
                extra={"submission_id": submission_id},
            )
            return log

        try:
            cls._send_smtp(to_email=to_email, to_name=to_name,
                           subject=subject, html_body=html_body)
            log.status = "sent"
            log.sent_at = datetime.now(timezone.utc)
            logger.info("Email sent: to=%s subject='%s'", to_email, subject,
                        extra={"submission_id": submission_id})
        except (smtplib.SMTPException, OSError) as exc:
            log.status = "failed"
            log.error_message = str(exc)[:1000]
            logger.error("Email failed: to=%s error=%s", to_email, exc,
                         extra={"submission_id": submission_id})

        return log

    @classmethod
    def send_from_template(
        cls,
        *,
        to_email: str,
        to_name: str | None = None,
        template_name: str,
        context: dict[str, Any],
        submission_id: int | None = None,
    ) -> EmailLog | None:
        """Send an email using a named template; variables come from ``context``."""
        template = cls.get_template(template_name)
        if not template:
            logger.warning("Email template not found: %s", template_name)
            return None

        values = _SafeDict(context)
        values.setdefault("heading", template["heading"])
        values.setdefault("intro", template["intro"])
        values.setdefault("accent", template["accent"])

        subject = template["subject"].format_map(values)
        html_body = _LAYOUT.format_map(values)

        return cls.send(
            to_email=to_email,
            to_name=to_name,
            subject=subject,
            html_body=html_body,
            template_name=template_name,
            submission_id=submission_id,
        )

    @staticmethod
    def _send_smtp(*, to_email: str, to_name: str | None,
                   subject: str, html_body: str) -> None:
        cfg = current_app.config
        server = cfg.get("MAIL_SERVER")
        port = cfg.get("MAIL_PORT", 587)
        use_tls = cfg.get("MAIL_USE_TLS", True)
        username = cfg.get("MAIL_USERNAME")
        password = cfg.get("MAIL_PASSWORD")
        sender = cfg.get("MAIL_DEFAULT_SENDER", f"noreply@{server}")

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = f"{to_name} <{to_email}>" if to_name else to_email
        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(server, port, timeout=30) as smtp:
            if use_tls:
                smtp.starttls()
            if username and password:
                smtp.login(username, password)
            smtp.send_message(msg)


class _SafeDict(dict):
    """Dict that returns {key} for missing keys instead of raising."""

    def __missing__(self, key):
        return f"{{{key}}}"
