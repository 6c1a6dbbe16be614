import logging
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape

import aiosmtplib

from core.breaker import smtp_breaker
from core.settings import settings

logger = logging.getLogger(__name__)

BUTTON_STYLE = (
    "display:inline-block;background:#28a745;color:white;padding:10px 20px;"
    "text-decoration:none;border-radius:4px;"
)


def reference_submit_link(token: str) -> str:
    return f"{settings.FRONTEND_URL}/references/submit/{token}"


def _wrap(body: str) -> str:
    return f"""
        <html>
        <body style="font-family: Arial, sans-serif; line-height: 1.6;">
            {body}
            <p>Best regards,<br>{escape(settings.SUPPORT_TEAM_NAME)}</p>
        </body>
        </html>
        """


def _humanize(reference_type: str) -> str:
    return reference_type.replace("_", " ")


def _format_date(value: datetime | str) -> str:
    if isinstance(value, datetime):
        return value.strftime("%b %d, %Y")
    return str(value)


def render_reference_request(payload: dict) -> tuple[str, str]:
    link = reference_submit_link(payload["token"])
    body = f"""
            <h2>Reference Request</h2>
            <p>Hello {escape(payload["provider_name"])},</p>
            <p>{escape(payload["tenant_name"])} has listed you as a
               {escape(_humanize(payload["reference_type"]))} reference.</p>
            <p>Please share your reference, or let us know if you cannot:</p>
            <a href="{link}" style="{BUTTON_STYLE}">Respond to Request</a>
            <p>This link expires on {_format_date(payload["expires_at"])}.</p>
            <hr>
            <p>If you do not know this person, you can decline from the same page.</p>
        """
    return f"Reference request for {payload['tenant_name']}", _wrap(body)


def render_reference_reminder(payload: dict) -> tuple[str, str]:
    link = reference_submit_link(payload["token"])
    body = f"""
            <h2>Reference Reminder</h2>
            <p>Hello {escape(payload["provider_name"])},</p>
            <p>{escape(payload["tenant_name"])} is still waiting for your
               {escape(_humanize(payload["reference_type"]))} reference.</p>
            <p>The request expires in {payload["days_until_expiry"]} day(s).</p>
            <a href="{link}" style="{BUTTON_STYLE}">Respond to Request</a>
        """
    return f"Reminder: reference for {payload['tenant_name']}", _wrap(body)


def render_reference_completed(payload: dict) -> tuple[str, str]:
    body = f"""
            <h2>Reference Completed</h2>
            <p>Hello {escape(payload["tenant_name"])},</p>
            <p>{escape(payload["provider_name"])} has completed your
               {escape(_humanize(payload["reference_type"]))} reference.</p>
            <p>Rating: {payload["rating"]}/5</p>
            <p>{escape(payload.get("feedback") or "")}</p>
        """
    return "Your reference has been completed", _wrap(body)


def render_reference_declined(payload: dict) -> tuple[str, str]:
    comment = payload.get("decline_comment")
    comment_html = f"<p>Comment: {escape(comment)}</p>" if comment else ""
    body = f"""
            <h2>Reference Declined</h2>
            <p>Hello {escape(payload["tenant_name"])},</p>
            <p>{escape(payload["provider_name"])} declined to provide your
               {escape(_humanize(payload["reference_type"]))} reference.</p>
            <p>Reason: {escape(_humanize(payload["decline_reason"]))}</p>
            {comment_html}
            <p>You can request a reference from someone else at any time.</p>
        """
    return "A reference request was declined", _wrap(body)


def render_verification_status(payload: dict) -> tuple[str, str]:
    if payload.get("newly_verified"):
        headline = "Congratulations, you are now a verified tenant!"
    else:
        headline = "Your verification progress has been updated."
    body = f"""
            <h2>Verification Update</h2>
            <p>Hello {escape(payload["tenant_name"])},</p>
            <p>{headline}</p>
            <p>Current verification score: {payload["verification_percentage"]}%</p>
        """
    return "Tenant verification update", _wrap(body)


async def send_html_email(to_email: str, subject: str, html_content: str) -> None:
    async def handler():
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = settings.EMAIL_USER
        message["To"] = to_email
        message.attach(MIMEText(html_content, "html"))

        await aiosmtplib.send(
            message,
            hostname=settings.EMAIL_SERVER,
            port=settings.EMAIL_PORT,
            username=settings.EMAIL_USER,
            password=settings.EMAIL_PASSWORD,
            start_tls=settings.EMAIL_USE_TLS,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )

    await smtp_breaker.call(handler)
