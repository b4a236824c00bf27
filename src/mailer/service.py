"""
Outbound email through SMTP (aiosmtplib) or the Resend HTTP API.
"""

import asyncio
import logging
from email.message import EmailMessage

import aiosmtplib
import requests

from src.config.models import EmailConfig, ResendConfig, SMTPConfig


logger = logging.getLogger("mailer")

RESEND_API_URL = "https://api.resend.com/emails"


class EmailError(Exception):
    pass


class EmailService:
    """Sends HTML emails with the provider selected in ``EmailConfig``."""

    def __init__(self, timeout: float = 30.0):
        self._timeout = timeout

    async def send(self, email_config: EmailConfig, to: str, subject: str, html: str) -> None:
        """
        Send one HTML email.

        Raises:
            EmailError: If email is disabled, the provider is not configured, or
                delivery fails
        """
        if not email_config.enabled:
            raise EmailError("Email notifications are disabled")

        if email_config.provider == "smtp" and email_config.smtp:
            await self.send_via_smtp(email_config.smtp, to, subject, html)
        elif email_config.provider == "resend" and email_config.resend:
            await self.send_via_resend(email_config.resend, to, subject, html)
        else:
            raise EmailError(f"Email provider not configured: {email_config.provider}")
        logger.info(f"Email sent to {to}: {subject}")

    async def send_via_smtp(self, smtp: SMTPConfig, to: str, subject: str, html: str) -> None:
        message = EmailMessage()
        message["From"] = smtp.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This email requires an HTML capable client.")
        message.add_alternative(html, subtype="html")

        try:
            await aiosmtplib.send(
                message,
                hostname=smtp.host,
                port=smtp.port,
                username=smtp.user or None,
                password=smtp.password or None,
                use_tls=smtp.secure,
                timeout=self._timeout,
            )
        except aiosmtplib.SMTPException as e:
            raise EmailError(f"SMTP delivery to {to} failed: {e}") from e

    async def send_via_resend(
        self, resend: ResendConfig, to: str, subject: str, html: str
    ) -> None:
        await asyncio.to_thread(self._post_resend, resend, to, subject, html)

    def _post_resend(self, resend: ResendConfig, to: str, subject: str, html: str) -> None:
        try:
            response = requests.post(
                RESEND_API_URL,
                headers={"Authorization": f"Bearer {resend.api_key}"},
                json={"from": resend.sender, "to": [to], "subject": subject, "html": html},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise EmailError(f"Resend delivery to {to} failed: {e}") from e
