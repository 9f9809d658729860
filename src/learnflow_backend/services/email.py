"""
Outbound email through the Resend HTTP API.
"""
import html
import logging
from typing import Optional
import httpx

from learnflow_backend.api.exceptions import DependencyException
from learnflow_backend.settings import settings

logger = logging.getLogger(__name__)


class EmailService:

    def __init__(self, api_key: Optional[str] = None, sender: Optional[str] = None, api_url: Optional[str] = None):
        self.api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self.sender = sender or settings.EMAIL_FROM
        self.api_url = api_url or settings.EMAIL_API_URL

    def send(self, to: str, subject: str, html_body: str) -> None:
        if not self.api_key:
            logger.info(f"RESEND_API_KEY not configured, not sending '{subject}' to {to}")
            return

        try:
            response = httpx.post(
                self.api_url,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={"from": self.sender, "to": [to], "subject": subject, "html": html_body},
                timeout=settings.EMAIL_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Sending '{subject}' to {to} failed: {e}")
            raise DependencyException("Failed to send email")

        logger.info(f"Sent '{subject}' to {to}")

    def send_invite(self, to: str, full_name: Optional[str], link: str) -> None:
        name = html.escape(full_name or "there")
        body = f"""
        <div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px;">
            <h2>Welcome to LearnFlow</h2>
            <p>Hi {name},</p>
            <p>An account has been created for you. Choose your password to get started:</p>
            <p><a href="{html.escape(link)}" style="background: #2563eb; color: white; padding: 12px 24px; text-decoration: none; border-radius: 6px;">Set your password</a></p>
            <p style="font-size: 13px; color: #666;">Or open this link: {html.escape(link)}</p>
        </div>
        """
        self.send(to, "You're invited to LearnFlow", body)

    def send_reset_code(self, to: str, code: str) -> None:
        body = f"""
        <div style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px;">
            <h2>Reset your password</h2>
            <p>Use this code to reset your LearnFlow password:</p>
            <p style="font-size: 28px; letter-spacing: 6px; font-weight: bold;">{html.escape(code)}</p>
            <p style="font-size: 13px; color: #666;">If you did not request a reset you can ignore this email.</p>
        </div>
        """
        self.send(to, "Reset your LearnFlow password", body)


_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
