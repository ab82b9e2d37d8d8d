"""Verification email delivery through the Resend HTTP API."""

from __future__ import annotations

import asyncio
import html
import logging
from urllib.parse import quote

import httpx

from survetic.config import Settings

logger = logging.getLogger(__name__)

VERIFICATION_SUBJECT = "Welcome to Survetic - Verify Your Email"


class EmailService:
    """HTTP client for sending account emails.

    One ``httpx.AsyncClient`` is shared for the life of the application; it is
    opened by ``startup`` and closed by ``shutdown`` from the app lifespan.
    Delivery never raises: callers get a boolean and failures are logged.
    """

    def __init__(self, settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._base_url = settings.resend_api_url.rstrip("/")
        self._timeout = settings.email_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()

    async def startup(self) -> None:
        """Initialize the underlying HTTP client."""
        async with self._lock:
            if self._client is None:
                logger.info("Email delivery via %s", self._base_url)
                self._client = httpx.AsyncClient(
                    base_url=self._base_url,
                    timeout=self._timeout,
                    transport=self._transport,
                )

    async def shutdown(self) -> None:
        """Close the underlying HTTP client."""
        async with self._lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            await self.startup()
        assert self._client is not None
        return self._client

    def verification_url(self, token: str) -> str:
        return f"{self._settings.app_base_url.rstrip('/')}/verify-email?token={quote(token)}"

    def _should_log_only(self, email: str) -> bool:
        return not self._settings.resend_api_key or self._settings.is_test_email(email)

    async def send_verification_email(self, email: str, first_name: str, token: str) -> bool:
        """Send the account verification link.

        Returns:
            True when the message was accepted (or logged in test mode),
            False when delivery failed.
        """
        url = self.verification_url(token)
        if self._should_log_only(email):
            logger.info(
                "Verification email (not sent) to=%s subject=%r link=%s",
                email, VERIFICATION_SUBJECT, url,
            )
            return True

        payload = {
            "from": self._settings.email_from,
            "to": [email],
            "subject": VERIFICATION_SUBJECT,
            "html": _verification_html(first_name, url),
            "text": _verification_text(first_name, url),
        }

        client = await self._ensure_client()
        try:
            response = await client.post(
                "/emails",
                json=payload,
                headers={"Authorization": f"Bearer {self._settings.resend_api_key}"},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Verification email to %s failed: %s", email, exc)
            return False

        logger.info("Verification email sent to %s", email)
        return True


def _verification_text(first_name: str, url: str) -> str:
    return (
        f"Hi {first_name},\n\n"
        "Thank you for joining Survetic! Verify your email address to start "
        f"creating surveys:\n\n{url}\n"
    )


def _verification_html(first_name: str, url: str) -> str:
    name = html.escape(first_name)
    link = html.escape(url, quote=True)
    return f"""<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
  <h1 style="color: #2563eb; text-align: center;">Welcome to Survetic!</h1>
  <p>Hi <strong>{name}</strong>,</p>
  <p>Thank you for joining Survetic! Please verify your email address by clicking the button below:</p>
  <p style="text-align: center; margin: 30px 0;">
    <a href="{link}" style="background-color: #2563eb; color: white; padding: 15px 30px; text-decoration: none; border-radius: 8px; font-weight: bold;">Verify Email Address</a>
  </p>
  <p style="font-size: 14px; color: #666;">If the button doesn't work, copy and paste this link into your browser:</p>
  <p style="font-size: 14px; color: #2563eb; word-break: break-all;">{link}</p>
</body>
</html>
"""
