"""
Transactional email delivery.

Two backends:
- ``LogEmailSender``: writes the recipient and subject to the structured log (local dev)
- ``ResendEmailSender``: posts to the Resend HTTP API

Both raise ``EmailDispatchFailed`` when delivery cannot be confirmed, so
callers can keep their own state consistent with what was actually sent.
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

import httpx
import structlog

from app.core.config import get_settings
from app.core.errors import EmailDispatchFailed

log = structlog.get_logger()


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str
    text: Optional[str] = None


class EmailSender:
    """Interface for outbound email."""

    async def send(self, message: EmailMessage) -> None:
        raise NotImplementedError


class LogEmailSender(EmailSender):
    """Development backend: records that a message would have been sent.

    Only the envelope is logged; bodies carry one-time codes.
    """

    async def send(self, message: EmailMessage) -> None:
        log.info("email.logged", to=message.to, subject=message.subject)


class ResendEmailSender(EmailSender):
    def __init__(
        self,
        api_key: str,
        sender: str,
        api_url: str = "https://api.resend.com/emails",
        request_timeout: int = 10,
    ):
        self._api_key = api_key
        self._sender = sender
        self._api_url = api_url
        self._request_timeout = request_timeout

    async def send(self, message: EmailMessage) -> None:
        payload = {
            "from": self._sender,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        if message.text:
            payload["text"] = message.text

        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self._request_timeout)) as client:
                resp = await client.post(
                    self._api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )
                resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            log.error("email.provider_error", status=exc.response.status_code, to=message.to)
            raise EmailDispatchFailed() from exc
        except httpx.HTTPError as exc:
            log.error("email.provider_unreachable", to=message.to, error=str(exc))
            raise EmailDispatchFailed() from exc

        if not resp.json().get("id"):
            log.error("email.no_message_id", to=message.to)
            raise EmailDispatchFailed()
        log.info("email.sent", to=message.to, subject=message.subject)


@lru_cache
def get_email_sender() -> EmailSender:
    """FastAPI dependency returning the configured email backend."""
    settings = get_settings()
    if settings.email_backend == "resend":
        if not settings.resend_api_key:
            raise RuntimeError("SN_RESEND_API_KEY is required for the resend email backend")
        return ResendEmailSender(
            api_key=settings.resend_api_key,
            sender=settings.email_from,
            api_url=settings.resend_api_url,
            request_timeout=settings.email_timeout_seconds,
        )
    return LogEmailSender()


# ---------------------------------------------------------------------------
# Message templates
# ---------------------------------------------------------------------------

def otp_email(to: str, code: str, minutes: int, *, verification: bool = False) -> EmailMessage:
    if verification:
        subject = "Verify your email for SyncNotes"
        heading = "Welcome to SyncNotes!"
    else:
        subject = "Your SyncNotes login code"
        heading = "Your SyncNotes login code"
    return EmailMessage(
        to=to,
        subject=subject,
        html=(
            f"<h2>{heading}</h2>"
            f"<p>Your code is: <strong>{code}</strong></p>"
            f"<p>This code will expire in {minutes} minutes.</p>"
            "<p>If you didn't request this code, please ignore this email.</p>"
        ),
        text=f"Your code is: {code}. It will expire in {minutes} minutes.",
    )


ROLE_DESCRIPTIONS = {
    "VIEWER": "view content shared with viewers",
    "MEMBER": "view and edit content",
    "ADMIN": "have full administrative control",
}


def invitation_email(
    to: str,
    org_name: str,
    inviter: str,
    role: str,
    invite_url: str,
    *,
    needs_account: bool,
    days: int = 7,
) -> EmailMessage:
    safe_org = html.escape(org_name)
    safe_inviter = html.escape(inviter)
    signup = "sign up and " if needs_account else ""
    account_note = (
        "<p>You'll need to create an account when you accept the invitation.</p>"
        if needs_account
        else ""
    )
    return EmailMessage(
        to=to,
        subject=f"Invitation to join {org_name} on SyncNotes",
        html=(
            "<h2>Organization Invitation</h2>"
            f"<p>{safe_inviter} has invited you to join <strong>{safe_org}</strong> as a "
            f"<strong>{role.lower()}</strong>. With this role, you'll be able to "
            f"{ROLE_DESCRIPTIONS.get(role, 'collaborate')}.</p>"
            f"{account_note}"
            f"<p>Click the following link to {signup}accept the invitation:</p>"
            f'<p><a href="{html.escape(invite_url)}">{html.escape(invite_url)}</a></p>'
            f"<p>This invitation expires in {days} days.</p>"
        ),
        text=(
            f"{inviter} has invited you to join {org_name} as a {role.lower()}. "
            f"Open {invite_url} to {signup}accept the invitation."
        ),
    )
