"""
Email delivery

LogMailer prints the message instead of sending it (default when no
provider key is configured). ResendMailer posts to the Resend API.
Both expose: async send(to, subject, html) -> None, raising MailerError.
"""

import os
from typing import Optional

import httpx

RESEND_API_KEY = os.getenv("RESEND_API_KEY")
RESEND_API_URL = "https://api.resend.com/emails"
MAIL_FROM = os.getenv(
    "MAIL_FROM", "Build Plan Quantify <notifications@buildplanquantify.com>"
)


class MailerError(RuntimeError):
    pass


class LogMailer:
    async def send(self, to: str, subject: str, html: str) -> None:
        print(f"[MAIL] Would send email to {to}")
        print(f"[MAIL] Subject: {subject}")
        print(f"[MAIL] Body: {len(html):,} chars")


class ResendMailer:
    def __init__(
        self,
        api_key: str,
        sender: str = MAIL_FROM,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout
        self.transport = transport

    async def send(self, to: str, subject: str, html: str) -> None:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(
                    RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "from": self.sender,
                        "to": to,
                        "subject": subject,
                        "html": html,
                    },
                )
        except httpx.HTTPError as e:
            raise MailerError(f"Resend request failed: {e}") from e

        if response.status_code >= 400:
            raise MailerError(
                f"Resend API error: {response.status_code} - {response.text}"
            )

        print(f"[MAIL] Sent '{subject}' to {to}")


def get_mailer():
    """Resend when RESEND_API_KEY is set, otherwise the logging stub"""
    api_key = RESEND_API_KEY or os.getenv("RESEND_API_KEY")
    if api_key:
        return ResendMailer(api_key)
    return LogMailer()
