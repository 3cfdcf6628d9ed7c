"""
auth/mailer.py -- OTP delivery over SMTP.

The reset flow only depends on the narrow contract

    async def send_otp(email: str, otp: str) -> None   # raises DeliveryError

so tests swap in a fake and deployments without mail configured get a mailer
that fails loudly instead of pretending to send.

smtplib is blocking; send_otp() runs it in a worker thread so a slow relay
never stalls the event loop. The connection uses Settings.smtp_timeout, so a
dead relay surfaces as DeliveryError rather than a hang.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage

logger = logging.getLogger("onushilon.auth.mailer")

_SUBJECT = "Password Reset OTP - Onushilon"

_TEXT_BODY = "Your password reset OTP is: {otp}. This OTP will expire in {minutes} minutes."

_HTML_BODY = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h2 style="color: #333;">Password Reset Request</h2>
  <p>You have requested to reset your password. Please use the following OTP to proceed:</p>
  <div style="background-color: #f4f4f4; padding: 20px; text-align: center; margin: 20px 0;">
    <h1 style="color: #007bff; font-size: 32px; margin: 0; letter-spacing: 5px;">{otp}</h1>
  </div>
  <p><strong>This OTP will expire in {minutes} minutes.</strong></p>
  <p>If you didn't request this password reset, please ignore this email.</p>
</div>
"""


class DeliveryError(Exception):
    """The OTP could not be handed to the mail relay."""


class Mailer(ABC):
    """Delivery contract used by PasswordResetService."""

    @abstractmethod
    async def send_otp(self, email: str, otp: str) -> None:
        """Deliver otp to email. Raises DeliveryError on failure."""


class UnconfiguredMailer(Mailer):
    """Used when SMTP_HOST is empty. Every send fails."""

    async def send_otp(self, email: str, otp: str) -> None:
        raise DeliveryError("Email delivery is not configured.")


class SmtpMailer(Mailer):
    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 10.0,
        sender: str = "no-reply@onushilon.com",
        otp_ttl_seconds: int = 600,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout
        self.sender = sender
        self.otp_minutes = max(1, otp_ttl_seconds // 60)

    def build_message(self, email: str, otp: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = email
        msg["Subject"] = _SUBJECT
        msg.set_content(_TEXT_BODY.format(otp=otp, minutes=self.otp_minutes))
        msg.add_alternative(_HTML_BODY.format(otp=otp, minutes=self.otp_minutes), subtype="html")
        return msg

    async def send_otp(self, email: str, otp: str) -> None:
        await asyncio.to_thread(self._send, self.build_message(email, otp))

    def _send(self, msg: EmailMessage) -> None:
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("Reset OTP email to %s failed: %s", msg["To"], exc)
            raise DeliveryError(str(exc)) from exc
        logger.info("Reset OTP email sent to %s", msg["To"])
