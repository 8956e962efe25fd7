"""Outbound e-mail for password-reset links (SMTP)."""

from __future__ import annotations

import html
import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

RESET_EMAIL_SUBJECT = "[CG HRIS] : Password Reset Request"


class NotificationError(Exception):
    """Raised when a message could not be handed to the mail server."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ResetLinkNotifier(Protocol):
    def send_password_reset(self, to_email: str, hospital_name: str, reset_link: str) -> None: ...


def redact_email(email: str) -> str:
    """Redact an email address for logging to avoid PII leakage."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


def render_reset_email(hospital_name: str, reset_link: str) -> str:
    """HTML body for the reset message."""
    name = html.escape(hospital_name)
    link = html.escape(reset_link, quote=True)
    return f"""<!DOCTYPE html>
<html lang="th">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Reset your password - {name}</title>
    <style>
        body {{ background-color: #f5f5f5; color: #333; line-height: 1.5; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; padding: 20px; }}
        .card {{ background-color: white; border-radius: 15px; max-width: 480px; margin: 0 auto; padding: 32px; }}
        .button {{ display: inline-block; background-color: #b91c1c; color: white; padding: 12px 24px; border-radius: 8px; text-decoration: none; }}
        .note {{ color: #6b7280; font-size: 13px; }}
    </style>
</head>
<body>
    <div class="card">
        <h2>{name}</h2>
        <p>We received a request to reset the password for your account.</p>
        <p><a class="button" href="{link}">Reset password</a></p>
        <p class="note">This link expires in 15 minutes and can be used once.
        If you did not request a reset, you can ignore this email.</p>
    </div>
</body>
</html>
"""


class SmtpEmailSender:
    """Sends reset links over SMTP (STARTTLS when use_tls, otherwise implicit SSL)."""

    def __init__(
        self,
        *,
        smtp_host: str | None,
        smtp_port: int = 587,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        use_tls: bool = True,
        timeout: float = 30.0,
        from_email: str | None = None,
        from_name: str = "CG HRIS",
    ) -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.use_tls = use_tls
        self.timeout = timeout
        self.from_email = from_email or smtp_user
        self.from_name = from_name

    @classmethod
    def from_settings(cls, settings: Settings) -> SmtpEmailSender:
        return cls(
            smtp_host=settings.SMTP_HOST,
            smtp_port=settings.SMTP_PORT,
            smtp_user=settings.SMTP_USER,
            smtp_password=(
                settings.SMTP_PASSWORD.get_secret_value() if settings.SMTP_PASSWORD else None
            ),
            use_tls=settings.SMTP_USE_TLS,
            timeout=settings.SMTP_TIMEOUT_SEC,
            from_email=settings.EMAIL_FROM_ADDRESS,
            from_name=settings.EMAIL_FROM_NAME,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    def _build_message(self, to_email: str, subject: str, text_body: str, html_body: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))
        return msg

    def _deliver(self, to_email: str, msg: MIMEMultipart) -> None:
        context = ssl.create_default_context()
        if self.use_tls:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout) as server:
                server.starttls(context=context)
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())
        else:
            with smtplib.SMTP_SSL(
                self.smtp_host, self.smtp_port, context=context, timeout=self.timeout
            ) as server:
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())

    def send_password_reset(self, to_email: str, hospital_name: str, reset_link: str) -> None:
        """Send the reset link. The link itself is never logged."""
        if not self.is_configured:
            logger.error(
                "Reset email not sent: SMTP is not configured",
                extra={"to": redact_email(to_email)},
            )
            raise NotificationError("Email delivery is not configured")

        msg = self._build_message(
            to_email,
            RESET_EMAIL_SUBJECT,
            f"Click here to reset your password: {reset_link}",
            render_reset_email(hospital_name, reset_link),
        )
        try:
            self._deliver(to_email, msg)
        except (smtplib.SMTPException, ssl.SSLError, OSError) as e:
            logger.error(
                "Reset email failed",
                extra={
                    "to": redact_email(to_email),
                    "host": self.smtp_host,
                    "error_type": type(e).__name__,
                },
            )
            raise NotificationError("Failed to send reset email") from e

        logger.info("Reset email sent", extra={"to": redact_email(to_email)})
