"""
Transactional email.

Templates are rendered to HTML + plain text and delivered over SMTP in a
worker thread. Delivery is best-effort: `send` logs failures and returns
False, it never raises into the request that scheduled it.

When SMTP is not configured (local dev, CI) messages are logged instead.
"""

import asyncio
import smtplib
import time
from dataclasses import dataclass
from email.message import EmailMessage as MIMEMessage
from email.utils import formataddr
from typing import Any, Optional

from api.utils.logger import get_logger
from api.utils.metrics import email_delivery, email_latency

logger = get_logger(__name__)


# ── Templates ─────────────────────────────────────────────────────────────────

_LAYOUT = """
<html>
<body style="font-family: Arial, sans-serif; background-color: #f4f4f4; padding: 20px;">
  <div style="max-width: 600px; margin: 0 auto; background: #ffffff; padding: 30px; border-radius: 8px;">
    {body}
    <p style="color: #999; font-size: 12px; margin-top: 30px;">&copy; {app_name}</p>
  </div>
</body>
</html>
"""

_BUTTON = (
    '<p style="text-align: center; margin: 30px 0;">'
    '<a href="{url}" style="padding: 12px 30px; background: #4A1D66; color: #ffffff; '
    'text-decoration: none; border-radius: 5px; font-weight: bold;">{label}</a></p>'
    '<p style="color: #666; font-size: 13px;">Or copy this link: {url}</p>'
)

TEMPLATES: dict[str, dict[str, str]] = {
    "verification": {
        "subject": "Verify Your Email - {app_name}",
        "html": (
            "<h2>Hi {name},</h2>"
            "<p>Thanks for signing up. Please confirm your email address.</p>"
            + _BUTTON.format(url="{url}", label="Verify Email")
            + "<p>This link expires in {expires_hours} hours.</p>"
        ),
        "text": (
            "Hi {name},\n\nThanks for signing up. Confirm your email address here:\n"
            "{url}\n\nThis link expires in {expires_hours} hours.\n"
        ),
    },
    "welcome": {
        "subject": "Welcome to {app_name}!",
        "html": (
            "<h2>Welcome, {name}!</h2>"
            "<p>Your email has been verified and your account is ready.</p>"
            + _BUTTON.format(url="{url}", label="Go to Dashboard")
        ),
        "text": "Welcome, {name}!\n\nYour email has been verified.\nVisit your dashboard: {url}\n",
    },
    "password_reset": {
        "subject": "Reset Your Password - {app_name}",
        "html": (
            "<h2>Hi {name},</h2>"
            "<p>We received a request to reset your password.</p>"
            + _BUTTON.format(url="{url}", label="Reset Password")
            + "<p>This link expires in {expires_hours} hour(s). "
            "If you didn't request this, you can safely ignore this email.</p>"
        ),
        "text": (
            "Hi {name},\n\nReset your password here:\n{url}\n\n"
            "This link expires in {expires_hours} hour(s). "
            "If you didn't request this, ignore this email.\n"
        ),
    },
    "invite": {
        "subject": "You have been invited to {app_name}",
        "html": (
            "<h2>Hi {name},</h2>"
            "<p>{inviter} added you to {app_name} as <strong>{role}</strong>. "
            "Set your password to activate your account.</p>"
            + _BUTTON.format(url="{url}", label="Set Up Account")
            + "<p>This link expires in {expires_hours} hours.</p>"
        ),
        "text": (
            "Hi {name},\n\n{inviter} added you to {app_name} as {role}.\n"
            "Set your password here:\n{url}\n\nThis link expires in {expires_hours} hours.\n"
        ),
    },
}


@dataclass(frozen=True)
class RenderedEmail:
    to: str
    subject: str
    html: str
    text: str


class EmailService:
    """SMTP mailer with named templates."""

    def __init__(
        self,
        host: Optional[str] = None,
        port: int = 587,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout: float = 10.0,
        from_email: str = "no-reply@stockavoo.local",
        from_name: str = "Stockavoo",
        client_url: str = "http://localhost:5173",
        app_name: str = "Stockavoo",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout
        self.from_email = from_email
        self.from_name = from_name
        self.client_url = client_url.rstrip("/")
        self.app_name = app_name

    @property
    def is_configured(self) -> bool:
        return bool(self.host)

    def link(self, path: str) -> str:
        """Absolute link into the web client."""
        return f"{self.client_url}/{path.lstrip('/')}"

    def render(self, to: str, template: str, **context: Any) -> RenderedEmail:
        tpl = TEMPLATES[template]
        ctx = {"app_name": self.app_name, **context}
        return RenderedEmail(
            to=to,
            subject=tpl["subject"].format(**ctx),
            html=_LAYOUT.format(body=tpl["html"].format(**ctx), app_name=self.app_name),
            text=tpl["text"].format(**ctx),
        )

    async def send(self, to: str, template: str, **context: Any) -> bool:
        """Render and deliver. Returns False on any failure."""
        try:
            message = self.render(to, template, **context)
            if not self.is_configured:
                logger.info(f"SMTP not configured; '{template}' email to {to}: {message.subject}")
                logger.debug(message.text)
                email_delivery.labels(template, "logged").inc()
                return True
            start = time.perf_counter()
            await asyncio.to_thread(self._deliver, message)
            email_latency.labels(template).observe(time.perf_counter() - start)
        except Exception:
            logger.exception(f"Failed to send '{template}' email to {to}")
            email_delivery.labels(template, "failed").inc()
            return False

        logger.info(f"Sent '{template}' email to {to}")
        email_delivery.labels(template, "sent").inc()
        return True

    def _deliver(self, message: RenderedEmail) -> None:
        mime = MIMEMessage()
        mime["From"] = formataddr((self.from_name, self.from_email))
        mime["To"] = message.to
        mime["Subject"] = message.subject
        mime.set_content(message.text)
        mime.add_alternative(message.html, subtype="html")

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(mime)

    # ── Flow-specific helpers ─────────────────────────────────────────────

    async def send_verification(self, to: str, name: str, token: str, expires_hours: int = 24) -> bool:
        return await self.send(
            to, "verification", name=name, token=token,
            url=self.link(f"verify-email/{token}"), expires_hours=expires_hours,
        )

    async def send_welcome(self, to: str, name: str) -> bool:
        return await self.send(to, "welcome", name=name, url=self.link("dashboard"))

    async def send_password_reset(self, to: str, name: str, token: str, expires_hours: int = 1) -> bool:
        return await self.send(
            to, "password_reset", name=name, token=token,
            url=self.link(f"reset-password/{token}"), expires_hours=expires_hours,
        )

    async def send_invite(
        self, to: str, name: str, token: str, inviter: str, role: str, expires_hours: int = 24
    ) -> bool:
        return await self.send(
            to, "invite", name=name, token=token, inviter=inviter, role=role,
            url=self.link(f"setup-account/{token}"), expires_hours=expires_hours,
        )
