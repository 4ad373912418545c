"""
SMTP mail sender for verification and password-reset emails.

Bodies are small inline HTML documents; there is no template engine.
"""
from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from html import escape

from services.exceptions import EmailSendError

logger = logging.getLogger(__name__)


class EmailService:
    """
    Configuration:
    - host / port: SMTP server (port default 587)
    - username / password: optional SMTP credentials
    - use_tls: issue STARTTLS before login (default True)
    - sender / display_name: From header
    - client_base_url: frontend origin used to build links in the bodies
    """

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        sender: str = "no-reply@localhost",
        display_name: str | None = None,
        use_tls: bool = True,
        timeout: float = 10.0,
        client_base_url: str = "http://localhost:3000",
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.display_name = display_name or "Auth Service"
        self.use_tls = use_tls
        self.timeout = timeout
        self.client_base_url = client_base_url.rstrip("/")

    @classmethod
    def from_config(cls, config) -> "EmailService":
        return cls(
            host=config.get("SMTP_HOST", "localhost"),
            port=int(config.get("SMTP_PORT", 587)),
            username=config.get("SMTP_USER") or None,
            password=config.get("SMTP_PASSWORD") or None,
            sender=config.get("SMTP_FROM", "no-reply@localhost"),
            display_name=config.get("SMTP_DISPLAY_NAME"),
            use_tls=bool(config.get("SMTP_USE_TLS", True)),
            timeout=float(config.get("SMTP_TIMEOUT_SECONDS", 10)),
            client_base_url=config.get("CLIENT_BASE_URL", "http://localhost:3000"),
        )

    def send(self, destination: str, subject: str, html_body: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = formataddr((self.display_name, self.sender))
        msg["To"] = destination
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username:
                    server.login(self.username, self.password or "")
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailSendError(destination) from exc

        logger.info("Sent '%s' email to %s", subject, destination)

    def send_verification_email(self, email: str, name: str | None, token: str) -> None:
        verify_url = f"{self.client_base_url}/auth/verify-email?token={token}"
        html_body = f"""
            <div style='font-family: Arial, sans-serif; border: 1px solid #eee; padding: 20px;'>
                <h2>Welcome, {escape(name or email)}!</h2>
                <p>Please verify your email by clicking the link below:</p>
                <div style='margin-top: 20px;'>
                    <a href='{verify_url}' style='background-color: #007bff; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;'>Verify Email</a>
                </div>
                <p style='margin-top: 20px; font-size: 0.8em; color: #777;'>If the button doesn't work, copy and paste this link: <br/> {verify_url}</p>
            </div>"""
        self.send(email, "Verify your email", html_body)

    def send_password_reset_email(self, email: str, name: str | None, token: str) -> None:
        reset_url = f"{self.client_base_url}/auth/reset-password?token={token}"
        html_body = f"""
            <div style='font-family: Arial, sans-serif; border: 1px solid #eee; padding: 20px;'>
                <h2>Hello, {escape(name or email)}</h2>
                <p>We received a request to reset your password. The link is valid for 30 minutes.</p>
                <div style='margin-top: 20px;'>
                    <a href='{reset_url}' style='background-color: #dc3545; color: white; padding: 10px 20px; text-decoration: none; border-radius: 5px;'>Reset Password</a>
                </div>
                <p style='margin-top: 20px; font-size: 0.8em; color: #777;'>If you did not request this, you can ignore this email.</p>
            </div>"""
        self.send(email, "Reset your password", html_body)
