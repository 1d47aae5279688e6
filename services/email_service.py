"""
Outbound email.

Mailers implement send(to, subject, html_body). Core operations never call a
mailer directly: they hand messages to MailDispatcher, which runs the send on
a worker thread and only logs failures.
"""
from __future__ import annotations

import logging
import smtplib
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from email.message import EmailMessage
from typing import Optional

logger = logging.getLogger(__name__)


def _redact(email: str) -> str:
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class SmtpMailer:
    def __init__(self, host: str, port: int = 587, username: Optional[str] = None,
                 password: Optional[str] = None, use_tls: bool = True,
                 sender: str = "noreply@treenetra.com", timeout: int = 30):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.timeout = timeout

    def send(self, to: str, subject: str, html_body: str) -> None:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(html_body, subtype="html")

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(msg)
        logger.info("Email sent to %s: %s", _redact(to), subject)


class ConsoleMailer:
    """Dev mode: log the message instead of sending it."""

    def send(self, to: str, subject: str, html_body: str) -> None:
        logger.info("Email (not sent) to %s: %s\n%s", _redact(to), subject, html_body)


class MailDispatcher:
    def __init__(self, mailer, executor: Optional[Executor] = None):
        self._mailer = mailer
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="mail")

    def dispatch(self, to: str, subject: str, html_body: str) -> Future:
        try:
            future = self._executor.submit(self._mailer.send, to, subject, html_body)
        except RuntimeError:
            # Executor already shut down (process exiting)
            logger.error("Mail dispatcher unavailable, dropped email to %s", _redact(to))
            future = Future()
            future.set_result(None)
            return future
        future.add_done_callback(lambda f: self._report(f, to, subject))
        return future

    @staticmethod
    def _report(future: Future, to: str, subject: str) -> None:
        exc = future.exception()
        if exc is not None:
            logger.error("Error sending email to %s (%s): %s", _redact(to), subject, exc)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


class AccountMailer:
    """Composes the account emails and hands them to the dispatcher."""

    def __init__(self, dispatcher: MailDispatcher, app_url: str, app_name: str = "TreeNetra"):
        self._dispatcher = dispatcher
        self._app_url = app_url.rstrip("/")
        self._app_name = app_name

    def send_verification_email(self, email: str, token: str) -> Future:
        url = f"{self._app_url}/api/v1/auth/verify-email/{token}"
        html = (
            f"<h1>Welcome to {self._app_name}!</h1>"
            "<p>Please verify your email address by clicking the link below:</p>"
            f'<a href="{url}">Verify Email</a>'
            "<p>If you didn't create an account, please ignore this email.</p>"
        )
        return self._dispatcher.dispatch(email, f"Verify Your Email - {self._app_name}", html)

    def send_password_reset_email(self, email: str, token: str) -> Future:
        url = f"{self._app_url}/reset-password/{token}"
        html = (
            "<h1>Password Reset Request</h1>"
            "<p>You requested to reset your password. Click the link below to proceed:</p>"
            f'<a href="{url}">Reset Password</a>'
            "<p>If you didn't request this, please ignore this email.</p>"
            "<p>This link will expire in 1 hour.</p>"
        )
        return self._dispatcher.dispatch(email, f"Password Reset Request - {self._app_name}", html)
