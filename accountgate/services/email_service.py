"""
Email Notification Service.

Handles all outbound email for the account lifecycle: the activation link
sent at signup and the reset link sent on a password reset request.

Architectural notes:
    - Configuration is injected (no global lookups inside the service).
    - ``send`` is fire-and-forget: rendering happens on the caller's
      thread, delivery on a daemon thread.  Failures are logged and never
      reach the calling auth flow.
    - With ``MAIL_ENABLED=False`` the rendered message is logged instead
      of being handed to SMTP.
"""

from __future__ import annotations

import smtplib
import threading
from email.message import EmailMessage
from string import Template
from typing import Mapping, Optional, Protocol
from urllib.parse import urlencode

from accountgate.config import AppConfig
from accountgate.logger import StructuredLogger
from accountgate.models.service_models import ServiceResult
from accountgate.services.base_service import BaseService

TEMPLATE_ACTIVATE_ACCOUNT: str = "activate-account"
TEMPLATE_RESET_PASSWORD: str = "reset-password"


class Notifier(Protocol):
    """What the auth flows need from an email sender."""

    def send(
        self, template_name: str, recipient: str, context: Mapping[str, str],
    ) -> None: ...  # noqa: E704


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

_TEMPLATES: dict[str, tuple[str, Template]] = {
    TEMPLATE_ACTIVATE_ACCOUNT: (
        "Account activation",
        Template(
            "Hi $username,\n\n"
            "Thanks for signing up. Follow the link below to activate your account:\n\n"
            "$link\n\n"
            "If you did not create an account, you can ignore this email.\n"
        ),
    ),
    TEMPLATE_RESET_PASSWORD: (
        "Reset Password",
        Template(
            "A password reset was requested for $email.\n\n"
            "Follow the link below within two hours to choose a new password:\n\n"
            "$link\n\n"
            "If you did not request a reset, you can ignore this email.\n"
        ),
    ),
}

_LINK_PATHS: dict[str, str] = {
    TEMPLATE_ACTIVATE_ACCOUNT: "/activate-account",
    TEMPLATE_RESET_PASSWORD: "/reset-password",
}


class EmailService(BaseService):
    """Service for composing and sending email notifications."""

    def __init__(self, config: AppConfig, logger: StructuredLogger) -> None:
        super().__init__(logger)
        self._config: AppConfig = config
        self._validated: bool = False
        self._workers: list[threading.Thread] = []
        self._workers_lock: threading.Lock = threading.Lock()

    # ------------------------------------------------------------------
    # Notifier API
    # ------------------------------------------------------------------

    def send(
        self, template_name: str, recipient: str, context: Mapping[str, str],
    ) -> None:
        """Render *template_name* for *recipient* and deliver it in the background."""
        try:
            msg = self.render(template_name, recipient, context)
        except (KeyError, ValueError) as exc:
            self._logger.error(
                "Could not render email template '%s': %s", template_name, exc,
                extra={"event": "EMAIL_RENDER_FAILED"},
            )
            return

        worker = threading.Thread(
            target=self.deliver,
            args=(msg,),
            name=f"email-{template_name}",
            daemon=True,
        )
        with self._workers_lock:
            self._workers = [w for w in self._workers if w.is_alive()]
            self._workers.append(worker)
        worker.start()

    def flush(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight deliveries.  Short-lived processes call this before exit."""
        with self._workers_lock:
            pending = list(self._workers)
            self._workers.clear()
        for worker in pending:
            worker.join(timeout)

    # ------------------------------------------------------------------
    # Building blocks
    # ------------------------------------------------------------------

    def build_link(self, template_name: str, email: str, token: str) -> str:
        """Absolute link embedding *email* and *token* as query parameters."""
        base = self._config.APP_BASE_URL.rstrip("/")
        query = urlencode({"email": email, "token": token})
        return f"{base}{_LINK_PATHS[template_name]}?{query}"

    def render(
        self, template_name: str, recipient: str, context: Mapping[str, str],
    ) -> EmailMessage:
        """Build the message for *template_name*.

        *context* must provide ``email`` and ``token``; ``username`` is used
        by the activation template.

        Raises:
            KeyError: Unknown template or missing context value.
        """
        subject, body = _TEMPLATES[template_name]
        values: dict[str, str] = dict(context)
        values["link"] = self.build_link(template_name, values["email"], values["token"])

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._config.MAIL_FROM
        msg["To"] = recipient
        msg.set_content(body.substitute(values))
        return msg

    def deliver(self, msg: EmailMessage) -> ServiceResult:
        """Hand *msg* to SMTP, or log it when mail is disabled."""
        if not self._config.MAIL_ENABLED:
            self._logger.info(
                "Email not sent (mail disabled): %s", msg["Subject"],
                extra={
                    "event": "EMAIL_LOGGED",
                    "to": msg["To"],
                    "body": msg.get_content(),
                },
            )
            return ServiceResult(success=True)

        if not self._validated:
            try:
                self._config.validate_email_config()
                self._validated = True
            except ValueError as exc:
                self._logger.error("Email configuration error: %s", exc)
                return ServiceResult(
                    success=False,
                    error=f"Email configuration error: {exc}",
                    status_code=500,
                )

        return self._dispatch_smtp(msg)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _dispatch_smtp(self, msg: EmailMessage) -> ServiceResult:
        """Open an SMTP connection, authenticate, send, and close."""
        config = self._config
        smtp: Optional[smtplib.SMTP] = None
        try:
            smtp = smtplib.SMTP(config.MAIL_SERVER, config.MAIL_PORT, timeout=30)
            smtp.starttls()
            smtp.login(config.MAIL_USERNAME, config.MAIL_PASSWORD.get_secret_value())
            smtp.send_message(msg)

            self._logger.info(
                "Email sent: %s", msg["Subject"],
                extra={"event": "EMAIL_SENT", "to": msg["To"]},
            )
            return ServiceResult(success=True)

        except smtplib.SMTPAuthenticationError as exc:
            self._logger.error(
                "SMTP authentication failed for '%s': %s", config.MAIL_USERNAME, exc,
            )
            return ServiceResult(
                success=False,
                error=f"SMTP authentication failed: {exc}",
                status_code=500,
            )

        except smtplib.SMTPException as exc:
            self._logger.error("SMTP error sending to %s: %s", msg["To"], exc)
            return ServiceResult(success=False, error=f"SMTP error: {exc}", status_code=500)

        except OSError as exc:
            self._logger.error(
                "Network error connecting to %s:%d: %s",
                config.MAIL_SERVER,
                config.MAIL_PORT,
                exc,
            )
            return ServiceResult(success=False, error=f"Network error: {exc}", status_code=500)

        finally:
            if smtp is not None:
                try:
                    smtp.quit()
                except smtplib.SMTPException:
                    self._logger.debug("SMTP quit failed; connection dropped.")
