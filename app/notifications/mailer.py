"""
SMTP mailer with Jinja2-rendered HTML templates
"""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from enum import Enum
from pathlib import Path
from typing import Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from app.core import config

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


class EmailKind(str, Enum):
    WELCOME = "welcome"
    PASSWORD_RESET = "password_reset"
    PAYMENT_CONFIRMATION = "payment_confirmation"


# kind -> (subject, template file)
EMAIL_TEMPLATES = {
    EmailKind.WELCOME: ("Welcome to Skillspad!", "welcome.html"),
    EmailKind.PASSWORD_RESET: ("Password Reset Request", "password_reset.html"),
    EmailKind.PAYMENT_CONFIRMATION: ("Payment Confirmation - {course_name}", "payment_confirmation.html"),
}

templates = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


def render_email(kind: EmailKind, data: dict) -> tuple:
    """Returns (subject, html)"""
    subject, template_name = EMAIL_TEMPLATES[kind]
    context = {"frontend_url": config.FRONTEND_URL, **data}
    html = templates.get_template(template_name).render(**context)
    return subject.format(**{"course_name": "your course", **data}), html


class SmtpMailer:
    """Blocking smtplib calls are pushed to a worker thread"""

    def __init__(
        self,
        host: str = None,
        port: int = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        from_addr: str = None,
        from_name: str = None,
        timeout: float = None
    ):
        self.host = host or config.SMTP_HOST
        self.port = port or config.SMTP_PORT
        self.username = username if username is not None else config.SMTP_USER
        self.password = password if password is not None else config.SMTP_PASS
        self.from_addr = from_addr or config.SMTP_FROM
        self.from_name = from_name or config.SMTP_FROM_NAME
        self.timeout = timeout or config.SMTP_TIMEOUT_SECONDS

    def build_message(self, kind: EmailKind, recipient: str, data: dict) -> EmailMessage:
        subject, html = render_email(kind, data)
        message = EmailMessage()
        message["From"] = formataddr((self.from_name, self.from_addr))
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content("This message requires an HTML capable email client.")
        message.add_alternative(html, subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        if self.port == 465:
            smtp = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        else:
            smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        with smtp:
            secure = self.port == 465
            if not secure:
                smtp.ehlo()
                if smtp.has_extn("starttls"):
                    smtp.starttls()
                    smtp.ehlo()
                    secure = True
            if self.username and self.password:
                if not secure:
                    raise smtplib.SMTPNotSupportedError(
                        f"{self.host} does not offer STARTTLS, refusing to send credentials"
                    )
                smtp.login(self.username, self.password)
            smtp.send_message(message)

    async def send(self, kind: EmailKind, recipient: str, data: dict) -> None:
        message = self.build_message(kind, recipient, data)
        await asyncio.to_thread(self._deliver, message)
        logger.info(f"✅ {kind.value} email sent to {recipient}")
