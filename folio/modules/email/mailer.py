"""
Outgoing mail over SMTP. Gmail uses an app password; Resend is reached through
its SMTP relay with the API key as password.
"""

import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import make_msgid
from typing import Any, Callable, Dict, Optional, Protocol

from folio.config import settings

logger = logging.getLogger(__name__)

GMAIL_HOST = "smtp.gmail.com"
RESEND_HOST = "smtp.resend.com"
SMTP_SSL_PORT = 465
RESEND_SENDER = "onboarding@resend.dev"


@dataclass
class MailMessage:
    to: str
    subject: str
    html: str
    sender_name: str = "Portfolio"


class Mailer(Protocol):
    def send(self, message: MailMessage) -> Dict[str, Any]:
        ...


@dataclass
class SmtpMailer:
    service: str
    host: str
    username: str
    password: str
    from_address: str
    port: int = SMTP_SSL_PORT
    timeout: int = 15

    def send(self, message: MailMessage) -> Dict[str, Any]:
        msg = MIMEMultipart("alternative")
        msg["From"] = f'"{message.sender_name}" <{self.from_address}>'
        msg["To"] = message.to
        msg["Subject"] = message.subject
        msg["Message-ID"] = make_msgid()
        msg.attach(MIMEText(message.html, "html", "utf-8"))

        with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout) as server:
            server.login(self.username, self.password)
            server.sendmail(self.from_address, [message.to], msg.as_string())
        logger.info("Mail sent via %s to %s", self.service, message.to)
        return {"id": msg["Message-ID"], "service": self.service}


MailerFactory = Callable[[Optional[Dict[str, Any]]], Optional[Mailer]]


def mailer_from_settings(site: Optional[Dict[str, Any]]) -> Optional[Mailer]:
    """Pick Gmail or Resend from site_settings, falling back to environment credentials."""
    site = site or {}
    gmail_user = site.get("gmail_user") or settings.gmail_user
    gmail_password = site.get("gmail_app_password") or settings.gmail_app_password
    resend_key = site.get("resend_api_key") or settings.resend_api_key
    service_type = site.get("email_service_type") or "gmail"

    has_gmail = bool(gmail_user and gmail_password)
    if (service_type == "gmail" and has_gmail) or (not resend_key and has_gmail):
        return SmtpMailer(
            service="gmail", host=GMAIL_HOST, username=gmail_user,
            password=gmail_password, from_address=gmail_user,
        )
    if resend_key and (service_type == "resend" or not gmail_user or not has_gmail):
        return SmtpMailer(
            service="resend", host=RESEND_HOST, username="resend",
            password=resend_key, from_address=RESEND_SENDER,
        )
    return None


def get_mailer_factory() -> MailerFactory:
    return mailer_from_settings
