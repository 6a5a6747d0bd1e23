import html
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy import select

from folio.database.client import Database
from folio.database.tables import contact_messages, site_settings, utcnow
from folio.modules.email.mailer import MailerFactory, MailMessage
from folio.modules.email.schemas import ContactRequest, ContactResponse, ReplyRequest

logger = logging.getLogger(__name__)

DEFAULT_AUTO_REPLY_SUBJECT = "Bedankt voor je bericht"
DEFAULT_AUTO_REPLY_MESSAGE = "Bedankt voor je bericht! We nemen zo snel mogelijk contact met je op."


def _paragraphs(text: str) -> str:
    return html.escape(text).replace("\n", "<br>")


def notification_html(contact: ContactRequest, received_at: datetime) -> str:
    parts = [
        "<h2>Nieuw contactbericht ontvangen</h2>",
        f"<p><strong>Naam:</strong> {html.escape(contact.name)}</p>",
        f"<p><strong>E-mail:</strong> {html.escape(contact.email)}</p>",
    ]
    if contact.phone:
        parts.append(f"<p><strong>Telefoon:</strong> {html.escape(contact.phone)}</p>")
    if contact.subject:
        parts.append(f"<p><strong>Onderwerp:</strong> {html.escape(contact.subject)}</p>")
    parts.extend([
        "<p><strong>Bericht:</strong></p>",
        f"<p>{_paragraphs(contact.message)}</p>",
        "<hr>",
        '<p style="color: #666; font-size: 12px;">'
        f"Bericht ontvangen via portfolio contactformulier op {received_at:%d-%m-%Y %H:%M}</p>",
    ])
    return "\n".join(parts)


def auto_reply_html(name: str, body: str) -> str:
    return "\n".join([
        f"<h2>Bedankt voor je bericht, {html.escape(name)}!</h2>",
        f"<p>{_paragraphs(body)}</p>",
        "<br>",
        "<p>Met vriendelijke groet,<br>Portfolio Team</p>",
        "<hr>",
        '<p style="color: #666; font-size: 12px;">'
        "Dit is een automatisch gegenereerd bericht. Reageer niet op deze e-mail.</p>",
    ])


class EmailService:
    def __init__(self, database: Database, mailer_factory: MailerFactory):
        self.database = database
        self.mailer_factory = mailer_factory

    def _site_settings(self) -> Optional[Dict[str, Any]]:
        return self.database.fetch_one(select(site_settings).limit(1))

    def _send(self, mailer, kind: str, message: MailMessage) -> Dict[str, Any]:
        try:
            result = mailer.send(message)
            logger.info("%s email sent to %s", kind, message.to)
            return {"type": kind, **result}
        except Exception as e:
            logger.error("Failed to send %s email: %s", kind, e)
            return {"type": kind, "error": str(e)}

    def send_contact(self, contact: ContactRequest) -> ContactResponse:
        """Store a contact submission, then notify and auto-reply on a best-effort basis."""
        site = self._site_settings()
        if not site or not site.get("form_enabled"):
            raise HTTPException(status_code=403, detail="Contact form is currently disabled")

        with self.database.transaction() as conn:
            row = conn.execute(
                contact_messages.insert().values(
                    name=contact.name,
                    email=contact.email,
                    phone=contact.phone,
                    subject=contact.subject,
                    message=contact.message,
                    is_read=False,
                ).returning(contact_messages.c.id, contact_messages.c.created_at)
            ).one()
        message_id = row.id

        mailer = self.mailer_factory(site)
        if mailer is None:
            logger.warning("No email service configured, contact message %s stored without mail", message_id)
            return ContactResponse(
                message="Contact message saved successfully. Email service not configured.",
                message_id=message_id,
            )

        responses = []
        if site.get("notification_email"):
            responses.append(self._send(mailer, "notification", MailMessage(
                to=site["notification_email"],
                subject=f"Nieuw contactbericht van {contact.name}",
                html=notification_html(contact, row.created_at or utcnow()),
                sender_name="Portfolio Contact",
            )))
        if site.get("auto_reply_enabled"):
            responses.append(self._send(mailer, "auto_reply", MailMessage(
                to=contact.email,
                subject=site.get("auto_reply_subject") or DEFAULT_AUTO_REPLY_SUBJECT,
                html=auto_reply_html(contact.name, site.get("auto_reply_message") or DEFAULT_AUTO_REPLY_MESSAGE),
            )))

        logger.info("Contact form submission processed: %s", message_id)
        return ContactResponse(
            message="Contact message processed successfully",
            message_id=message_id,
            responses=responses,
        )

    def list_messages(self, limit: int = 100) -> List[Dict[str, Any]]:
        return self.database.fetch_all(
            select(contact_messages).order_by(contact_messages.c.created_at.desc()).limit(limit)
        )

    def _update_message(self, message_id: str, **values) -> Dict[str, Any]:
        with self.database.transaction() as conn:
            row = conn.execute(
                contact_messages.update()
                .where(contact_messages.c.id == message_id)
                .values(**values)
                .returning(*contact_messages.c)
            ).first()
        if row is None:
            raise HTTPException(status_code=404, detail="Message not found")
        return dict(row._mapping)

    def mark_read(self, message_id: str, is_read: bool) -> Dict[str, Any]:
        return self._update_message(message_id, is_read=is_read)

    def delete_message(self, message_id: str) -> None:
        if self.database.execute(contact_messages.delete().where(contact_messages.c.id == message_id)) == 0:
            raise HTTPException(status_code=404, detail="Message not found")

    def reply(self, message_id: str, data: ReplyRequest) -> Dict[str, Any]:
        original = self.database.fetch_one(select(contact_messages).where(contact_messages.c.id == message_id))
        if not original:
            raise HTTPException(status_code=404, detail="Message not found")

        mailer = self.mailer_factory(self._site_settings())
        if mailer is None:
            raise HTTPException(status_code=503, detail="Email service not configured")

        subject = data.subject or f"Re: {original.get('subject') or 'Je bericht'}"
        try:
            mailer.send(MailMessage(to=original["email"], subject=subject, html=f"<p>{_paragraphs(data.message)}</p>"))
        except Exception as e:
            logger.error("Failed to send reply to message %s: %s", message_id, e)
            raise HTTPException(status_code=502, detail="Failed to send reply")

        return self._update_message(message_id, replied_at=utcnow(), is_read=True)
