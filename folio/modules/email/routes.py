from typing import Dict

from fastapi import APIRouter, Depends

from folio.core.dependencies import require_admin
from folio.database.client import Database, get_database
from folio.modules.email.mailer import MailerFactory, get_mailer_factory
from folio.modules.email.schemas import (
    ContactRequest, ContactResponse, MarkReadRequest, MessagesResponse, ReplyRequest,
)
from folio.modules.email.service import EmailService

router = APIRouter(prefix="/email", tags=["email"])


def get_email_service(
    database: Database = Depends(get_database),
    mailer_factory: MailerFactory = Depends(get_mailer_factory),
) -> EmailService:
    return EmailService(database, mailer_factory)


@router.post("/send-contact", response_model=ContactResponse, response_model_by_alias=True)
async def send_contact(
    data: ContactRequest,
    service: EmailService = Depends(get_email_service),
):
    """Public contact form endpoint"""
    return service.send_contact(data)


@router.get("/messages", response_model=MessagesResponse)
async def list_messages(
    current_user: Dict = Depends(require_admin),
    service: EmailService = Depends(get_email_service),
):
    return MessagesResponse(messages=service.list_messages())


@router.patch("/messages/{message_id}/read")
async def mark_message_read(
    message_id: str,
    data: MarkReadRequest,
    current_user: Dict = Depends(require_admin),
    service: EmailService = Depends(get_email_service),
):
    return {"success": True, "message": service.mark_read(message_id, data.is_read)}


@router.delete("/messages/{message_id}")
async def delete_message(
    message_id: str,
    current_user: Dict = Depends(require_admin),
    service: EmailService = Depends(get_email_service),
):
    service.delete_message(message_id)
    return {"success": True}


@router.post("/messages/{message_id}/reply")
async def reply_to_message(
    message_id: str,
    data: ReplyRequest,
    current_user: Dict = Depends(require_admin),
    service: EmailService = Depends(get_email_service),
):
    return {"success": True, "message": service.reply(message_id, data)}
