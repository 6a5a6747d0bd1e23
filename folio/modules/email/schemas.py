from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class ContactRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    message: str = Field(min_length=1)
    phone: Optional[str] = None
    subject: Optional[str] = None


class ContactResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    message_id: str = Field(alias="messageId")
    responses: List[Dict[str, Any]] = Field(default_factory=list)


class MarkReadRequest(BaseModel):
    is_read: bool = True


class ReplyRequest(BaseModel):
    subject: Optional[str] = None
    message: str = Field(min_length=1)


class MessagesResponse(BaseModel):
    success: bool = True
    messages: List[Dict[str, Any]]
