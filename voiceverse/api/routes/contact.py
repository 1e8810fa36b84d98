"""
Contact API Routes

Contact form, help assistant chat and the Calendly booking webhook.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pydantic
from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ..base import ErrorCode, NotFoundError, ValidationError, success_response
from ..dependencies import get_config, get_db_session, get_email, get_optional_user, get_storage
from ..serializers import iso
from ...assistant import GREETING, chat_message, generate_reply, new_session_id
from ...config import AppConfig
from ...database.models import User
from ...database.repositories import (
    AssistantChatRepository,
    CalendlyEventRepository,
    ContactMessageRepository,
)
from ...notifications.email import EmailService
from ...storage import CONTACT_ATTACHMENT_DIR, LocalStorage, unique_name


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contact", tags=["Contact"])


MAX_ATTACHMENTS = 5
MAX_ATTACHMENT_BYTES = 5 * 1024 * 1024
ALLOWED_ATTACHMENT_TYPES = {
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/gif",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
}
FIELD_MESSAGES = {
    "name": "Name must be at least 2 characters",
    "email": "Please provide a valid email address",
    "subject": "Subject must be at least 5 characters",
    "message": "Message must be at least 20 characters",
}


class ContactForm(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    subject: str = Field(..., min_length=5, max_length=255)
    message: str = Field(..., min_length=20)
    priority: str = "MEDIUM"
    type: str = "GENERAL"


def parse_form(**fields: Any) -> ContactForm:
    """Validate the form, reporting every failing field at once."""
    try:
        return ContactForm(**{k: v for k, v in fields.items() if v is not None})
    except pydantic.ValidationError as e:
        errors = []
        for error in e.errors():
            path = str(error["loc"][0]) if error["loc"] else ""
            errors.append({"field": path, "message": FIELD_MESSAGES.get(path, error["msg"])})
        raise ValidationError(
            errors[0]["message"],
            field=errors[0]["field"],
            details={"errors": errors},
        )


async def store_attachments(storage: LocalStorage, uploads: List[UploadFile]) -> List[Dict[str, Any]]:
    if len(uploads) > MAX_ATTACHMENTS:
        raise ValidationError(f"A maximum of {MAX_ATTACHMENTS} attachments is allowed", field="attachments")

    stored = []
    for upload in uploads:
        if not upload.filename:
            continue
        if (upload.content_type or "").lower() not in ALLOWED_ATTACHMENT_TYPES:
            raise ValidationError(
                "Invalid file type. Only images (JPEG, PNG, GIF) and documents (PDF, DOC, DOCX, TXT) are allowed.",
                field="attachments",
                code=ErrorCode.INVALID_FILE,
            )
        content = await upload.read()
        if len(content) > MAX_ATTACHMENT_BYTES:
            raise ValidationError(
                "Attachment too large. Maximum size is 5MB",
                field="attachments",
                code=ErrorCode.INVALID_FILE,
            )

        extension = os.path.splitext(upload.filename)[1].lower()
        saved = await storage.upload(
            content,
            f"{CONTACT_ATTACHMENT_DIR}/{unique_name(extension)}",
            upload.content_type,
        )
        stored.append({
            "filename": saved.filename,
            "originalName": upload.filename,
            "path": saved.key,
            "mimetype": upload.content_type,
            "size": saved.size,
        })
    return stored


@router.post("/submit", status_code=201, summary="Submit the contact form")
async def submit_contact_form(
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    subject: Optional[str] = Form(None),
    message: Optional[str] = Form(None),
    priority: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    attachments: Optional[List[UploadFile]] = File(None),
    db: AsyncSession = Depends(get_db_session),
    storage: LocalStorage = Depends(get_storage),
    mailer: EmailService = Depends(get_email),
    config: AppConfig = Depends(get_config),
):
    form = parse_form(
        name=name,
        email=email,
        subject=subject,
        message=message,
        priority=(priority or "").upper() or None,
        type=(type or "").upper() or None,
    )
    files = await store_attachments(storage, attachments or [])

    contact = await ContactMessageRepository(db).create(
        name=form.name,
        email=form.email,
        subject=form.subject,
        message=form.message,
        priority=form.priority,
        type=form.type,
        attachments=files or None,
    )
    await db.commit()
    logger.info(f"Contact message {contact.id} received from {form.email}")

    recipient = config.contact_email or config.email_from
    if recipient:
        await mailer.send_contact_notification(recipient, form.model_dump(), files)

    return success_response(
        {
            "id": contact.id,
            "name": contact.name,
            "email": contact.email,
            "subject": contact.subject,
            "priority": contact.priority,
            "type": contact.type,
            "attachments": len(files),
            "status": contact.status,
            "createdAt": iso(contact.created_at),
        },
        message="Contact form submitted successfully",
    )


# =============================================================================
# Help Assistant
# =============================================================================


class AssistantMessageRequest(BaseModel):
    sessionId: Optional[str] = None
    message: Optional[str] = None


@router.post("/ai/init", status_code=201, summary="Start a help assistant chat")
async def init_assistant_chat(
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db_session),
):
    messages = [chat_message("assistant", GREETING)]
    chat = await AssistantChatRepository(db).create(
        session_id=new_session_id(),
        user_id=user.id if user else None,
        messages=messages,
    )
    await db.commit()

    return success_response(
        {"sessionId": chat.session_id, "messages": messages},
        message="AI chat session initialized",
    )


@router.post("/ai/message", summary="Send a message to the help assistant")
async def send_assistant_message(
    request: AssistantMessageRequest,
    db: AsyncSession = Depends(get_db_session),
):
    if not request.sessionId or not request.message:
        raise ValidationError("Session ID and message are required")

    chats = AssistantChatRepository(db)
    chat = await chats.get_by_session(request.sessionId)
    if chat is None:
        raise NotFoundError("Chat session", request.sessionId, message="Chat session not found")

    await chats.append_messages(
        chat,
        chat_message("user", request.message),
        chat_message("assistant", generate_reply(request.message)),
    )
    await db.commit()

    return success_response(
        {"sessionId": chat.session_id, "messages": chat.messages},
        message="Message sent successfully",
    )


# =============================================================================
# Calendly
# =============================================================================


class CalendlyInvitee(BaseModel):
    name: str
    email: str


class CalendlyEventType(BaseModel):
    name: str


class CalendlyEventPayload(BaseModel):
    type: str
    event_type: Optional[CalendlyEventType] = None
    uri: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    invitee: Optional[CalendlyInvitee] = None
    status: Optional[str] = None
    questions_and_answers: Optional[List[Dict[str, Any]]] = None


class CalendlyWebhook(BaseModel):
    event: CalendlyEventPayload


def classify_meeting(event_name: str) -> str:
    name = event_name.lower()
    if "video" in name:
        return "video_call"
    if "demo" in name:
        return "demo"
    return "general"


def as_utc(value: datetime) -> datetime:
    """Naive UTC, the form every stored timestamp uses."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


@router.post("/calendly-webhook", summary="Receive Calendly booking events")
async def calendly_webhook(
    payload: CalendlyWebhook,
    db: AsyncSession = Depends(get_db_session),
    mailer: EmailService = Depends(get_email),
    config: AppConfig = Depends(get_config),
):
    event = payload.event
    if event.type != "invitee.created":
        logger.debug(f"Ignoring Calendly event {event.type}")
        return success_response(None)

    if event.event_type is None or event.invitee is None or event.start_time is None or event.end_time is None:
        raise ValidationError("Calendly event is missing booking details", field="event")

    booking = await CalendlyEventRepository(db).create(
        event_type=classify_meeting(event.event_type.name),
        event_name=event.event_type.name,
        invitee_email=event.invitee.email,
        invitee_name=event.invitee.name,
        start_time=as_utc(event.start_time),
        end_time=as_utc(event.end_time),
        status=event.status,
        calendly_event_uri=event.uri,
        notes=json.dumps(event.questions_and_answers) if event.questions_and_answers else None,
    )
    await db.commit()
    logger.info(f"Calendly {booking.event_type} booked by {booking.invitee_email}")

    await mailer.send_meeting_confirmation(booking.invitee_email, booking)
    admin = config.admin_email or config.email_from
    if admin:
        await mailer.send_meeting_notification(admin, booking)

    return success_response({"id": booking.id, "eventType": booking.event_type})
