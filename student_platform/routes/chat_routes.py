import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from student_platform.auth.dependencies import get_current_identity
from student_platform.auth.jwt_handler import TokenIdentity
from student_platform.core.errors import InternalError, ValidationFailed
from student_platform.database import get_db
from student_platform.models.message import ADMIN_RECEIVER, Message
from student_platform.schemas import ApiModel, MessageResponse

router = APIRouter(tags=['chat'])

logger = logging.getLogger(__name__)


class SendMessageRequest(ApiModel):
    text: str


class SenderSummary(ApiModel):
    id: int
    full_name: str


class ChatMessageResponse(ApiModel):
    id: int
    sender_id: int
    sender: SenderSummary
    receiver_id: str
    text: str
    timestamp: datetime


@router.post('/send', response_model=MessageResponse)
def send_message(
    data: SendMessageRequest,
    identity: TokenIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    if not data.text.strip():
        raise ValidationFailed('Message text is required.')

    try:
        message = Message(
            sender_id=identity.user_id,
            receiver_id=ADMIN_RECEIVER,
            text=data.text,
        )
        db.add(message)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to store message from user %s', identity.user_id)
        raise InternalError() from exc

    return MessageResponse(message='Message sent.')


@router.get('/messages', response_model=list[ChatMessageResponse])
def list_messages(
    identity: TokenIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    # receiver_id holds the "admin" tag, so the second branch only matches a
    # caller whose identifier is literally that string.
    try:
        messages = db.query(Message).filter(
            or_(
                Message.sender_id == identity.user_id,
                Message.receiver_id == str(identity.user_id),
            )
        ).order_by(Message.timestamp.asc(), Message.id.asc()).all()

        return [ChatMessageResponse.model_validate(message) for message in messages]
    except SQLAlchemyError as exc:
        logger.exception('Failed to list messages for user %s', identity.user_id)
        raise InternalError() from exc
