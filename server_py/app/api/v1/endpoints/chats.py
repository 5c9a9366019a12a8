import logging
import math
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import require_auth
from app.core.exceptions import ValidationError
from app.models.user import User
from app.schemas.chat import (
    ChatCreate,
    ChatList,
    ChatListItem,
    ChatOpened,
    ChatResponse,
    MediaResponse,
    MessagePage,
    MessageReadResponse,
    MessageResponse,
    Pagination,
    SentImageMessage,
)
from app.schemas.events import MediaItem
from app.schemas.user import PublicUser
from app.services.chat import ChatService
from app.services.media import MediaService
from app.services.message import MessageService, clean_content
from app.services.storage import image_storage
from app.services.user import UserService, public_profile
from app.websockets.bridge import ChatCreated, MessageCreated, MessageRead, chat_events

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=ChatList)
async def list_my_chats(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    """Чаты пользователя, последние по активности сверху."""
    chats, total = await ChatService(db).list_for_user(current_user.id, page=page, limit=limit)
    users = UserService(db)
    messages = MessageService(db)

    items = []
    for chat in chats:
        other_user = await users.get_by_id(chat.other_participant(current_user.id))
        latest = await messages.latest_in_chat(chat.id)
        item = ChatListItem.model_validate(chat)
        item.other_user = PublicUser.model_validate(other_user) if other_user else None
        item.latest_message = MessageResponse.model_validate(latest) if latest else None
        item.unread_count = await messages.count_unread(chat.id, current_user.id)
        items.append(item)

    return ChatList(
        items=items,
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit),
    )


@router.post("", response_model=ChatOpened)
async def create_or_get_chat(
    payload: ChatCreate,
    response: Response,
    current_user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    """Создает чат один-на-один или возвращает существующий."""
    chat, other_user, created = await ChatService(db).create_or_get(current_user.id, payload.other_user_id)

    recent: List[MessageResponse] = []
    if created:
        response.status_code = status.HTTP_201_CREATED
        await chat_events.publish(
            ChatCreated(
                chat_id=chat.id,
                user1_id=chat.user1_id,
                user2_id=chat.user2_id,
                created_at=chat.created_at,
            )
        )
    else:
        latest = await MessageService(db).list_by_chat(chat.id, page=1, limit=20)
        recent = [MessageResponse.model_validate(m) for m in reversed(latest)]

    return ChatOpened(
        chat=ChatResponse.model_validate(chat),
        other_user=PublicUser.model_validate(other_user),
        recent_messages=recent,
        is_new_chat=created,
    )


@router.get("/{chat_id}/messages", response_model=MessagePage)
async def get_chat_messages(
    chat_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    chat = await ChatService(db).require_membership(chat_id, current_user.id)
    messages = MessageService(db)
    newest_first = await messages.list_by_chat(chat_id, page=page, limit=limit)
    total = await messages.count_by_chat(chat_id)

    return MessagePage(
        # oldest first for display
        messages=[MessageResponse.model_validate(m) for m in reversed(newest_first)],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
            has_next=page * limit < total,
            has_prev=page > 1,
        ),
        chat=ChatResponse.model_validate(chat),
    )


@router.post(
    "/{chat_id}/images",
    response_model=SentImageMessage,
    status_code=status.HTTP_201_CREATED,
)
async def send_image_message(
    chat_id: int,
    files: Optional[List[UploadFile]] = File(None),
    content: Optional[str] = Form(None),
    current_user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    """Сообщение с картинками. Текст без картинок отправляется через сокет."""
    if not files:
        raise ValidationError("This endpoint is for image messages only. Use the socket for text messages.")
    if len(files) > settings.MAX_IMAGES_PER_MESSAGE:
        raise ValidationError(f"Too many images (max {settings.MAX_IMAGES_PER_MESSAGE})")
    text = clean_content(content, allow_empty=True)

    chats = ChatService(db)
    chat = await chats.require_membership(chat_id, current_user.id)

    stored = await image_storage.save_all(files)

    try:
        message = await MessageService(db).create(
            chat_id=chat.id,
            sender_id=current_user.id,
            content=text,
            auto_commit=False,
        )
        media_service = MediaService(db)
        media = [
            await media_service.create(
                message_id=message.id,
                image_id=image.id,
                url=image.url,
                auto_commit=False,
            )
            for image in stored
        ]
        await chats.touch(chat.id, at=message.sent_at, auto_commit=False)
        await db.commit()
    except Exception:
        # файлы без сообщения никому не нужны
        await image_storage.discard(stored)
        raise

    sender = public_profile(current_user)
    await chat_events.publish(
        MessageCreated(
            message_id=message.id,
            chat_id=chat.id,
            sender=sender,
            content=message.content,
            type="image",
            media=[
                MediaItem(id=m.id, image_id=m.image_id, url=m.url, message_id=m.message_id)
                for m in media
            ],
            sent_at=message.sent_at,
            other_user_id=chat.other_participant(current_user.id),
        )
    )
    logger.info("Image message %s with %d image(s) sent in chat %s", message.id, len(media), chat.id)

    return SentImageMessage(
        id=message.id,
        chat_id=chat.id,
        sender_id=current_user.id,
        content=message.content,
        sent_at=message.sent_at,
        media=[MediaResponse.model_validate(m) for m in media],
        sender=PublicUser(id=sender.id, name=sender.name, avatar=sender.avatar),
    )


@router.post("/messages/{message_id}/read", response_model=MessageReadResponse)
async def mark_message_read(
    message_id: int,
    current_user: User = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    message, chat = await MessageService(db).mark_read_by(message_id, current_user.id)
    await chat_events.publish(
        MessageRead(
            message_id=message.id,
            chat_id=chat.id,
            read_by=current_user.id,
            read_at=message.read_at,
            sender_id=message.sender_id,
        )
    )
    return MessageReadResponse(message=MessageResponse.model_validate(message))
