"""
DevMatch — Message store.

Append-only, per-room chat log.  Rows are never updated or deleted here.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import bounded
from app.exceptions import ValidationError
from app.models.message import Message


class MessageStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(
        self,
        room_id: uuid.UUID,
        sender_id: uuid.UUID,
        content: str,
    ) -> Message:
        text = (content or "").strip()
        if not text:
            raise ValidationError("Message content is required.")

        message = Message(
            id=uuid.uuid4(),
            match_id=room_id,
            sender_id=sender_id,
            content=text,
            timestamp=datetime.now(timezone.utc),
            read_by=[],
        )
        self._session.add(message)
        await bounded(self._session.flush())
        return message

    async def history(self, room_id: uuid.UUID) -> list[Message]:
        stmt = (
            select(Message)
            .where(Message.match_id == room_id)
            .order_by(Message.timestamp.asc(), Message.id.asc())
        )
        result = await bounded(self._session.execute(stmt))
        return list(result.scalars().all())
