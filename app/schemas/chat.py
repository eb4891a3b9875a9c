from pydantic import BaseModel, ConfigDict, Field
from uuid import UUID
from datetime import datetime
from typing import Any, Optional


class SenderSummary(BaseModel):
    id: UUID
    name: str
    profile_picture: Optional[str] = None

    model_config = {"from_attributes": True}


class MessageResponse(BaseModel):
    id: UUID
    match_id: UUID
    sender: SenderSummary
    content: str
    timestamp: datetime
    read_by: list[UUID] = []


# ── Real-time frames ─────────────────────────────────────────────────────────
# Payload keys accept the camelCase used by browser clients as well as
# snake_case.

class ClientFrame(BaseModel):
    event: str = Field(min_length=1)
    data: dict[str, Any] = {}


class RoomPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    match_id: str = Field(alias="matchId")


class SendMessagePayload(RoomPayload):
    content: str = ""


class TypingPayload(RoomPayload):
    is_typing: bool = Field(False, alias="isTyping")
