from pydantic import BaseModel
from uuid import UUID
from datetime import datetime
from typing import Optional

from app.schemas.developer import DeveloperContact, DeveloperPublic


class MatchRecordResponse(BaseModel):
    id: UUID
    participant_low_id: UUID
    participant_high_id: UUID
    action_low: str
    action_high: str
    status: str
    matched_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ActionResponse(BaseModel):
    message: str
    match: MatchRecordResponse
    is_new_match: bool
    matched_user: Optional[DeveloperContact] = None  # only set when is_new_match


class MatchListItem(BaseModel):
    match_id: UUID
    matched_with: DeveloperContact
    matched_at: Optional[datetime] = None


class MatchDetail(BaseModel):
    match_id: UUID
    other_developer: DeveloperPublic
    status: str
