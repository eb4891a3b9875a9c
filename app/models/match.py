"""
DevMatch — Relationship record (Match) model.

One row per unordered pair of developers.  The pair is stored in canonical
order (``participant_low_id < participant_high_id``) and the unique
constraint guarantees at most one row per pair.  ``status`` and
``matched_at`` are derived from the two action slots by
``app.services.matching_service.apply_status`` before every write and are
never set directly by callers.

``version`` is an optimistic-concurrency counter managed by SQLAlchemy:
every UPDATE is guarded by ``WHERE version = :expected``.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID as PgUUID
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class MatchAction(str, enum.Enum):
    NONE = "none"
    LIKED = "liked"
    DISLIKED = "disliked"


class MatchStatus(str, enum.Enum):
    NONE = "none"
    PENDING = "pending"
    MATCHED = "matched"
    DECLINED_BY_ONE = "declined_by_one"
    MUTUALLY_DECLINED = "mutually_declined"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Match(Base):
    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("participant_low_id", "participant_high_id", name="uq_match_pair"),
        CheckConstraint("participant_low_id < participant_high_id", name="ck_match_pair_order"),
        Index("ix_matches_participant_high_id", "participant_high_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    participant_low_id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), ForeignKey("developers.id", ondelete="CASCADE"), nullable=False
    )
    participant_high_id: Mapped[uuid.UUID] = mapped_column(
        PgUUID(as_uuid=True), ForeignKey("developers.id", ondelete="CASCADE"), nullable=False
    )
    action_low: Mapped[str] = mapped_column(
        String, nullable=False, default=MatchAction.NONE.value,
        server_default=MatchAction.NONE.value, comment="none / liked / disliked",
    )
    action_high: Mapped[str] = mapped_column(
        String, nullable=False, default=MatchAction.NONE.value,
        server_default=MatchAction.NONE.value, comment="none / liked / disliked",
    )
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=MatchStatus.NONE.value,
        server_default=MatchStatus.NONE.value,
    )
    matched_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # ── Participant helpers ────────────────────────────────────────
    def involves(self, developer_id: uuid.UUID) -> bool:
        return developer_id in (self.participant_low_id, self.participant_high_id)

    def counterpart_of(self, developer_id: uuid.UUID) -> uuid.UUID:
        if developer_id == self.participant_low_id:
            return self.participant_high_id
        if developer_id == self.participant_high_id:
            return self.participant_low_id
        raise ValueError(f"{developer_id} is not a participant of match {self.id}")

    def action_of(self, developer_id: uuid.UUID) -> str:
        if developer_id == self.participant_low_id:
            return self.action_low
        if developer_id == self.participant_high_id:
            return self.action_high
        raise ValueError(f"{developer_id} is not a participant of match {self.id}")

    def __repr__(self) -> str:
        return (
            f"<Match {self.participant_low_id} <-> {self.participant_high_id} "
            f"status={self.status!r}>"
        )
