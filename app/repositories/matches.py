"""
DevMatch — Match repository.

Thin persistence boundary for relationship records.  ``save`` is the only
write path: it inserts a new record or updates an existing one inside a
SAVEPOINT so that a lost race (unique-pair violation on insert, version
mismatch on update) surfaces as ``ConflictError`` without poisoning the
surrounding transaction.
"""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from app.database import bounded
from app.exceptions import ConflictError
from app.models.match import Match, MatchStatus

logger = structlog.get_logger("devmatch.repositories.matches")


class MatchRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_pair(self, low: uuid.UUID, high: uuid.UUID) -> Match | None:
        # populate_existing discards stale in-session state after a lost race.
        stmt = (
            select(Match)
            .where(Match.participant_low_id == low, Match.participant_high_id == high)
            .execution_options(populate_existing=True)
        )
        result = await bounded(self._session.execute(stmt))
        return result.scalar_one_or_none()

    async def find_by_id(self, match_id: uuid.UUID) -> Match | None:
        return await bounded(self._session.get(Match, match_id))

    async def find_all_involving(self, developer_id: uuid.UUID) -> list[Match]:
        stmt = select(Match).where(
            or_(
                Match.participant_low_id == developer_id,
                Match.participant_high_id == developer_id,
            )
        )
        result = await bounded(self._session.execute(stmt))
        return list(result.scalars().all())

    async def find_matched_for(self, developer_id: uuid.UUID) -> list[Match]:
        """Matched records involving ``developer_id``, newest match first."""
        stmt = (
            select(Match)
            .where(
                or_(
                    Match.participant_low_id == developer_id,
                    Match.participant_high_id == developer_id,
                ),
                Match.status == MatchStatus.MATCHED.value,
            )
            .order_by(Match.matched_at.desc())
        )
        result = await bounded(self._session.execute(stmt))
        return list(result.scalars().all())

    async def save(self, record: Match) -> Match:
        try:
            async with self._session.begin_nested():
                self._session.add(record)
                await bounded(self._session.flush())
        except IntegrityError as exc:
            logger.warning(
                "match_save_conflict",
                reason="unique_pair",
                participant_low_id=str(record.participant_low_id),
                participant_high_id=str(record.participant_high_id),
            )
            raise ConflictError("A relationship record for this pair already exists.") from exc
        except StaleDataError as exc:
            logger.warning("match_save_conflict", reason="stale_version", match_id=str(record.id))
            raise ConflictError("The relationship record changed concurrently.") from exc
        return record
