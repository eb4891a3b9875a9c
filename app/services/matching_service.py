"""
DevMatch — Match State Machine

Owns the lifecycle of a relationship record:

  1. a participant records an action (liked / disliked) toward the other,
  2. the record is fetched-or-created for the canonical pair,
  3. only the caller's action slot changes,
  4. ``status`` / ``matched_at`` are re-derived by the pure functions below,
  5. the record is persisted in one write.

Status derivation (order-independent across the two slots):

  liked    + liked     -> matched
  disliked + disliked  -> mutually_declined
  disliked + anything  -> declined_by_one
  liked    + none      -> pending
  none     + none      -> none

``matched_at`` is stamped only on the transition *into* matched, preserved
while the record stays matched, and cleared otherwise.

Concurrency: two callers acting on the same pair race on a read-modify-write.
The repository turns a lost race (duplicate pair on insert, stale version on
update) into ``ConflictError``; ``record_action`` retries once by re-reading
the record and re-applying the action, and a second conflict becomes
``ServerError``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

import structlog

from app.exceptions import (
    AuthorizationError,
    ConflictError,
    InvalidAction,
    NotFoundError,
    ServerError,
    ValidationError,
)
from app.models.match import Match, MatchAction, MatchStatus
from app.repositories.matches import MatchRepository
from app.services.pairing import canonicalize_pair, parse_id

logger = structlog.get_logger("devmatch.matching_service")

# ──────────────────────────────────────────────────────────────────────────────
# Constants
# ──────────────────────────────────────────────────────────────────────────────

_MAX_ATTEMPTS = 2  # initial attempt + one retry after a lost race

_RECORDABLE_ACTIONS = frozenset({MatchAction.LIKED, MatchAction.DISLIKED})


# ──────────────────────────────────────────────────────────────────────────────
# Pure status derivation
# ──────────────────────────────────────────────────────────────────────────────

def derive_status(action_low: str | MatchAction, action_high: str | MatchAction) -> MatchStatus:
    """Total function of the two action slots."""
    low = MatchAction(action_low)
    high = MatchAction(action_high)

    if low is MatchAction.LIKED and high is MatchAction.LIKED:
        return MatchStatus.MATCHED
    if low is MatchAction.DISLIKED and high is MatchAction.DISLIKED:
        return MatchStatus.MUTUALLY_DECLINED
    if MatchAction.DISLIKED in (low, high):
        return MatchStatus.DECLINED_BY_ONE
    if MatchAction.LIKED in (low, high):
        return MatchStatus.PENDING
    return MatchStatus.NONE


def apply_status(record: Match, prior_status: str | MatchStatus, now: datetime) -> MatchStatus:
    """Recompute ``status`` and ``matched_at`` on ``record`` in place."""
    new_status = derive_status(record.action_low, record.action_high)
    if new_status is MatchStatus.MATCHED:
        if MatchStatus(prior_status) is not MatchStatus.MATCHED or record.matched_at is None:
            record.matched_at = now
    else:
        record.matched_at = None
    record.status = new_status.value
    return new_status


def coerce_action(action: str | MatchAction) -> MatchAction:
    try:
        value = MatchAction(action)
    except ValueError as exc:
        raise ValidationError(f"Unsupported action {action!r}.") from exc
    if value not in _RECORDABLE_ACTIONS:
        raise ValidationError(f"Unsupported action {action!r}.")
    return value


# ──────────────────────────────────────────────────────────────────────────────
# Service
# ──────────────────────────────────────────────────────────────────────────────

@dataclass
class ActionOutcome:
    record: Match
    is_new_match: bool


class MatchingService:
    """Records actions and answers participant-scoped queries on matches."""

    def __init__(self, matches: MatchRepository) -> None:
        self._matches = matches

    # ── Public API ────────────────────────────────────────────────────────

    async def record_action(
        self,
        current_user_id: str | uuid.UUID,
        target_user_id: str | uuid.UUID,
        action: str | MatchAction,
    ) -> ActionOutcome:
        """Record ``current_user_id``'s action toward ``target_user_id``.

        Returns the saved record and whether this write formed a new match.
        """
        chosen = coerce_action(action)
        current = parse_id(current_user_id, "user id")
        target = parse_id(target_user_id, "developer id")
        if current == target:
            raise InvalidAction("You cannot like or dislike yourself.")

        low, high = canonicalize_pair(current, target)
        log = logger.bind(user_id=str(current), target_id=str(target), action=chosen.value)
        log.info("record_action_start")

        for attempt in range(1, _MAX_ATTEMPTS + 1):
            try:
                outcome = await self._apply_once(low, high, current, chosen)
            except ConflictError:
                log.warning("record_action_conflict", attempt=attempt)
                continue
            log.info(
                "record_action_complete",
                match_id=str(outcome.record.id),
                status=outcome.record.status,
                is_new_match=outcome.is_new_match,
                attempt=attempt,
            )
            return outcome

        log.error("record_action_retry_exhausted")
        raise ServerError("Could not record the action, please try again.")

    async def list_matches(self, user_id: uuid.UUID) -> list[Match]:
        """Matched records for ``user_id``, most recent ``matched_at`` first."""
        return await self._matches.find_matched_for(user_id)

    async def get_for_participant(self, match_id: str | uuid.UUID, user_id: uuid.UUID) -> Match:
        """Fetch one record, visible to its two participants only."""
        record_id = parse_id(match_id, "match id")
        record = await self._matches.find_by_id(record_id)
        if record is None:
            raise NotFoundError("Match not found.")
        if not record.involves(user_id):
            raise AuthorizationError("User not authorized to view this match.")
        return record

    async def authorize_room(self, room_id: str | uuid.UUID, user_id: uuid.UUID) -> Match:
        """Return the record behind a chat room if ``user_id`` may use it.

        The caller must be a participant and the record must be matched.
        """
        record = await self.get_for_participant(room_id, user_id)
        if record.status != MatchStatus.MATCHED.value:
            raise AuthorizationError("This chat is only available for an active match.")
        return record

    # ── Internal helpers ──────────────────────────────────────────────────

    async def _apply_once(
        self,
        low: uuid.UUID,
        high: uuid.UUID,
        current: uuid.UUID,
        action: MatchAction,
    ) -> ActionOutcome:
        now = datetime.now(timezone.utc)
        record = await self._matches.find_by_pair(low, high)
        if record is None:
            record = _new_record(low, high, now)
        prior_status = MatchStatus(record.status)

        if current == low:
            record.action_low = action.value
        else:
            record.action_high = action.value

        new_status = apply_status(record, prior_status, now)
        record.updated_at = now

        saved = await self._matches.save(record)
        is_new_match = (
            new_status is MatchStatus.MATCHED and prior_status is not MatchStatus.MATCHED
        )
        return ActionOutcome(record=saved, is_new_match=is_new_match)


def _new_record(low: uuid.UUID, high: uuid.UUID, now: datetime) -> Match:
    return Match(
        id=uuid.uuid4(),
        participant_low_id=low,
        participant_high_id=high,
        action_low=MatchAction.NONE.value,
        action_high=MatchAction.NONE.value,
        status=MatchStatus.NONE.value,
        matched_at=None,
        created_at=now,
        updated_at=now,
    )
