"""
DevMatch — Discovery Filter

Computes the candidate developers shown to a caller.  The exclusion set is
rebuilt from the caller's relationship records on every call:

  - the caller,
  - every counterpart of a ``matched`` record,
  - every counterpart the caller has already liked or disliked.

Only the caller's own actions gate the caller's exclusion set; a
counterpart's dislike does not hide them from the caller.
"""

from __future__ import annotations

import uuid

import structlog

from app.models.developer import Developer
from app.models.match import MatchAction, MatchStatus
from app.repositories.developers import DeveloperRepository
from app.repositories.matches import MatchRepository

logger = structlog.get_logger("devmatch.discovery_service")

_ACTED = frozenset({MatchAction.LIKED.value, MatchAction.DISLIKED.value})


class DiscoveryService:
    def __init__(self, developers: DeveloperRepository, matches: MatchRepository) -> None:
        self._developers = developers
        self._matches = matches

    async def exclusion_set(self, user_id: uuid.UUID) -> set[uuid.UUID]:
        excluded: set[uuid.UUID] = {user_id}
        for record in await self._matches.find_all_involving(user_id):
            if record.status == MatchStatus.MATCHED.value or record.action_of(user_id) in _ACTED:
                excluded.add(record.counterpart_of(user_id))
        return excluded

    async def list_candidates(self, user_id: uuid.UUID) -> list[Developer]:
        log = logger.bind(user_id=str(user_id))
        excluded = await self.exclusion_set(user_id)
        candidates = await self._developers.list_discoverable(excluded)
        log.info("discover_complete", excluded=len(excluded), candidate_count=len(candidates))
        return candidates
