"""
DevMatch — Matches API

The caller's confirmed matches and participant-scoped detail for a single
relationship record.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends

from app.api.deps import get_current_developer, get_repositories
from app.exceptions import NotFoundError
from app.models.developer import Developer
from app.repositories import Repositories
from app.schemas.developer import DeveloperContact, DeveloperPublic
from app.schemas.match import MatchDetail, MatchListItem
from app.services.matching_service import MatchingService

logger = structlog.get_logger("devmatch.api.matches")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# GET / — All matched records for the caller
# ──────────────────────────────────────────────────────────────────────────────

@router.get("", response_model=list[MatchListItem], summary="List the caller's matches")
async def list_matches(
    current: Developer = Depends(get_current_developer),
    repos: Repositories = Depends(get_repositories),
) -> list[MatchListItem]:
    """Matched records only, most recent ``matched_at`` first."""
    log = logger.bind(developer_id=str(current.id))

    records = await MatchingService(repos.matches).list_matches(current.id)
    profiles = await repos.developers.get_many(r.counterpart_of(current.id) for r in records)

    items: list[MatchListItem] = []
    for record in records:
        other = profiles.get(record.counterpart_of(current.id))
        if other is None:
            # Counterpart profile removed out from under the record.
            log.warning("match_counterpart_missing", match_id=str(record.id))
            continue
        items.append(
            MatchListItem(
                match_id=record.id,
                matched_with=DeveloperContact.model_validate(other),
                matched_at=record.matched_at,
            )
        )

    log.info("list_matches_complete", count=len(items))
    return items


# ──────────────────────────────────────────────────────────────────────────────
# GET /{match_id} — One record, participants only
# ──────────────────────────────────────────────────────────────────────────────

@router.get("/{match_id}", response_model=MatchDetail, summary="Get one match")
async def get_match(
    match_id: str,
    current: Developer = Depends(get_current_developer),
    repos: Repositories = Depends(get_repositories),
) -> MatchDetail:
    record = await MatchingService(repos.matches).get_for_participant(match_id, current.id)
    other = await repos.developers.get(record.counterpart_of(current.id))
    if other is None:
        raise NotFoundError("Matched developer not found.")
    return MatchDetail(
        match_id=record.id,
        other_developer=DeveloperPublic.model_validate(other),
        status=record.status,
    )
