"""
DevMatch — Developers API

Discovery feed and the like / dislike actions that drive the match state
machine.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends

from app.api.deps import get_current_developer, get_repositories
from app.exceptions import NotFoundError
from app.models.developer import Developer
from app.models.match import MatchAction
from app.repositories import Repositories
from app.schemas.developer import DeveloperContact, DeveloperPublic
from app.schemas.match import ActionResponse, MatchRecordResponse
from app.services.discovery_service import DiscoveryService
from app.services.matching_service import MatchingService
from app.services.pairing import parse_id

logger = structlog.get_logger("devmatch.api.developers")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# GET /discover — Candidate feed
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/discover",
    response_model=list[DeveloperPublic],
    summary="Developers the caller has not acted on yet",
)
async def discover(
    current: Developer = Depends(get_current_developer),
    repos: Repositories = Depends(get_repositories),
) -> list[Developer]:
    """Recomputed on every call; nothing is cached between requests."""
    service = DiscoveryService(repos.developers, repos.matches)
    return await service.list_candidates(current.id)


# ──────────────────────────────────────────────────────────────────────────────
# POST /{developer_id}/like and /{developer_id}/dislike
# ──────────────────────────────────────────────────────────────────────────────

async def _record(
    current: Developer,
    developer_id: str,
    action: MatchAction,
    repos: Repositories,
) -> ActionResponse:
    target_id = parse_id(developer_id, "developer id")
    target = await repos.developers.get(target_id)
    if target is None or not target.is_active:
        raise NotFoundError("Developer not found.")

    outcome = await MatchingService(repos.matches).record_action(current.id, target_id, action)
    await repos.commit()

    if outcome.is_new_match:
        message = f"It's a match with {target.name}!"
    elif action is MatchAction.LIKED:
        message = f"You liked {target.name}."
    else:
        message = f"You disliked {target.name}."

    return ActionResponse(
        message=message,
        match=MatchRecordResponse.model_validate(outcome.record),
        is_new_match=outcome.is_new_match,
        matched_user=DeveloperContact.model_validate(target) if outcome.is_new_match else None,
    )


@router.post(
    "/{developer_id}/like",
    response_model=ActionResponse,
    summary="Like a developer",
)
async def like_developer(
    developer_id: str,
    current: Developer = Depends(get_current_developer),
    repos: Repositories = Depends(get_repositories),
) -> ActionResponse:
    return await _record(current, developer_id, MatchAction.LIKED, repos)


@router.post(
    "/{developer_id}/dislike",
    response_model=ActionResponse,
    summary="Dislike a developer",
)
async def dislike_developer(
    developer_id: str,
    current: Developer = Depends(get_current_developer),
    repos: Repositories = Depends(get_repositories),
) -> ActionResponse:
    return await _record(current, developer_id, MatchAction.DISLIKED, repos)
