"""
DevMatch — Users API

Public profile lookup and self-service profile updates.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends

from app.api.deps import get_current_developer, get_repositories
from app.exceptions import NotFoundError
from app.models.developer import Developer
from app.repositories import Repositories
from app.schemas.developer import DeveloperPublic, DeveloperResponse, DeveloperUpdate
from app.services.pairing import parse_id

logger = structlog.get_logger("devmatch.api.users")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# PUT /me/profile — Update the caller's profile
# ──────────────────────────────────────────────────────────────────────────────

@router.put(
    "/me/profile",
    response_model=DeveloperResponse,
    summary="Update the current developer's profile",
)
async def update_profile(
    payload: DeveloperUpdate,
    current: Developer = Depends(get_current_developer),
    repos: Repositories = Depends(get_repositories),
) -> Developer:
    """Partially update the caller's profile.

    Only fields present in the request body are changed.  List fields accept
    either a JSON array or a comma-separated string.
    """
    log = logger.bind(developer_id=str(current.id))
    log.info("update_profile_start")

    update_data = payload.model_dump(exclude_unset=True)
    if "name" in update_data and update_data["name"] is not None:
        update_data["name"] = update_data["name"].strip()

    for field, value in update_data.items():
        if value is None and field in ("name", "skills", "tech_stacks", "project_interests"):
            continue
        setattr(current, field, value)
    current.updated_at = datetime.now(timezone.utc)

    await repos.developers.save(current)
    await repos.commit()

    log.info("update_profile_complete", updated_fields=sorted(update_data))
    return current


# ──────────────────────────────────────────────────────────────────────────────
# GET /{user_id} — Public profile by ID
# ──────────────────────────────────────────────────────────────────────────────

@router.get(
    "/{user_id}",
    response_model=DeveloperPublic,
    summary="Get a developer's public profile",
)
async def get_user(
    user_id: str,
    _: Developer = Depends(get_current_developer),
    repos: Repositories = Depends(get_repositories),
) -> Developer:
    developer = await repos.developers.get(parse_id(user_id, "user id"))
    if developer is None or not developer.is_active:
        raise NotFoundError("User not found.")
    return developer
