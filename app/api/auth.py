"""
DevMatch — Auth API

Account registration, password login and the caller's own profile.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, status

from app.api.deps import get_current_developer, get_repositories
from app.exceptions import ConflictError
from app.models.developer import Developer
from app.repositories import Repositories
from app.schemas.developer import (
    DeveloperLogin,
    DeveloperRegister,
    DeveloperResponse,
    RegisterResponse,
    TokenResponse,
)
from app.services.auth_service import IdentityVerifier, create_access_token, hash_password

logger = structlog.get_logger("devmatch.api.auth")

router = APIRouter()


# ──────────────────────────────────────────────────────────────────────────────
# POST /register — Create a developer account
# ──────────────────────────────────────────────────────────────────────────────

@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new developer",
)
async def register(
    payload: DeveloperRegister,
    repos: Repositories = Depends(get_repositories),
) -> RegisterResponse:
    """Create a developer profile.

    Rejects a duplicate email with 409 before attempting the insert; the
    unique index still catches a concurrent duplicate.
    """
    log = logger.bind(email=payload.email)
    log.info("register_start")

    if await repos.developers.get_by_email(payload.email) is not None:
        log.warning("register_duplicate_email")
        raise ConflictError("A developer with this email already exists.")

    developer = Developer(
        id=uuid.uuid4(),
        email=payload.email,
        name=payload.name.strip(),
        password_hash=hash_password(payload.password),
        skills=payload.skills,
        tech_stacks=payload.tech_stacks,
        project_interests=payload.project_interests,
        experience=payload.experience,
        github_link=payload.github_link,
        is_active=True,
    )
    await repos.developers.add(developer)
    await repos.commit()

    log.info("register_complete", developer_id=str(developer.id))
    return RegisterResponse(message="Developer registered successfully", developer_id=developer.id)


# ──────────────────────────────────────────────────────────────────────────────
# POST /login — Exchange credentials for a bearer token
# ──────────────────────────────────────────────────────────────────────────────

@router.post("/login", response_model=TokenResponse, summary="Log in with email and password")
async def login(
    payload: DeveloperLogin,
    repos: Repositories = Depends(get_repositories),
) -> TokenResponse:
    developer = await IdentityVerifier(repos.developers).login(payload.email, payload.password)
    logger.info("login_complete", developer_id=str(developer.id))
    return TokenResponse(
        access_token=create_access_token(developer.id, developer.name),
        developer=DeveloperResponse.model_validate(developer),
    )


@router.get("/me", response_model=DeveloperResponse, summary="Current developer profile")
async def me(current: Developer = Depends(get_current_developer)) -> Developer:
    return current
