"""
DevMatch — Shared API dependencies

``get_repositories`` binds a repository bundle to the request session and
``get_current_developer`` resolves the bearer credential to a live profile.
"""

from __future__ import annotations

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.developer import Developer
from app.repositories import Repositories
from app.services.auth_service import IdentityVerifier

# auto_error=False so a missing token goes through the same
# AuthenticationError path (and response body) as a bad one.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


async def get_repositories(db: AsyncSession = Depends(get_db)) -> Repositories:
    return Repositories.for_session(db)


async def get_current_developer(
    token: str | None = Depends(oauth2_scheme),
    repos: Repositories = Depends(get_repositories),
) -> Developer:
    return await IdentityVerifier(repos.developers).verify(token)
