"""
DevMatch — Developer profile store.

The profile store is a collaborator of the matching core: the core only
reads profiles (identity resolution, discovery, projections); the auth and
users endpoints create and update them.
"""

from __future__ import annotations

import uuid
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import bounded
from app.exceptions import ConflictError
from app.models.developer import Developer


class DeveloperRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, developer_id: uuid.UUID) -> Developer | None:
        return await bounded(self._session.get(Developer, developer_id))

    async def get_by_email(self, email: str) -> Developer | None:
        stmt = select(Developer).where(Developer.email == email)
        result = await bounded(self._session.execute(stmt))
        return result.scalar_one_or_none()

    async def get_many(self, developer_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, Developer]:
        ids = set(developer_ids)
        if not ids:
            return {}
        stmt = select(Developer).where(Developer.id.in_(ids))
        result = await bounded(self._session.execute(stmt))
        return {d.id: d for d in result.scalars().all()}

    async def list_discoverable(self, exclude_ids: Iterable[uuid.UUID]) -> list[Developer]:
        """Active profiles whose id is not in ``exclude_ids``, newest first."""
        excluded = set(exclude_ids)
        stmt = select(Developer).where(Developer.is_active.is_(True))
        if excluded:
            stmt = stmt.where(Developer.id.not_in(excluded))
        stmt = stmt.order_by(Developer.created_at.desc())
        result = await bounded(self._session.execute(stmt))
        return list(result.scalars().all())

    async def add(self, developer: Developer) -> Developer:
        try:
            async with self._session.begin_nested():
                self._session.add(developer)
                await bounded(self._session.flush())
        except IntegrityError as exc:
            raise ConflictError("A developer with this email already exists.") from exc
        return developer

    async def save(self, developer: Developer) -> Developer:
        self._session.add(developer)
        await bounded(self._session.flush())
        return developer
