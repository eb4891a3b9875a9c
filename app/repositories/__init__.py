"""
DevMatch — Repository bundle.

HTTP handlers get a ``Repositories`` bundle bound to the request's session.
The real-time gateway, which has no request scope, opens one bundle per
event through ``open_repositories`` (commit on success, rollback on error).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncContextManager, AsyncIterator, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from app.database import async_session_factory, bounded
from app.repositories.developers import DeveloperRepository
from app.repositories.matches import MatchRepository
from app.repositories.messages import MessageStore


@dataclass
class Repositories:
    developers: DeveloperRepository
    matches: MatchRepository
    messages: MessageStore
    session: AsyncSession | None = field(default=None, repr=False)

    @classmethod
    def for_session(cls, session: AsyncSession) -> "Repositories":
        return cls(
            developers=DeveloperRepository(session),
            matches=MatchRepository(session),
            messages=MessageStore(session),
            session=session,
        )

    async def commit(self) -> None:
        """Make this request's writes durable before the response is sent."""
        if self.session is not None:
            await bounded(self.session.commit())


RepositoriesFactory = Callable[[], AsyncContextManager[Repositories]]


@asynccontextmanager
async def open_repositories() -> AsyncIterator[Repositories]:
    async with async_session_factory() as session:
        try:
            yield Repositories.for_session(session)
            await bounded(session.commit())
        except Exception:
            await session.rollback()
            raise


__all__ = [
    "DeveloperRepository",
    "MatchRepository",
    "MessageStore",
    "Repositories",
    "RepositoriesFactory",
    "open_repositories",
]
