"""
DevMatch — ORM model registry.

Importing every model here ensures that Alembic (and any other tool that
inspects ``Base.metadata``) discovers all tables automatically.
"""

from app.models.developer import Developer
from app.models.match import Match, MatchAction, MatchStatus
from app.models.message import Message

__all__ = [
    "Developer",
    "Match",
    "MatchAction",
    "MatchStatus",
    "Message",
]
