"""
DevMatch — Main API Router

Aggregates all sub-routers under a single prefix so that ``app.main``
can mount the entire API surface with one ``include_router`` call.
"""

from fastapi import APIRouter

from app.api import auth, chat, developers, matches, users

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(developers.router, prefix="/developers", tags=["Developers"])
router.include_router(matches.router, prefix="/matches", tags=["Matches"])
router.include_router(chat.router, prefix="/chat", tags=["Chat"])
