"""
DevMatch — Chat Room Gateway

Connection lifecycle::

    unauthenticated --connect()--> authenticated --join_room()--> member of N rooms
                                         |
                                   disconnect() -> closed

Room membership lives on the gateway instance:
``rooms[room_id][user_id] -> ChatSession``.  A user holds at most one
membership per room, so rejoining (from the same or a new connection)
replaces the previous entry.

``send_message`` re-authorizes on every message, then persists and
publishes while holding the room's lock, so delivery order matches
persistence order.  Delivery is at-most-once: a member whose send fails is
logged and skipped, and nothing is queued for absent members.
"""

from __future__ import annotations

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Protocol

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from app.exceptions import DevMatchError, ServerError, ValidationError
from app.models.developer import Developer
from app.models.message import Message
from app.realtime import events
from app.realtime.broker import LocalBroker, RoomBroker
from app.repositories import RepositoriesFactory
from app.schemas.chat import (
    ClientFrame,
    MessageResponse,
    RoomPayload,
    SendMessagePayload,
    SenderSummary,
    TypingPayload,
)
from app.services.auth_service import IdentityVerifier
from app.services.matching_service import MatchingService
from app.services.pairing import parse_id

logger = structlog.get_logger("devmatch.realtime.gateway")

_GOING_AWAY = 1001


class _RoomLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.holders = 0


class Transport(Protocol):
    """The part of a WebSocket the gateway talks to."""

    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000) -> None: ...


class ChatSession:
    """One authenticated connection."""

    def __init__(self, transport: Transport, developer: Developer) -> None:
        self.id = uuid.uuid4().hex
        self.transport = transport
        self.user_id = str(developer.id)
        self.user_name = developer.name
        self.sender = SenderSummary.model_validate(developer)
        self.rooms: set[str] = set()

    async def emit(self, event: str, data: dict[str, Any]) -> None:
        await self.transport.send_json({"event": event, "data": data})

    def __repr__(self) -> str:
        return f"<ChatSession {self.id} user={self.user_id} rooms={len(self.rooms)}>"


def serialize_message(message: Message, sender: SenderSummary) -> dict[str, Any]:
    return MessageResponse(
        id=message.id,
        match_id=message.match_id,
        sender=sender,
        content=message.content,
        timestamp=message.timestamp,
        read_by=message.read_by or [],
    ).model_dump(mode="json")


def _parse_payload(model: type[BaseModel], data: dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        field = ".".join(str(part) for part in exc.errors()[0]["loc"]) or "payload"
        raise ValidationError(f"Invalid or missing field '{field}'.") from exc


class ChatRoomGateway:
    def __init__(
        self,
        repositories: RepositoriesFactory,
        broker: RoomBroker | None = None,
    ) -> None:
        self._repositories = repositories
        self._broker: RoomBroker = broker or LocalBroker(self.deliver)
        self.rooms: dict[str, dict[str, ChatSession]] = {}
        self._sessions: dict[str, ChatSession] = {}
        self._room_locks: dict[str, _RoomLock] = {}
        self._handlers: dict[str, Callable[[ChatSession, dict], Awaitable[None]]] = {
            events.JOIN_ROOM: self.join_room,
            events.SEND_MESSAGE: self.send_message,
            events.TYPING: self.typing,
        }

    def use_broker(self, broker: RoomBroker) -> None:
        self._broker = broker

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    # ── Connection lifecycle ──────────────────────────────────────────────

    async def connect(self, transport: Transport, token: str | None) -> ChatSession:
        """Authenticate a new connection.

        Raises ``AuthenticationError`` for a missing, invalid or expired
        credential, or one whose developer no longer exists.
        """
        async with self._repositories() as repos:
            developer = await IdentityVerifier(repos.developers).verify(token)
        session = ChatSession(transport, developer)
        self._sessions[session.id] = session
        logger.info("chat_connected", session_id=session.id, user_id=session.user_id)
        return session

    def disconnect(self, session: ChatSession) -> None:
        for room_id in list(session.rooms):
            self._leave(room_id, session)
        self._sessions.pop(session.id, None)
        logger.info("chat_disconnected", session_id=session.id, user_id=session.user_id)

    async def close_all(self) -> None:
        for session in list(self._sessions.values()):
            try:
                await session.transport.close(code=_GOING_AWAY)
            except Exception:
                logger.warning("chat_close_failed", session_id=session.id)
            self.disconnect(session)

    # ── Frame dispatch ────────────────────────────────────────────────────

    async def handle_frame(self, session: ChatSession, raw: str) -> None:
        try:
            frame = ClientFrame.model_validate_json(raw)
        except PydanticValidationError:
            await session.emit(
                events.MESSAGE_ERROR, ValidationError("Malformed frame.").to_dict()
            )
            return

        handler = self._handlers.get(frame.event)
        if handler is None:
            await session.emit(
                events.MESSAGE_ERROR,
                ValidationError(f"Unknown event {frame.event!r}.").to_dict(),
            )
            return
        await handler(session, frame.data)

    # ── Client events ─────────────────────────────────────────────────────

    async def join_room(self, session: ChatSession, data: dict[str, Any]) -> None:
        raw_room_id = data.get("matchId", data.get("match_id"))
        log = logger.bind(session_id=session.id, user_id=session.user_id, room_id=raw_room_id)
        try:
            payload = _parse_payload(RoomPayload, data)
            room_id = str(parse_id(payload.match_id, "match id"))
            async with self._repositories() as repos:
                await MatchingService(repos.matches).authorize_room(
                    room_id, uuid.UUID(session.user_id)
                )
        except Exception as exc:
            error = self._as_domain_error(exc, log, "join_room_failed")
            log.info("join_room_rejected", error=error.kind)
            await session.emit(
                events.ERROR_JOINING_ROOM, {"matchId": raw_room_id, **error.to_dict()}
            )
            return

        members = self.rooms.setdefault(room_id, {})
        previous = members.get(session.user_id)
        if previous is not None and previous is not session:
            previous.rooms.discard(room_id)
        members[session.user_id] = session
        session.rooms.add(room_id)

        log.info("join_room_complete", members=len(members))
        await session.emit(
            events.ROOM_JOINED,
            {"matchId": room_id, "message": f"Successfully joined room {room_id}"},
        )

    async def send_message(self, session: ChatSession, data: dict[str, Any]) -> None:
        log = logger.bind(session_id=session.id, user_id=session.user_id)
        try:
            payload = _parse_payload(SendMessagePayload, data)
            room_id = str(parse_id(payload.match_id, "match id"))
            if not payload.content.strip():
                raise ValidationError("Message content cannot be empty.")

            async with self._room_lock(room_id):
                async with self._repositories() as repos:
                    await MatchingService(repos.matches).authorize_room(
                        room_id, uuid.UUID(session.user_id)
                    )
                    message = await repos.messages.append(
                        uuid.UUID(room_id), uuid.UUID(session.user_id), payload.content
                    )
                body = serialize_message(message, session.sender)
                await self._broker.publish(room_id, events.RECEIVE_MESSAGE, body)
        except Exception as exc:
            error = self._as_domain_error(exc, log, "send_message_failed")
            log.info("send_message_rejected", error=error.kind)
            await session.emit(events.MESSAGE_ERROR, error.to_dict())
            return

        log.info("send_message_complete", room_id=room_id, message_id=body["id"])

    async def typing(self, session: ChatSession, data: dict[str, Any]) -> None:
        try:
            payload = _parse_payload(TypingPayload, data)
            room_id = str(parse_id(payload.match_id, "match id"))
        except DevMatchError:
            return
        if self.rooms.get(room_id, {}).get(session.user_id) is not session:
            return
        await self._broker.publish(
            room_id,
            events.USER_TYPING,
            {"userId": session.user_id, "userName": session.user_name, "isTyping": payload.is_typing},
            exclude_user_id=session.user_id,
        )

    # ── Delivery ──────────────────────────────────────────────────────────

    async def deliver(
        self,
        room_id: str,
        event: str,
        data: dict[str, Any],
        exclude_user_id: str | None = None,
    ) -> None:
        """Send ``event`` to every local member of ``room_id``."""
        for user_id, member in list(self.rooms.get(room_id, {}).items()):
            if user_id == exclude_user_id:
                continue
            try:
                await member.emit(event, data)
            except Exception as exc:
                logger.warning(
                    "room_delivery_failed",
                    room_id=room_id,
                    event_name=event,
                    session_id=member.id,
                    error=str(exc),
                )

    # ── Internal helpers ──────────────────────────────────────────────────

    def _leave(self, room_id: str, session: ChatSession) -> None:
        session.rooms.discard(room_id)
        members = self.rooms.get(room_id)
        if members is None:
            return
        if members.get(session.user_id) is session:
            del members[session.user_id]
        if not members:
            del self.rooms[room_id]

    @asynccontextmanager
    async def _room_lock(self, room_id: str) -> AsyncIterator[None]:
        # Dropped once no sender holds or waits on it.
        entry = self._room_locks.get(room_id)
        if entry is None:
            entry = self._room_locks[room_id] = _RoomLock()
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                del self._room_locks[room_id]

    @staticmethod
    def _as_domain_error(exc: Exception, log, event: str) -> DevMatchError:
        if isinstance(exc, DevMatchError):
            return exc
        log.exception(event)
        return ServerError()
