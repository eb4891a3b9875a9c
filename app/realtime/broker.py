"""
DevMatch — Room brokers

A broker separates "publish an event to a room" from "deliver it to the
members connected to this process".

* ``LocalBroker`` delivers in process and is the default.
* ``RedisBroker`` publishes every room event on one Redis pub/sub channel;
  a listener task in each process hands received events to that process's
  gateway.  Events from one publisher arrive in publish order; there is no
  ordering across publishers.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable, Optional, Protocol

import structlog

logger = structlog.get_logger("devmatch.realtime.broker")

Deliver = Callable[[str, str, dict, Optional[str]], Awaitable[None]]


class RoomBroker(Protocol):
    async def publish(
        self,
        room_id: str,
        event: str,
        data: dict[str, Any],
        exclude_user_id: str | None = None,
    ) -> None: ...


class LocalBroker:
    def __init__(self, deliver: Deliver) -> None:
        self._deliver = deliver

    async def publish(
        self,
        room_id: str,
        event: str,
        data: dict[str, Any],
        exclude_user_id: str | None = None,
    ) -> None:
        await self._deliver(room_id, event, data, exclude_user_id)


class RedisBroker:
    """Fan room events out to every process subscribed to ``channel``.

    The listener survives a failing delivery (logged, next envelope) and a
    dropped Redis connection (resubscribes with exponential backoff).
    """

    def __init__(
        self,
        redis,
        channel: str,
        deliver: Deliver,
        retry_delay: float = 0.5,
        max_retry_delay: float = 30.0,
    ) -> None:
        self._redis = redis
        self._channel = channel
        self._deliver = deliver
        self._retry_delay = retry_delay
        self._max_retry_delay = max_retry_delay
        self._pubsub = None
        self._listener: asyncio.Task | None = None

    @property
    def listening(self) -> bool:
        return self._listener is not None and not self._listener.done()

    async def publish(
        self,
        room_id: str,
        event: str,
        data: dict[str, Any],
        exclude_user_id: str | None = None,
    ) -> None:
        payload = json.dumps(
            {"room_id": room_id, "event": event, "data": data, "exclude": exclude_user_id}
        )
        await self._redis.publish(self._channel, payload)

    async def start(self) -> None:
        await self._subscribe()
        self._listener = asyncio.create_task(self._listen())
        logger.info("room_broker_started", channel=self._channel)

    async def stop(self) -> None:
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("room_broker_listener_failed", channel=self._channel)
            self._listener = None
        if self._pubsub is not None:
            try:
                await self._pubsub.unsubscribe(self._channel)
            except Exception as exc:
                logger.warning("room_broker_unsubscribe_failed", channel=self._channel, error=str(exc))
            await self._drop_pubsub()
        logger.info("room_broker_stopped", channel=self._channel)

    async def _subscribe(self) -> None:
        self._pubsub = self._redis.pubsub()
        await self._pubsub.subscribe(self._channel)

    async def _drop_pubsub(self) -> None:
        pubsub, self._pubsub = self._pubsub, None
        if pubsub is None:
            return
        try:
            await pubsub.aclose()
        except Exception as exc:
            logger.warning("room_broker_close_failed", channel=self._channel, error=str(exc))

    async def _listen(self) -> None:
        delay = self._retry_delay
        while True:
            try:
                if self._pubsub is None:
                    await self._subscribe()
                    logger.info("room_broker_resubscribed", channel=self._channel)
                async for message in self._pubsub.listen():
                    delay = self._retry_delay
                    if message.get("type") != "message":
                        continue
                    try:
                        await self.dispatch(message["data"])
                    except Exception:
                        logger.exception("room_broker_dispatch_failed", channel=self._channel)
                logger.warning("room_broker_stream_ended", channel=self._channel)
            except Exception as exc:
                logger.warning(
                    "room_broker_listener_error",
                    channel=self._channel,
                    error=str(exc),
                    retry_in=delay,
                )
            await self._drop_pubsub()
            await asyncio.sleep(delay)
            delay = min(delay * 2, self._max_retry_delay)

    async def dispatch(self, raw: str | bytes) -> None:
        """Deliver one envelope received from the channel to local members."""
        try:
            envelope = json.loads(raw)
            room_id = envelope["room_id"]
            event = envelope["event"]
            data = envelope["data"]
        except (ValueError, KeyError, TypeError):
            logger.warning("room_broker_bad_envelope", channel=self._channel)
            return
        await self._deliver(room_id, event, data, envelope.get("exclude"))
