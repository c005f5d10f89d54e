# lurdinha/store/redis_repo.py
from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any, Awaitable, Callable, Mapping, Optional

from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError, WatchError

from lurdinha.errors import AlreadyExists, Conflict, LurdinhaError, NotFound, Persistence
from lurdinha.store.models import RoomStore
from lurdinha.store.paths import apply_update, matches
from lurdinha.store.redis_keys import RK

logger = logging.getLogger(__name__)

OnChange = Callable[[RoomStore], Awaitable[None]]
OnError = Callable[[LurdinhaError], Awaitable[None]]


def _dec(x):
    """Decode redis bytes -> str; pass through str/None."""
    if isinstance(x, bytes):
        return x.decode("utf-8")
    return x


@contextlib.contextmanager
def _store_errors(what: str):
    try:
        yield
    except RedisError as e:
        logger.warning("redis error during %s: %s", what, e)
        raise Persistence(f"Store failure during {what}: {e}") from e


class Subscription:
    """
    Live change feed for one room.
    Runs a background task that reads the room's pub/sub channel and hands
    every snapshot to `on_change` until cancelled.
    The room's keyspace channel is read too, so a TTL expiry ends the feed
    the same way an explicit delete does.
    """

    def __init__(
        self,
        room_id: str,
        pubsub: PubSub,
        on_change: OnChange,
        on_error: OnError,
        keyspace_channel: Optional[str] = None,
    ):
        self.room_id = room_id
        self._pubsub = pubsub
        self._on_change = on_change
        self._on_error = on_error
        self._keyspace_channel = keyspace_channel
        self._task: Optional[asyncio.Task] = None
        self.cancelled = False

    def start(self) -> None:
        self._task = asyncio.create_task(self._run(), name=f"room-sub:{self.room_id}")

    async def _handle(self, message: Mapping[str, Any]) -> bool:
        """Process one pub/sub message. False once the room is gone."""
        if message.get("type") != "message":
            return True

        data = _dec(message["data"])
        if self._keyspace_channel and _dec(message.get("channel")) == self._keyspace_channel:
            if data == "expired":
                logger.info("room %s expired", self.room_id)
                await self._on_error(NotFound(self.room_id, "Sala encerrada ou não encontrada."))
                return False
            return True

        payload = json.loads(data)
        if payload.get("event") == "deleted":
            await self._on_error(NotFound(self.room_id, "Sala encerrada ou não encontrada."))
            return False
        await self._on_change(RoomStore.model_validate(payload["room"]))
        return True

    async def _run(self) -> None:
        try:
            async for message in self._pubsub.listen():
                if not await self._handle(message):
                    return
        except RedisError as e:
            logger.warning("subscription to room %s lost: %s", self.room_id, e)
            await self._on_error(Persistence("Erro de conexão com a sala."))
        except Exception:
            logger.exception("subscriber of room %s failed", self.room_id)
            await self._on_error(Persistence("Erro de conexão com a sala."))
        finally:
            with contextlib.suppress(RedisError):
                await self._pubsub.aclose()

    async def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task


class RedisRepo:
    """
    One JSON document per room under `game_rooms:<code>`.
    Every write publishes the full new document on `game_rooms:<code>:changes`.
    """

    def __init__(self, r: Redis, room_ttl_sec: int = 6 * 3600, max_update_retries: int = 25):
        self.r = r
        self.room_ttl_sec = room_ttl_sec
        self.max_update_retries = max_update_retries

    @staticmethod
    def _changed(doc: Mapping[str, Any]) -> str:
        return json.dumps({"event": "changed", "room": doc})

    # ----------------------------
    # Reads
    # ----------------------------
    async def exists(self, room_id: str) -> bool:
        with _store_errors("exists"):
            return bool(await self.r.exists(RK(room_id).room()))

    async def get_doc(self, room_id: str) -> dict:
        with _store_errors("get"):
            raw = await self.r.get(RK(room_id).room())
        if raw is None:
            raise NotFound(room_id)
        return json.loads(_dec(raw))

    async def get(self, room_id: str) -> RoomStore:
        return RoomStore.model_validate(await self.get_doc(room_id))

    async def list_room_ids(self) -> list[str]:
        out: set[str] = set()
        with _store_errors("scan"):
            async for k in self.r.scan_iter(match=RK.room_pattern(), count=200):
                room_id = RK.room_id_from_key(_dec(k))
                if room_id:
                    out.add(room_id)
        return sorted(out)

    # ----------------------------
    # Writes
    # ----------------------------
    async def create(self, room: RoomStore) -> None:
        rk = RK(room.room_id)
        doc = room.to_doc()
        with _store_errors("create"):
            ok = await self.r.set(rk.room(), json.dumps(doc), nx=True, ex=self.room_ttl_sec)
            if not ok:
                raise AlreadyExists(room.room_id)
            await self.r.publish(rk.changes(), self._changed(doc))

    async def update(
        self,
        room_id: str,
        fields: Mapping[str, Any],
        expect: Optional[Mapping[str, Any]] = None,
    ) -> RoomStore:
        """
        Merge dot-path `fields` into the stored document.
        Optimistic WATCH/MULTI: retried when someone else wrote in between.
        `expect` maps dot-paths to required current values (Conflict otherwise).
        """
        rk = RK(room_id)
        key = rk.room()

        with _store_errors("update"):
            async with self.r.pipeline(transaction=True) as pipe:
                for _ in range(self.max_update_retries):
                    try:
                        await pipe.watch(key)
                        raw = await pipe.get(key)
                        if raw is None:
                            raise NotFound(room_id)
                        doc = json.loads(_dec(raw))
                        if not matches(doc, expect):
                            raise Conflict(f"Room {room_id} no longer matches {dict(expect or {})}")
                        new_doc = apply_update(doc, fields)
                        room = RoomStore.model_validate(new_doc)

                        pipe.multi()
                        pipe.set(key, json.dumps(new_doc), ex=self.room_ttl_sec)
                        pipe.publish(rk.changes(), self._changed(new_doc))
                        await pipe.execute()
                        return room
                    except WatchError:
                        logger.debug("room %s modified concurrently, retrying update", room_id)
                        continue
                    finally:
                        await pipe.reset()

        raise Persistence(f"Room {room_id} is too busy, try again")

    async def delete(self, room_id: str) -> None:
        rk = RK(room_id)
        with _store_errors("delete"):
            removed = await self.r.delete(rk.room())
            if not removed:
                raise NotFound(room_id)
            await self.r.publish(rk.changes(), json.dumps({"event": "deleted"}))

    # ----------------------------
    # Change feed
    # ----------------------------
    def _db(self) -> int:
        return int(self.r.connection_pool.connection_kwargs.get("db", 0) or 0)

    async def enable_expiry_events(self) -> bool:
        """
        Turn on keyspace `expired` notifications (flags K + x), keeping any
        flags already set. Managed Redis often forbids CONFIG SET; then rooms
        still expire but subscribers are not told.
        """
        try:
            conf = await self.r.config_get("notify-keyspace-events")
            flags = _dec(next(iter(conf.values()), b"")) or ""
            missing = ""
            if "K" not in flags:
                missing += "K"
            if "x" not in flags and "A" not in flags:  # A is an alias that includes x
                missing += "x"
            if missing:
                await self.r.config_set("notify-keyspace-events", flags + missing)
        except RedisError as e:
            logger.warning("cannot enable keyspace expiry events: %s", e)
            return False
        return True

    async def subscribe(self, room_id: str, on_change: OnChange, on_error: OnError) -> Subscription:
        rk = RK(room_id)
        keyspace = rk.keyspace(self._db())
        pubsub = self.r.pubsub()
        with _store_errors("subscribe"):
            await pubsub.subscribe(rk.changes(), keyspace)
        sub = Subscription(room_id, pubsub, on_change, on_error, keyspace_channel=keyspace)
        sub.start()
        return sub
