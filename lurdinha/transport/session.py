# lurdinha/transport/session.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from lurdinha.domain.common.actor import Actor
from lurdinha.domain.helpers.majority import all_answered, final_standings, seconds_left
from lurdinha.errors import LurdinhaError
from lurdinha.store.models import RoomStore
from lurdinha.transport.protocols import (
    OutError,
    OutGameFinished,
    OutgoingEvent,
    OutRoomSnapshot,
    OutRoundResults,
)
from lurdinha.util.timeutil import now_ms

logger = logging.getLogger(__name__)

Send = Callable[[Dict[str, Any]], Awaitable[None]]


class ClientSession:
    """
    One connected client.
    - who it is (actor, set by `auth`)
    - which room it is looking at
    - at most one live room subscription; listening again cancels the old one
    """

    def __init__(self, repo, send: Send, room_code: Optional[str] = None) -> None:
        self.repo = repo
        self.room_code = room_code
        self.actor: Optional[Actor] = None
        self._send = send
        self._send_lock = asyncio.Lock()
        self._sub = None
        self._last_status: Optional[str] = None

    @property
    def listening(self) -> bool:
        return self._sub is not None

    async def send(self, event: OutgoingEvent) -> None:
        await self.send_raw(event.model_dump())

    async def send_raw(self, payload: Dict[str, Any]) -> None:
        # the subscription task and the receive loop both write to the socket
        async with self._send_lock:
            await self._send(payload)

    async def listen(self, room_id: str) -> None:
        await self.unsubscribe()
        self._sub = await self.repo.subscribe(room_id, self._on_change, self._on_error)
        self.room_code = room_id

    async def unsubscribe(self) -> None:
        sub, self._sub = self._sub, None
        self._last_status = None
        if sub is not None:
            await sub.cancel()

    def snapshot_events(self, room: RoomStore, *, ts: Optional[int] = None) -> List[OutgoingEvent]:
        """Snapshot plus one-shot events for a status change since the last snapshot."""
        ts = now_ms() if ts is None else ts
        events: List[OutgoingEvent] = [
            OutRoomSnapshot(
                room=room.to_doc(),
                seconds_left=seconds_left(room, ts),
                all_answered=all_answered(room),
            )
        ]

        if room.status != self._last_status:
            if room.status == "round_results" and room.round_data and room.round_data.results:
                results = room.round_data.results
                events.append(
                    OutRoundResults(
                        round_no=room.current_round,
                        majority_answers=results.majority_answers,
                        lurdinha_victims=results.lurdinha_victims,
                        all_answers=results.all_answers,
                    )
                )
            elif room.status == "finished":
                standings = final_standings(room.players)
                events.append(
                    OutGameFinished(
                        standings=[p.to_doc() for p in standings],
                        winner_uid=standings[0].uid if standings else None,
                        loser_uid=standings[-1].uid if standings else None,
                    )
                )
        self._last_status = room.status
        return events

    async def _on_change(self, room: RoomStore) -> None:
        for e in self.snapshot_events(room):
            await self.send(e)

    async def _on_error(self, err: LurdinhaError) -> None:
        logger.info("room %s feed ended for %s: %s", self.room_code, getattr(self.actor, "uid", None), err.code)
        # the feed is over; drop the handle without cancelling our own task
        self._sub = None
        self._last_status = None
        await self.send(OutError(code=err.code, message=err.message))
