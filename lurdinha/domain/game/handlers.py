# lurdinha/domain/game/handlers.py
from __future__ import annotations

import logging
from typing import List, Optional

from lurdinha.domain.common.actor import Actor
from lurdinha.domain.common.validation import is_host, is_member
from lurdinha.domain.game.lifecycle import (
    calculate_round_results,
    create_room,
    join_room,
    leave_room,
    next_round,
    start_game,
    submit_answer,
)
from lurdinha.errors import AuthRequired, Conflict, NotMember
from lurdinha.store.models import RoomSettings
from lurdinha.transport.protocols import (
    InAuth,
    InCalculateResults,
    InCreateRoom,
    InJoin,
    InLeave,
    InListen,
    InNextRound,
    InSnapshot,
    InStartGame,
    InSubmitAnswer,
    OutAuthOk,
    OutError,
    OutgoingEvent,
    OutLeft,
    OutRoomCreated,
)

logger = logging.getLogger(__name__)

# Events for the requesting client only.
# Everyone in the room (the requester included) sees state changes through
# their room subscription.
Result = List[OutgoingEvent]


def _no_room() -> Result:
    return [OutError(code="NO_ROOM", message="This connection is not bound to a room")]


def _not_host(action: str) -> Result:
    return [OutError(code="NOT_HOST", message=f"Only the host can {action}")]


# -------------------------
# Identity / lifecycle
# -------------------------

async def handle_auth(*, app, session, msg: InAuth) -> Result:
    session.actor = Actor(uid=msg.uid, name=msg.name, photo_url=msg.photo_url)
    return [OutAuthOk(uid=msg.uid)]


async def handle_create_room(*, app, session, msg: InCreateRoom) -> Result:
    cfg = app.state.settings
    room_settings = RoomSettings(
        time_per_round=msg.time_per_round or cfg.DEFAULT_TIME_PER_ROUND,
        total_rounds=msg.total_rounds or cfg.DEFAULT_TOTAL_ROUNDS,
        theme=msg.theme or cfg.DEFAULT_THEME,
    )
    creator: Optional[Actor] = msg.user or session.actor
    room_id = await create_room(app.state.repo, room_settings, creator)
    return [OutRoomCreated(room_code=room_id)]


async def handle_join(*, app, session, msg: InJoin) -> Result:
    """
    Subscribe first so nothing between the join write and the subscription
    is missed, then join. A failed join drops the subscription again.
    """
    if not session.room_code:
        return _no_room()

    room_code = session.room_code
    await session.listen(room_code)
    try:
        room = await join_room(app.state.repo, room_code, session.actor)
    except Exception:
        await session.unsubscribe()
        raise
    return session.snapshot_events(room)


async def handle_listen(*, app, session, msg: InListen) -> Result:
    """
    Re-attach a player to a room they are already in (reconnect mid-game).
    Unlike join this works in any status, but never adds a player.
    """
    if not session.room_code:
        return _no_room()
    if session.actor is None:
        raise AuthRequired()

    room_code = session.room_code
    await session.listen(room_code)
    try:
        room = await app.state.repo.get(room_code)
        if not is_member(session.actor, room):
            raise NotMember()
    except Exception:
        await session.unsubscribe()
        raise
    logger.info("%s re-attached to room %s (%s)", session.actor.uid, room_code, room.status)
    return session.snapshot_events(room)


async def handle_snapshot(*, app, session, msg: InSnapshot) -> Result:
    if not session.room_code:
        return _no_room()
    room = await app.state.repo.get(session.room_code)
    return session.snapshot_events(room)


async def handle_leave(*, app, session, msg: InLeave) -> Result:
    room_code = session.room_code or ""
    await leave_room(session)
    return [OutLeft(room_code=room_code)]


# -------------------------
# Gameplay
# -------------------------

async def handle_start_game(*, app, session, msg: InStartGame) -> Result:
    if not session.room_code:
        return _no_room()

    repo = app.state.repo
    room = await repo.get(session.room_code)
    if not is_host(session.actor, room):
        return _not_host("start the game")

    total_rounds = msg.total_rounds or room.settings.total_rounds
    theme = msg.theme or room.settings.theme
    await start_game(repo, session.room_code, total_rounds, theme)
    return []


async def handle_submit_answer(*, app, session, msg: InSubmitAnswer) -> Result:
    if not session.room_code:
        return _no_room()
    try:
        await submit_answer(app.state.repo, session.room_code, session.actor, msg.text)
    except Conflict:
        # the host moved on between our read and the write
        return [OutError(code="ROUND_OVER", message="Esta rodada já terminou.")]
    return []


async def handle_calculate_results(*, app, session, msg: InCalculateResults) -> Result:
    """
    Host resolves the round (time up or everyone answered, decided client-side).
    Reads the stored room so late answers are counted.
    """
    if not session.room_code:
        return _no_room()

    repo = app.state.repo
    room = await repo.get(session.room_code)
    if not is_host(session.actor, room):
        return _not_host("resolve the round")

    try:
        await calculate_round_results(
            repo,
            session.room_code,
            room,
            no_majority=app.state.settings.NO_MAJORITY_POLICY,
        )
    except Conflict:
        logger.info("room %s round %d was already resolved", session.room_code, room.current_round)
        return [OutError(code="ALREADY_RESOLVED", message="This round was already resolved")]
    return []


async def handle_next_round(*, app, session, msg: InNextRound) -> Result:
    if not session.room_code:
        return _no_room()

    repo = app.state.repo
    room = await repo.get(session.room_code)
    if not is_host(session.actor, room):
        return _not_host("advance the round")

    is_last = msg.is_last_round
    if is_last is None:
        is_last = room.current_round >= room.settings.total_rounds
    await next_round(repo, session.room_code, is_last)
    return []
