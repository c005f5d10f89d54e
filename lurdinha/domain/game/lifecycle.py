# lurdinha/domain/game/lifecycle.py
"""
Room lifecycle: create, join, start, answer, resolve, advance.

Every function takes the repo and, where an identity matters, the acting
user explicitly. Host-only rules are checked by the handlers; these
functions only enforce what the stored document itself must satisfy.

    waiting -> playing -> round_results -> playing -> ... -> finished
"""
from __future__ import annotations

import logging
import random
from typing import Optional

from lurdinha.domain.common.actor import Actor
from lurdinha.domain.common.fsm import can_transition_to
from lurdinha.domain.common.types import NoMajorityPolicy
from lurdinha.domain.common.validation import is_member
from lurdinha.domain.helpers.majority import RoundOutcome, resolve_round
from lurdinha.domain.helpers.questions import draw_questions, question_for_round
from lurdinha.errors import (
    AlreadyExists,
    AlreadyStarted,
    AuthRequired,
    Conflict,
    InvalidAnswer,
    InvalidState,
    NotMember,
)
from lurdinha.store.models import RoomSettings, RoomStore, RoundData, RoundResults
from lurdinha.util.timeutil import now_ms as _now_ms

logger = logging.getLogger(__name__)

ROOM_CODE_MIN = 10000
ROOM_CODE_MAX = 99999


def generate_room_code(rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    return str(rng.randint(ROOM_CODE_MIN, ROOM_CODE_MAX))


def _require_actor(actor: Optional[Actor], action: str) -> Actor:
    if actor is None:
        logger.warning("%s attempted without a logged in user", action)
        raise AuthRequired()
    return actor


def _fresh_round(question: str, ts_ms: int) -> dict:
    return RoundData(question=question, start_time=ts_ms, answers={}, results=None).to_doc()


async def create_room(
    repo,
    settings: RoomSettings,
    creator: Optional[Actor],
    *,
    rng: Optional[random.Random] = None,
    now_ms: Optional[int] = None,
) -> str:
    """
    Pick a free 5-digit code and store a waiting room with the creator as host.
    Collisions just draw another code; there is no retry bound.
    """
    creator = _require_actor(creator, "create_room")
    ts = now_ms if now_ms is not None else _now_ms()

    while True:
        room_id = generate_room_code(rng)
        if await repo.exists(room_id):
            logger.debug("room code %s taken, drawing another", room_id)
            continue

        room = RoomStore(
            room_id=room_id,
            host_id=creator.uid,
            status="waiting",
            settings=settings,
            current_round=0,
            created_at=ts,
            players=[creator.as_player(default_name="Host")],
            questions_queue=[],
            round_data=None,
        )
        try:
            await repo.create(room)
        except AlreadyExists:
            # Someone took the code between the exists check and the write
            continue

        logger.info("room %s created by %s", room_id, creator.uid)
        return room_id


async def join_room(repo, room_id: str, joiner: Optional[Actor]) -> RoomStore:
    joiner = _require_actor(joiner, "join_room")

    room = await repo.get(room_id)
    if room.status != "waiting":
        raise AlreadyStarted()

    if room.player(joiner.uid) is not None:
        return room

    players = [p.to_doc() for p in room.players]
    players.append(joiner.as_player().to_doc())
    # read-then-append is not transactional; a concurrent join can be lost
    room = await repo.update(room_id, {"players": players})
    logger.info("player %s joined room %s", joiner.uid, room_id)
    return room


async def start_game(
    repo,
    room_id: str,
    total_rounds: int,
    theme: str,
    *,
    rng: Optional[random.Random] = None,
    now_ms: Optional[int] = None,
) -> RoomStore:
    if total_rounds <= 0:
        raise InvalidState("total_rounds must be positive")

    room = await repo.get(room_id)
    if room.status != "waiting":
        raise InvalidState(f"Cannot start game in state {room.status}")

    questions = draw_questions(total_rounds, theme, rng=rng)
    ts = now_ms if now_ms is not None else _now_ms()
    room = await repo.update(
        room_id,
        {
            "status": "playing",
            "currentRound": 1,
            "settings.totalRounds": total_rounds,
            "settings.theme": theme,
            "questionsQueue": questions,
            "roundData": _fresh_round(questions[0], ts),
        },
    )
    logger.info("room %s started: %d rounds, theme %r", room_id, total_rounds, theme)
    return room


async def submit_answer(repo, room_id: str, actor: Optional[Actor], text: str) -> RoomStore:
    """
    Write one answer; a second call from the same player overwrites it.
    Only players of the room may answer, and only in the round they read.
    """
    actor = _require_actor(actor, "submit_answer")
    if not text or not text.strip():
        raise InvalidAnswer()

    room = await repo.get(room_id)
    if room.status != "playing":
        raise InvalidState(f"Cannot answer in state {room.status}")
    if not is_member(actor, room):
        logger.warning("%s tried to answer in room %s without being a player", actor.uid, room_id)
        raise NotMember()

    return await repo.update(
        room_id,
        {f"roundData.answers.{actor.uid}": text},
        expect={"status": "playing", "currentRound": room.current_round},
    )


async def calculate_round_results(
    repo,
    room_id: str,
    room: RoomStore,
    *,
    no_majority: NoMajorityPolicy = "all_safe",
) -> tuple[RoomStore, RoundOutcome]:
    """
    Resolve the round in `room` and store scores + results in one update.

    The write only applies while the stored room is still playing the same
    round, so a second resolution attempt raises Conflict instead of
    handing out a second round of penalties.
    """
    if room.status == "round_results":
        raise Conflict(f"Round {room.current_round} of room {room_id} is already resolved")
    if not can_transition_to(room.status, "round_results") or room.round_data is None:
        raise InvalidState(f"Cannot resolve a round in state {room.status}")

    answers = dict(room.round_data.answers)
    outcome = resolve_round(answers, room.players, no_majority=no_majority)
    results = RoundResults(
        majority_answers=outcome.majority_answers,
        lurdinha_victims=outcome.lurdinha_victims,
        all_answers=answers,
    )

    updated = await repo.update(
        room_id,
        {
            "status": "round_results",
            "players": [p.to_doc() for p in outcome.updated_players],
            "roundData.results": results.to_doc(),
        },
        expect={"status": "playing", "currentRound": room.current_round},
    )
    logger.info(
        "room %s round %d resolved: majority=%s victims=%s",
        room_id, room.current_round, outcome.majority_answers, outcome.lurdinha_victims,
    )
    return updated, outcome


async def next_round(
    repo,
    room_id: str,
    is_last_round: bool,
    *,
    now_ms: Optional[int] = None,
) -> RoomStore:
    if is_last_round:
        room = await repo.update(room_id, {"status": "finished"})
        logger.info("room %s finished", room_id)
        return room

    # Re-read: the caller's copy of currentRound/questionsQueue may be stale
    room = await repo.get(room_id)
    if room.status not in ("playing", "round_results"):
        raise InvalidState(f"Cannot advance a round in state {room.status}")
    if room.current_round >= room.settings.total_rounds:
        room = await repo.update(room_id, {"status": "finished"})
        logger.info("room %s finished after round %d", room_id, room.current_round)
        return room

    round_no = room.current_round + 1
    ts = now_ms if now_ms is not None else _now_ms()
    room = await repo.update(
        room_id,
        {
            "status": "playing",
            "currentRound": round_no,
            "roundData": _fresh_round(question_for_round(room.questions_queue, round_no), ts),
        },
    )
    logger.info("room %s moved to round %d", room_id, round_no)
    return room


async def leave_room(session) -> None:
    """Local only: stop listening. The player stays in the stored list."""
    await session.unsubscribe()
