# lurdinha/transport/dispatcher.py
from __future__ import annotations

import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from lurdinha.domain.game.handlers import (
    handle_auth,
    handle_calculate_results,
    handle_create_room,
    handle_join,
    handle_leave,
    handle_listen,
    handle_next_round,
    handle_snapshot,
    handle_start_game,
    handle_submit_answer,
)
from lurdinha.errors import LurdinhaError
from lurdinha.transport.protocols import (
    parse_incoming,
    OutError,
    OutgoingEvent,
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
)

logger = logging.getLogger(__name__)

_HANDLERS = {
    InAuth: handle_auth,
    InCreateRoom: handle_create_room,
    InJoin: handle_join,
    InLeave: handle_leave,
    InListen: handle_listen,
    InSnapshot: handle_snapshot,
    InStartGame: handle_start_game,
    InSubmitAnswer: handle_submit_answer,
    InCalculateResults: handle_calculate_results,
    InNextRound: handle_next_round,
}


async def dispatch_message(*, app, session, raw: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Transport layer calls this.
    - Parses + validates raw JSON
    - Routes to the game handler
    - Turns domain errors into error events for the sender
    Returns the events for the sender as JSON dicts.
    """
    if not isinstance(raw, dict):
        return [OutError(code="BAD_MESSAGE", message="Expected a JSON object").model_dump()]

    try:
        msg = parse_incoming(raw)
    except (ValidationError, ValueError) as e:
        return [OutError(code="BAD_MESSAGE", message=str(e)).model_dump()]

    handler = _HANDLERS.get(type(msg))
    if handler is None:
        err = OutError(code="NOT_IMPLEMENTED", message=f"Handler not implemented for type={msg.type}")
        return [err.model_dump()]

    try:
        events = await handler(app=app, session=session, msg=msg)
    except LurdinhaError as e:
        logger.info("%s in room %s failed: %s", msg.type, session.room_code, e.code)
        events = [OutError(code=e.code, message=e.message)]

    return _dump(events)


def _dump(events: List[OutgoingEvent]) -> List[Dict[str, Any]]:
    """
    Convert pydantic events -> JSON dicts.
    """
    return [e.model_dump() for e in events]
