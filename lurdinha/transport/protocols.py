# lurdinha/transport/protocols.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, ValidationError

from lurdinha.domain.common.actor import Actor


# =========================
# Incoming (Client -> Server)
# =========================

class InBase(BaseModel):
    type: str


# ---- Identity / lifecycle ----

class InAuth(InBase):
    """Declare who is on this connection (login itself happens elsewhere)."""
    type: Literal["auth"] = "auth"
    uid: str = Field(min_length=1, max_length=128, pattern=r"^[^.\s]+$")
    name: Optional[str] = Field(default=None, max_length=40)
    photo_url: Optional[str] = None


class InCreateRoom(InBase):
    type: Literal["create_room"] = "create_room"
    # /ws-create is one-shot, so the creator comes inline
    user: Optional[Actor] = None
    time_per_round: Optional[int] = Field(default=None, ge=5, le=300)
    total_rounds: Optional[int] = Field(default=None, ge=1, le=50)
    theme: Optional[str] = Field(default=None, max_length=40)


class InJoin(InBase):
    type: Literal["join"] = "join"


class InListen(InBase):
    """Resume the live feed of a room the player already belongs to."""
    type: Literal["listen"] = "listen"


class InLeave(InBase):
    type: Literal["leave"] = "leave"


class InSnapshot(InBase):
    type: Literal["snapshot"] = "snapshot"


# ---- Gameplay ----

class InStartGame(InBase):
    type: Literal["start_game"] = "start_game"
    # Defaults to the room settings chosen at creation
    total_rounds: Optional[int] = Field(default=None, ge=1, le=50)
    theme: Optional[str] = Field(default=None, max_length=40)


class InSubmitAnswer(InBase):
    type: Literal["submit_answer"] = "submit_answer"
    text: str = Field(min_length=1, max_length=120)


class InCalculateResults(InBase):
    type: Literal["calculate_results"] = "calculate_results"


class InNextRound(InBase):
    type: Literal["next_round"] = "next_round"
    # None: let the server decide from currentRound/totalRounds
    is_last_round: Optional[bool] = None


IncomingMessage = Union[
    InAuth,
    InCreateRoom,
    InJoin,
    InListen,
    InLeave,
    InSnapshot,
    InStartGame,
    InSubmitAnswer,
    InCalculateResults,
    InNextRound,
]


# =========================
# Outgoing (Server -> Client)
# =========================

class OutBase(BaseModel):
    type: str


class OutError(OutBase):
    type: Literal["error"] = "error"
    code: str
    message: str


class OutHello(OutBase):
    type: Literal["hello"] = "hello"
    room_code: str


class OutAuthOk(OutBase):
    type: Literal["auth_ok"] = "auth_ok"
    uid: str


class OutRoomCreated(OutBase):
    type: Literal["room_created"] = "room_created"
    room_code: str


class OutRoomSnapshot(OutBase):
    type: Literal["room_snapshot"] = "room_snapshot"
    room: Dict[str, Any]        # stored document, camelCase
    seconds_left: int = 0
    all_answered: bool = False


class OutRoundResults(OutBase):
    type: Literal["round_results"] = "round_results"
    round_no: int
    majority_answers: List[str]
    lurdinha_victims: List[str]
    all_answers: Dict[str, str]


class OutGameFinished(OutBase):
    type: Literal["game_finished"] = "game_finished"
    standings: List[Dict[str, Any]]    # fewest lurdinhas first
    winner_uid: Optional[str] = None
    loser_uid: Optional[str] = None


class OutLeft(OutBase):
    type: Literal["left"] = "left"
    room_code: str


OutgoingEvent = Union[
    OutError,
    OutHello,
    OutAuthOk,
    OutRoomCreated,
    OutRoomSnapshot,
    OutRoundResults,
    OutGameFinished,
    OutLeft,
]


# =========================
# Parser helpers
# =========================

_INCOMING_BY_TYPE = {
    "auth": InAuth,
    "create_room": InCreateRoom,
    "join": InJoin,
    "listen": InListen,
    "leave": InLeave,
    "snapshot": InSnapshot,
    "start_game": InStartGame,
    "submit_answer": InSubmitAnswer,
    "calculate_results": InCalculateResults,
    "next_round": InNextRound,
}


def parse_incoming(payload: Dict[str, Any]) -> IncomingMessage:
    """
    Convert raw dict -> validated message model.
    Raises ValidationError if invalid.
    """
    t = payload.get("type")
    if not isinstance(t, str):
        raise ValidationError.from_exception_data(
            title="IncomingMessage",
            line_errors=[{"loc": ("type",), "input": t, "type": "missing"}],
        )

    cls = _INCOMING_BY_TYPE.get(t)
    if cls is None:
        raise ValueError(f"Unknown message type: {t}")

    return cls.model_validate(payload)
