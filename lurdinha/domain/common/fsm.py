# lurdinha/domain/common/fsm.py
from __future__ import annotations

from lurdinha.domain.common.types import RoomStatus

_TRANSITIONS: dict[RoomStatus, list[RoomStatus]] = {
    "waiting": ["playing"],
    "playing": ["round_results"],
    "round_results": ["playing", "finished"],
    "finished": [],
}


def can_transition_to(current: RoomStatus, target: RoomStatus) -> bool:
    """
    Validate room status transitions.
    playing <-> round_results repeats once per round; finished is terminal.
    """
    return target in _TRANSITIONS.get(current, [])
