from __future__ import annotations

from .lifecycle import (
    calculate_round_results,
    create_room,
    generate_room_code,
    join_room,
    leave_room,
    next_round,
    start_game,
    submit_answer,
)

__all__ = [
    "calculate_round_results",
    "create_room",
    "generate_room_code",
    "join_room",
    "leave_room",
    "next_round",
    "start_game",
    "submit_answer",
]
