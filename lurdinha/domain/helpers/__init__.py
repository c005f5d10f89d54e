from __future__ import annotations

from .majority import RoundOutcome, final_standings, normalize_answer, resolve_round, seconds_left
from .questions import EXTRA_QUESTION, draw_questions

__all__ = [
    "RoundOutcome",
    "final_standings",
    "normalize_answer",
    "resolve_round",
    "seconds_left",
    "EXTRA_QUESTION",
    "draw_questions",
]
