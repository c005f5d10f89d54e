from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

from lurdinha.domain.common.types import NoMajorityPolicy
from lurdinha.store.models import PlayerStore, RoomStore


@dataclass
class RoundOutcome:
    majority_answers: List[str]
    lurdinha_victims: List[str]
    updated_players: List[PlayerStore]
    counts: Dict[str, int] = field(default_factory=dict)

    @property
    def max_count(self) -> int:
        return max(self.counts.values(), default=0)


def normalize_answer(text: str) -> str:
    return str(text).strip().lower()


def resolve_round(
    answers: Mapping[str, str],
    players: Iterable[PlayerStore],
    *,
    no_majority: NoMajorityPolicy = "all_safe",
) -> RoundOutcome:
    """
    Tally normalized answers and hand a lurdinha to everyone off the majority.

    - Ties: every answer with the top count is a majority answer.
    - A player who did not answer is never safe.
    - When every answer is different (top count 1, two or more answers),
      `no_majority` decides: "all_safe" keeps every answer as majority,
      "all_penalized" leaves no majority so everyone takes a point.

    Players are copied, never mutated; order is preserved.
    """
    normalized = {uid: normalize_answer(ans) for uid, ans in answers.items()}
    counts = Counter(normalized.values())
    max_count = max(counts.values(), default=0)

    majority = [ans for ans, c in counts.items() if c == max_count]
    if no_majority == "all_penalized" and max_count == 1 and len(normalized) >= 2:
        majority = []

    majority_set = set(majority)
    victims: List[str] = []
    updated: List[PlayerStore] = []
    for p in players:
        ans: Optional[str] = normalized.get(p.uid)
        is_safe = ans is not None and ans in majority_set
        if is_safe:
            updated.append(p.model_copy())
            continue
        victims.append(p.uid)
        updated.append(p.model_copy(update={"score": p.score + 1}))

    return RoundOutcome(
        majority_answers=majority,
        lurdinha_victims=victims,
        updated_players=updated,
        counts=dict(counts),
    )


def final_standings(players: Iterable[PlayerStore]) -> List[PlayerStore]:
    """Fewest lurdinhas first; the first entry wins, the last one lost."""
    return sorted(players, key=lambda p: p.score)


def seconds_left(room: RoomStore, now_ms: int) -> int:
    """Countdown for the current round, 0 once time is up or outside a round."""
    if room.status != "playing" or room.round_data is None:
        return 0
    end_ms = room.round_data.start_time + room.settings.time_per_round * 1000
    remaining_ms = end_ms - now_ms
    if remaining_ms <= 0:
        return 0
    return -(-remaining_ms // 1000)  # ceil


def all_answered(room: RoomStore) -> bool:
    if room.round_data is None or not room.players:
        return False
    return all(p.uid in room.round_data.answers for p in room.players)
