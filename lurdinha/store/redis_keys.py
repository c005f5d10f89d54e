# lurdinha/store/redis_keys.py
from __future__ import annotations

from dataclasses import dataclass

COLLECTION = "game_rooms"


@dataclass(frozen=True)
class RK:
    """
    Redis key builder for one room document.
    """
    room_id: str

    def room(self) -> str:
        return f"{COLLECTION}:{self.room_id}"  # STRING (JSON document)

    def changes(self) -> str:
        return f"{COLLECTION}:{self.room_id}:changes"  # PUB/SUB channel

    def keyspace(self, db: int = 0) -> str:
        return f"__keyspace__:{self.room()}"  # keyspace notifications (expiry)

    @staticmethod
    def room_pattern() -> str:
        return f"{COLLECTION}:*"

    @staticmethod
    def room_id_from_key(key: str) -> str | None:
        prefix = f"{COLLECTION}:"
        if not key.startswith(prefix):
            return None
        rest = key[len(prefix):]
        if not rest or ":" in rest:
            return None
        return rest
