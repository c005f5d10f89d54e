# lurdinha/domain/common/validation.py
from __future__ import annotations

from typing import Optional

from lurdinha.domain.common.actor import Actor
from lurdinha.store.models import RoomStore


def is_host(actor: Optional[Actor], room: RoomStore) -> bool:
    """Check if actor created the room."""
    return actor is not None and room.host_id == actor.uid


def is_member(actor: Optional[Actor], room: RoomStore) -> bool:
    """Check if actor is in the room's player list."""
    return actor is not None and room.player(actor.uid) is not None
