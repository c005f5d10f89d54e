# lurdinha/domain/common/actor.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from lurdinha.store.models import PlayerStore


class Actor(BaseModel):
    """
    The authenticated user performing an action.
    Passed explicitly into every lifecycle operation.
    """
    uid: str = Field(min_length=1, max_length=128, pattern=r"^[^.\s]+$")
    name: Optional[str] = None
    photo_url: Optional[str] = None

    def as_player(self, default_name: str = "Jogador") -> PlayerStore:
        return PlayerStore(
            uid=self.uid,
            name=self.name or default_name,
            photo_url=self.photo_url,
            score=0,
            is_ready=True,
        )
