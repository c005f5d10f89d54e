# lurdinha/store/models.py
from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


RoomStatus = Literal["waiting", "playing", "round_results", "finished"]


class DocModel(BaseModel):
    """
    Base for everything stored inside a room document.
    Attributes are snake_case, the stored JSON is camelCase.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_doc(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class RoomSettings(DocModel):
    time_per_round: int = Field(default=20, gt=0)   # seconds
    total_rounds: int = Field(default=5, gt=0)
    theme: str = "Geral"


class PlayerStore(DocModel):
    uid: str
    name: str
    photo_url: Optional[str] = Field(default=None, alias="photoURL")
    score: int = 0          # lurdinhas taken, lower is better
    is_ready: bool = True


class RoundResults(DocModel):
    majority_answers: List[str] = Field(default_factory=list)
    lurdinha_victims: List[str] = Field(default_factory=list)
    all_answers: Dict[str, str] = Field(default_factory=dict)


class RoundData(DocModel):
    question: str
    start_time: int          # epoch ms
    answers: Dict[str, str] = Field(default_factory=dict)
    results: Optional[RoundResults] = None


class RoomStore(DocModel):
    room_id: str
    host_id: str
    status: RoomStatus = "waiting"
    settings: RoomSettings = Field(default_factory=RoomSettings)
    current_round: int = 0
    created_at: int = 0
    players: List[PlayerStore] = Field(default_factory=list)
    questions_queue: List[str] = Field(default_factory=list)
    round_data: Optional[RoundData] = None

    def player(self, uid: str) -> Optional[PlayerStore]:
        for p in self.players:
            if p.uid == uid:
                return p
        return None
