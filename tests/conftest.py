import pytest

from lurdinha.errors import AlreadyExists, Conflict, NotFound
from lurdinha.settings import Settings
from lurdinha.store.models import PlayerStore, RoomSettings, RoomStore, RoundData
from lurdinha.store.paths import apply_update, matches


class FakeSubscription:
    def __init__(self, repo, room_id, on_change, on_error):
        self.repo = repo
        self.room_id = room_id
        self.on_change = on_change
        self.on_error = on_error
        self.cancelled = False

    async def cancel(self):
        self.cancelled = True
        if self in self.repo.subs:
            self.repo.subs.remove(self)


class FakeRepo:
    """In-memory documents with the same dot-path update rules as the Redis repo."""

    def __init__(self):
        self.docs = {}
        self.subs = []
        self.exists_calls = []
        self.updates = []
        self.create_conflicts = 0

    async def exists(self, room_id):
        self.exists_calls.append(room_id)
        return room_id in self.docs

    async def create(self, room):
        if self.create_conflicts:
            self.create_conflicts -= 1
            raise AlreadyExists(room.room_id)
        if room.room_id in self.docs:
            raise AlreadyExists(room.room_id)
        self.docs[room.room_id] = room.to_doc()
        await self._notify(room.room_id)

    async def get(self, room_id):
        if room_id not in self.docs:
            raise NotFound(room_id)
        return RoomStore.model_validate(self.docs[room_id])

    async def update(self, room_id, fields, expect=None):
        if room_id not in self.docs:
            raise NotFound(room_id)
        if not matches(self.docs[room_id], expect):
            raise Conflict()
        self.updates.append(dict(fields))
        self.docs[room_id] = apply_update(self.docs[room_id], fields)
        await self._notify(room_id)
        return RoomStore.model_validate(self.docs[room_id])

    async def delete(self, room_id):
        if self.docs.pop(room_id, None) is None:
            raise NotFound(room_id)
        for s in [s for s in self.subs if s.room_id == room_id]:
            await s.on_error(NotFound(room_id))

    async def subscribe(self, room_id, on_change, on_error):
        sub = FakeSubscription(self, room_id, on_change, on_error)
        self.subs.append(sub)
        return sub

    async def _notify(self, room_id):
        room = RoomStore.model_validate(self.docs[room_id])
        for s in list(self.subs):
            if s.room_id == room_id and not s.cancelled:
                await s.on_change(room)


class FakeApp:
    def __init__(self, repo, settings=None):
        self.state = type("State", (), {"repo": repo, "settings": settings or Settings()})()


def make_room(room_id="12345", status="waiting", players=("host",), **kw):
    settings = kw.pop("settings", RoomSettings(time_per_round=20, total_rounds=3, theme="Geral"))
    return RoomStore(
        room_id=room_id,
        host_id=players[0] if players else "host",
        status=status,
        settings=settings,
        players=[PlayerStore(uid=uid, name=uid.upper()) for uid in players],
        **kw,
    )


def make_playing_room(room_id="12345", players=("host", "b", "c"), answers=None, current_round=1, **kw):
    return make_room(
        room_id=room_id,
        status="playing",
        players=players,
        current_round=current_round,
        questions_queue=["q1", "q2", "q3"],
        round_data=RoundData(question="q1", start_time=1_000, answers=answers or {}),
        **kw,
    )


@pytest.fixture
def repo():
    return FakeRepo()


@pytest.fixture
def app(repo):
    return FakeApp(repo)
