import pytest

from lurdinha.settings import Settings
from lurdinha.transport.dispatcher import dispatch_message
from lurdinha.transport.session import ClientSession

from conftest import FakeApp, make_playing_room, make_room


class Outbox:
    def __init__(self):
        self.sent = []

    async def __call__(self, payload):
        self.sent.append(payload)

    def types(self):
        return [e["type"] for e in self.sent]


def _session(app, room_code="12345"):
    out = Outbox()
    return ClientSession(app.state.repo, out, room_code=room_code), out


async def _auth(app, session, uid, name=None):
    return await dispatch_message(app=app, session=session, raw={"type": "auth", "uid": uid, "name": name})


@pytest.mark.asyncio
async def test_bad_messages(app):
    session, _ = _session(app)
    for raw in ({"type": "nope"}, {"no_type": 1}, {"type": "submit_answer", "text": ""}, ["not", "a", "dict"]):
        events = await dispatch_message(app=app, session=session, raw=raw)
        assert events[0]["type"] == "error"
        assert events[0]["code"] == "BAD_MESSAGE"


@pytest.mark.asyncio
async def test_create_room_uses_inline_user_and_defaults(app, repo):
    session, _ = _session(app, room_code=None)
    events = await dispatch_message(
        app=app,
        session=session,
        raw={"type": "create_room", "user": {"uid": "host", "name": "H"}, "total_rounds": 2},
    )

    assert events[0]["type"] == "room_created"
    room = await repo.get(events[0]["room_code"])
    assert room.host_id == "host"
    assert room.settings.total_rounds == 2
    assert room.settings.time_per_round == Settings().DEFAULT_TIME_PER_ROUND
    assert room.settings.theme == "Geral"


@pytest.mark.asyncio
async def test_create_room_without_user_is_auth_required(app, repo):
    session, _ = _session(app, room_code=None)
    events = await dispatch_message(app=app, session=session, raw={"type": "create_room"})
    assert events == [{"type": "error", "code": "AUTH_REQUIRED", "message": "Login required"}]
    assert repo.docs == {}


@pytest.mark.asyncio
async def test_join_subscribes_and_returns_snapshot(app, repo):
    repo.docs["12345"] = make_room().to_doc()
    session, _ = _session(app)
    await _auth(app, session, "bob", "Bob")

    events = await dispatch_message(app=app, session=session, raw={"type": "join"})

    assert events[0]["type"] == "room_snapshot"
    assert [p["uid"] for p in events[0]["room"]["players"]] == ["host", "bob"]
    assert session.listening
    assert len(repo.subs) == 1


@pytest.mark.asyncio
async def test_join_missing_room_reports_not_found_and_drops_subscription(app, repo):
    session, _ = _session(app, room_code="54321")
    await _auth(app, session, "bob")

    events = await dispatch_message(app=app, session=session, raw={"type": "join"})

    assert events[0]["code"] == "ROOM_NOT_FOUND"
    assert not session.listening
    assert repo.subs == []


@pytest.mark.asyncio
async def test_join_started_room_is_rejected(app, repo):
    repo.docs["12345"] = make_playing_room().to_doc()
    session, _ = _session(app)
    await _auth(app, session, "late")

    events = await dispatch_message(app=app, session=session, raw={"type": "join"})
    assert events[0]["code"] == "ALREADY_STARTED"


@pytest.mark.asyncio
async def test_only_host_starts_resolves_and_advances(app, repo):
    repo.docs["12345"] = make_room(players=("host", "bob")).to_doc()
    session, _ = _session(app)
    await _auth(app, session, "bob")

    for raw in ({"type": "start_game"}, {"type": "calculate_results"}, {"type": "next_round"}):
        events = await dispatch_message(app=app, session=session, raw=raw)
        assert events[0]["code"] == "NOT_HOST"
    assert (await repo.get("12345")).status == "waiting"


@pytest.mark.asyncio
async def test_round_flow_pushes_snapshots_and_results_to_everyone(app, repo):
    repo.docs["12345"] = make_room(players=("host",)).to_doc()
    host, host_out = _session(app)
    bob, bob_out = _session(app)
    await _auth(app, host, "host")
    await _auth(app, bob, "bob")

    await dispatch_message(app=app, session=host, raw={"type": "join"})
    await dispatch_message(app=app, session=bob, raw={"type": "join"})
    assert await dispatch_message(app=app, session=host, raw={"type": "start_game", "total_rounds": 1}) == []

    await dispatch_message(app=app, session=host, raw={"type": "submit_answer", "text": "Pizza"})
    await dispatch_message(app=app, session=bob, raw={"type": "submit_answer", "text": "sushi"})
    await dispatch_message(app=app, session=bob, raw={"type": "submit_answer", "text": " pizza"})

    assert await dispatch_message(app=app, session=host, raw={"type": "calculate_results"}) == []

    results = [e for e in bob_out.sent if e["type"] == "round_results"]
    assert len(results) == 1
    assert results[0]["majority_answers"] == ["pizza"]
    assert results[0]["lurdinha_victims"] == []
    assert results[0]["all_answers"] == {"host": "Pizza", "bob": " pizza"}

    # second resolve is refused, scores untouched
    events = await dispatch_message(app=app, session=host, raw={"type": "calculate_results"})
    assert events[0]["code"] == "ALREADY_RESOLVED"

    await dispatch_message(app=app, session=host, raw={"type": "next_round"})
    room = await repo.get("12345")
    assert room.status == "finished"

    finished = [e for e in host_out.sent if e["type"] == "game_finished"]
    assert len(finished) == 1
    assert finished[0]["winner_uid"] in ("host", "bob")
    assert "room_snapshot" in bob_out.types()


@pytest.mark.asyncio
async def test_submit_answer_requires_auth(app, repo):
    repo.docs["12345"] = make_playing_room().to_doc()
    session, _ = _session(app)

    events = await dispatch_message(app=app, session=session, raw={"type": "submit_answer", "text": "x"})
    assert events[0]["code"] == "AUTH_REQUIRED"


@pytest.mark.asyncio
async def test_strict_no_majority_policy_comes_from_settings(repo):
    app = FakeApp(repo, Settings(NO_MAJORITY_POLICY="all_penalized"))
    repo.docs["12345"] = make_playing_room(players=("host", "b"), answers={"host": "x", "b": "y"}).to_doc()
    session, _ = _session(app)
    await _auth(app, session, "host")

    await dispatch_message(app=app, session=session, raw={"type": "calculate_results"})

    room = await repo.get("12345")
    assert [p.score for p in room.players] == [1, 1]


@pytest.mark.asyncio
async def test_leave_cancels_subscription_but_keeps_player(app, repo):
    repo.docs["12345"] = make_room().to_doc()
    session, _ = _session(app)
    await _auth(app, session, "bob")
    await dispatch_message(app=app, session=session, raw={"type": "join"})

    events = await dispatch_message(app=app, session=session, raw={"type": "leave"})

    assert events == [{"type": "left", "room_code": "12345"}]
    assert repo.subs == []
    assert (await repo.get("12345")).player("bob") is not None


@pytest.mark.asyncio
async def test_snapshot_of_missing_room(app):
    session, _ = _session(app)
    events = await dispatch_message(app=app, session=session, raw={"type": "snapshot"})
    assert events[0]["code"] == "ROOM_NOT_FOUND"


@pytest.mark.asyncio
async def test_refused_joiners_cannot_sway_the_majority(app, repo):
    repo.docs["12345"] = make_playing_room(players=("host", "b")).to_doc()
    host, _ = _session(app)
    b, _ = _session(app)
    await _auth(app, host, "host")
    await _auth(app, b, "b")

    for uid in ("x1", "x2"):
        outsider, _ = _session(app)
        await _auth(app, outsider, uid)
        events = await dispatch_message(app=app, session=outsider, raw={"type": "join"})
        assert events[0]["code"] == "ALREADY_STARTED"
        events = await dispatch_message(app=app, session=outsider, raw={"type": "submit_answer", "text": "banana"})
        assert events[0]["code"] == "NOT_MEMBER"

    await dispatch_message(app=app, session=host, raw={"type": "submit_answer", "text": "pizza"})
    await dispatch_message(app=app, session=b, raw={"type": "submit_answer", "text": "pizza"})
    await dispatch_message(app=app, session=host, raw={"type": "calculate_results"})

    room = await repo.get("12345")
    assert room.round_data.results.majority_answers == ["pizza"]
    assert set(room.round_data.answers) == {"host", "b"}
    assert [p.score for p in room.players] == [0, 0]


@pytest.mark.asyncio
async def test_answer_after_the_round_moved_on_is_refused(app, repo):
    stale = make_playing_room(current_round=1)
    repo.docs["12345"] = make_playing_room(current_round=2).to_doc()

    async def stale_get(room_id):
        return stale

    repo.get = stale_get
    session, _ = _session(app)
    await _auth(app, session, "b")

    events = await dispatch_message(app=app, session=session, raw={"type": "submit_answer", "text": "late"})

    assert events[0]["code"] == "ROUND_OVER"
    assert repo.docs["12345"]["roundData"]["answers"] == {}


@pytest.mark.asyncio
async def test_player_reconnecting_mid_game_listens_again(app, repo):
    repo.docs["12345"] = make_room(players=("host", "b")).to_doc()
    host, _ = _session(app)
    await _auth(app, host, "host")
    await dispatch_message(app=app, session=host, raw={"type": "start_game"})

    # b's socket dropped; a fresh connection comes back
    b, b_out = _session(app)
    await _auth(app, b, "b")
    assert (await dispatch_message(app=app, session=b, raw={"type": "join"}))[0]["code"] == "ALREADY_STARTED"

    events = await dispatch_message(app=app, session=b, raw={"type": "listen"})

    assert events[0]["type"] == "room_snapshot"
    assert events[0]["room"]["status"] == "playing"
    assert b.listening

    await dispatch_message(app=app, session=b, raw={"type": "submit_answer", "text": "pizza"})
    assert b_out.sent[-1]["room"]["roundData"]["answers"] == {"b": "pizza"}
    assert (await repo.get("12345")).player("b").score == 0


@pytest.mark.asyncio
async def test_listen_is_for_players_only(app, repo):
    repo.docs["12345"] = make_playing_room(players=("host", "b")).to_doc()

    stranger, _ = _session(app)
    await _auth(app, stranger, "eve")
    events = await dispatch_message(app=app, session=stranger, raw={"type": "listen"})
    assert events[0]["code"] == "NOT_MEMBER"
    assert not stranger.listening

    anonymous, _ = _session(app)
    events = await dispatch_message(app=app, session=anonymous, raw={"type": "listen"})
    assert events[0]["code"] == "AUTH_REQUIRED"
    assert repo.subs == []
