from buzzer.transport.dispatcher import dispatch_message

from helpers import FakeApp


def _setup(**settings):
    app = FakeApp(**settings)
    app.connect("host")
    app.connect("a")
    dispatch_message(app=app, cid="a", raw="JOIN Alice")
    return app


def test_dispatch_join_roundtrip():
    app = FakeApp()
    app.connect("c1")
    to_sender, to_room = dispatch_message(app=app, cid="c1", raw="JOIN  Alice ")
    assert [e.encode() for e in to_sender] == ["ACK 0", "QUESTION_TYPE pure-buzz"]
    assert app.repo.get_player(0).name == "Alice"
    assert len(to_room) == 1


def test_malformed_messages_are_dropped_silently():
    app = _setup()
    before = app.repo.snapshot()
    for raw in ("NOPE", "LOCK [oops", 'UNLOCK ["0"]', "QUESTION_TYPE multiple-choice 12", ""):
        assert dispatch_message(app=app, cid="host", raw=raw) == ([], [])
    assert app.repo.snapshot() == before


def test_name_length_follows_settings():
    app = FakeApp(NAME_MAX_LEN=3)
    app.connect("c1")
    assert dispatch_message(app=app, cid="c1", raw="JOIN Alice") == ([], [])
    assert app.repo.list_players() == []


def test_unknown_connection_is_dropped():
    app = FakeApp()
    assert dispatch_message(app=app, cid="ghost", raw="CLEAR_RANKINGS") == ([], [])


def test_player_host_command_allowed_by_default():
    app = _setup()
    app.repo.set_locked([0], False)
    _, to_room = dispatch_message(app=app, cid="a", raw="LOCK [0]")
    assert to_room
    assert app.repo.get_player(0).locked is True


def test_player_host_command_dropped_when_enforced():
    app = _setup(ENFORCE_HOST_ROLE=True)
    app.repo.set_locked([0], False)
    assert dispatch_message(app=app, cid="a", raw="LOCK [0]") == ([], [])
    assert app.repo.get_player(0).locked is False

    # hosts are unaffected
    _, to_room = dispatch_message(app=app, cid="host", raw="LOCK [0]")
    assert to_room
    assert app.repo.get_player(0).locked is True


def test_enforcement_does_not_block_player_commands():
    app = _setup(ENFORCE_HOST_ROLE=True)
    _, to_room = dispatch_message(app=app, cid="a", raw="BUZZ 7")
    assert app.repo.buzz_order == [0]
    assert to_room[0].event.encode() == "BUZZ 0 7"


def test_deeply_nested_id_list_is_dropped():
    app = _setup()
    before = app.repo.snapshot()
    raw = "LOCK " + "[" * 100000 + "]" * 100000
    assert dispatch_message(app=app, cid="a", raw=raw) == ([], [])
    assert app.repo.snapshot() == before
    assert app.wsman.get("a").player_id == 0
