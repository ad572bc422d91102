def names(received):
    return [pkt["name"] for pkt in received]


def last_args(received, name):
    found = [pkt["args"][0] for pkt in received if pkt["name"] == name]
    return found[-1] if found else None


def test_health(client):
    res = client.get("/api/health")
    assert res.status_code == 200
    assert res.get_json() == {"ok": True}


def test_unknown_room_is_404(client):
    res = client.get("/api/rooms/ZZZZ")
    assert res.status_code == 404
    assert res.get_json() == {"error": "room_not_found"}


def test_connect_says_hello(sio_factory):
    c = sio_factory()
    assert c.is_connected()
    assert "server_hello" in names(c.get_received())


def test_create_join_start_over_socket(sio_factory, client):
    host = sio_factory()
    guest = sio_factory()
    host.get_received()
    guest.get_received()

    ack = host.emit("create_room", {"name": "  Ada  ", "avatar": "3", "sessionId": "sess-host"}, callback=True)
    assert ack["ok"]
    code = ack["code"]
    created = last_args(host.get_received(), "room_created")
    assert created == {"code": code, "sessionId": "sess-host"}

    ack = guest.emit("join_room", {"code": code.lower(), "name": "<Bob>", "avatar": 1}, callback=True)
    assert ack == {"ok": True, "code": code}

    lobby = last_args(host.get_received(), "lobby_update")
    assert [p["name"] for p in lobby["players"]] == ["Ada", "Bob"]
    assert lobby["players"][0]["avatar"] == 3

    summary = client.get(f"/api/rooms/{code}").get_json()
    assert summary["playerCount"] == 2
    assert "sess-host" not in str(summary)

    guest.get_received()
    guest.emit("start_game", {})
    assert last_args(guest.get_received(), "state_update") is None

    host.emit("start_game", {})
    state = last_args(guest.get_received(), "state_update")
    assert state["phase"] == "playing"
    assert len(state["tiles"]) == 45
    assert [p["name"] for p in state["players"]] == ["Ada", "Bob"]


def test_join_missing_room_reports_error(sio_factory):
    c = sio_factory()
    c.get_received()

    ack = c.emit("join_room", {"code": "QQQQ", "name": "Bob"}, callback=True)

    assert ack == {"ok": False}
    assert last_args(c.get_received(), "error_msg") == {"message": "Room not found"}


def test_quiz_submit_without_round_is_rejected(sio_factory):
    c = sio_factory()
    c.emit("create_room", {"name": "Ada"}, callback=True)

    ack = c.emit("QUIZ_SUBMIT", {"roundIndex": "1", "role": "dev"}, callback=True)

    assert ack == {"ok": False, "error": "NO_ACTIVE_ROUND"}


def test_host_disconnect_closes_room_for_guest(sio_factory, flask_app):
    host = sio_factory()
    guest = sio_factory()
    code = host.emit("create_room", {"name": "Ada"}, callback=True)["code"]
    guest.emit("join_room", {"code": code, "name": "Bob"}, callback=True)
    guest.get_received()

    host.disconnect()

    assert "room_closed" in names(guest.get_received())
    hub = flask_app.extensions["retroparty"]
    assert hub.registry.get_room(code) is None
