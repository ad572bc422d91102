import random

import pytest

from retroparty.game import duel, quiz, skill_timer, turns
from retroparty.game.service import (
    RoomError,
    lobby_payload,
    remap_player_id,
    room_public_state,
    room_summary,
)


def started_room(registry, players=("p1", "p2", "p3")):
    room = registry.create_room(players[0], "Host", 1, f"s-{players[0]}")
    for pid in players[1:]:
        registry.join_room(room.code, pid, pid.upper(), 2, f"s-{pid}")
    assert turns.initialize_players(room.state, room.lobby)
    return room


def test_create_room_makes_host(registry):
    room = registry.create_room("c1", "Ada", 3, "sess-1")

    assert len(room.code) == 4
    assert room.code.isupper() or room.code.isdigit()
    assert room.host_id == "c1"
    assert room.lobby[0].is_host
    assert registry.room_for("c1") is room
    assert registry.get_room(room.code.lower()) is room


def test_join_errors(registry):
    with pytest.raises(RoomError, match="Room not found"):
        registry.join_room("NOPE", "c2", "Bob")

    room = registry.create_room("c1", "Ada")
    turns.initialize_players(room.state, room.lobby)
    with pytest.raises(RoomError, match="Game already started"):
        registry.join_room(room.code, "c2", "Bob")


def test_join_room_full(registry):
    registry.max_players = 2
    room = registry.create_room("c1", "Ada")
    registry.join_room(room.code, "c2", "Bob")
    with pytest.raises(RoomError, match="Room is full"):
        registry.join_room(room.code, "c3", "Cy")


def test_join_with_known_session_reconnects_even_after_start(registry):
    room = started_room(registry)
    registry.mark_disconnected("p2", now=10)

    again, member, reconnected = registry.join_room(room.code, "p2-new", "P2", 2, "s-p2")

    assert again is room
    assert reconnected
    assert member.connection_id == "p2-new"
    assert member.connected
    assert room.state.players[1].id == "p2-new"
    assert registry.room_for("p2-new") is room
    assert registry.room_for("p2") is None


def test_reconnect_unknown_session(registry):
    room = registry.create_room("c1", "Ada", session_id="s1")
    with pytest.raises(RoomError, match="Session not found"):
        registry.reconnect(room.code, "c9", "other")
    with pytest.raises(RoomError, match="Room not found"):
        registry.reconnect("ZZZZ", "c9", "s1")


def test_remap_rewrites_every_reference(registry):
    room = started_room(registry)
    state = room.state
    turns.roll_dice(state, "p1")
    turns.move_player(state, "p1", 1)
    turns.on_player_landed(state, "p1", 0)
    turns.open_question(state, "p1")
    turns.vote_question(state, "p2", "up")
    room.minigame_session = quiz.create_session(["p1", "p2", "p3"], 0)

    remap_player_id(room, "p1", "x1")
    remap_player_id(room, "p2", "x2")

    assert [p.id for p in state.players] == ["x1", "x2", "p3"]
    assert state.current_question.target_player_id == "x1"
    assert state.current_question.votes.up == ["x2"]
    assert room.host_id == "x1"
    assert room.minigame_session.player_ids == ["x1", "x2", "p3"]


def test_remap_duel_references(registry):
    room = started_room(registry)
    state = room.state
    duel.start_duel(state, "p1", "p2", 0, random.Random(1))
    d = state.current_minigame
    duel.tick(state, d.next_word_at)
    duel.submit_answer(state, "p2", d.word.category, d.word_started_at + 1)

    remap_player_id(room, "p2", "y2")

    assert d.duelists == ["p1", "y2"]
    assert d.scores == {"p1": 0, "y2": 0}
    assert list(d.submitted_by) == ["y2"]


def test_remove_current_player_keeps_turn_order(registry):
    room = started_room(registry)
    state = room.state
    state.current_player_index = 1

    assert not registry.remove_member(room, "p2")

    assert [p.id for p in state.players] == ["p1", "p3"]
    assert state.current_player_index == 1
    assert state.current_player().id == "p3"


def test_remove_earlier_player_shifts_index(registry):
    room = started_room(registry)
    room.state.current_player_index = 2

    registry.remove_member(room, "p2")

    assert room.state.current_player().id == "p3"


def test_remove_last_index_wraps(registry):
    room = started_room(registry)
    room.state.current_player_index = 2

    registry.remove_member(room, "p3")

    assert room.state.current_player_index == 0


def test_removing_duelist_cancels_duel(registry):
    room = started_room(registry)
    duel.start_duel(room.state, "p1", "p2", 0)

    registry.remove_member(room, "p2")

    assert room.state.current_minigame is None


def test_removing_question_target_clears_question(registry):
    room = started_room(registry)
    state = room.state
    turns.roll_dice(state, "p1")
    turns.move_player(state, "p1", 1)
    turns.on_player_landed(state, "p1", 0)

    registry.remove_member(room, "p1")

    assert state.current_question is None


def test_removing_last_member_empties_room(registry):
    room = registry.create_room("c1", "Ada")
    registry.join_room(room.code, "c2", "Bob")
    assert not registry.remove_member(room, "c2")
    assert registry.remove_member(room, "c1")


def test_lobby_payload_hides_sessions(registry):
    room = registry.create_room("c1", "Ada", 4, "secret-session")
    payload = lobby_payload(room)

    assert payload["players"][0]["name"] == "Ada"
    assert "secret-session" not in repr(payload)
    assert room_summary(room)["playerCount"] == 1


def test_public_state_hides_duel_answers(registry):
    room = started_room(registry)
    state = room.state
    duel.start_duel(state, "p1", "p2", 0, random.Random(2))
    d = state.current_minigame

    between = room_public_state(room)["currentMinigame"]
    assert between["wordText"] is None

    duel.tick(state, d.next_word_at)
    duel.submit_answer(state, "p1", d.word.category, d.word_started_at + 1)
    public = room_public_state(room)
    mg = public["currentMinigame"]

    assert mg["wordText"] == d.word.text
    assert mg["submittedPlayerIds"] == ["p1"]
    assert "category" not in repr(public)
    assert "LEGIT" not in repr(mg) and "BULLSHIT" not in repr(mg)
    assert "s-p1" not in repr(public)
    assert public["quizActive"] is False


def test_remap_skill_timer_target(registry):
    room = started_room(registry)
    assert skill_timer.start_skill_timer(room.state, "p1", 0)

    remap_player_id(room, "p1", "z1")

    assert room.state.current_minigame.target_player_id == "z1"
    assert skill_timer.update_progress(room.state, "z1", 8)


def test_remap_duel_transfer(registry):
    room = started_room(registry)
    state = room.state
    duel.start_duel(state, "p1", "p2", 0, random.Random(4))
    d = state.current_minigame
    d.round_type = "sudden_death"
    duel.tick(state, d.next_word_at)
    assert duel.submit_answer(state, "p2", d.word.category, d.word_started_at + 1)
    assert d.phase == "transfer"

    remap_player_id(room, "p1", "y1")
    remap_player_id(room, "p2", "y2")

    assert (d.transfer.winner_id, d.transfer.loser_id) == ("y2", "y1")
    assert d.duelists == ["y1", "y2"]
