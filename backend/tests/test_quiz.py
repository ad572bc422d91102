import random

import pytest

from retroparty.game import quiz
from retroparty.game.quotes import QUOTES, ROLES


def other_role(role):
    return next(r for r in ROLES if r != role)


@pytest.fixture()
def session():
    s = quiz.create_session(["p1", "p2", "p3"], now=0)
    quiz.start_round(s, quiz.ANNOUNCE_MS, random.Random(4))
    return s


def test_create_session_waits_for_announce():
    s = quiz.create_session(["a", "b"], now=100)
    assert quiz.pending_step(s) == "start_round"
    assert quiz.step_due_at(s) == 100 + quiz.ANNOUNCE_MS
    assert s.points_gained == {"a": 0, "b": 0}


def test_start_round_payload(session):
    rnd = session.current_round
    assert rnd.round_index == 1
    assert rnd.ends_at == quiz.ANNOUNCE_MS + quiz.ANSWER_DURATION_MS
    assert quiz.pending_step(session) == "reveal"
    assert quiz.step_due_at(session) == rnd.ends_at


@pytest.mark.parametrize(
    "pid,round_index,role,reason",
    [
        ("zz", 1, "DEV", "UNKNOWN_PLAYER"),
        ("p1", 1, "CEO", "INVALID_ROLE"),
        ("p1", 2, "DEV", "ROUND_MISMATCH"),
    ],
)
def test_submit_rejections(session, pid, round_index, role, reason):
    result = quiz.submit_answer(session, pid, round_index, role, 5000)
    assert not result.accepted
    assert result.reason == reason


def test_submit_once_and_before_deadline(session):
    assert quiz.submit_answer(session, "p1", 1, "DEV", 5000).accepted
    assert quiz.submit_answer(session, "p1", 1, "PO", 5001).reason == "ALREADY_SUBMITTED"
    late = session.current_round.ends_at + 1
    assert quiz.submit_answer(session, "p2", 1, "DEV", late).reason == "ROUND_ENDED"


def test_submit_without_round():
    assert quiz.submit_answer(None, "p1", 1, "DEV", 0).reason == "NO_ACTIVE_ROUND"
    s = quiz.create_session(["p1"], now=0)
    assert quiz.submit_answer(s, "p1", 1, "DEV", 0).reason == "NO_ACTIVE_ROUND"


def test_reveal_scoring(session):
    answer = session.current_round.quote.answer
    start = session.current_round.starts_at
    quiz.submit_answer(session, "p1", 1, answer, start + quiz.FAST_ANSWER_MS)
    quiz.submit_answer(session, "p2", 1, answer, start + quiz.FAST_ANSWER_MS + 1)
    quiz.submit_answer(session, "p3", 1, other_role(answer), start + 10)

    payload = quiz.reveal_round(session, start + 9000)

    assert payload["answerRole"] == answer
    assert payload["pointsDelta"] == {"p1": 3, "p2": 2, "p3": 0}
    assert sorted(payload["winners"]) == ["p1", "p2"]
    assert payload["distribution"][answer] == 2
    assert sum(payload["distribution"].values()) == 3
    assert session.status == "reveal"
    assert quiz.reveal_round(session, start + 9001) is None
    assert quiz.submit_answer(session, "p3", 1, answer, start + 9002).reason == "ROUND_NOT_ACCEPTING"


def test_sole_correct_answer_gets_bonus(session):
    answer = session.current_round.quote.answer
    start = session.current_round.starts_at
    quiz.submit_answer(session, "p2", 1, answer, start + 8000)

    payload = quiz.reveal_round(session, start + 9000)

    assert payload["pointsDelta"] == {"p1": 0, "p2": 3, "p3": 0}


def test_session_runs_all_rounds_without_repeats():
    s = quiz.create_session(["p1"], now=0)
    rng = random.Random(9)
    seen = []
    now = 0
    while True:
        now = quiz.step_due_at(s)
        quiz.start_round(s, now, rng)
        seen.append(s.current_round.quote.id)
        assert quiz.reveal_round(s, s.current_round.ends_at) is not None
        if quiz.advance_session(s, s.next_due_at):
            break

    assert len(seen) == quiz.ROUNDS
    assert len(set(seen)) == quiz.ROUNDS
    assert s.status == "done"
    assert quiz.pending_step(s) is None


def test_pick_quote_avoids_last_when_bank_used_up():
    used = {q.id for q in QUOTES}
    for seed in range(20):
        assert quiz.pick_quote(used, "q01", random.Random(seed)).id != "q01"


def test_all_submitted_and_removal(session):
    quiz.submit_answer(session, "p1", 1, "DEV", 5000)
    quiz.submit_answer(session, "p2", 1, "DEV", 5000)
    assert not quiz.all_submitted(session)

    quiz.remove_player(session, "p3")
    assert quiz.all_submitted(session)
    assert "p3" not in session.points_gained


def test_remap_player_id_keeps_submission(session):
    quiz.submit_answer(session, "p1", 1, "DEV", 5000)
    quiz.remap_player_id(session, "p1", "p1b")

    assert "p1b" in session.player_ids
    assert "p1b" in session.current_round.submissions
    assert "p1" not in session.points_gained
