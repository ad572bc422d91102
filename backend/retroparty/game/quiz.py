from __future__ import annotations

import random
import uuid
from dataclasses import dataclass

from .models import QUIZ, GameState, QuizQuote, QuizRound, QuizSession, QuizSubmission
from .quotes import QUOTES, ROLES


ROUNDS = 3
ANNOUNCE_MS = 4000
ANSWER_DURATION_MS = 20000
REVEAL_DURATION_MS = 3000
BETWEEN_ROUNDS_MS = 1000
FAST_ANSWER_MS = 5000

FAST_POINTS = 3
CORRECT_POINTS = 2
SOLE_CORRECT_BONUS = 1


@dataclass
class SubmitResult:
    accepted: bool
    reason: str | None = None


def create_session(
    player_ids: list[str],
    now: int,
    rounds: int = ROUNDS,
    answer_duration_ms: int = ANSWER_DURATION_MS,
    reveal_duration_ms: int = REVEAL_DURATION_MS,
    between_rounds_ms: int = BETWEEN_ROUNDS_MS,
    announce_ms: int = ANNOUNCE_MS,
) -> QuizSession:
    return QuizSession(
        session_id=uuid.uuid4().hex,
        player_ids=list(player_ids),
        points_gained={pid: 0 for pid in player_ids},
        total_rounds=rounds,
        answer_duration_ms=answer_duration_ms,
        reveal_duration_ms=reveal_duration_ms,
        between_rounds_ms=between_rounds_ms,
        next_due_at=now + announce_ms,
    )


def pick_quote(used_ids: set[str], last_id: str | None, rng: random.Random | None = None) -> QuizQuote:
    candidates = [q for q in QUOTES if q.id not in used_ids] or list(QUOTES)
    if len(candidates) > 1 and last_id:
        candidates = [q for q in candidates if q.id != last_id] or candidates
    return (rng or random).choice(candidates)


def pending_step(session: QuizSession) -> str | None:
    """Name the timed step the session is waiting on, if any."""
    if session.status == "done":
        return None
    if session.current_round is None:
        return "start_round"
    if session.status == "answer":
        return "reveal"
    return "advance"


def step_due_at(session: QuizSession) -> int | None:
    step = pending_step(session)
    if step == "reveal":
        return session.current_round.ends_at
    if step is None:
        return None
    return session.next_due_at


def start_round(session: QuizSession, now: int, rng: random.Random | None = None) -> dict:
    quote = pick_quote(session.used_quote_ids, session.last_quote_id, rng)
    session.used_quote_ids.add(quote.id)
    session.last_quote_id = quote.id

    session.current_round = QuizRound(
        round_index=session.round_index,
        quote=quote,
        starts_at=now,
        ends_at=now + session.answer_duration_ms,
    )
    session.status = "answer"
    session.next_due_at = None

    return {
        "roundIndex": session.round_index,
        "totalRounds": session.total_rounds,
        "quoteId": quote.id,
        "text": quote.text,
        "endsAtServerTs": session.current_round.ends_at,
    }


def submit_answer(session: QuizSession | None, player_id: str, round_index, role, now: int) -> SubmitResult:
    if session is None or session.current_round is None:
        return SubmitResult(False, "NO_ACTIVE_ROUND")
    if player_id not in session.player_ids:
        return SubmitResult(False, "UNKNOWN_PLAYER")
    if role not in ROLES:
        return SubmitResult(False, "INVALID_ROLE")
    if round_index != session.current_round.round_index:
        return SubmitResult(False, "ROUND_MISMATCH")
    if session.status != "answer":
        return SubmitResult(False, "ROUND_NOT_ACCEPTING")
    if now > session.current_round.ends_at:
        return SubmitResult(False, "ROUND_ENDED")
    if player_id in session.current_round.submissions:
        return SubmitResult(False, "ALREADY_SUBMITTED")

    session.current_round.submissions[player_id] = QuizSubmission(role=role, submitted_at=now)
    return SubmitResult(True)


def all_submitted(session: QuizSession) -> bool:
    if session.current_round is None or not session.player_ids:
        return False
    return all(pid in session.current_round.submissions for pid in session.player_ids)


def reveal_round(session: QuizSession, now: int) -> dict | None:
    rnd = session.current_round
    if rnd is None or session.status != "answer":
        return None

    distribution = {role: 0 for role in ROLES}
    points_delta = {pid: 0 for pid in session.player_ids}
    correct: list[str] = []

    for pid in session.player_ids:
        submission = rnd.submissions.get(pid)
        if submission is None:
            continue
        distribution[submission.role] += 1
        if submission.role == rnd.quote.answer:
            fast = submission.submitted_at - rnd.starts_at <= FAST_ANSWER_MS
            points_delta[pid] += FAST_POINTS if fast else CORRECT_POINTS
            correct.append(pid)

    if len(correct) == 1:
        points_delta[correct[0]] += SOLE_CORRECT_BONUS

    for pid, points in points_delta.items():
        session.points_gained[pid] = session.points_gained.get(pid, 0) + points

    session.status = "reveal"
    session.next_due_at = now + session.reveal_duration_ms

    return {
        "roundIndex": rnd.round_index,
        "answerRole": rnd.quote.answer,
        "distribution": distribution,
        "winners": [pid for pid, points in points_delta.items() if points > 0],
        "pointsDelta": points_delta,
    }


def advance_session(session: QuizSession, now: int) -> bool:
    """Move past a revealed round. Returns True when the session is over."""
    session.round_index += 1
    session.current_round = None

    if session.round_index > session.total_rounds:
        session.status = "done"
        session.next_due_at = None
        return True

    session.next_due_at = now + session.between_rounds_ms
    return False


def start_payload(session: QuizSession) -> dict:
    return {"type": "MINIGAME_START", "minigameId": QUIZ, "rounds": session.total_rounds}


def end_payload(session: QuizSession) -> dict:
    return {
        "type": "MINIGAME_END",
        "minigameId": QUIZ,
        "summary": {"pointsGained": dict(session.points_gained)},
    }


def apply_points(state: GameState, session: QuizSession) -> None:
    for player in state.players:
        player.bonus_points += session.points_gained.get(player.id, 0)


def remove_player(session: QuizSession | None, player_id: str) -> None:
    if session is None:
        return
    session.player_ids = [pid for pid in session.player_ids if pid != player_id]
    session.points_gained.pop(player_id, None)
    if session.current_round is not None:
        session.current_round.submissions.pop(player_id, None)


def remap_player_id(session: QuizSession | None, old_id: str, new_id: str) -> None:
    if session is None:
        return
    session.player_ids = [new_id if pid == old_id else pid for pid in session.player_ids]
    if old_id in session.points_gained:
        session.points_gained[new_id] = session.points_gained.pop(old_id)
    if session.current_round is not None and old_id in session.current_round.submissions:
        session.current_round.submissions[new_id] = session.current_round.submissions.pop(old_id)
