from __future__ import annotations

import math
import uuid

from .models import SKILL_TIMER, GameState, SkillTimerSession


ANNOUNCE_MS = 4000
DURATION_MS = 20000
MAX_SCORE = 999

# (minimum score, stars) from best to worst tier.
STAR_TIERS = ((18, 3), (12, 2), (6, 1))


def stars_for_score(score: int) -> int:
    for threshold, stars in STAR_TIERS:
        if score >= threshold:
            return stars
    return 0


def clamp_score(raw) -> int:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(value):
        return 0
    return max(0, min(MAX_SCORE, int(math.floor(value))))


def active_session(state: GameState) -> SkillTimerSession | None:
    mg = state.current_minigame
    if mg is not None and mg.minigame_id == SKILL_TIMER:
        return mg
    return None


def start_skill_timer(state: GameState, target_player_id: str, now: int) -> bool:
    if state.phase != "playing":
        return False
    if state.current_question is not None or state.current_minigame is not None:
        return False
    if state.find_player(target_player_id) is None:
        return False

    state.current_minigame = SkillTimerSession(
        session_id=uuid.uuid4().hex,
        target_player_id=target_player_id,
        start_at=now + ANNOUNCE_MS,
        duration_ms=DURATION_MS,
    )
    state.dice_value = None
    state.is_rolling = False
    return True


def update_progress(state: GameState, player_id: str, score) -> bool:
    """Mirror the live score for spectators; no points are granted here."""
    if state.phase != "playing":
        return False
    session = active_session(state)
    if session is None or session.target_player_id != player_id:
        return False

    session.score = clamp_score(score)
    return True


def complete_skill_timer(state: GameState, player_id: str, score) -> int | None:
    """Award stars for the final score and clear the minigame.

    Returns the stars granted, or None when the completion was rejected.
    The caller is responsible for advancing the turn.
    """
    if state.phase != "playing":
        return None
    session = active_session(state)
    if session is None or session.target_player_id != player_id:
        return None

    target = state.find_player(player_id)
    if target is None:
        return None

    stars = stars_for_score(clamp_score(score))
    target.bonus_points += stars

    state.current_minigame = None
    state.current_question = None
    state.dice_value = None
    state.is_rolling = False
    return stars
