from __future__ import annotations

import math
import random
import uuid

from .models import DUEL, DuelSession, DuelTransfer, DuelWord, GameState
from .words import CATEGORIES, DUEL_WORDS, pick_words


MAIN_WORDS = 10
WORD_DURATION_MS = 3000
BETWEEN_WORDS_MS = 500
ANNOUNCE_MS = 4000
TRANSFER_DISPLAY_MS = 1800
MAX_STEAL = 5

# 1-based range for the word worth double points.
DOUBLE_WORD_RANGE = (6, 10)


def active_duel(state: GameState) -> DuelSession | None:
    mg = state.current_minigame
    if mg is not None and mg.minigame_id == DUEL:
        return mg
    return None


def pick_main_words(rng: random.Random | None = None) -> tuple[list[DuelWord], int]:
    rng = rng or random
    words = pick_words(DUEL_WORDS, MAIN_WORDS, rng)
    double_index = rng.randint(*DOUBLE_WORD_RANGE)
    for idx, word in enumerate(words, start=1):
        word.is_double = idx == double_index
    return words, double_index


def pick_sudden_death_word(
    used_texts: list[str],
    previous_text: str | None,
    rng: random.Random | None = None,
) -> DuelWord:
    """Prefer a word never seen in this duel; never repeat the previous one if avoidable."""
    rng = rng or random
    used = set(used_texts)
    candidates = [w for w in DUEL_WORDS if w.text not in used]
    if not candidates:
        candidates = [w for w in DUEL_WORDS if w.text != previous_text] or list(DUEL_WORDS)
    chosen = rng.choice(candidates)
    return DuelWord(chosen.text, chosen.category)


def start_duel(
    state: GameState,
    first_player_id: str,
    second_player_id: str,
    now: int,
    rng: random.Random | None = None,
) -> bool:
    if state.phase != "playing":
        return False
    if state.current_question is not None or state.current_minigame is not None:
        return False
    a = state.find_player(first_player_id)
    b = state.find_player(second_player_id)
    if a is None or b is None or a.id == b.id:
        return False

    words, double_index = pick_main_words(rng)
    state.current_minigame = DuelSession(
        session_id=uuid.uuid4().hex,
        duelists=[a.id, b.id],
        main_words=words,
        double_word_index=double_index,
        scores={a.id: 0, b.id: 0},
        total_words=MAIN_WORDS,
        next_word=words[0],
        next_word_at=now + ANNOUNCE_MS,
        used_words=[w.text for w in words],
    )
    state.dice_value = None
    state.is_rolling = False
    return True


def submit_answer(state: GameState, player_id: str, category: str, now: int) -> bool:
    duel = active_duel(state)
    if duel is None:
        return False
    if category not in CATEGORIES:
        return False
    if player_id not in duel.duelists:
        return False
    if duel.phase not in ("word", "sudden_death") or duel.word is None:
        return False
    if duel.word_ends_at is None or now >= duel.word_ends_at:
        return False
    if player_id in duel.submitted_by:
        return False

    duel.submitted_by[player_id] = category

    # Sudden death is decided at submission time: first correct answer wins.
    if duel.round_type == "sudden_death" and category == duel.word.category:
        loser_id = _opponent(duel, player_id)
        _to_transfer(state, duel, player_id, loser_id, now)
    return True


def resolve_word(state: GameState, now: int, rng: random.Random | None = None) -> bool:
    """Close the current word window once it has expired."""
    duel = active_duel(state)
    if duel is None:
        return False
    if duel.phase not in ("word", "sudden_death") or duel.word is None:
        return False
    if duel.word_ends_at is None or now < duel.word_ends_at:
        return False

    if duel.round_type == "main":
        points = 2 if duel.word.is_double else 1
        for pid in duel.duelists:
            if duel.submitted_by.get(pid) == duel.word.category:
                duel.scores[pid] = duel.scores.get(pid, 0) + points

        if duel.current_word_index < duel.total_words:
            duel.current_word_index += 1
            _to_between(duel, duel.main_words[duel.current_word_index - 1], now)
            return True

        a, b = duel.duelists
        if duel.scores.get(a, 0) != duel.scores.get(b, 0):
            winner, loser = (a, b) if duel.scores.get(a, 0) > duel.scores.get(b, 0) else (b, a)
            _to_transfer(state, duel, winner, loser, now)
            return True

        duel.round_type = "sudden_death"

    word = pick_sudden_death_word(duel.used_words, duel.word.text, rng)
    duel.used_words.append(word.text)
    duel.sudden_death_round += 1
    _to_between(duel, word, now)
    return True


def maybe_start_next_word(state: GameState, now: int) -> bool:
    duel = active_duel(state)
    if duel is None or duel.phase != "between":
        return False
    if duel.next_word is None or duel.next_word_at is None or now < duel.next_word_at:
        return False

    duel.word = duel.next_word
    duel.next_word = None
    duel.phase = "sudden_death" if duel.round_type == "sudden_death" else "word"
    duel.word_started_at = now
    duel.word_ends_at = now + WORD_DURATION_MS
    duel.next_word_at = None
    duel.submitted_by = {}
    return True


def tick(state: GameState, now: int, rng: random.Random | None = None) -> bool:
    resolved = resolve_word(state, now, rng)
    started = maybe_start_next_word(state, now)
    return resolved or started


def complete_transfer(state: GameState) -> bool:
    """Clear a finished duel. The caller advances the turn."""
    duel = active_duel(state)
    if duel is None or duel.phase != "transfer":
        return False

    state.current_minigame = None
    state.current_question = None
    state.dice_value = None
    state.is_rolling = False
    return True


def next_due_at(duel: DuelSession) -> int | None:
    if duel.phase == "between":
        return duel.next_word_at
    if duel.phase in ("word", "sudden_death"):
        return duel.word_ends_at
    if duel.phase == "transfer" and duel.transfer is not None:
        return duel.transfer.completes_at
    return None


def compute_steal(state: GameState, winner_id: str, loser_id: str) -> int:
    winner = state.find_player(winner_id)
    loser = state.find_player(loser_id)
    if winner is None or loser is None:
        return 0

    amount = min(MAX_STEAL, max(0, math.floor(loser.bonus_points)))
    loser.bonus_points -= amount
    winner.bonus_points += amount
    return amount


def _opponent(duel: DuelSession, player_id: str) -> str:
    a, b = duel.duelists
    return b if player_id == a else a


def _to_between(duel: DuelSession, word: DuelWord, now: int) -> None:
    duel.phase = "between"
    duel.next_word = word
    duel.next_word_at = now + BETWEEN_WORDS_MS
    duel.submitted_by = {}


def _to_transfer(state: GameState, duel: DuelSession, winner_id: str, loser_id: str, now: int) -> None:
    amount = compute_steal(state, winner_id, loser_id)
    duel.phase = "transfer"
    duel.next_word = None
    duel.next_word_at = None
    duel.transfer = DuelTransfer(
        winner_id=winner_id,
        loser_id=loser_id,
        amount=amount,
        started_at=now,
        completes_at=now + TRANSFER_DISPLAY_MS,
    )
