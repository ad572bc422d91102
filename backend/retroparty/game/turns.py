"""Per-room turn state machine.

Every transition mutates the room's ``GameState`` in place and returns
``True`` when it applied. A failed precondition leaves the state untouched
and returns ``False``; invalid actions never raise.
"""

from __future__ import annotations

import random

from . import duel, skill_timer
from .board import generate_board
from .models import SKILL_TIMER, GameState, LobbyMember, Player, Question, QuestionSummary
from .questions import MISSING_QUESTION, pick_question
from .rng import Mulberry32


PLAYER_COLORS = (
    "#3b82f6",
    "#ef4444",
    "#22c55e",
    "#a855f7",
    "#f97316",
    "#14b8a6",
    "#eab308",
    "#ec4899",
    "#0ea5e9",
    "#84cc16",
)

DEFAULT_BOARD = {"cols": 20, "rows": 6, "length": 45}


def new_seed() -> int:
    return random.randrange(1_000_000_000)


def create_initial_state(max_rounds: int = 12, seed: int | None = None, **board_opts) -> GameState:
    opts = {**DEFAULT_BOARD, **board_opts}
    board = generate_board(new_seed() if seed is None else seed, **opts)
    return GameState(board=board, max_rounds=max_rounds)


def regenerate_board(state: GameState, seed: int | None = None) -> bool:
    if state.phase != "lobby":
        return False
    board = state.board
    state.board = generate_board(
        new_seed() if seed is None else seed,
        cols=board.cols,
        rows=board.rows,
        length=board.length or DEFAULT_BOARD["length"],
    )
    return True


def reset_game(state: GameState) -> GameState:
    board = state.board
    return create_initial_state(
        max_rounds=state.max_rounds,
        cols=board.cols,
        rows=board.rows,
        length=board.length or DEFAULT_BOARD["length"],
    )


def initialize_players(state: GameState, members: list[LobbyMember]) -> bool:
    if state.phase != "lobby" or not members:
        return False

    state.players = [
        Player(
            id=m.connection_id,
            name=m.name,
            avatar=m.avatar,
            color=PLAYER_COLORS[idx % len(PLAYER_COLORS)],
            is_host=m.is_host,
        )
        for idx, m in enumerate(members)
    ]
    state.phase = "playing"
    state.current_player_index = 0
    state.current_round = 1
    state.dice_value = None
    state.is_rolling = False
    state.current_question = None
    state.current_minigame = None
    state.question_history = []
    return True


def is_players_turn(state: GameState, player_id: str) -> bool:
    cur = state.current_player()
    return cur is not None and cur.id == player_id


def _can_act(state: GameState, player_id: str) -> bool:
    return (
        state.phase == "playing"
        and state.current_question is None
        and state.current_minigame is None
        and is_players_turn(state, player_id)
    )


def roll_dice(state: GameState, player_id: str, rng: random.Random | None = None) -> bool:
    if not _can_act(state, player_id):
        return False
    if state.dice_value is not None:
        return False

    state.dice_value = (rng or random).randint(1, 6)
    state.is_rolling = True
    return True


def settle_dice(state: GameState, player_id: str) -> bool:
    if state.phase != "playing" or not is_players_turn(state, player_id):
        return False
    if state.dice_value is None or not state.is_rolling:
        return False

    state.is_rolling = False
    return True


def last_tile_index(state: GameState) -> int:
    return max(0, len(state.tiles) - 1)


def move_player(state: GameState, player_id: str, steps) -> bool:
    if not _can_act(state, player_id):
        return False
    if isinstance(steps, bool) or not isinstance(steps, int) or steps <= 0:
        return False
    if state.dice_value is None:
        return False

    cur = state.current_player()
    cur.position = min(cur.position + steps, last_tile_index(state))
    return True


def on_player_landed(
    state: GameState,
    player_id: str,
    now: int,
    rng: random.Random | None = None,
) -> bool:
    if not _can_act(state, player_id):
        return False

    cur = state.current_player()
    if not 0 <= cur.position < len(state.tiles):
        # Nothing to land on; the turn passes.
        state.dice_value = None
        state.is_rolling = False
        return next_turn(state)
    tile = state.tiles[cur.position]

    if tile.type == "bonus":
        cur.bonus_points += 1
    state.dice_value = None
    state.is_rolling = False

    opponent = next(
        (p for idx, p in enumerate(state.players) if idx != state.current_player_index and p.position == cur.position),
        None,
    )
    if opponent is not None:
        return duel.start_duel(state, cur.id, opponent.id, now, rng)

    # Replayable: the same board, position and round always give the same prompt.
    seed = state.board.seed + cur.position + state.current_round * 1000
    text = pick_question(tile.type, Mulberry32(seed)) or MISSING_QUESTION

    state.current_question = Question(
        id=f"{now}-{(rng or random).randrange(100000)}",
        type=tile.type,
        text=text,
        target_player_id=cur.id,
        next_minigame=SKILL_TIMER if tile.type == "red" else None,
    )
    return True


def open_question(state: GameState, player_id: str) -> bool:
    q = state.current_question
    if state.current_minigame is not None or q is None or q.status != "pending":
        return False
    if q.target_player_id != player_id:
        return False

    q.status = "open"
    return True


def vote_question(state: GameState, player_id: str, vote: str) -> bool:
    q = state.current_question
    if state.current_minigame is not None or q is None or q.status != "open":
        return False
    if vote not in ("up", "down"):
        return False
    if player_id == q.target_player_id or state.find_player(player_id) is None:
        return False

    # One ballot per voter: re-voting moves it.
    q.votes.up = [pid for pid in q.votes.up if pid != player_id]
    q.votes.down = [pid for pid in q.votes.down if pid != player_id]
    getattr(q.votes, vote).append(player_id)
    return True


def validate_question(state: GameState, player_id: str, now: int) -> bool:
    q = state.current_question
    if state.current_minigame is not None or q is None or q.status != "open":
        return False
    if q.target_player_id != player_id:
        return False

    state.question_history.append(
        QuestionSummary(
            id=q.id,
            type=q.type,
            text=q.text,
            up_votes=len(q.votes.up),
            down_votes=len(q.votes.down),
        )
    )
    state.current_question = None
    state.dice_value = None
    state.is_rolling = False

    if q.next_minigame == SKILL_TIMER and skill_timer.start_skill_timer(state, q.target_player_id, now):
        return True

    next_turn(state)
    return True


def next_turn(state: GameState) -> bool:
    if state.phase != "playing" or not state.players:
        return False
    if state.current_question is not None or state.current_minigame is not None:
        return False

    count = len(state.players)
    next_index = state.current_player_index + 1
    next_round = state.current_round
    if next_index >= count:
        next_index = 0
        next_round += 1

    # Each flagged player is skipped once; at most one full cycle.
    skipped = 0
    while state.players[next_index].skip_next_turn and skipped < count:
        state.players[next_index].skip_next_turn = False
        next_index += 1
        if next_index >= count:
            next_index = 0
            next_round += 1
        skipped += 1

    state.dice_value = None
    state.is_rolling = False

    if next_round > state.max_rounds:
        state.phase = "results"
        state.current_round = state.max_rounds
        return True

    state.current_player_index = next_index
    state.current_round = next_round
    return True


def complete_skill_timer(state: GameState, player_id: str, score) -> bool:
    if skill_timer.complete_skill_timer(state, player_id, score) is None:
        return False
    next_turn(state)
    return True


def complete_duel_transfer(state: GameState) -> bool:
    if not duel.complete_transfer(state):
        return False
    next_turn(state)
    return True
