from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union


GamePhase = Literal["lobby", "playing", "results"]
TileType = Literal["start", "blue", "green", "red", "violet", "bonus"]
QuestionStatus = Literal["pending", "open"]
DuelPhase = Literal["between", "word", "sudden_death", "transfer"]
DuelRoundType = Literal["main", "sudden_death"]
QuizStatus = Literal["answer", "reveal", "done"]

SKILL_TIMER = "SKILL_TIMER"
DUEL = "DUEL"
QUIZ = "QUIZ"


@dataclass
class Tile:
    id: int
    grid_x: int
    grid_y: int
    pixel_x: int
    pixel_y: int
    type: TileType = "blue"


@dataclass
class Board:
    seed: int
    cols: int
    rows: int
    tiles: list[Tile] = field(default_factory=list)

    @property
    def length(self) -> int:
        return len(self.tiles)


@dataclass
class Player:
    id: str
    name: str
    avatar: int = 0
    position: int = 0
    bonus_points: int = 0
    skip_next_turn: bool = False
    color: str = ""
    is_host: bool = False


@dataclass
class Votes:
    up: list[str] = field(default_factory=list)
    down: list[str] = field(default_factory=list)


@dataclass
class Question:
    id: str
    type: str
    text: str
    target_player_id: str
    votes: Votes = field(default_factory=Votes)
    status: QuestionStatus = "pending"
    next_minigame: str | None = None


@dataclass
class QuestionSummary:
    id: str
    type: str
    text: str
    up_votes: int
    down_votes: int


@dataclass
class SkillTimerSession:
    session_id: str
    target_player_id: str
    start_at: int
    duration_ms: int
    score: int = 0
    minigame_id: str = SKILL_TIMER


@dataclass
class DuelWord:
    text: str
    category: str
    is_double: bool = False


@dataclass
class DuelTransfer:
    winner_id: str
    loser_id: str
    amount: int
    started_at: int
    completes_at: int


@dataclass
class DuelSession:
    session_id: str
    duelists: list[str]
    main_words: list[DuelWord]
    double_word_index: int
    scores: dict[str, int]
    total_words: int
    phase: DuelPhase = "between"
    round_type: DuelRoundType = "main"
    current_word_index: int = 1
    sudden_death_round: int = 0
    word: DuelWord | None = None
    next_word: DuelWord | None = None
    word_started_at: int | None = None
    word_ends_at: int | None = None
    next_word_at: int | None = None
    submitted_by: dict[str, str] = field(default_factory=dict)
    used_words: list[str] = field(default_factory=list)
    transfer: DuelTransfer | None = None
    minigame_id: str = DUEL


TurnMinigame = Union[SkillTimerSession, DuelSession]


@dataclass
class QuizQuote:
    id: str
    text: str
    answer: str


@dataclass
class QuizSubmission:
    role: str
    submitted_at: int


@dataclass
class QuizRound:
    round_index: int
    quote: QuizQuote
    starts_at: int
    ends_at: int
    submissions: dict[str, QuizSubmission] = field(default_factory=dict)


@dataclass
class QuizSession:
    session_id: str
    player_ids: list[str]
    points_gained: dict[str, int]
    total_rounds: int
    answer_duration_ms: int
    reveal_duration_ms: int
    between_rounds_ms: int
    round_index: int = 1
    status: QuizStatus = "answer"
    current_round: QuizRound | None = None
    used_quote_ids: set[str] = field(default_factory=set)
    last_quote_id: str | None = None
    # Deadline of whatever the session is waiting on next (round start or reveal end).
    next_due_at: int | None = None
    minigame_id: str = QUIZ


@dataclass
class GameState:
    board: Board
    phase: GamePhase = "lobby"
    players: list[Player] = field(default_factory=list)
    current_player_index: int = 0
    current_round: int = 1
    max_rounds: int = 12
    dice_value: int | None = None
    is_rolling: bool = False
    current_question: Question | None = None
    current_minigame: TurnMinigame | None = None
    question_history: list[QuestionSummary] = field(default_factory=list)

    @property
    def tiles(self) -> list[Tile]:
        return self.board.tiles

    def current_player(self) -> Player | None:
        if 0 <= self.current_player_index < len(self.players):
            return self.players[self.current_player_index]
        return None

    def find_player(self, player_id: str) -> Player | None:
        for p in self.players:
            if p.id == player_id:
                return p
        return None


@dataclass
class LobbyMember:
    connection_id: str
    session_id: str | None
    name: str
    avatar: int = 0
    is_host: bool = False
    connected: bool = True
    disconnected_at: int | None = None


@dataclass
class Room:
    code: str
    host_id: str
    state: GameState
    lobby: list[LobbyMember] = field(default_factory=list)
    clients: set[str] = field(default_factory=set)
    minigame_session: QuizSession | None = None
    timers: set = field(default_factory=set)

    def find_member(self, connection_id: str) -> LobbyMember | None:
        for m in self.lobby:
            if m.connection_id == connection_id:
                return m
        return None

    def find_session(self, session_id: str) -> LobbyMember | None:
        for m in self.lobby:
            if m.session_id and m.session_id == session_id:
                return m
        return None
