from __future__ import annotations

import logging
import random
import string
from threading import RLock
from typing import Callable

from . import quiz
from .models import DUEL, SKILL_TIMER, GameState, LobbyMember, Room
from .scheduler import now_ms
from .turns import create_initial_state


logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 4


class RoomError(Exception):
    """A request that must be refused with a message to its sender."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RoomRegistry:
    """Process-wide map of room codes to rooms and connections to room codes."""

    def __init__(
        self,
        max_players: int = 20,
        state_factory: Callable[[], GameState] | None = None,
    ) -> None:
        self.lock = RLock()
        self.max_players = max_players
        self._state_factory = state_factory or create_initial_state
        self._rooms: dict[str, Room] = {}
        self._connections: dict[str, str] = {}

    # -- lookup -------------------------------------------------------------

    def get_room(self, code: str) -> Room | None:
        with self.lock:
            return self._rooms.get((code or "").strip().upper())

    def room_for(self, connection_id: str) -> Room | None:
        with self.lock:
            code = self._connections.get(connection_id)
            return self._rooms.get(code) if code else None

    def list_rooms(self) -> list[Room]:
        with self.lock:
            return list(self._rooms.values())

    def new_state(self) -> GameState:
        return self._state_factory()

    def _make_code(self) -> str:
        while True:
            code = "".join(random.choices(CODE_ALPHABET, k=CODE_LENGTH))
            if code not in self._rooms:
                return code

    # -- lifecycle ----------------------------------------------------------

    def create_room(self, connection_id: str, name: str, avatar: int = 0, session_id: str | None = None) -> Room:
        with self.lock:
            self.detach(connection_id)
            code = self._make_code()
            room = Room(code=code, host_id=connection_id, state=self.new_state())
            room.lobby.append(
                LobbyMember(
                    connection_id=connection_id,
                    session_id=session_id or None,
                    name=name or "Host",
                    avatar=avatar,
                    is_host=True,
                )
            )
            room.clients.add(connection_id)
            self._rooms[code] = room
            self._connections[connection_id] = code
            logger.info(f"[room-created] room={code} host={connection_id}")
            return room

    def join_room(
        self,
        code: str,
        connection_id: str,
        name: str,
        avatar: int = 0,
        session_id: str | None = None,
    ) -> tuple[Room, LobbyMember, bool]:
        """Add a member, or reattach a known session. Returns (room, member, reconnected)."""
        with self.lock:
            room = self.get_room(code)
            if room is None:
                raise RoomError("Room not found")

            if session_id:
                existing = room.find_session(session_id)
                if existing is not None:
                    self.attach_connection(room, existing, connection_id)
                    return room, existing, True

            current = room.find_member(connection_id)
            if current is not None:
                return room, current, False

            if room.state.phase != "lobby":
                raise RoomError("Game already started")
            if len(room.lobby) >= self.max_players:
                raise RoomError(f"Room is full ({self.max_players} players max)")

            self.detach(connection_id)
            member = LobbyMember(
                connection_id=connection_id,
                session_id=session_id or None,
                name=name or "Player",
                avatar=avatar,
            )
            room.lobby.append(member)
            room.clients.add(connection_id)
            self._connections[connection_id] = room.code
            return room, member, False

    def reconnect(self, code: str, connection_id: str, session_id: str) -> tuple[Room, LobbyMember]:
        with self.lock:
            room = self.get_room(code)
            if room is None:
                raise RoomError("Room not found")
            member = room.find_session(session_id) if session_id else None
            if member is None:
                raise RoomError("Session not found")
            self.attach_connection(room, member, connection_id)
            return room, member

    def attach_connection(self, room: Room, member: LobbyMember, connection_id: str) -> None:
        """Point a lobby member at a new connection and rewrite its identity everywhere."""
        with self.lock:
            old_id = member.connection_id
            if old_id and old_id != connection_id:
                room.clients.discard(old_id)
                self._connections.pop(old_id, None)
                remap_player_id(room, old_id, connection_id)
                logger.info(f"[remap] room={room.code} {old_id} -> {connection_id}")

            member.connection_id = connection_id
            member.connected = True
            member.disconnected_at = None
            room.clients.add(connection_id)
            self._connections[connection_id] = room.code
            sync_host_flags(room)

    def detach(self, connection_id: str) -> str | None:
        """Forget which room a connection belongs to; returns the old room code."""
        with self.lock:
            return self._connections.pop(connection_id, None)

    def delete_room(self, code: str) -> Room | None:
        with self.lock:
            room = self._rooms.pop(code, None)
            if room is None:
                return None
            for cid in list(room.clients):
                if self._connections.get(cid) == code:
                    del self._connections[cid]
            for m in room.lobby:
                if self._connections.get(m.connection_id) == code:
                    del self._connections[m.connection_id]
            room.clients.clear()
            logger.info(f"[room-deleted] room={code}")
            return room

    def mark_disconnected(self, connection_id: str, now: int | None = None) -> tuple[Room | None, LobbyMember | None]:
        with self.lock:
            code = self._connections.pop(connection_id, None)
            room = self._rooms.get(code) if code else None
            if room is None:
                return None, None

            room.clients.discard(connection_id)
            member = room.find_member(connection_id)
            if member is not None:
                member.connected = False
                member.disconnected_at = now_ms() if now is None else now
            return room, member

    def remove_member(self, room: Room, connection_id: str) -> bool:
        """Drop a non-host member from the lobby and the running game.

        Returns True when the room is left with no members and no clients.
        """
        with self.lock:
            room.clients.discard(connection_id)
            if self._connections.get(connection_id) == room.code:
                del self._connections[connection_id]

            room.lobby = [m for m in room.lobby if m.connection_id != connection_id]
            remove_player_from_state(room.state, connection_id)

            session = room.minigame_session
            if session is not None:
                quiz.remove_player(session, connection_id)
                if not session.player_ids:
                    room.minigame_session = None

            sync_host_flags(room)
            return not room.lobby and not room.clients


def sync_host_flags(room: Room) -> None:
    for m in room.lobby:
        m.is_host = m.connection_id == room.host_id
    for p in room.state.players:
        p.is_host = p.id == room.host_id


def _swap(ids: list[str], old_id: str, new_id: str) -> list[str]:
    return [new_id if pid == old_id else pid for pid in ids]


def remap_player_id(room: Room, old_id: str, new_id: str) -> None:
    """Rewrite ``old_id`` to ``new_id`` in every piece of room state that references it."""
    state = room.state
    for p in state.players:
        if p.id == old_id:
            p.id = new_id

    q = state.current_question
    if q is not None:
        if q.target_player_id == old_id:
            q.target_player_id = new_id
        q.votes.up = _swap(q.votes.up, old_id, new_id)
        q.votes.down = _swap(q.votes.down, old_id, new_id)

    mg = state.current_minigame
    if mg is not None and mg.minigame_id == SKILL_TIMER:
        if mg.target_player_id == old_id:
            mg.target_player_id = new_id
    elif mg is not None and mg.minigame_id == DUEL:
        mg.duelists = _swap(mg.duelists, old_id, new_id)
        if old_id in mg.scores:
            mg.scores[new_id] = mg.scores.pop(old_id)
        if old_id in mg.submitted_by:
            mg.submitted_by[new_id] = mg.submitted_by.pop(old_id)
        if mg.transfer is not None:
            if mg.transfer.winner_id == old_id:
                mg.transfer.winner_id = new_id
            if mg.transfer.loser_id == old_id:
                mg.transfer.loser_id = new_id

    quiz.remap_player_id(room.minigame_session, old_id, new_id)

    if room.host_id == old_id:
        room.host_id = new_id
        logger.info(f"[host-migrated] room={room.code} host={new_id}")


def remove_player_from_state(state: GameState, player_id: str) -> None:
    leaving_index = next((i for i, p in enumerate(state.players) if p.id == player_id), -1)
    if leaving_index < 0:
        return

    del state.players[leaving_index]
    if not state.players:
        state.phase = "lobby"
        state.current_player_index = 0
        state.current_question = None
        state.current_minigame = None
        state.dice_value = None
        state.is_rolling = False
        return

    if leaving_index == state.current_player_index:
        state.dice_value = None
        state.is_rolling = False
    if leaving_index < state.current_player_index:
        state.current_player_index -= 1
    if state.current_player_index >= len(state.players):
        state.current_player_index = 0

    q = state.current_question
    if q is not None:
        if q.target_player_id == player_id:
            state.current_question = None
        else:
            q.votes.up = [pid for pid in q.votes.up if pid != player_id]
            q.votes.down = [pid for pid in q.votes.down if pid != player_id]

    mg = state.current_minigame
    if mg is not None and mg.minigame_id == SKILL_TIMER:
        if mg.target_player_id == player_id:
            state.current_minigame = None
    elif mg is not None and mg.minigame_id == DUEL:
        if player_id in mg.duelists:
            state.current_minigame = None


# -- public payloads ---------------------------------------------------------


def lobby_payload(room: Room) -> dict:
    # Session ids are reconnection secrets; never broadcast them.
    return {
        "players": [
            {
                "socketId": m.connection_id,
                "name": m.name,
                "avatar": m.avatar,
                "isHost": m.is_host,
                "connected": m.connected,
                "disconnectedAt": m.disconnected_at,
            }
            for m in room.lobby
        ]
    }


def room_summary(room: Room) -> dict:
    return {
        "code": room.code,
        "phase": room.state.phase,
        "playerCount": len(room.lobby),
        "players": lobby_payload(room)["players"],
    }


def room_public_state(room: Room) -> dict:
    state = room.state
    board = state.board
    payload = {
        "phase": state.phase,
        "players": [
            {
                "id": p.id,
                "name": p.name,
                "avatar": p.avatar,
                "position": p.position,
                "stars": p.bonus_points,
                "skipNextTurn": p.skip_next_turn,
                "color": p.color,
                "isHost": p.is_host,
            }
            for p in state.players
        ],
        "currentPlayerIndex": state.current_player_index,
        "currentRound": state.current_round,
        "maxRounds": state.max_rounds,
        "board": {"seed": board.seed, "cols": board.cols, "rows": board.rows, "length": board.length},
        "tiles": [
            {
                "id": t.id,
                "gridX": t.grid_x,
                "gridY": t.grid_y,
                "x": t.pixel_x,
                "y": t.pixel_y,
                "type": t.type,
            }
            for t in state.tiles
        ],
        "diceValue": state.dice_value,
        "isRolling": state.is_rolling,
        "currentQuestion": None,
        "currentMinigame": None,
        "questionHistory": [
            {"id": h.id, "type": h.type, "text": h.text, "upVotes": h.up_votes, "downVotes": h.down_votes}
            for h in state.question_history
        ],
        "quizActive": room.minigame_session is not None,
    }

    q = state.current_question
    if q is not None:
        payload["currentQuestion"] = {
            "id": q.id,
            "type": q.type,
            "text": q.text,
            "targetPlayerId": q.target_player_id,
            "votes": {"up": list(q.votes.up), "down": list(q.votes.down)},
            "status": q.status,
            "nextMinigame": q.next_minigame,
        }

    mg = state.current_minigame
    if mg is not None and mg.minigame_id == SKILL_TIMER:
        payload["currentMinigame"] = {
            "minigameId": mg.minigame_id,
            "targetPlayerId": mg.target_player_id,
            "startAt": mg.start_at,
            "durationMs": mg.duration_ms,
            "score": mg.score,
        }
    elif mg is not None and mg.minigame_id == DUEL:
        # The correct category, queued word and used-word list stay server side.
        showing_word = mg.phase in ("word", "sudden_death") and mg.word is not None
        t = mg.transfer
        payload["currentMinigame"] = {
            "minigameId": mg.minigame_id,
            "duelists": list(mg.duelists),
            "phase": mg.phase,
            "roundType": mg.round_type,
            "totalWords": mg.total_words,
            "currentWordIndex": mg.current_word_index,
            "suddenDeathRound": mg.sudden_death_round,
            "wordText": mg.word.text if showing_word else None,
            "isDouble": bool(mg.word.is_double) if showing_word else False,
            "wordStartedAt": mg.word_started_at,
            "wordEndsAt": mg.word_ends_at,
            "nextWordAt": mg.next_word_at,
            "scores": dict(mg.scores),
            "submittedPlayerIds": list(mg.submitted_by),
            "transfer": (
                {
                    "winnerId": t.winner_id,
                    "loserId": t.loser_id,
                    "amount": t.amount,
                    "startedAt": t.started_at,
                }
                if t is not None
                else None
            ),
        }

    return payload
