from __future__ import annotations

import logging
import random
from typing import Callable

from ..game import duel, quiz, skill_timer, turns
from ..game.models import Room
from ..game.scheduler import Scheduler
from ..game.service import RoomError, RoomRegistry, lobby_payload, room_public_state, sync_host_flags
from . import events


logger = logging.getLogger(__name__)

Emit = Callable[[str, dict, str], None]
GroupOp = Callable[[str, str], None]

# Timer kinds; a room holds at most one armed timer per minigame kind.
DICE = "dice"
DUEL_TICK = "duel"
QUIZ_STEP = "quiz"
GRACE = "grace"


def _noop_group(*_args) -> None:
    return None


class GameHub:
    """Drives rooms: validates inbound actions, arms timers, broadcasts snapshots.

    Every entry point (inbound action or fired timer) runs under the
    registry lock, mutates one room, then broadcasts. Timer callbacks
    re-fetch the room and compare the minigame session id and phase they
    were armed for; anything else is a stale timer and is dropped.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        scheduler: Scheduler,
        emit: Emit,
        enter_group: GroupOp = _noop_group,
        leave_group: GroupOp = _noop_group,
        close_group: Callable[[str], None] = _noop_group,
        reconnect_grace_ms: int = 30000,
        dice_settle_ms: int = 650,
        quiz_rounds: int = quiz.ROUNDS,
        rng: random.Random | None = None,
    ) -> None:
        self.registry = registry
        self.scheduler = scheduler
        self._emit = emit
        self._enter_group = enter_group
        self._leave_group = leave_group
        self._close_group = close_group
        self.reconnect_grace_ms = reconnect_grace_ms
        self.dice_settle_ms = dice_settle_ms
        self.quiz_rounds = quiz_rounds
        self.rng = rng

    def now(self) -> int:
        return self.scheduler.clock()

    # -- outbound -------------------------------------------------------------

    def send(self, event: str, payload: dict, to: str) -> None:
        self._emit(event, payload, to)

    def broadcast_state(self, room: Room) -> None:
        if self.registry.get_room(room.code) is not room:
            return
        self.send(events.STATE_UPDATE, room_public_state(room), room.code)

    def broadcast_lobby(self, room: Room) -> None:
        if self.registry.get_room(room.code) is not room:
            return
        self.send(events.LOBBY_UPDATE, lobby_payload(room), room.code)

    def _broadcast_all(self, room: Room) -> None:
        self.broadcast_lobby(room)
        self.broadcast_state(room)

    def _error(self, connection_id: str, message: str) -> None:
        self.send(events.ERROR_MSG, {"message": message}, connection_id)

    # -- room membership ------------------------------------------------------

    def create_room(self, connection_id: str, name: str, avatar: int = 0, session_id: str | None = None) -> Room:
        with self.registry.lock:
            previous = self.registry.room_for(connection_id)
            room = self.registry.create_room(connection_id, name, avatar, session_id)
            self._leave_previous(connection_id, previous, room)
            self._enter_group(connection_id, room.code)
            self.send(events.ROOM_CREATED, self._room_ack(room, session_id), connection_id)
            self._broadcast_all(room)
            return room

    def join_room(
        self,
        connection_id: str,
        code: str,
        name: str,
        avatar: int = 0,
        session_id: str | None = None,
    ) -> Room | None:
        with self.registry.lock:
            previous = self.registry.room_for(connection_id)
            try:
                room, member, reconnected = self.registry.join_room(code, connection_id, name, avatar, session_id)
            except RoomError as exc:
                self._error(connection_id, exc.message)
                return None

            self._leave_previous(connection_id, previous, room)
            self._enter_group(connection_id, room.code)
            if reconnected:
                self.rearm(room)
                self.send(events.ROOM_RECONNECTED, self._room_ack(room, member.session_id), connection_id)
            else:
                self.send(events.ROOM_JOINED, self._room_ack(room, member.session_id), connection_id)
            self._broadcast_all(room)
            return room

    def reconnect_room(self, connection_id: str, code: str, session_id: str) -> Room | None:
        with self.registry.lock:
            previous = self.registry.room_for(connection_id)
            try:
                room, member = self.registry.reconnect(code, connection_id, session_id)
            except RoomError as exc:
                self._error(connection_id, exc.message)
                return None

            self._leave_previous(connection_id, previous, room)
            self._enter_group(connection_id, room.code)
            self.rearm(room)
            self.send(events.ROOM_RECONNECTED, self._room_ack(room, member.session_id), connection_id)
            self._broadcast_all(room)
            return room

    def _leave_previous(self, connection_id: str, previous: Room | None, room: Room) -> None:
        """Drop a connection from the room it sat in before moving to ``room``."""
        if previous is None or previous is room:
            return
        if self.registry.get_room(previous.code) is not previous:
            return
        logger.info(f"[room-switch] {connection_id} {previous.code} -> {room.code}")
        self._leave_group(connection_id, previous.code)
        self.remove_player_now(previous.code, connection_id)

    def leave_room(self, connection_id: str) -> None:
        with self.registry.lock:
            room = self.registry.room_for(connection_id)
            if room is None:
                return
            self._leave_group(connection_id, room.code)
            self.remove_player_now(room.code, connection_id)

    def disconnect(self, connection_id: str) -> None:
        with self.registry.lock:
            room, member = self.registry.mark_disconnected(connection_id, self.now())
            if room is None:
                return

            if member is None:
                if not room.lobby and not room.clients:
                    self._teardown(room)
                return

            if not member.session_id:
                self.remove_player_now(room.code, connection_id)
                return

            self._arm_grace(room, member.session_id, connection_id, self.reconnect_grace_ms)
            self._broadcast_all(room)

    def remove_player_now(self, code: str, connection_id: str) -> None:
        with self.registry.lock:
            room = self.registry.get_room(code)
            if room is None:
                return

            if room.host_id == connection_id:
                self.close_room(room, "The host left the game")
                return

            had_duel = duel.active_duel(room.state) is not None
            empty = self.registry.remove_member(room, connection_id)
            if empty:
                self._teardown(room)
                return

            if had_duel and duel.active_duel(room.state) is None:
                logger.info(f"[duel-cancelled] room={code} duelist left")
            self.rearm(room)
            self._broadcast_all(room)

            session = room.minigame_session
            if session is not None and session.status == "answer" and quiz.all_submitted(session):
                self._quiz_reveal(room)

    def close_room(self, room: Room, reason: str) -> None:
        with self.registry.lock:
            self.send(events.ROOM_CLOSED, {"message": reason}, room.code)
            self._teardown(room)
            logger.info(f"[room-closed] room={room.code} reason={reason!r}")

    def _teardown(self, room: Room) -> None:
        self.scheduler.cancel_all(room)
        room.minigame_session = None
        self.registry.delete_room(room.code)
        self._close_group(room.code)

    @staticmethod
    def _room_ack(room: Room, session_id: str | None) -> dict:
        payload = {"code": room.code}
        if session_id:
            payload["sessionId"] = session_id
        return payload

    # -- host actions ---------------------------------------------------------

    def _host_room(self, connection_id: str) -> Room | None:
        room = self.registry.room_for(connection_id)
        if room is None or room.host_id != connection_id:
            return None
        return room

    def start_game(self, connection_id: str) -> None:
        with self.registry.lock:
            room = self._host_room(connection_id)
            if room is None:
                return
            seated = [m for m in room.lobby if m.connected]
            if turns.initialize_players(room.state, seated):
                sync_host_flags(room)
                logger.info(f"[game-started] room={room.code} players={len(seated)}")
            self.broadcast_state(room)

    def reset_game(self, connection_id: str) -> None:
        with self.registry.lock:
            room = self._host_room(connection_id)
            if room is None:
                return
            self.scheduler.cancel_all(room)
            room.minigame_session = None
            room.state = turns.reset_game(room.state)
            self.rearm(room)
            self._broadcast_all(room)

    def regenerate_board(self, connection_id: str) -> None:
        with self.registry.lock:
            room = self._host_room(connection_id)
            if room is None:
                return
            turns.regenerate_board(room.state)
            self.broadcast_state(room)

    def next_turn(self, connection_id: str) -> None:
        with self.registry.lock:
            room = self._host_room(connection_id)
            if room is None or room.minigame_session is not None:
                return
            if duel.active_duel(room.state) is not None:
                return
            previous_round = room.state.current_round
            turns.next_turn(room.state)
            self.broadcast_state(room)
            self._after_turn_advance(room, previous_round)

    # -- turn actions ---------------------------------------------------------

    def _turn_room(self, connection_id: str) -> Room | None:
        room = self.registry.room_for(connection_id)
        if room is None or room.minigame_session is not None:
            return None
        return room

    def roll_dice(self, connection_id: str) -> None:
        with self.registry.lock:
            room = self._turn_room(connection_id)
            if room is None:
                return
            rolled = turns.roll_dice(room.state, connection_id, self.rng)
            self.broadcast_state(room)
            if rolled:
                self._arm_dice_settle(room, connection_id, self.dice_settle_ms)

    def _arm_dice_settle(self, room: Room, player_id: str, delay_ms: int) -> None:
        code = room.code
        self.scheduler.cancel(room, DICE)

        def _settle() -> None:
            with self.registry.lock:
                current = self.registry.get_room(code)
                if current is None:
                    return
                if turns.settle_dice(current.state, player_id):
                    self.broadcast_state(current)

        self.scheduler.call_later(room, delay_ms, DICE, _settle)

    def move_player(self, connection_id: str, steps) -> None:
        with self.registry.lock:
            room = self._turn_room(connection_id)
            if room is None:
                return
            if not turns.move_player(room.state, connection_id, steps):
                self.broadcast_state(room)
                return
            previous_round = room.state.current_round
            turns.on_player_landed(room.state, connection_id, self.now(), self.rng)
            self.broadcast_state(room)

            started = duel.active_duel(room.state)
            if started is not None:
                self._minigame_started(room, {"duelists": list(started.duelists)})
                self._arm_duel(room)
                return
            self._after_turn_advance(room, previous_round)

    def open_question(self, connection_id: str) -> None:
        with self.registry.lock:
            room = self._turn_room(connection_id)
            if room is None:
                return
            turns.open_question(room.state, connection_id)
            self.broadcast_state(room)

    def vote_question(self, connection_id: str, vote: str) -> None:
        with self.registry.lock:
            room = self._turn_room(connection_id)
            if room is None:
                return
            turns.vote_question(room.state, connection_id, vote)
            self.broadcast_state(room)

    def validate_question(self, connection_id: str) -> None:
        with self.registry.lock:
            room = self._turn_room(connection_id)
            if room is None:
                return
            previous_round = room.state.current_round
            validated = turns.validate_question(room.state, connection_id, self.now())
            self.broadcast_state(room)
            if not validated:
                return

            timer = skill_timer.active_session(room.state)
            if timer is not None:
                self._minigame_started(
                    room,
                    {
                        "targetPlayerId": timer.target_player_id,
                        "startAt": timer.start_at,
                        "durationMs": timer.duration_ms,
                    },
                )
                return
            self._after_turn_advance(room, previous_round)

    # -- skill timer ----------------------------------------------------------

    def skill_timer_progress(self, connection_id: str, score) -> None:
        with self.registry.lock:
            room = self._turn_room(connection_id)
            if room is None:
                return
            if skill_timer.update_progress(room.state, connection_id, score):
                self.broadcast_state(room)

    def skill_timer_complete(self, connection_id: str, score) -> None:
        with self.registry.lock:
            room = self._turn_room(connection_id)
            if room is None:
                return
            previous_round = room.state.current_round
            stars = skill_timer.complete_skill_timer(room.state, connection_id, score)
            if stars is None:
                self.broadcast_state(room)
                return

            turns.next_turn(room.state)
            self.send(
                events.MINIGAME_END,
                {
                    "type": events.MINIGAME_END,
                    "minigameId": skill_timer.SKILL_TIMER,
                    "summary": {"pointsGained": {connection_id: stars}},
                },
                room.code,
            )
            self.broadcast_state(room)
            self._after_turn_advance(room, previous_round)

    # -- duel -----------------------------------------------------------------

    def duel_submit(self, connection_id: str, category: str) -> None:
        with self.registry.lock:
            room = self.registry.room_for(connection_id)
            if room is None or duel.active_duel(room.state) is None:
                return
            if not duel.submit_answer(room.state, connection_id, category, self.now()):
                return
            self.broadcast_state(room)
            # A sudden-death win moves straight to the transfer phase.
            self._arm_duel(room)

    def _arm_duel(self, room: Room) -> None:
        current = duel.active_duel(room.state)
        self.scheduler.cancel(room, DUEL_TICK)
        if current is None:
            return
        due = duel.next_due_at(current)
        if due is None:
            return

        code, session_id, phase = room.code, current.session_id, current.phase
        self.scheduler.call_at(
            room,
            due,
            DUEL_TICK,
            lambda: self._on_duel_timer(code, session_id, phase),
            token=session_id,
        )

    def _on_duel_timer(self, code: str, session_id: str, expected_phase: str) -> None:
        with self.registry.lock:
            room = self.registry.get_room(code)
            current = duel.active_duel(room.state) if room is not None else None
            if current is None or current.session_id != session_id or current.phase != expected_phase:
                logger.debug(f"[timer-stale] room={code} kind=duel expected={expected_phase}")
                return

            if current.phase == "transfer":
                self._finish_duel(room)
                return

            duel.tick(room.state, self.now(), self.rng)
            self.broadcast_state(room)
            self._arm_duel(room)

    def _finish_duel(self, room: Room) -> None:
        current = duel.active_duel(room.state)
        transfer = current.transfer
        previous_round = room.state.current_round
        turns.complete_duel_transfer(room.state)
        self.send(
            events.MINIGAME_END,
            {
                "type": events.MINIGAME_END,
                "minigameId": duel.DUEL,
                "summary": {
                    "winnerId": transfer.winner_id,
                    "loserId": transfer.loser_id,
                    "stolenPoints": transfer.amount,
                    "scores": dict(current.scores),
                },
            },
            room.code,
        )
        self.broadcast_state(room)
        self._after_turn_advance(room, previous_round)

    # -- quiz -----------------------------------------------------------------

    def _after_turn_advance(self, room: Room, previous_round: int) -> None:
        state = room.state
        if (
            state.phase == "playing"
            and state.current_round > previous_round
            and state.current_question is None
            and state.current_minigame is None
            and room.minigame_session is None
        ):
            self.start_quiz(room)

    def start_quiz(self, room: Room) -> bool:
        with self.registry.lock:
            if room.minigame_session is not None or room.state.current_minigame is not None:
                return False
            if not room.state.players:
                return False

            self.scheduler.cancel(room, QUIZ_STEP)
            room.minigame_session = quiz.create_session(
                [p.id for p in room.state.players],
                self.now(),
                rounds=self.quiz_rounds,
            )
            logger.info(f"[quiz-start] room={room.code} players={len(room.state.players)}")
            self.send(events.MINIGAME_START, quiz.start_payload(room.minigame_session), room.code)
            self.broadcast_state(room)
            self._arm_quiz(room)
            return True

    def quiz_submit(self, connection_id: str, round_index, role) -> quiz.SubmitResult:
        with self.registry.lock:
            room = self.registry.room_for(connection_id)
            session = room.minigame_session if room is not None else None
            result = quiz.submit_answer(session, connection_id, round_index, role, self.now())
            if not result.accepted:
                return result

            if session.status == "answer" and quiz.all_submitted(session):
                self._quiz_reveal(room)
            return result

    def _arm_quiz(self, room: Room) -> None:
        session = room.minigame_session
        self.scheduler.cancel(room, QUIZ_STEP)
        if session is None:
            return
        step = quiz.pending_step(session)
        due = quiz.step_due_at(session)
        if step is None or due is None:
            return

        code, session_id = room.code, session.session_id
        self.scheduler.call_at(
            room,
            due,
            QUIZ_STEP,
            lambda: self._on_quiz_timer(code, session_id, step),
            token=session_id,
        )

    def _on_quiz_timer(self, code: str, session_id: str, expected_step: str) -> None:
        with self.registry.lock:
            room = self.registry.get_room(code)
            session = room.minigame_session if room is not None else None
            if session is None or session.session_id != session_id or quiz.pending_step(session) != expected_step:
                logger.debug(f"[timer-stale] room={code} kind=quiz expected={expected_step}")
                return

            if expected_step == "start_round":
                payload = quiz.start_round(session, self.now(), self.rng)
                self.send(events.QUIZ_ROUND_START, payload, code)
                self._arm_quiz(room)
            elif expected_step == "reveal":
                self._quiz_reveal(room)
            else:
                self._quiz_advance(room)

    def _quiz_reveal(self, room: Room) -> None:
        session = room.minigame_session
        payload = quiz.reveal_round(session, self.now())
        if payload is None:
            return
        self.send(events.QUIZ_ROUND_REVEAL, payload, room.code)
        self._arm_quiz(room)

    def _quiz_advance(self, room: Room) -> None:
        session = room.minigame_session
        if not quiz.advance_session(session, self.now()):
            self._arm_quiz(room)
            return

        quiz.apply_points(room.state, session)
        room.minigame_session = None
        self.scheduler.cancel(room, QUIZ_STEP)
        logger.info(f"[quiz-end] room={room.code}")
        self.send(events.MINIGAME_END, quiz.end_payload(session), room.code)
        self.broadcast_state(room)

    # -- disconnect grace -----------------------------------------------------

    def _arm_grace(self, room: Room, session_id: str, connection_id: str, delay_ms: int) -> None:
        code = room.code
        for h in self.scheduler.pending(room, GRACE):
            if h.token == session_id:
                h.cancel()

        def _expire() -> None:
            with self.registry.lock:
                current = self.registry.get_room(code)
                if current is None:
                    return
                member = current.find_session(session_id)
                if member is None or member.connected or member.connection_id != connection_id:
                    return
                logger.info(f"[grace-expired] room={code} session={session_id}")
                self.remove_player_now(code, connection_id)

        self.scheduler.call_later(room, delay_ms, GRACE, _expire, token=session_id)

    # -- timers ---------------------------------------------------------------

    def rearm(self, room: Room) -> None:
        """Cancel every timer of ``room`` and re-arm the ones its state still needs."""
        with self.registry.lock:
            self.scheduler.cancel_all(room)
            now = self.now()

            cur = room.state.current_player()
            if room.state.is_rolling and cur is not None:
                self._arm_dice_settle(room, cur.id, self.dice_settle_ms)

            self._arm_duel(room)
            self._arm_quiz(room)

            for m in room.lobby:
                if not m.connected and m.session_id and m.disconnected_at is not None:
                    remaining = m.disconnected_at + self.reconnect_grace_ms - now
                    self._arm_grace(room, m.session_id, m.connection_id, max(0, remaining))

    def _minigame_started(self, room: Room, details: dict) -> None:
        mg = room.state.current_minigame
        payload = {"type": events.MINIGAME_START, "minigameId": mg.minigame_id}
        payload.update(details)
        logger.info(f"[minigame-start] room={room.code} minigame={mg.minigame_id}")
        self.send(events.MINIGAME_START, payload, room.code)
