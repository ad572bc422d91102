from __future__ import annotations

# Inbound
CREATE_ROOM = "create_room"
JOIN_ROOM = "join_room"
RECONNECT_ROOM = "reconnect_room"
LEAVE_ROOM = "leave_room"
START_GAME = "start_game"
RESET_GAME = "reset_game"
REGENERATE_BOARD = "regenerate_board"
ROLL_DICE = "roll_dice"
MOVE_PLAYER = "move_player"
OPEN_QUESTION = "open_question"
VOTE_QUESTION = "vote_question"
VALIDATE_QUESTION = "validate_question"
NEXT_TURN = "next_turn"
SKILL_TIMER_PROGRESS = "SKILL_TIMER_PROGRESS"
SKILL_TIMER_COMPLETE = "SKILL_TIMER_COMPLETE"
DUEL_SUBMIT = "DUEL_SUBMIT"
QUIZ_SUBMIT = "QUIZ_SUBMIT"

# Outbound
SERVER_HELLO = "server_hello"
ROOM_CREATED = "room_created"
ROOM_JOINED = "room_joined"
ROOM_RECONNECTED = "room_reconnected"
ROOM_CLOSED = "room_closed"
ERROR_MSG = "error_msg"
LOBBY_UPDATE = "lobby_update"
STATE_UPDATE = "state_update"
MINIGAME_START = "MINIGAME_START"
QUIZ_ROUND_START = "QUIZ_ROUND_START"
QUIZ_ROUND_REVEAL = "QUIZ_ROUND_REVEAL"
MINIGAME_END = "MINIGAME_END"
