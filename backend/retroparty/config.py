import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")
    TESTING = False

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Game
    MAX_PLAYERS = int(os.environ.get("MAX_PLAYERS", "20"))
    MAX_ROUNDS = int(os.environ.get("MAX_ROUNDS", "12"))
    RECONNECT_GRACE_SEC = int(os.environ.get("RECONNECT_GRACE_SEC", "30"))
    DICE_SETTLE_MS = int(os.environ.get("DICE_SETTLE_MS", "650"))
    QUIZ_ROUNDS = int(os.environ.get("QUIZ_ROUNDS", "3"))

    # Board
    BOARD_COLS = int(os.environ.get("BOARD_COLS", "20"))
    BOARD_ROWS = int(os.environ.get("BOARD_ROWS", "6"))
    BOARD_LENGTH = int(os.environ.get("BOARD_LENGTH", "45"))
