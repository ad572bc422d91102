import random

import pytest

from retroparty.config import Config
from retroparty.game.models import LobbyMember
from retroparty.game.scheduler import Scheduler
from retroparty.game.service import RoomRegistry
from retroparty.game.turns import create_initial_state, initialize_players
from retroparty.realtime.hub import GameHub
from retroparty.server import create_app


BOARD_SEED = 424242


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    TRUST_PROXY_HEADERS = False
    RECONNECT_GRACE_SEC = 30
    DICE_SETTLE_MS = 650


class FakeClock:
    def __init__(self, start=1_000_000):
        self.now = start

    def __call__(self):
        return self.now


class ManualScheduler(Scheduler):
    """Scheduler whose timers only fire when the test advances the clock."""

    def __init__(self, clock=None):
        super().__init__(clock=clock or FakeClock())
        self.armed = []

    def _start(self, handle):
        self.armed.append(handle)

    def live(self, kind=None):
        return [h for h in self.armed if not h.cancelled and (kind is None or h.kind == kind)]

    def advance(self, ms):
        """Move the clock forward, firing every timer that falls due on the way."""
        target = self.clock.now + ms
        while True:
            due = [h for h in self.live() if h.due_at <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.due_at)
            self.clock.now = max(self.clock.now, handle.due_at)
            self.fire(handle)
        self.clock.now = target

    def run_until_idle(self, limit=500):
        for _ in range(limit):
            pending = self.live()
            if not pending:
                return
            handle = min(pending, key=lambda h: h.due_at)
            self.clock.now = max(self.clock.now, handle.due_at)
            self.fire(handle)
        raise AssertionError("timers never settled")


class RecordingEmitter:
    def __init__(self):
        self.sent = []

    def __call__(self, event, payload, to):
        self.sent.append((event, payload, to))

    def of(self, event, to=None):
        return [p for e, p, t in self.sent if e == event and (to is None or t == to)]

    def last(self, event, to=None):
        found = self.of(event, to)
        return found[-1] if found else None

    def clear(self):
        self.sent.clear()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture()
def emitter():
    return RecordingEmitter()


@pytest.fixture()
def registry():
    return RoomRegistry(state_factory=lambda: create_initial_state(seed=BOARD_SEED))


@pytest.fixture()
def hub(registry, scheduler, emitter):
    return GameHub(registry, scheduler, emitter, rng=random.Random(7))


@pytest.fixture()
def playing_state():
    """A started two-player game on the default seeded board."""
    state = create_initial_state(seed=BOARD_SEED)
    initialize_players(
        state,
        [
            LobbyMember(connection_id="p1", session_id="s1", name="Ada", is_host=True),
            LobbyMember(connection_id="p2", session_id="s2", name="Bob"),
        ],
    )
    return state


@pytest.fixture()
def flask_app(clock):
    application, socketio = create_app(TestConfig, scheduler=ManualScheduler(clock), rng=random.Random(3))
    application.socketio = socketio
    yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _make():
        c = flask_app.socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(c)
        return c

    yield _make
    for c in clients:
        if c.is_connected():
            c.disconnect()
