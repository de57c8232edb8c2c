import pytest

from quips.config import Config
from quips.game import state
from quips.game.service import RoomService
from quips.server import create_app
from quips.store.memory import MemoryRoomStore


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SOCKETIO_ASYNC_MODE = "threading"
    TRUST_PROXY_HEADERS = False
    REDIS_URL = ""
    SWEEP_INTERVAL_SEC = 0
    LOG_LEVEL = "WARNING"


def fixed_prompts(count, custom_prompts=(), categories=()):
    custom = list(custom_prompts)
    return (custom + [f"Prompt {i}" for i in range(1, count + 1)])[:count]


@pytest.fixture()
def store():
    return MemoryRoomStore()


@pytest.fixture()
def service(store):
    return RoomService(store, prompt_picker=fixed_prompts, quip_picker=lambda: "Safety quip")


@pytest.fixture()
def flask_app(store):
    application, _ = create_app(TestConfig, store=store)
    application.extensions["quips"].prompt_picker = fixed_prompts
    yield application


@pytest.fixture()
def socketio(flask_app):
    return flask_app.extensions["socketio"]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app, socketio, client):
    test_client = socketio.test_client(flask_app, flask_test_client=client)
    yield test_client
    if test_client.is_connected():
        test_client.disconnect()


@pytest.fixture()
def lobby():
    """A lobby room with host Al and players Bo and Cy."""
    room = state.create_room("ABCD", "Al", 3)
    state.join_room(room, "Bo")
    state.join_room(room, "Cy")
    return room


@pytest.fixture()
def started(lobby):
    state.start_game(lobby, lobby.host_id, rounds=2, prompt_picker=fixed_prompts)
    return lobby
