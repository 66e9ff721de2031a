import os
import sys
import pytest

# Ensure the backend root (containing the `memory_game` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from memory_game import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    HIDE_DELAY_MS = 1000
    LEADERBOARD_SIZE = 10
    PERSONAL_SCORES_LIMIT = 20
    TIME_LIMITS_SEC = {3: 60, 6: 120}


PASSWORD = 'correct-horse-42!'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import memory_game.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


@pytest.fixture()
def logged_in_client(client):
    res = client.post('/register', json={'username': 'alice', 'password': PASSWORD})
    assert res.status_code == 201
    return client


def session_snapshot(client):
    """The game snapshot currently stored in the test client's session."""
    with client.session_transaction() as sess:
        return sess.get('game')


def pairs_by_image(snapshot):
    """Map each image to the two slots holding it."""
    slots = {}
    for position, card in enumerate(snapshot['cards']):
        slots.setdefault(card['image'], []).append(position)
    return slots


def play_to_completion(client, difficulty='small'):
    """Start a game over HTTP and find every pair; returns the last flip response."""
    res = client.post('/api/game/new', json={'difficulty': difficulty})
    assert res.status_code == 201
    res = None
    for first, second in pairs_by_image(session_snapshot(client)).values():
        assert client.post('/api/game/flip', json={'position': first}).status_code == 200
        res = client.post('/api/game/flip', json={'position': second})
        assert res.status_code == 200
    return res
