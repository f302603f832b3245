import os
import sys
import pytest

# Ensure the backend root (containing the `memory_match` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from memory_match import create_app, db, socketio
from memory_match.services.game import get_services

TEST_ADMIN_KEY = 'test-admin-key'
ADMIN_HEADERS = {'X-Admin-Key': TEST_ADMIN_KEY}


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ADMIN_KEY = TEST_ADMIN_KEY
    # Rate limiting gets its own test; elsewhere flips may follow each other immediately
    FLIP_COOLDOWN_MS = 0
    MISMATCH_HIDE_DELAY_MS = 200
    HIDE_RETRY_MS = 50
    TIMER_TICK_SEC = 1
    TIMER_LOOP_ENABLED = False
    TEAM_NAME_MAX_LEN = 30
    CORS_ORIGINS = ['*']


@pytest.fixture()
def flask_app(tmp_path):
    # File database so background threads get their own connections
    class _Config(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'memory_match.db'}"

    application = create_app(_Config)
    with application.app_context():
        from memory_match.models import GameConfig
        from memory_match.services.game.deck import seed_default_deck
        db.create_all()
        GameConfig.get()
        seed_default_deck()
        db.session.commit()
        yield application
        services = get_services(application)
        pending = [s.pending_hide for s in list(services.turns._states.values()) if s.pending_hide]
        services.turns.reset_all(retire=True)
        for task in pending:
            task.wait(2)
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def services(flask_app):
    return get_services(flask_app)


@pytest.fixture()
def events(services, monkeypatch):
    """Record every broadcast instead of emitting it."""
    recorded = []

    def _record(event, payload=None, to=None):
        recorded.append({'event': event, 'payload': payload, 'to': to})

    monkeypatch.setattr(services.gateway, '_emit', _record)
    return recorded


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
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


def set_deck(pairs):
    """Replace the deck with (pairId, faceA, faceB[, enabled]) tuples."""
    from memory_match.services.game.deck import replace_deck
    payload = []
    for p in pairs:
        entry = {'pairId': p[0], 'faceA': p[1], 'faceB': p[2]}
        if len(p) > 3:
            entry['enabled'] = p[3]
        payload.append(entry)
    return replace_deck(payload)


def cards_by_content(team_id):
    from memory_match.models import Card
    return {c.content: c for c in Card.query.filter_by(team_id=team_id).all()}
