import os
import sys
import pytest

# Ensure the backend root (containing the `tuttifrutti` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from tuttifrutti import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:3000']
    MIN_PLAYERS = 2
    LETTER_REROLL_POLICY = 'client'
    LETTER_REROLL_WINDOW_SEC = 3
    RANKING_TIE_POLICY = 'sequential'


CATEGORIES = ['Fruit', 'Country', 'Animal', 'Name', 'Colour']


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import tuttifrutti.models  # noqa: F401
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
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def room_with_players(flask_app):
    """A lobby with its organizer and one guest, built through the services."""
    from tuttifrutti.services.game import lifecycle
    created = lifecycle.create_room('Olivia')
    guest = lifecycle.join_room(created['room']['invitation_code'], 'Gabriel')
    return {
        'room_id': created['room']['id'],
        'code': created['room']['invitation_code'],
        'organizer_id': created['player']['id'],
        'guest_id': guest.id,
    }


@pytest.fixture()
def started_game(room_with_players):
    from tuttifrutti.services.game import lifecycle
    rnd = lifecycle.start_game(room_with_players['room_id'], CATEGORIES, room_with_players['organizer_id'])
    return dict(room_with_players, round_id=rnd.id)
