import os
import sys
import pytest

# Ensure the backend root (containing the `giftswap` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from giftswap import create_app, db, socketio


HOST_USERNAME = 'host'
HOST_PASSWORD = 'test-password'


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    BCRYPT_LOG_ROUNDS = 4
    HOST_USERNAME = HOST_USERNAME
    HOST_PASSWORD = HOST_PASSWORD
    CORS_ORIGINS = ['http://localhost:5173']
    MAX_VOTER_NAME_LENGTH = 64


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import giftswap.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def host_client(flask_app):
    from giftswap.models import Host
    host = Host(username=HOST_USERNAME)
    host.set_password(HOST_PASSWORD)
    db.session.add(host)
    db.session.commit()

    test_client = flask_app.test_client()
    res = test_client.post('/login', json={'username': HOST_USERNAME, 'password': HOST_PASSWORD})
    assert res.status_code == 200
    return test_client


@pytest.fixture()
def voter_client(flask_app):
    """Build a separate device (own cookie jar) with a voter name set."""
    def _make(name):
        device = flask_app.test_client()
        res = device.post('/api/voter', json={'name': name})
        assert res.status_code == 200
        return device
    return _make


@pytest.fixture()
def participants(flask_app):
    """Alice, Bob and Cara with sort_order 1, 2, 3."""
    from giftswap.models import Participant
    rows = [Participant(name=name, sort_order=i + 1) for i, name in enumerate(['Alice', 'Bob', 'Cara'])]
    db.session.add_all(rows)
    db.session.commit()
    return rows


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
