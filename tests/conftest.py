import pytest
from gamenight.app import create_app, db


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(client):
    """Register a user and return auth headers."""
    res = client.post('/api/auth/register', json={
        'username': 'testuser', 'email': 'test@example.com',
        'password': 'password123', 'name': 'Test User',
    })
    token = res.get_json()['token']
    return {'Authorization': f'Bearer {token}', 'Content-Type': 'application/json'}


@pytest.fixture
def every_day_game(client, auth_headers):
    """A game that plays every weekday, owned by the ``auth_headers`` user."""
    res = client.post('/api/games', json={
        'name': 'Curse of Strahd', 'description': 'Bring dice; snacks, too.',
        'play_days': [0, 1, 2, 3, 4, 5, 6], 'scheduling_window_months': 2,
        'default_start_time': '19:00', 'default_end_time': '23:00',
    }, headers=auth_headers)
    return res.get_json()['game']
