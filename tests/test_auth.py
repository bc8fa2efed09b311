"""
Registration, login and session handling
"""

from betdesk.models.betting_models import db


def test_register_creates_player_and_logs_in(client):
    response = client.post('/api/register', json={'username': 'newbie', 'password': 'secret1', 'role': 'admin'})
    assert response.status_code == 201

    body = response.get_json()
    assert body['username'] == 'newbie'
    assert body['role'] == 'player'
    assert 'passwordHash' not in body and 'password_hash' not in body

    me = client.get('/api/user')
    assert me.status_code == 200
    assert me.get_json()['username'] == 'newbie'


def test_register_rejects_duplicate_and_short_credentials(client, player):
    response = client.post('/api/register', json={'username': 'player', 'password': 'secret1'})
    assert response.status_code == 400
    assert response.get_json() == {'success': False, 'error': 'Username already exists'}

    assert client.post('/api/register', json={'username': 'ab', 'password': 'secret1'}).status_code == 400
    assert client.post('/api/register', json={'username': 'abcd', 'password': '123'}).status_code == 400


def test_subadmin_registration_creates_assigned_player(client, login, subadmin):
    login(subadmin)
    response = client.post('/api/register', json={'username': 'child', 'password': 'secret1', 'role': 'subadmin'})
    assert response.status_code == 201

    body = response.get_json()
    assert body['role'] == 'player'
    assert body['assignedTo'] == subadmin.id

    # the subadmin stays logged in
    assert client.get('/api/user').get_json()['id'] == subadmin.id


def test_admin_can_create_subadmin(client, login, admin):
    login(admin)
    response = client.post('/api/register', json={'username': 'manager', 'password': 'secret1', 'role': 'subadmin'})
    assert response.status_code == 201
    assert response.get_json()['role'] == 'subadmin'
    assert response.get_json()['assignedTo'] is None


def test_login_with_bad_password(client, player):
    response = client.post('/api/login', json={'username': 'player', 'password': 'wrong-password'})
    assert response.status_code == 401
    assert response.get_json()['error'] == 'Invalid username or password'


def test_blocked_user_cannot_login(client, player):
    player.is_blocked = True
    db.session.commit()

    response = client.post('/api/login', json={'username': 'player', 'password': 'password123'})
    assert response.status_code == 403
    assert response.get_json()['error'] == 'Account is blocked. Please contact support.'


def test_logout_clears_session(client, login, player):
    login(player)
    assert client.get('/api/user').status_code == 200

    assert client.post('/api/logout').get_json() == {'success': True}
    assert client.get('/api/user').status_code == 401


def test_protected_route_requires_login(client):
    response = client.get('/api/games')
    assert response.status_code == 401
    assert response.get_json()['success'] is False


def test_player_cannot_reach_staff_routes(client, login, player):
    login(player)
    assert client.get('/api/users').status_code == 403
