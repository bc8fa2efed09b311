import random
from datetime import timedelta

import pytest

from betdesk.main import create_app
from betdesk.cli import create_admin
from betdesk.models.betting_models import db, UserRole, utcnow
from betdesk.schemas import MarketCreate, TeamMatchCreate, CricketTossCreate
from betdesk.services import user_service, satamatka_service, team_match_service

PASSWORD = "password123"


@pytest.fixture
def app(tmp_path):
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SQLALCHEMY_ENGINE_OPTIONS': {},
        'REDIS_URL': None,
        'UPLOAD_DIR': str(tmp_path / 'uploads'),
        'DEFAULT_PLAYER_BALANCE': 100000,
        'COIN_FLIP_MULTIPLIER': 1.95,
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin(app):
    user, _ = create_admin("admin", PASSWORD)
    return user


@pytest.fixture
def subadmin(admin):
    return user_service.create_user("subadmin", PASSWORD, role=UserRole.SUBADMIN.value, creator=admin)


@pytest.fixture
def player(subadmin):
    return user_service.create_user("player", PASSWORD, creator=subadmin)


@pytest.fixture
def other_player(admin):
    """Player managed directly by the admin, outside the subadmin's scope"""
    return user_service.create_user("outsider", PASSWORD, creator=admin)


@pytest.fixture
def login(client):
    def _login(user, password=PASSWORD):
        response = client.post('/api/login', json={'username': user.username, 'password': password})
        assert response.status_code == 200, response.get_json()
        return response
    return _login


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def open_market(app):
    now = utcnow()
    return satamatka_service.create_market(MarketCreate(
        name="Test Gali",
        type='gali',
        openTime=now - timedelta(hours=1),
        closeTime=now + timedelta(hours=5),
    ))


@pytest.fixture
def football_match(app):
    return team_match_service.create_match(TeamMatchCreate(
        teamA="Arsenal",
        teamB="Chelsea",
        category='football',
        matchTime=utcnow() + timedelta(days=1),
        oddTeamA=180,
        oddTeamB=220,
    ))


@pytest.fixture
def toss_match(app):
    return team_match_service.create_toss(CricketTossCreate(
        teamA="India",
        teamB="Australia",
        tossTime=utcnow() + timedelta(hours=3),
    ))
