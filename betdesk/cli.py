"""
Flask CLI commands for bootstrapping and demo data

    flask --app betdesk.main:create_app create-admin --username admin --password secret
    flask --app betdesk.main:create_app seed-game-odds
    flask --app betdesk.main:create_app seed-risk-data
    flask --app betdesk.main:create_app seed-dashboard-data
"""

import logging
import random
from datetime import timedelta

import click
from werkzeug.security import generate_password_hash

from betdesk.models.betting_models import db, User, UserRole, SatamatkaGameMode, utcnow
from betdesk.schemas import MarketCreate, CricketTossCreate
from betdesk.utils.format_utils import format_currency
from betdesk.services import (
    user_service, odds_service, satamatka_service, team_match_service, wallet_service, game_service,
)

logger = logging.getLogger(__name__)


def _admin():
    admin = User.query.filter_by(role=UserRole.ADMIN.value).order_by(User.id).first()
    if admin is None:
        raise click.ClickException("No admin user exists; run create-admin first")
    return admin


def _get_or_create(username, password, role, creator, balance=None):
    user = User.query.filter_by(username=username).first()
    if user is None:
        user = user_service.create_user(username, password, role=role, creator=creator)
    if balance is not None and user.balance < balance:
        wallet_service.credit(user.id, balance - user.balance)
        db.session.commit()
    return user


def create_admin(username, password):
    user = User.query.filter_by(username=username).first()
    if user is None:
        user = User(
            username=username,
            password_hash=generate_password_hash(password),
            role=UserRole.ADMIN.value,
            balance=0,
        )
        db.session.add(user)
        created = True
    else:
        user.password_hash = generate_password_hash(password)
        user.role = UserRole.ADMIN.value
        user.is_blocked = False
        created = False
    db.session.commit()
    logger.info(f"Admin {username} {'created' if created else 'reset'}")
    return user, created


def seed_game_odds():
    count = 0
    for game_type in odds_service.ODDS_GAME_TYPES:
        if odds_service.admin_odd(game_type) is None:
            odds_service.upsert_odd(game_type, odds_service.default_odds(game_type), commit=False)
            count += 1
    db.session.commit()
    return count


def seed_risk_data(rng=None):
    rng = rng or random.Random(7)
    admin = _admin()
    now = utcnow()

    players = [
        _get_or_create(f"riskplayer{i}", "password123", UserRole.PLAYER.value, admin, balance=500000)
        for i in range(1, 4)
    ]

    market = satamatka_service.create_market(MarketCreate(
        name="Demo Gali",
        type='gali',
        openTime=now - timedelta(hours=1),
        closeTime=now + timedelta(hours=6),
        status='open',
    ))
    toss = team_match_service.create_toss(CricketTossCreate(
        teamA="Mumbai", teamB="Chennai", tossTime=now + timedelta(days=1),
    ))

    bets = 0
    for player in players:
        for _ in range(3):
            satamatka_service.play(player, market.id, rng.choice([1000, 5000, 20000]),
                                   SatamatkaGameMode.JODI.value, f"{rng.randint(0, 99):02d}")
            bets += 1
        team_match_service.play(player, toss.id, rng.choice(['team_a', 'team_b']), 10000, toss=True)
        bets += 1
    return market, toss, bets


def seed_dashboard_data(rng=None):
    rng = rng or random.Random(11)
    admin = _admin()

    subadmin = _get_or_create("demosubadmin", "password123", UserRole.SUBADMIN.value, admin, balance=1000000)
    players = [
        _get_or_create(f"demoplayer{i}", "password123", UserRole.PLAYER.value, subadmin)
        for i in range(1, 4)
    ]

    for player in players:
        wallet_request = wallet_service.create_request(player, {
            'amount': 50000,
            'requestType': 'deposit',
            'paymentMode': 'upi',
            'paymentDetails': {'upiId': f"{player.username}@upi"},
        })
        wallet_service.review_request(subadmin, wallet_request.id, 'approved', 'Seeded deposit')
        for _ in range(5):
            game_service.play_coin_flip(player, rng.choice([100, 500, 1000]),
                                        rng.choice(['heads', 'tails']), rng=rng)
    return subadmin, players


def register_cli(app):
    @app.cli.command('create-admin')
    @click.option('--username', default='admin', show_default=True)
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
    def create_admin_command(username, password):
        """Create the admin user, or reset its password and role."""
        user, created = create_admin(username, password)
        click.echo(f"Admin '{user.username}' {'created' if created else 'updated'} (id={user.id})")

    @app.cli.command('seed-game-odds')
    def seed_game_odds_command():
        """Insert the default admin odds for every game type."""
        count = seed_game_odds()
        click.echo(f"Seeded {count} admin odds rows")

    @app.cli.command('seed-risk-data')
    def seed_risk_data_command():
        """Create demo players with open satamatka and toss exposure."""
        market, toss, bets = seed_risk_data()
        click.echo(f"Market {market.id} and toss {toss.id} seeded with {bets} bets")

    @app.cli.command('seed-dashboard-data')
    def seed_dashboard_data_command():
        """Create a subadmin with players, deposits and coin flip games."""
        subadmin, players = seed_dashboard_data()
        click.echo(f"Subadmin {subadmin.username} seeded with {len(players)} players")
        for player in players:
            click.echo(f"  {player.username}: {format_currency(player.balance)}")
