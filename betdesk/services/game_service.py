"""
Coin flip play, game history and public leaderboards
"""

import logging
import random
from datetime import timedelta

from sqlalchemy import or_, update

from betdesk.models.betting_models import (
    db, User, UserRole, Game, GameType, GameOutcome, GameResult, Transaction, utcnow,
)
from betdesk.errors import ValidationFailed, AccountBlocked
from betdesk.services import wallet_service, odds_service, user_service
from betdesk.utils.format_utils import format_game_type
from betdesk.utils.logging_config import log_business_event
from betdesk.utils.metrics import record_bet, record_settlements

logger = logging.getLogger(__name__)

_rng = random.SystemRandom()

LEADERBOARD_SORTS = ('totalWinnings', 'winRate', 'totalWins')
TIME_FRAMES = ('today', 'this-week', 'this-month', 'all-time')


def parse_bet_amount(value, minimum=1):
    if isinstance(value, bool):
        raise ValidationFailed("Bet amount must be a whole number")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationFailed("Bet amount must be a whole number")
        value = int(value)
    try:
        amount = int(value)
    except (TypeError, ValueError):
        raise ValidationFailed("Bet amount must be a whole number")
    if amount < minimum:
        raise ValidationFailed(f"Bet amount must be at least {minimum}")
    return amount


def claim_pending_game(game, result, payout=0):
    """
    Move a pending game to its final result with a conditional UPDATE.

    Returns False when the game is no longer pending, which means a concurrent
    settlement already paid it; callers must then skip the credit.
    """
    claimed = db.session.execute(
        update(Game)
        .where(Game.id == game.id, Game.result == GameResult.PENDING.value)
        .values(result=result, payout=payout)
        .execution_options(synchronize_session=False)
    )
    db.session.expire(game, ['result', 'payout'])
    return claimed.rowcount == 1


def ensure_can_bet(user):
    if user.is_blocked:
        raise AccountBlocked()


def flip_coin(rng=None):
    return (rng or _rng).choice([GameOutcome.HEADS.value, GameOutcome.TAILS.value])


def play_coin_flip(user, bet_amount, prediction, rng=None):
    """
    Debit, flip and credit in one transaction. Payout is floor(bet × odds / 100)
    with the player's resolved coin_flip odds.
    """
    ensure_can_bet(user)
    bet_amount = parse_bet_amount(bet_amount)
    if prediction not in (GameOutcome.HEADS.value, GameOutcome.TAILS.value):
        raise ValidationFailed("Prediction must be heads or tails")

    odds = odds_service.resolve_odds(user, GameType.COIN_FLIP.value)
    try:
        balance = wallet_service.debit(user.id, bet_amount)
        outcome = flip_coin(rng)
        payout = bet_amount * odds // 100 if outcome == prediction else 0
        if payout:
            balance = wallet_service.credit(user.id, payout)

        game = Game(
            user_id=user.id,
            game_type=GameType.COIN_FLIP.value,
            bet_amount=bet_amount,
            prediction=prediction,
            result=outcome,
            payout=payout,
            balance_after=balance,
        )
        db.session.add(game)
        wallet_service.record_transaction(user.id, payout - bet_amount, user.id,
                                          f"Coin flip: {outcome}", balance)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    record_bet(GameType.COIN_FLIP.value, bet_amount)
    record_settlements(GameType.COIN_FLIP.value, 1)
    log_business_event('bet_placed', game_type=GameType.COIN_FLIP.value, game_id=game.id,
                       player_id=user.id, amount=bet_amount, payout=payout)
    return game, balance


def _scoped_games(actor):
    query = Game.query
    if actor.role == UserRole.SUBADMIN.value:
        player_ids = user_service.managed_user_ids(actor)
        query = query.filter(or_(Game.user_id.in_(player_ids), Game.user_id == actor.id))
    elif actor.role != UserRole.ADMIN.value:
        query = query.filter(Game.user_id == actor.id)
    return query


def list_games(actor):
    return _scoped_games(actor).order_by(Game.created_at.desc(), Game.id.desc()).all()


def my_history(user):
    return Game.query.filter_by(user_id=user.id).order_by(Game.created_at.desc(), Game.id.desc()).all()


def recent_games(actor, limit=10):
    return _scoped_games(actor).order_by(Game.created_at.desc(), Game.id.desc()).limit(limit).all()


def games_for_user(actor, user_id):
    user_service.get_visible_user(actor, user_id)
    return Game.query.filter_by(user_id=user_id).order_by(Game.created_at.desc(), Game.id.desc()).all()


def top_winners(limit=10):
    rows = (
        db.session.query(Game, User.username)
        .join(User, Game.user_id == User.id)
        .filter(Game.payout > 0)
        .order_by(Game.payout.desc(), Game.id.desc())
        .limit(limit)
        .all()
    )
    return [
        {
            'id': game.id,
            'username': username,
            'game': format_game_type(game.game_type),
            'amount': game.bet_amount,
            'payout': game.payout,
            'createdAt': game.created_at.isoformat() if game.created_at else None,
        }
        for game, username in rows
    ]


def _time_frame_start(time_frame, now=None):
    now = now or utcnow()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if time_frame == 'today':
        return midnight
    if time_frame == 'this-week':
        return midnight - timedelta(days=midnight.weekday())
    if time_frame == 'this-month':
        return midnight.replace(day=1)
    return None


def leaderboard(time_frame='all-time', sort_by='totalWinnings', game_type=None, limit=10):
    if time_frame not in TIME_FRAMES:
        raise ValidationFailed("Invalid time frame")
    if sort_by not in LEADERBOARD_SORTS:
        raise ValidationFailed("Invalid sort field")

    query = db.session.query(Game.user_id, User.username, Game.bet_amount, Game.payout).join(
        User, Game.user_id == User.id
    )
    start = _time_frame_start(time_frame)
    if start is not None:
        query = query.filter(Game.created_at >= start)
    if game_type:
        query = query.filter(Game.game_type == game_type)

    stats = {}
    for user_id, username, bet_amount, payout in query:
        entry = stats.setdefault(user_id, {
            'userId': user_id,
            'username': username,
            'totalBets': 0,
            'totalWins': 0,
            'winRate': 0,
            'totalWinnings': 0,
        })
        entry['totalBets'] += 1
        if payout > 0:
            entry['totalWins'] += 1
            entry['totalWinnings'] += payout - bet_amount

    for entry in stats.values():
        entry['winRate'] = round(entry['totalWins'] * 100 / entry['totalBets'], 1) if entry['totalBets'] else 0

    ranked = sorted(stats.values(), key=lambda e: (e[sort_by], e['totalBets']), reverse=True)
    return ranked[:limit]


def list_transactions(actor, user_id=None):
    query = Transaction.query
    if user_id is not None:
        user_service.get_visible_user(actor, user_id)
        query = query.filter(Transaction.user_id == user_id)
    elif actor.role == UserRole.SUBADMIN.value:
        player_ids = user_service.managed_user_ids(actor)
        query = query.filter(or_(Transaction.user_id.in_(player_ids), Transaction.user_id == actor.id))
    elif actor.role != UserRole.ADMIN.value:
        query = query.filter(Transaction.user_id == actor.id)
    return query.order_by(Transaction.created_at.desc(), Transaction.id.desc()).all()
