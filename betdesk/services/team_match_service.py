"""
Team matches and cricket toss markets.

Toss markets are team matches flagged is_toss; both settle through
settle_match once the admin declares the winning side.
"""

import logging

from sqlalchemy import update

from betdesk.models.betting_models import (
    db, UserRole, Game, GameType, GameResult, TeamMatch, TeamMatchResult, MatchCategory,
    MarketStatus, utcnow,
)
from betdesk.errors import ValidationFailed, NotFound, Conflict, MarketClosed
from betdesk.services import wallet_service, user_service
from betdesk.services.game_service import ensure_can_bet, parse_bet_amount, claim_pending_game
from betdesk.utils.logging_config import log_business_event
from betdesk.utils.metrics import record_bet, record_settlements

logger = logging.getLogger(__name__)

CATEGORIES = {c.value for c in MatchCategory}
MATCH_STATUSES = (MarketStatus.OPEN.value, MarketStatus.CLOSED.value, MarketStatus.RESULTED.value)
SIDES = (TeamMatchResult.TEAM_A.value, TeamMatchResult.TEAM_B.value)
MATCH_OUTCOMES = SIDES + (TeamMatchResult.DRAW.value,)
MIN_TOSS_BET = 10


def get_match(match_id, toss=None):
    match = db.session.get(TeamMatch, match_id)
    if match is None or (toss is not None and match.is_toss != toss):
        raise NotFound("Cricket toss not found" if toss else "Match not found")
    return match


def list_matches(toss=False):
    return (
        TeamMatch.query
        .filter(TeamMatch.is_toss == toss)
        .order_by(TeamMatch.match_time.desc(), TeamMatch.id.desc())
        .all()
    )


def active_matches(toss=False):
    return (
        TeamMatch.query
        .filter(
            TeamMatch.is_toss == toss,
            TeamMatch.status == MarketStatus.OPEN.value,
            TeamMatch.match_time > utcnow(),
        )
        .order_by(TeamMatch.match_time, TeamMatch.id)
        .all()
    )


def matches_by_category(category):
    if category not in CATEGORIES:
        raise ValidationFailed("Invalid category")
    return (
        TeamMatch.query
        .filter(TeamMatch.category == category, TeamMatch.is_toss.is_(False))
        .order_by(TeamMatch.match_time.desc(), TeamMatch.id.desc())
        .all()
    )


def create_match(payload):
    """payload is a validated TeamMatchCreate"""
    match = TeamMatch(
        team_a=payload.team_a.strip(),
        team_b=payload.team_b.strip(),
        category=payload.category,
        description=payload.description,
        match_time=payload.match_time,
        odd_team_a=payload.odd_team_a,
        odd_team_b=payload.odd_team_b,
        odd_draw=payload.odd_draw or 300,
        status=MarketStatus.OPEN.value,
        result=TeamMatchResult.PENDING.value,
    )
    db.session.add(match)
    db.session.commit()
    logger.info(f"Match {match.id} '{match.name}' created")
    return match


def create_toss(payload):
    """payload is a validated CricketTossCreate"""
    if payload.team_a.strip().lower() == payload.team_b.strip().lower():
        raise ValidationFailed("Teams must be different")
    match = TeamMatch(
        team_a=payload.team_a.strip(),
        team_b=payload.team_b.strip(),
        category=MatchCategory.CRICKET.value,
        description=payload.description,
        match_time=payload.toss_time,
        odd_team_a=payload.odd_team_a,
        odd_team_b=payload.odd_team_b,
        odd_draw=None,
        status=MarketStatus.OPEN.value,
        result=TeamMatchResult.PENDING.value,
        is_toss=True,
    )
    db.session.add(match)
    db.session.commit()
    logger.info(f"Cricket toss {match.id} '{match.name}' created")
    return match


def update_match(match_id, payload):
    match = get_match(match_id)
    if match.result != TeamMatchResult.PENDING.value:
        raise Conflict("Cannot edit a match after its result is declared")
    for field in ('team_a', 'team_b', 'category', 'description', 'match_time',
                  'odd_team_a', 'odd_team_b', 'odd_draw'):
        value = getattr(payload, field)
        if value is not None:
            setattr(match, field, value)
    db.session.commit()
    return match


def set_status(match_id, status, toss=None):
    match = get_match(match_id, toss)
    if status not in MATCH_STATUSES:
        raise ValidationFailed("Invalid status")
    if status == MarketStatus.RESULTED.value and match.result == TeamMatchResult.PENDING.value:
        raise ValidationFailed("Declare a result before marking the match as resulted")
    match.status = status
    db.session.commit()
    logger.info(f"Match {match.id} status -> {status}")
    return match


def game_odds(game, match):
    """Odds a game settles at: the snapshot taken at bet time, else the match's current odds"""
    snapshot = game.get_game_data()
    if snapshot.get('odds'):
        return int(snapshot['odds'])
    return match.odds_for(game.prediction)


def settle_match(match):
    pending = Game.query.filter_by(match_id=match.id, result=GameResult.PENDING.value).all()
    settled = 0
    for game in pending:
        if game.prediction != match.result:
            settled += claim_pending_game(game, GameResult.LOSS.value)
            continue

        payout = game.bet_amount * game_odds(game, match) // 100
        if not claim_pending_game(game, GameResult.WIN.value, payout):
            continue
        balance = wallet_service.credit(game.user_id, payout)
        wallet_service.record_transaction(game.user_id, payout, game.user_id,
                                          f"{match.name} win", balance)
        game.balance_after = balance
        settled += 1
    return settled


def _claim_match_result(match, result):
    claimed = db.session.execute(
        update(TeamMatch)
        .where(TeamMatch.id == match.id, TeamMatch.result == TeamMatchResult.PENDING.value)
        .values(result=result, status=MarketStatus.RESULTED.value)
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        raise Conflict("Result has already been declared")
    db.session.expire(match, ['result', 'status'])


def declare_result(match_id, result, actor=None, toss=None):
    match = get_match(match_id, toss)
    allowed = SIDES if match.is_toss else MATCH_OUTCOMES
    if result == TeamMatchResult.PENDING.value or result not in allowed:
        raise ValidationFailed("Result must be team_a or team_b" if match.is_toss
                               else "Result must be team_a, team_b or draw")
    if match.result != TeamMatchResult.PENDING.value:
        raise Conflict("Result has already been declared")

    try:
        _claim_match_result(match, result)
        settled = settle_match(match)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    game_type = GameType.CRICKET_TOSS.value if match.is_toss else GameType.TEAM_MATCH.value
    record_settlements(game_type, settled)
    log_business_event('result_declared', match_id=match.id, result=result, settled=settled,
                       declared_by=actor.id if actor else None)
    return match


def _bettable_match(match_id, toss=None):
    match = get_match(match_id, toss)
    if match.status != MarketStatus.OPEN.value:
        raise MarketClosed(match.status, subject="Match")
    if match.match_time <= utcnow():
        raise ValidationFailed("Betting has closed for this match")
    return match


def _place(user, match, game_type, prediction, bet_amount, odds):
    try:
        balance = wallet_service.debit(user.id, bet_amount)
        game = Game(
            user_id=user.id,
            game_type=game_type,
            bet_amount=bet_amount,
            prediction=prediction,
            result=GameResult.PENDING.value,
            payout=0,
            balance_after=balance,
            match_id=match.id,
        )
        game.set_game_data({
            'teamA': match.team_a,
            'teamB': match.team_b,
            'oddTeamA': match.odd_team_a,
            'oddTeamB': match.odd_team_b,
            'oddDraw': match.odd_draw,
            'betOn': prediction,
            'odds': odds,
        })
        db.session.add(game)
        wallet_service.record_transaction(user.id, -bet_amount, user.id,
                                          f"{match.name} bet on {prediction}", balance)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    record_bet(game_type, bet_amount)
    log_business_event('bet_placed', game_type=game_type, game_id=game.id, player_id=user.id,
                       match_id=match.id, amount=bet_amount, prediction=prediction)
    return game, balance


def play(user, match_id, prediction, bet_amount, toss=None):
    ensure_can_bet(user)
    match = _bettable_match(match_id, toss)
    allowed = SIDES if match.is_toss else MATCH_OUTCOMES
    if prediction not in allowed:
        raise ValidationFailed("Invalid prediction")
    bet_amount = parse_bet_amount(bet_amount, MIN_TOSS_BET if match.is_toss else 1)
    game_type = GameType.CRICKET_TOSS.value if match.is_toss else GameType.TEAM_MATCH.value
    return _place(user, match, game_type, prediction, bet_amount, match.odds_for(prediction))


def play_toss(user, match_id, bet_on, bet_amount):
    """Toss bet on any match; always recorded as a cricket_toss game"""
    ensure_can_bet(user)
    if bet_on not in SIDES:
        raise ValidationFailed("betOn must be team_a or team_b")
    bet_amount = parse_bet_amount(bet_amount, MIN_TOSS_BET)
    match = _bettable_match(match_id)
    return _place(user, match, GameType.CRICKET_TOSS.value, bet_on, bet_amount, match.odds_for(bet_on))


def match_games(match_id, actor):
    get_match(match_id)
    query = Game.query.filter_by(match_id=match_id)
    if actor.role == UserRole.SUBADMIN.value:
        query = query.filter(Game.user_id.in_(user_service.managed_user_ids(actor)))
    return query.order_by(Game.created_at.desc(), Game.id.desc()).all()


def sports_stats(actor):
    """Per-side totals for every active non-cricket match"""
    player_filter = user_service.managed_user_ids(actor)
    matches = (
        TeamMatch.query
        .filter(
            TeamMatch.is_toss.is_(False),
            TeamMatch.category != MatchCategory.CRICKET.value,
            TeamMatch.status.in_((MarketStatus.OPEN.value, MarketStatus.CLOSED.value)),
        )
        .order_by(TeamMatch.match_time, TeamMatch.id)
        .all()
    )

    stats = []
    for match in matches:
        query = Game.query.filter_by(match_id=match.id, result=GameResult.PENDING.value)
        if player_filter is not None:
            query = query.filter(Game.user_id.in_(player_filter))
        games = query.all()

        sides = {}
        for side in MATCH_OUTCOMES:
            side_games = [g for g in games if g.prediction == side]
            sides[side] = {
                'totalBets': len(side_games),
                'totalAmount': sum(g.bet_amount for g in side_games),
                'potentialWin': sum(g.bet_amount * game_odds(g, match) // 100 for g in side_games),
            }
        stats.append({
            'matchId': match.id,
            'teamA': match.team_a,
            'teamB': match.team_b,
            'category': match.category,
            'matchTime': match.match_time.isoformat(),
            'status': match.status,
            'teamABets': sides[TeamMatchResult.TEAM_A.value],
            'teamBBets': sides[TeamMatchResult.TEAM_B.value],
            'drawBets': sides[TeamMatchResult.DRAW.value],
            'totalAmount': sum(g.bet_amount for g in games),
        })
    return stats


def pending_toss_games(player_filter=None):
    query = (
        Game.query
        .join(TeamMatch, Game.match_id == TeamMatch.id)
        .filter(Game.game_type == GameType.CRICKET_TOSS.value, Game.result == GameResult.PENDING.value)
    )
    if player_filter is not None:
        query = query.filter(Game.user_id.in_(player_filter))
    return query.all()
