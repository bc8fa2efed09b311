"""
Satamatka markets: lifecycle, bet placement and settlement.

A market moves waiting -> open -> closed -> resulted. Bets are only taken while
open; declaring the close result settles every pending game on the market
exactly once, then a recurring market opens again for the next day.
"""

import logging
import re
from datetime import timedelta

from sqlalchemy import update

from betdesk.models.betting_models import (
    db, User, UserRole, Game, GameType, GameResult, SatamatkaMarket, MarketStatus,
    SatamatkaGameMode,
)
from betdesk.errors import ValidationFailed, NotFound, Conflict, MarketClosed
from betdesk.services import wallet_service, odds_service, user_service
from betdesk.services.game_service import ensure_can_bet, parse_bet_amount, claim_pending_game
from betdesk.utils.logging_config import log_business_event
from betdesk.utils.metrics import record_bet, record_settlements

logger = logging.getLogger(__name__)

RESULT_PATTERN = re.compile(r'^[0-9]{2}$')
CROSSING_SUMMARY = re.compile(r'^\d+ digits \(\d+ combinations\)$')

PREDICTION_PATTERNS = {
    SatamatkaGameMode.JODI.value: [re.compile(r'^\d{2}$')],
    SatamatkaGameMode.HARF.value: [re.compile(r'^\d$'), re.compile(r'^L\d$'), re.compile(r'^R\d$')],
    SatamatkaGameMode.CROSSING.value: [
        re.compile(r'^\d$'),
        re.compile(r'^\d+(,\d+)+$'),
        re.compile(r'^Combinations of [0-9,]+$'),
        CROSSING_SUMMARY,
    ],
    SatamatkaGameMode.ODD_EVEN.value: [re.compile(r'^(odd|even)$')],
}

PREDICTION_ERRORS = {
    SatamatkaGameMode.JODI.value: "Jodi prediction must be a two-digit number (00-99)",
    SatamatkaGameMode.HARF.value: "Harf prediction must be a digit, optionally prefixed with L or R",
    SatamatkaGameMode.CROSSING.value: "Crossing prediction must list the selected digits",
    SatamatkaGameMode.ODD_EVEN.value: "Prediction must be odd or even",
}

STATUSES = {s.value for s in MarketStatus}
UNRESOLVED_STATUSES = (MarketStatus.OPEN.value, MarketStatus.CLOSED.value)


# Predictions

def validate_prediction(game_mode, prediction):
    patterns = PREDICTION_PATTERNS.get(game_mode)
    if patterns is None:
        raise ValidationFailed("Invalid game mode")
    prediction = str(prediction).strip() if prediction is not None else ''
    if not any(p.match(prediction) for p in patterns):
        raise ValidationFailed(PREDICTION_ERRORS[game_mode])
    return prediction


def crossing_digits(prediction):
    """
    Digits a crossing bet covers, e.g. '1,2,3' or 'Combinations of 1,2' -> {'1', '2', ...}.

    The 'N digits (M combinations)' summary names no digits, so it covers none.
    """
    if CROSSING_SUMMARY.match(prediction):
        return set()
    digits = set()
    for part in re.sub(r'[^0-9,]', '', prediction).split(','):
        digits.update(part)
    return digits


def is_winning_prediction(game_mode, prediction, close_result):
    if not close_result or not RESULT_PATTERN.match(close_result):
        return False
    first, second = close_result[0], close_result[1]

    if game_mode == SatamatkaGameMode.JODI.value:
        return prediction == close_result
    if game_mode == SatamatkaGameMode.HARF.value:
        if prediction.startswith('L'):
            return prediction[1:] == first
        if prediction.startswith('R'):
            return prediction[1:] == second
        return prediction in (first, second)
    if game_mode == SatamatkaGameMode.CROSSING.value:
        digits = crossing_digits(prediction)
        return first in digits or second in digits
    if game_mode == SatamatkaGameMode.ODD_EVEN.value:
        parity = 'even' if int(close_result) % 2 == 0 else 'odd'
        return prediction == parity
    return False


# Markets

def get_market(market_id):
    market = db.session.get(SatamatkaMarket, market_id)
    if market is None:
        raise NotFound("Market not found")
    return market


def list_markets():
    return SatamatkaMarket.query.order_by(SatamatkaMarket.open_time.desc(), SatamatkaMarket.id.desc()).all()


def active_markets():
    return (
        SatamatkaMarket.query
        .filter(SatamatkaMarket.status == MarketStatus.OPEN.value)
        .order_by(SatamatkaMarket.close_time, SatamatkaMarket.id)
        .all()
    )


def unresolved_markets():
    return (
        SatamatkaMarket.query
        .filter(SatamatkaMarket.status.in_(UNRESOLVED_STATUSES))
        .order_by(SatamatkaMarket.close_time, SatamatkaMarket.id)
        .all()
    )


def market_games(market_id, actor=None):
    get_market(market_id)
    query = Game.query.filter_by(market_id=market_id)
    if actor is not None and actor.role == UserRole.SUBADMIN.value:
        query = query.filter(Game.user_id.in_(user_service.managed_user_ids(actor)))
    return query.order_by(Game.created_at.desc(), Game.id.desc()).all()


def create_market(payload, recurring=None):
    """payload is a validated MarketCreate"""
    market = SatamatkaMarket(
        name=payload.name,
        type=payload.type,
        cover_image=payload.cover_image,
        market_date=payload.open_time.replace(hour=0, minute=0, second=0, microsecond=0),
        open_time=payload.open_time,
        close_time=payload.close_time,
        result_time=payload.result_time,
        status=payload.status,
        is_recurring=payload.is_recurring if recurring is None else recurring,
        recurrence_pattern=payload.recurrence_pattern,
    )
    db.session.add(market)
    db.session.commit()
    logger.info(f"Market {market.id} '{market.name}' created (recurring={market.is_recurring})")
    return market


def update_market(market_id, payload):
    """Edit details; status only moves through set_status"""
    market = get_market(market_id)
    for field in ('name', 'type', 'cover_image', 'open_time', 'close_time', 'result_time', 'is_recurring'):
        value = getattr(payload, field)
        if value is not None:
            setattr(market, field, value)
    if market.close_time <= market.open_time:
        raise ValidationFailed("closeTime must be after openTime")
    db.session.commit()
    return market


def set_status(market_id, status):
    if status not in STATUSES:
        raise ValidationFailed("Invalid status")
    market = get_market(market_id)
    if status == MarketStatus.RESULTED.value and market.status != MarketStatus.CLOSED.value:
        raise ValidationFailed("Market must be closed before it can be marked as resulted")
    market.status = status
    db.session.commit()
    logger.info(f"Market {market.id} status -> {status}")
    return market


def delete_market(market_id):
    market = get_market(market_id)
    if Game.query.filter_by(market_id=market.id).first() is not None:
        raise Conflict("Cannot delete a market that has bets placed on it")
    db.session.delete(market)
    db.session.commit()


def next_occurrence(market):
    """Copy of a recurring market shifted one day forward"""
    shift = timedelta(days=1)
    return SatamatkaMarket(
        name=market.name,
        type=market.type,
        cover_image=market.cover_image,
        market_date=market.market_date + shift,
        open_time=market.open_time + shift,
        close_time=market.close_time + shift,
        result_time=market.result_time + shift if market.result_time else None,
        status=MarketStatus.OPEN.value,
        is_recurring=True,
        recurrence_pattern=market.recurrence_pattern,
    )


def settle_market(market):
    """Pay out every pending game on market; games another settlement claimed are skipped"""
    pending = Game.query.filter_by(market_id=market.id, result=GameResult.PENDING.value).all()
    players = {}
    settled = 0
    for game in pending:
        player = players.get(game.user_id) or db.session.get(User, game.user_id)
        players[game.user_id] = player
        mode = game.game_mode or SatamatkaGameMode.JODI.value

        if not is_winning_prediction(mode, game.prediction, market.close_result):
            settled += claim_pending_game(game, GameResult.LOSS.value)
            continue

        odds = odds_service.resolve_odds(player, odds_service.odds_type_for_mode(mode))
        payout = game.bet_amount * odds // 100
        if not claim_pending_game(game, GameResult.WIN.value, payout):
            continue
        balance = wallet_service.credit(game.user_id, payout)
        wallet_service.record_transaction(
            game.user_id, payout, game.user_id,
            f"Satamatka win: {market.name} {mode} {game.prediction}", balance,
        )
        game.balance_after = balance
        settled += 1
    return settled


def _claim_market_result(market, close_result):
    claimed = db.session.execute(
        update(SatamatkaMarket)
        .where(SatamatkaMarket.id == market.id, SatamatkaMarket.status == MarketStatus.CLOSED.value)
        .values(status=MarketStatus.RESULTED.value, close_result=close_result)
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        raise ValidationFailed("Results can only be declared for closed markets")
    db.session.expire(market, ['status', 'close_result'])


def declare_results(market_id, open_result=None, close_result=None, actor=None):
    market = get_market(market_id)
    if market.status != MarketStatus.CLOSED.value:
        raise ValidationFailed("Results can only be declared for closed markets")
    if not open_result and not close_result:
        raise ValidationFailed("At least one result is required")
    for value in (open_result, close_result):
        if value and not RESULT_PATTERN.match(value):
            raise ValidationFailed("Results must be two-digit numbers (00-99)")

    settled = 0
    next_market = None
    try:
        if open_result:
            market.open_result = open_result
        if close_result:
            _claim_market_result(market, close_result)
            settled = settle_market(market)
            if market.is_recurring:
                next_market = next_occurrence(market)
                db.session.add(next_market)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    record_settlements(GameType.SATAMATKA.value, settled)
    log_business_event('result_declared', market_id=market.id, open_result=open_result,
                       close_result=close_result, settled=settled,
                       declared_by=actor.id if actor else None)
    if next_market is not None:
        logger.info(f"Recurring market {market.id} rolled over to {next_market.id}")
    return market


# Betting

def _open_market(market_id):
    market = get_market(market_id)
    if market.status != MarketStatus.OPEN.value:
        raise MarketClosed(market.status)
    return market


def play(user, market_id, bet_amount, game_mode, prediction):
    ensure_can_bet(user)
    market = _open_market(market_id)
    bet_amount = parse_bet_amount(bet_amount)
    prediction = validate_prediction(game_mode, prediction)

    try:
        balance = wallet_service.debit(user.id, bet_amount)
        game = Game(
            user_id=user.id,
            game_type=GameType.SATAMATKA.value,
            bet_amount=bet_amount,
            prediction=prediction,
            result=GameResult.PENDING.value,
            payout=0,
            balance_after=balance,
            market_id=market.id,
            game_mode=game_mode,
        )
        db.session.add(game)
        wallet_service.record_transaction(user.id, -bet_amount, user.id,
                                          f"Satamatka bet: {market.name} {game_mode} {prediction}", balance)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    record_bet(GameType.SATAMATKA.value, bet_amount)
    log_business_event('bet_placed', game_type=GameType.SATAMATKA.value, game_id=game.id,
                       player_id=user.id, market_id=market.id, game_mode=game_mode, amount=bet_amount)
    return game, balance


def play_multiple(user, market_id, game_mode, bets):
    """Validate every slip first, then debit the total once"""
    ensure_can_bet(user)
    market = _open_market(market_id)
    if not isinstance(bets, list) or not bets:
        raise ValidationFailed("At least one bet is required")

    slips = []
    for bet in bets:
        if not isinstance(bet, dict):
            raise ValidationFailed("Each bet needs a prediction and betAmount")
        slips.append((
            validate_prediction(game_mode, bet.get('prediction')),
            parse_bet_amount(bet.get('betAmount')),
        ))
    total = sum(amount for _, amount in slips)

    try:
        balance = wallet_service.debit(user.id, total)
        games = []
        for prediction, amount in slips:
            game = Game(
                user_id=user.id,
                game_type=GameType.SATAMATKA.value,
                bet_amount=amount,
                prediction=prediction,
                result=GameResult.PENDING.value,
                payout=0,
                balance_after=balance,
                market_id=market.id,
                game_mode=game_mode,
            )
            db.session.add(game)
            games.append(game)
        wallet_service.record_transaction(user.id, -total, user.id,
                                          f"Satamatka bets: {market.name} {game_mode} x{len(slips)}", balance)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    for _, amount in slips:
        record_bet(GameType.SATAMATKA.value, amount)
    log_business_event('bet_placed', game_type=GameType.SATAMATKA.value, player_id=user.id,
                       market_id=market.id, game_mode=game_mode, amount=total, bets=len(slips))
    return games, balance


# Jantri

def jantri_stats(actor):
    """Per-number exposure (00-99) for every unresolved market"""
    numbers = [f"{i:02d}" for i in range(100)]
    player_filter = user_service.managed_user_ids(actor)
    result = []

    for market in unresolved_markets():
        query = Game.query.filter(
            Game.market_id == market.id,
            Game.game_type == GameType.SATAMATKA.value,
            Game.result == GameResult.PENDING.value,
        )
        if player_filter is not None:
            query = query.filter(Game.user_id.in_(player_filter))

        by_number = {}
        players = {}
        for game in query.all():
            if not RESULT_PATTERN.match(game.prediction):
                continue
            by_number.setdefault(game.prediction, []).append(game)
            if game.user_id not in players:
                players[game.user_id] = db.session.get(User, game.user_id)

        board = []
        for number in numbers:
            games = by_number.get(number, [])
            mode_counts = {}
            potential = 0
            for game in games:
                mode = game.game_mode or SatamatkaGameMode.JODI.value
                mode_counts[mode] = mode_counts.get(mode, 0) + 1
                odds = odds_service.resolve_odds(players[game.user_id], odds_service.odds_type_for_mode(mode))
                potential += game.bet_amount * odds // 100
            dominant = max(mode_counts, key=mode_counts.get) if mode_counts else SatamatkaGameMode.JODI.value
            board.append({
                'number': number,
                'totalBets': len(games),
                'totalAmount': sum(g.bet_amount for g in games),
                'potentialWinAmount': potential,
                'uniqueUsers': len({g.user_id for g in games}),
                'gameMode': dominant,
            })

        result.append({'marketId': market.id, 'marketName': market.name, 'numbers': board})
    return result


def pending_games_for_markets(market_ids, player_filter=None):
    query = Game.query.filter(
        Game.market_id.in_(market_ids),
        Game.result == GameResult.PENDING.value,
    )
    if player_filter is not None:
        query = query.filter(Game.user_id.in_(player_filter))
    return query.all()