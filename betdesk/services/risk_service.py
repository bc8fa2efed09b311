"""
Exposure aggregation over unsettled bets.

Liability groups are bucketed into none/low/medium/high against thresholds
stored in system_settings (risk_threshold/high|medium), falling back to the
configured defaults.
"""

import logging
from flask import current_app

from betdesk.models.betting_models import db, User, UserRole, SatamatkaGameMode, TeamMatch
from betdesk.errors import ValidationFailed
from betdesk.services import odds_service, satamatka_service, team_match_service, user_service
from betdesk.services import settings_service

logger = logging.getLogger(__name__)

RISK_LEVELS = ('none', 'low', 'medium', 'high')


def classify_risk(amount, thresholds):
    if amount > thresholds['high']:
        return 'high'
    if amount > thresholds['medium']:
        return 'medium'
    if amount > 0:
        return 'low'
    return 'none'


def get_thresholds():
    high = settings_service.get_setting_value('risk_threshold', 'high')
    medium = settings_service.get_setting_value('risk_threshold', 'medium')
    return {
        'high': int(high) if high is not None else current_app.config.get('RISK_HIGH_THRESHOLD', 500000),
        'medium': int(medium) if medium is not None else current_app.config.get('RISK_MEDIUM_THRESHOLD', 100000),
    }


def set_thresholds(high, medium):
    try:
        high, medium = int(high), int(medium)
    except (TypeError, ValueError):
        raise ValidationFailed("Thresholds must be whole numbers of paise")
    if medium <= 0:
        raise ValidationFailed("Thresholds must be positive")
    if high <= medium:
        raise ValidationFailed("High threshold must be greater than medium threshold")

    settings_service.upsert_setting('risk_threshold', 'high', str(high), commit=False)
    settings_service.upsert_setting('risk_threshold', 'medium', str(medium), commit=False)
    db.session.commit()
    logger.info(f"Risk thresholds set to high={high} medium={medium}")
    return {'high': high, 'medium': medium}


def _player_rows(games, odds_for_game):
    """Collapse games to one row per player with summed stake and potential win"""
    players = {}
    for game in games:
        row = players.get(game.user_id)
        if row is None:
            player = db.session.get(User, game.user_id)
            row = players[game.user_id] = {
                'playerId': game.user_id,
                'playerUsername': player.username if player else None,
                'assignedTo': player.assigned_to if player else None,
                'betAmount': 0,
                'potentialWin': 0,
                'predictions': [],
            }
        row['betAmount'] += game.bet_amount
        row['potentialWin'] += game.bet_amount * odds_for_game(game) // 100
        row['predictions'].append(game.prediction)

    for row in players.values():
        row['prediction'] = ', '.join(row.pop('predictions'))
    return list(players.values())


def _group(game_type, games, odds_for_game, thresholds, **keys):
    players = _player_rows(games, odds_for_game)
    liability = sum(p['potentialWin'] for p in players)
    return {
        'gameType': game_type,
        **keys,
        'totalBets': len(games),
        'totalAmount': sum(g.bet_amount for g in games),
        'potentialLiability': liability,
        'highestBet': max((g.bet_amount for g in games), default=0),
        'playerCount': len(players),
        'riskLevel': classify_risk(liability, thresholds),
        'players': players,
    }


def satamatka_risk(actor, thresholds=None):
    thresholds = thresholds or get_thresholds()
    player_filter = user_service.managed_user_ids(actor)
    odds_cache = {}

    def odds_for_game(game):
        odds_type = odds_service.odds_type_for_mode(game.game_mode or SatamatkaGameMode.JODI.value)
        key = (game.user_id, odds_type)
        if key not in odds_cache:
            odds_cache[key] = odds_service.resolve_odds(db.session.get(User, game.user_id), odds_type)
        return odds_cache[key]

    groups = []
    for market in satamatka_service.unresolved_markets():
        games = satamatka_service.pending_games_for_markets([market.id], player_filter)
        by_mode = {}
        for game in games:
            by_mode.setdefault(game.game_mode or SatamatkaGameMode.JODI.value, []).append(game)
        for mode in sorted(by_mode):
            groups.append(_group(
                odds_service.odds_type_for_mode(mode), by_mode[mode], odds_for_game, thresholds,
                gameMode=mode, marketId=market.id, marketName=market.name,
            ))
    return groups


def cricket_toss_risk(actor, thresholds=None):
    thresholds = thresholds or get_thresholds()
    games = team_match_service.pending_toss_games(user_service.managed_user_ids(actor))

    by_match = {}
    for game in games:
        by_match.setdefault(game.match_id, []).append(game)

    groups = []
    for match_id in sorted(by_match):
        match = db.session.get(TeamMatch, match_id)
        groups.append(_group(
            'cricket_toss', by_match[match_id],
            lambda game, match=match: team_match_service.game_odds(game, match),
            thresholds,
            matchId=match.id, matchName=match.name, teamA=match.team_a, teamB=match.team_b,
        ))
    return groups


def risk_overview(actor):
    thresholds = get_thresholds()
    satamatka = satamatka_risk(actor, thresholds)
    toss = cricket_toss_risk(actor, thresholds)
    groups = satamatka + toss

    counts = {level: 0 for level in RISK_LEVELS}
    for group in groups:
        counts[group['riskLevel']] += 1

    return {
        'summary': {
            'totalBets': sum(g['totalBets'] for g in groups),
            'totalAmount': sum(g['totalAmount'] for g in groups),
            'totalPotentialLiability': sum(g['potentialLiability'] for g in groups),
            'highRiskCount': counts['high'],
            'mediumRiskCount': counts['medium'],
            'lowRiskCount': counts['low'],
            'thresholds': thresholds,
            'scope': 'all' if actor.role == UserRole.ADMIN.value else 'assigned',
        },
        'satamatka': satamatka,
        'cricketToss': toss,
    }
