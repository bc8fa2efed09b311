"""
Odds, commission and discount configuration.

Odds are integer hundredths (190 = 1.90x); commission and discount rates are
basis points (500 = 5%). The API speaks decimals and percentages and converts
at this boundary.
"""

import logging
from flask import current_app, has_app_context

from betdesk.models.betting_models import (
    db, User, UserRole, GameOdd, SubadminCommission, UserDiscount, DepositCommission,
    PlayerDepositDiscount,
)
from betdesk.errors import ValidationFailed, PermissionDenied, NotFound
from betdesk.services import settings_service

logger = logging.getLogger(__name__)

ODDS_GAME_TYPES = [
    'team_match',
    'cricket_toss',
    'coin_flip',
    'satamatka_jodi',
    'satamatka_harf',
    'satamatka_odd_even',
    'satamatka_crossing',
]

DEFAULT_ODDS = {
    'coin_flip': 195,
    'cricket_toss': 190,
    'team_match': 200,
    'satamatka_jodi': 9000,
    'satamatka_harf': 900,
    'satamatka_crossing': 900,
    'satamatka_odd_even': 180,
}

# Percent
DEFAULT_COMMISSIONS = {
    'team_match': 10,
    'cricket_toss': 10,
    'coin_flip': 10,
    'satamatka_jodi': 8,
    'satamatka_harf': 8,
    'satamatka_odd_even': 10,
    'satamatka_crossing': 8,
}


def odds_type_for_mode(game_mode):
    """Satamatka game mode -> odds game type, e.g. jodi -> satamatka_jodi"""
    return f"satamatka_{game_mode}"


def _body_id(value, field):
    """Id from a JSON body; accepts 5 or "5", None when absent"""
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise ValidationFailed(f"{field} must be a user id")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationFailed(f"{field} must be a user id")


def _to_hundredths(decimal_value):
    try:
        return int(round(float(decimal_value) * 100))
    except (TypeError, ValueError):
        raise ValidationFailed("oddValue must be a number")


def to_basis_points(percent):
    try:
        return int(round(float(percent) * 100))
    except (TypeError, ValueError):
        raise ValidationFailed("Rate must be a number")


def _require_known_type(game_type):
    if game_type not in ODDS_GAME_TYPES:
        raise ValidationFailed(f"Unknown game type: {game_type}")


def _require_subadmin(subadmin_id, missing=ValidationFailed, message="Invalid subadmin ID"):
    subadmin = db.session.get(User, subadmin_id) if subadmin_id else None
    if subadmin is None or subadmin.role != UserRole.SUBADMIN.value:
        raise missing(message)
    return subadmin


def _check_self(actor, subadmin_id, message="Unauthorized"):
    if actor.role == UserRole.SUBADMIN.value and actor.id != subadmin_id:
        raise PermissionDenied(message)


# Odds

def default_odds(game_type):
    """Platform default in hundredths; coin flip follows COIN_FLIP_MULTIPLIER"""
    if game_type == 'coin_flip' and has_app_context():
        multiplier = current_app.config.get('COIN_FLIP_MULTIPLIER')
        if multiplier:
            return int(round(multiplier * 100))
    return DEFAULT_ODDS.get(game_type, 200)


def admin_odd(game_type):
    return GameOdd.query.filter_by(game_type=game_type, set_by_admin=True, subadmin_id=None).first()


def subadmin_odd(subadmin_id, game_type):
    return GameOdd.query.filter_by(game_type=game_type, subadmin_id=subadmin_id, set_by_admin=False).first()


def resolve_odds(player, game_type):
    """Effective odds for player: its subadmin's, else the admin's, else the platform default"""
    if player is not None and player.assigned_to:
        odd = subadmin_odd(player.assigned_to, game_type)
        if odd:
            return odd.odd_value
    odd = admin_odd(game_type)
    if odd:
        return odd.odd_value
    return default_odds(game_type)


def upsert_odd(game_type, odd_value, subadmin_id=None, commit=True):
    """Store odds in hundredths; subadmin_id None writes the admin row"""
    if odd_value <= 0:
        raise ValidationFailed("oddValue must be positive")

    odd = subadmin_odd(subadmin_id, game_type) if subadmin_id else admin_odd(game_type)
    if odd:
        odd.odd_value = odd_value
    else:
        odd = GameOdd(
            game_type=game_type,
            odd_value=odd_value,
            set_by_admin=subadmin_id is None,
            subadmin_id=subadmin_id,
        )
        db.session.add(odd)
    if commit:
        db.session.commit()
    return odd


def list_odds(game_type):
    if not game_type:
        raise ValidationFailed("Game type is required")
    return GameOdd.query.filter_by(game_type=game_type).order_by(GameOdd.id).all()


def admin_odds_table():
    """Admin odds as decimals with platform defaults filled in"""
    table = []
    for game_type in ODDS_GAME_TYPES:
        odd = admin_odd(game_type)
        value = odd.odd_value if odd else default_odds(game_type)
        table.append({
            'id': odd.id if odd else None,
            'gameType': game_type,
            'oddValue': value / 100,
            'setByAdmin': True,
        })
    return table


def subadmin_odds_table(actor, subadmin_id=None):
    subadmin_id = subadmin_id or (actor.id if actor.role == UserRole.SUBADMIN.value else None)
    if not subadmin_id:
        raise ValidationFailed("Subadmin ID is required")
    _check_self(actor, subadmin_id)

    table = []
    for game_type in ODDS_GAME_TYPES:
        odd = subadmin_odd(subadmin_id, game_type)
        if odd:
            table.append({**odd.to_dict(), 'oddValue': odd.odd_value / 100})
            continue
        fallback = admin_odd(game_type)
        value = fallback.odd_value if fallback else default_odds(game_type)
        table.append({
            'gameType': game_type,
            'oddValue': value / 100,
            'setByAdmin': False,
            'subadminId': subadmin_id,
        })
    return table


def raw_subadmin_odds(actor, subadmin_id, game_type=None):
    _check_self(actor, subadmin_id)
    query = GameOdd.query.filter_by(subadmin_id=subadmin_id)
    if game_type:
        query = query.filter_by(game_type=game_type)
    return query.order_by(GameOdd.id).all()


def set_subadmin_odds(actor, subadmin_id, odds):
    if not isinstance(odds, list):
        raise ValidationFailed("odds must be an array of odds settings")
    _check_self(actor, subadmin_id, "Unauthorized: You can only update your own odds settings")
    _require_subadmin(subadmin_id)

    results = []
    for entry in odds:
        game_type = entry.get('gameType')
        if not game_type or entry.get('oddValue') is None:
            results.append({'error': "gameType and oddValue are required", 'gameType': game_type})
            continue
        _require_known_type(game_type)
        odd = upsert_odd(game_type, _to_hundredths(entry['oddValue']), subadmin_id, commit=False)
        results.append(odd)
    db.session.commit()
    logger.info(f"Odds updated for subadmin {subadmin_id} by user {actor.id}")
    return [r.to_dict() if isinstance(r, GameOdd) else r for r in results]


def set_game_odd(actor, data):
    """POST /api/game-odds: admins write admin or subadmin rows, subadmins only their own"""
    game_type = data.get('gameType')
    if not game_type or data.get('oddValue') is None:
        raise ValidationFailed("gameType and oddValue are required")
    _require_known_type(game_type)

    subadmin_id = _body_id(data.get('subadminId'), 'subadminId')
    if actor.role == UserRole.SUBADMIN.value:
        if data.get('setByAdmin') is True:
            raise PermissionDenied("Subadmins cannot set admin odds")
        if subadmin_id and subadmin_id != actor.id:
            raise PermissionDenied("Subadmins can only set their own odds")
        subadmin_id = actor.id
    elif subadmin_id:
        _require_subadmin(subadmin_id)

    return upsert_odd(game_type, _to_hundredths(data['oddValue']), subadmin_id)


# Commissions

def platform_default_commission(game_type):
    """Platform default in basis points"""
    stored = settings_service.get_setting_value('commission_default', game_type)
    if stored is not None:
        return int(stored)
    return DEFAULT_COMMISSIONS.get(game_type, 10) * 100


def default_commissions_table():
    return {game_type: platform_default_commission(game_type) / 100 for game_type in ODDS_GAME_TYPES}


def set_default_commissions(default_rates):
    if not isinstance(default_rates, dict) or not default_rates:
        raise ValidationFailed("defaultRates object is required with game types and rates")

    results = []
    for game_type, rate in default_rates.items():
        if rate is None:
            continue
        _require_known_type(game_type)
        rate_bp = to_basis_points(rate)
        settings_service.upsert_setting('commission_default', game_type, str(rate_bp), commit=False)
        results.append({'gameType': game_type, 'rate': rate_bp / 100})
    db.session.commit()
    return results


def commissions_table(actor, subadmin_id=None):
    """Every game type for the subadmin: stored rate, else platform default; rates in basis points"""
    subadmin_id = subadmin_id or (actor.id if actor.role == UserRole.SUBADMIN.value else None)
    if not subadmin_id:
        raise ValidationFailed("Subadmin ID is required")
    _check_self(actor, subadmin_id)

    stored = {c.game_type: c for c in SubadminCommission.query.filter_by(subadmin_id=subadmin_id).all()}
    table = []
    for game_type in ODDS_GAME_TYPES:
        if game_type in stored:
            table.append({**stored[game_type].to_dict(), 'isDefault': False})
        else:
            table.append({
                'gameType': game_type,
                'subadminId': subadmin_id,
                'commissionRate': platform_default_commission(game_type),
                'isDefault': True,
            })
    return table


def upsert_commission(subadmin_id, game_type, rate_bp, commit=True):
    if rate_bp < 0 or rate_bp > 10000:
        raise ValidationFailed("Commission rate must be between 0 and 100%")
    commission = SubadminCommission.query.filter_by(subadmin_id=subadmin_id, game_type=game_type).first()
    if commission:
        commission.commission_rate = rate_bp
    else:
        commission = SubadminCommission(subadmin_id=subadmin_id, game_type=game_type, commission_rate=rate_bp)
        db.session.add(commission)
    if commit:
        db.session.commit()
    return commission


def set_commission(data):
    """Single commission row; commissionRate is already in basis points"""
    subadmin_id = _body_id(data.get('subadminId'), 'subadminId')
    game_type = data.get('gameType')
    rate = data.get('commissionRate')
    if not subadmin_id or not game_type or rate is None:
        raise ValidationFailed("subadminId, gameType, and commissionRate are required")
    _require_subadmin(subadmin_id)
    _require_known_type(game_type)
    try:
        rate = int(rate)
    except (TypeError, ValueError):
        raise ValidationFailed("commissionRate must be a whole number of basis points")
    return upsert_commission(subadmin_id, game_type, rate)


def set_subadmin_commissions(actor, subadmin_id, commissions):
    """Bulk update; commissionRate arrives as a percentage"""
    if not isinstance(commissions, list):
        raise ValidationFailed("commissions must be an array of commission settings")
    _check_self(actor, subadmin_id, "Unauthorized: You can only update your own commission settings")
    _require_subadmin(subadmin_id)

    results = []
    for entry in commissions:
        game_type = entry.get('gameType')
        if not game_type or entry.get('commissionRate') is None:
            results.append({'error': "gameType and commissionRate are required", 'gameType': game_type})
            continue
        _require_known_type(game_type)
        commission = upsert_commission(subadmin_id, game_type, to_basis_points(entry['commissionRate']), commit=False)
        results.append(commission)
    db.session.commit()
    return [r.to_dict() if isinstance(r, SubadminCommission) else r for r in results]


# Discounts

def _own_player(actor, user_id):
    user = db.session.get(User, user_id) if user_id else None
    if user is None or user.assigned_to != actor.id:
        raise PermissionDenied("User is not assigned to you")
    return user


def user_discounts(actor, user_id):
    _own_player(actor, user_id)
    return UserDiscount.query.filter_by(user_id=user_id, subadmin_id=actor.id).order_by(UserDiscount.id).all()


def set_user_discount(actor, data):
    user_id = _body_id(data.get('userId'), 'userId')
    game_type = data.get('gameType')
    rate = data.get('discountRate')
    if not user_id or not game_type or rate is None:
        raise ValidationFailed("userId, gameType, and discountRate are required")
    _own_player(actor, user_id)
    _require_known_type(game_type)
    try:
        rate = int(rate)
    except (TypeError, ValueError):
        raise ValidationFailed("discountRate must be a whole number of basis points")
    if rate < 0 or rate > 10000:
        raise ValidationFailed("Discount rate must be between 0 and 10000")

    discount = UserDiscount.query.filter_by(subadmin_id=actor.id, user_id=user_id, game_type=game_type).first()
    if discount:
        discount.discount_rate = rate
    else:
        discount = UserDiscount(subadmin_id=actor.id, user_id=user_id, game_type=game_type, discount_rate=rate)
        db.session.add(discount)
    db.session.commit()
    return discount


def set_player_deposit_discount(actor, data):
    user_id = _body_id(data.get('userId'), 'userId')
    rate = data.get('discountRate')
    if not user_id or rate is None:
        raise ValidationFailed("userId and discountRate are required")
    _own_player(actor, user_id)
    if not isinstance(rate, int) or isinstance(rate, bool) or rate < 0 or rate > 10000:
        raise ValidationFailed("Discount rate must be between 0 and 10000 (0% to 100%)")

    discount = PlayerDepositDiscount.query.filter_by(subadmin_id=actor.id, user_id=user_id).first()
    if discount:
        discount.discount_rate = rate
        discount.is_active = bool(data.get('isActive', True))
    else:
        discount = PlayerDepositDiscount(
            subadmin_id=actor.id, user_id=user_id, discount_rate=rate,
            is_active=bool(data.get('isActive', True)),
        )
        db.session.add(discount)
    db.session.commit()
    return discount


# Deposit commissions

def get_deposit_commission(subadmin_id):
    subadmin = _require_subadmin(subadmin_id, NotFound, "Subadmin not found")
    commission = DepositCommission.query.filter_by(subadmin_id=subadmin_id).first()
    return {
        'subadminId': subadmin_id,
        'username': subadmin.username,
        'commissionRate': commission.commission_rate if commission else 0,
        'isActive': commission.is_active if commission else False,
    }


def set_deposit_commission(subadmin_id, rate):
    if not isinstance(rate, int) or isinstance(rate, bool) or rate < 0 or rate > 10000:
        raise ValidationFailed(
            "Invalid request data. Commission rate must be between 0 and 10000 (0% to 100%)"
        )
    subadmin = _require_subadmin(subadmin_id, NotFound, "Subadmin not found")

    commission = DepositCommission.query.filter_by(subadmin_id=subadmin_id).first()
    if commission:
        commission.commission_rate = rate
        commission.is_active = True
    else:
        commission = DepositCommission(subadmin_id=subadmin_id, commission_rate=rate, is_active=True)
        db.session.add(commission)
    db.session.commit()
    logger.info(f"Deposit commission for subadmin {subadmin_id} set to {rate}bp")
    return {'subadminId': subadmin_id, 'username': subadmin.username, 'commissionRate': rate}
