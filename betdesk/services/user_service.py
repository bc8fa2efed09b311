"""
User accounts, the admin → subadmin → player hierarchy and dashboard stats
"""

import logging
from flask import current_app
from sqlalchemy import select, func
from werkzeug.security import generate_password_hash, check_password_hash

from betdesk.models.betting_models import (
    db, User, UserRole, Game, GameResult, Transaction, WalletRequest, RequestType,
)
from betdesk.errors import ValidationFailed, NotFound, PermissionDenied, NotAuthenticated, AccountBlocked
from betdesk.services import odds_service
from betdesk.utils.logging_config import log_security_event

logger = logging.getLogger(__name__)

ROLES = {r.value for r in UserRole}


def _username_taken(username, exclude_id=None):
    query = User.query.filter(func.lower(User.username) == username.lower())
    if exclude_id:
        query = query.filter(User.id != exclude_id)
    return query.first() is not None


def _validate_credentials(username, password):
    username = (username or '').strip()
    if len(username) < 3:
        raise ValidationFailed("Username must be at least 3 characters")
    if not password or len(password) < 6:
        raise ValidationFailed("Password must be at least 6 characters")
    return username


def create_user(username, password, role=UserRole.PLAYER.value, creator=None, commit=True):
    """
    Anonymous registration creates a player. An admin may pick any role; a
    subadmin always creates players. The creator becomes the manager of a new player.
    """
    username = _validate_credentials(username, password)
    if _username_taken(username):
        raise ValidationFailed("Username already exists")

    if creator is None or creator.role == UserRole.SUBADMIN.value:
        role = UserRole.PLAYER.value
    elif role not in ROLES:
        raise ValidationFailed("Invalid role")

    assigned_to = None
    if creator is not None and role == UserRole.PLAYER.value:
        assigned_to = creator.id

    user = User(
        username=username,
        password_hash=generate_password_hash(password),
        role=role,
        balance=current_app.config.get('DEFAULT_PLAYER_BALANCE', 1000),
        assigned_to=assigned_to,
    )
    db.session.add(user)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    logger.info(f"User {username} created with role {role}")
    return user


def authenticate(username, password):
    user = User.query.filter_by(username=(username or '').strip()).first()
    if user is None or not check_password_hash(user.password_hash, password or ''):
        log_security_event('login_failed', severity='warning', username=username)
        raise NotAuthenticated("Invalid username or password")
    if user.is_blocked:
        log_security_event('blocked_login', severity='warning', username=username)
        raise AccountBlocked("Account is blocked. Please contact support.")
    return user


def get_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def can_manage(actor, target):
    """Admins manage everyone; subadmins only their own players"""
    if actor.role == UserRole.ADMIN.value:
        return True
    if actor.role == UserRole.SUBADMIN.value:
        return target.assigned_to == actor.id
    return False


def get_visible_user(actor, user_id):
    target = get_user(user_id)
    if target.id == actor.id or can_manage(actor, target):
        return target
    raise PermissionDenied("You can only view your assigned users")


def managed_user_ids(actor):
    """Select of player ids under a subadmin; None means unrestricted"""
    if actor.role == UserRole.ADMIN.value:
        return None
    return select(User.id).where(User.assigned_to == actor.id)


def list_users(actor, assigned_to=None):
    query = User.query
    if actor.role == UserRole.SUBADMIN.value:
        query = query.filter(User.assigned_to == actor.id)
    elif actor.role == UserRole.ADMIN.value:
        if assigned_to:
            query = query.filter(User.assigned_to == assigned_to)
    else:
        raise PermissionDenied()
    return query.order_by(User.id).all()


def set_blocked(actor, user_id, blocked):
    target = get_user(user_id)
    if target.id == actor.id:
        raise ValidationFailed("You cannot block yourself")
    if not can_manage(actor, target):
        raise PermissionDenied("You can only manage your assigned users")

    if not blocked and actor.role == UserRole.SUBADMIN.value and target.blocked_by:
        blocker = db.session.get(User, target.blocked_by)
        if blocker is not None and blocker.role == UserRole.ADMIN.value:
            raise PermissionDenied("This user was blocked by an admin and cannot be unblocked by a subadmin")

    target.is_blocked = blocked
    target.blocked_by = actor.id if blocked else None
    db.session.commit()
    log_security_event('user_blocked' if blocked else 'user_unblocked', target_user=target.id, performed_by=actor.id)
    return target


def assign_user(user_id, admin_id):
    target = get_user(user_id)
    manager = db.session.get(User, admin_id) if admin_id else None
    if manager is None or manager.role not in (UserRole.ADMIN.value, UserRole.SUBADMIN.value):
        raise ValidationFailed("Users can only be assigned to admins or subadmins")
    target.assigned_to = manager.id
    db.session.commit()
    return target


def edit_user(actor, user_id, username=None, password=None):
    target = get_user(user_id)
    if not can_manage(actor, target):
        raise PermissionDenied("You can only manage your assigned users")

    if username is not None and username != target.username:
        if actor.role != UserRole.ADMIN.value:
            raise PermissionDenied("Subadmins can only change passwords")
        username = username.strip()
        if len(username) < 3:
            raise ValidationFailed("Username must be at least 3 characters")
        if _username_taken(username, exclude_id=target.id):
            raise ValidationFailed("Username already exists")
        target.username = username

    if password:
        if len(password) < 6:
            raise ValidationFailed("Password must be at least 6 characters")
        target.password_hash = generate_password_hash(password)

    db.session.commit()
    return target


def user_stats(user):
    total_bets = Game.query.filter_by(user_id=user.id).count()
    total_wins = Game.query.filter(Game.user_id == user.id, Game.payout > 0).count()
    win_rate = round(total_wins * 100 / total_bets) if total_bets else 0
    return {'totalBets': total_bets, 'winRate': win_rate}


def subadmin_stats(actor, subadmin_id=None):
    if actor.role == UserRole.SUBADMIN.value:
        manager_id = actor.id
    elif actor.role == UserRole.ADMIN.value:
        manager_id = subadmin_id or actor.id
    else:
        raise PermissionDenied("Access denied")

    user_ids = [row[0] for row in db.session.execute(select(User.id).where(User.assigned_to == manager_id))]
    if not user_ids:
        return {'totalProfit': 0, 'totalDeposits': 0, 'totalUsers': 0, 'activeUsers': 0}

    settled = Game.query.filter(Game.user_id.in_(user_ids), Game.result != GameResult.PENDING.value)
    bet_total, payout_total = settled.with_entities(
        func.coalesce(func.sum(Game.bet_amount), 0),
        func.coalesce(func.sum(Game.payout), 0),
    ).one()

    deposit_request_ids = select(WalletRequest.id).where(WalletRequest.request_type == RequestType.DEPOSIT.value)
    total_deposits = db.session.execute(
        select(func.coalesce(func.sum(Transaction.amount), 0)).where(
            Transaction.user_id.in_(user_ids),
            Transaction.request_id.in_(deposit_request_ids),
        )
    ).scalar_one()

    active_users = db.session.execute(
        select(func.count(func.distinct(Game.user_id))).where(Game.user_id.in_(user_ids))
    ).scalar_one()

    return {
        'totalProfit': int(bet_total) - int(payout_total),
        'totalDeposits': int(total_deposits),
        'totalUsers': len(user_ids),
        'activeUsers': active_users,
    }


def create_subadmin_with_commissions(actor, username, password, commissions=None):
    """Commission values are percentages keyed by game type"""
    subadmin = create_user(username, password, role=UserRole.SUBADMIN.value, creator=actor, commit=False)
    try:
        for game_type, rate in (commissions or {}).items():
            if rate in (None, ''):
                continue
            if game_type not in odds_service.ODDS_GAME_TYPES:
                raise ValidationFailed(f"Unknown game type: {game_type}")
            odds_service.upsert_commission(subadmin.id, game_type, odds_service.to_basis_points(rate), commit=False)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return subadmin

