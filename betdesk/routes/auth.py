"""
Authentication routes and the access decorators shared by every blueprint
"""

from flask import Blueprint, request, jsonify, g
from functools import wraps
import logging

from betdesk.auth.session_utils import log_in_user, log_out_user, current_user_id
from betdesk.errors import NotAuthenticated, AccountBlocked, PermissionDenied
from betdesk.models.betting_models import db, User
from betdesk.services import user_service
from betdesk.utils.logging_config import set_user_context, log_security_event

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


def load_current_user():
    """User for the session cookie, or None"""
    user_id = current_user_id()
    if user_id is None:
        return None
    user = db.session.get(User, user_id)
    if user is not None:
        set_user_context(user)
    return user


def login_required(f):
    """Decorator to require an authenticated, unblocked user; sets g.current_user"""
    @wraps(f)
    def decorated(*args, **kwargs):
        user = load_current_user()
        if user is None:
            raise NotAuthenticated()
        if user.is_blocked:
            raise AccountBlocked()
        g.current_user = user
        return f(*args, **kwargs)
    return decorated


def require_role(*roles):
    """Decorator limiting a route to the given roles"""
    allowed = {getattr(r, 'value', r) for r in roles}

    def decorator(f):
        @wraps(f)
        @login_required
        def decorated(*args, **kwargs):
            if g.current_user.role not in allowed:
                log_security_event('permission_denied', severity='warning',
                                   endpoint=request.endpoint, role=g.current_user.role)
                raise PermissionDenied()
            return f(*args, **kwargs)
        return decorated
    return decorator


@auth_bp.route('/api/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    creator = load_current_user()

    user = user_service.create_user(
        data.get('username'),
        data.get('password'),
        role=data.get('role', 'player'),
        creator=creator,
    )

    if creator is None:
        log_in_user(user)
        set_user_context(user)
    return jsonify(user.to_dict()), 201


@auth_bp.route('/api/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    user = user_service.authenticate(data.get('username'), data.get('password'))
    log_in_user(user)
    set_user_context(user)
    logger.info(f"User {user.username} logged in")
    return jsonify(user.to_dict())


@auth_bp.route('/api/logout', methods=['POST'])
def logout():
    log_out_user()
    return jsonify({'success': True})


@auth_bp.route('/api/user', methods=['GET'])
def get_current_user():
    user = load_current_user()
    if user is None:
        raise NotAuthenticated()
    return jsonify(user.to_dict())
