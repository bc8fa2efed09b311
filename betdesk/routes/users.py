"""
User management routes for admins and subadmins
"""

from flask import Blueprint, request, jsonify, g
import logging

from betdesk.models.betting_models import UserRole
from betdesk.routes.auth import login_required, require_role
from betdesk.services import user_service, wallet_service

logger = logging.getLogger(__name__)

users_bp = Blueprint('users', __name__)

STAFF = (UserRole.ADMIN, UserRole.SUBADMIN)


@users_bp.route('/api/users', methods=['GET'])
@require_role(*STAFF)
def list_users():
    assigned_to = request.args.get('assignedTo', type=int)
    users = user_service.list_users(g.current_user, assigned_to)
    return jsonify([u.to_dict() for u in users])


@users_bp.route('/api/users/stats', methods=['GET'])
@login_required
def my_stats():
    return jsonify(user_service.user_stats(g.current_user))


@users_bp.route('/api/users/<int:user_id>', methods=['GET'])
@require_role(*STAFF)
def get_user(user_id):
    return jsonify(user_service.get_visible_user(g.current_user, user_id).to_dict())


@users_bp.route('/api/users/<int:user_id>/block', methods=['PATCH'])
@require_role(*STAFF)
def block_user(user_id):
    return jsonify(user_service.set_blocked(g.current_user, user_id, True).to_dict())


@users_bp.route('/api/users/<int:user_id>/unblock', methods=['PATCH'])
@require_role(*STAFF)
def unblock_user(user_id):
    return jsonify(user_service.set_blocked(g.current_user, user_id, False).to_dict())


@users_bp.route('/api/users/<int:user_id>/balance', methods=['PATCH'])
@require_role(*STAFF)
def update_balance(user_id):
    data = request.get_json(silent=True) or {}
    target = user_service.get_user(user_id)
    if not user_service.can_manage(g.current_user, target):
        return jsonify({'success': False, 'error': 'You can only manage your assigned users'}), 403

    user = wallet_service.adjust_balance(g.current_user, target, data.get('amount'), data.get('description'))
    return jsonify(user.to_dict())


@users_bp.route('/api/users/<int:user_id>/assign', methods=['PATCH'])
@require_role(UserRole.ADMIN)
def assign_user(user_id):
    data = request.get_json(silent=True) or {}
    return jsonify(user_service.assign_user(user_id, data.get('adminId')).to_dict())


@users_bp.route('/api/users/<int:user_id>/edit', methods=['PATCH'])
@require_role(*STAFF)
def edit_user(user_id):
    data = request.get_json(silent=True) or {}
    user = user_service.edit_user(g.current_user, user_id, data.get('username'), data.get('password'))
    return jsonify(user.to_dict())


@users_bp.route('/api/subadmin/stats', methods=['GET'])
@require_role(*STAFF)
def subadmin_stats():
    subadmin_id = request.args.get('subadminId', type=int)
    return jsonify(user_service.subadmin_stats(g.current_user, subadmin_id))


@users_bp.route('/api/subadmin/create-with-commissions', methods=['POST'])
@require_role(UserRole.ADMIN)
def create_subadmin_with_commissions():
    data = request.get_json(silent=True) or {}
    subadmin = user_service.create_subadmin_with_commissions(
        g.current_user, data.get('username'), data.get('password'), data.get('commissions')
    )
    return jsonify({**subadmin.to_dict(), 'message': 'Subadmin created successfully with commission settings'}), 201
