"""
Odds, commissions and discounts configured by admins and subadmins
"""

from flask import Blueprint, request, jsonify, g
import logging

from betdesk.models.betting_models import UserRole
from betdesk.routes.auth import require_role
from betdesk.services import odds_service

logger = logging.getLogger(__name__)

odds_bp = Blueprint('odds', __name__, url_prefix='/api')

STAFF = (UserRole.ADMIN, UserRole.SUBADMIN)


# Odds

@odds_bp.route('/game-odds', methods=['GET'])
@require_role(*STAFF)
def list_game_odds():
    odds = odds_service.list_odds(request.args.get('gameType'))
    return jsonify([o.to_dict() for o in odds])


@odds_bp.route('/game-odds', methods=['POST'])
@require_role(*STAFF)
def set_game_odd():
    odd = odds_service.set_game_odd(g.current_user, request.get_json(silent=True) or {})
    return jsonify(odd.to_dict())


@odds_bp.route('/game-odds/subadmin/<int:subadmin_id>', methods=['GET'])
@require_role(*STAFF)
def raw_subadmin_odds(subadmin_id):
    odds = odds_service.raw_subadmin_odds(g.current_user, subadmin_id, request.args.get('gameType'))
    return jsonify([o.to_dict() for o in odds])


@odds_bp.route('/odds/admin', methods=['GET'])
@require_role(*STAFF)
def admin_odds():
    return jsonify(odds_service.admin_odds_table())


@odds_bp.route('/odds/subadmin', methods=['GET'])
@odds_bp.route('/odds/subadmin/<int:subadmin_id>', methods=['GET'])
@require_role(*STAFF)
def subadmin_odds(subadmin_id=None):
    return jsonify(odds_service.subadmin_odds_table(g.current_user, subadmin_id))


@odds_bp.route('/odds/subadmin/<int:subadmin_id>', methods=['POST'])
@require_role(*STAFF)
def set_subadmin_odds(subadmin_id):
    data = request.get_json(silent=True) or {}
    results = odds_service.set_subadmin_odds(g.current_user, subadmin_id, data.get('odds'))
    return jsonify({'success': True, 'results': results})


# Commissions

@odds_bp.route('/commissions/subadmin', methods=['GET'])
@odds_bp.route('/commissions/subadmin/<int:subadmin_id>', methods=['GET'])
@require_role(*STAFF)
def subadmin_commissions(subadmin_id=None):
    return jsonify(odds_service.commissions_table(g.current_user, subadmin_id))


@odds_bp.route('/commissions/subadmin', methods=['POST'])
@require_role(UserRole.ADMIN)
def set_commission():
    commission = odds_service.set_commission(request.get_json(silent=True) or {})
    return jsonify(commission.to_dict())


@odds_bp.route('/commissions/subadmin/<int:subadmin_id>', methods=['POST'])
@require_role(*STAFF)
def set_subadmin_commissions(subadmin_id):
    data = request.get_json(silent=True) or {}
    results = odds_service.set_subadmin_commissions(g.current_user, subadmin_id, data.get('commissions'))
    return jsonify({'success': True, 'results': results})


@odds_bp.route('/commissions/default', methods=['GET'])
@require_role(*STAFF)
def default_commissions():
    return jsonify(odds_service.default_commissions_table())


@odds_bp.route('/commissions/default', methods=['POST'])
@require_role(UserRole.ADMIN)
def set_default_commissions():
    data = request.get_json(silent=True) or {}
    results = odds_service.set_default_commissions(data.get('defaultRates'))
    return jsonify({'success': True, 'message': 'Default commission rates updated', 'results': results})


# Discounts

@odds_bp.route('/discounts/user/<int:user_id>', methods=['GET'])
@require_role(UserRole.SUBADMIN)
def user_discounts(user_id):
    return jsonify([d.to_dict() for d in odds_service.user_discounts(g.current_user, user_id)])


@odds_bp.route('/discounts/user', methods=['POST'])
@require_role(UserRole.SUBADMIN)
def set_user_discount():
    discount = odds_service.set_user_discount(g.current_user, request.get_json(silent=True) or {})
    return jsonify(discount.to_dict())


@odds_bp.route('/discounts/deposit', methods=['POST'])
@require_role(UserRole.SUBADMIN)
def set_deposit_discount():
    discount = odds_service.set_player_deposit_discount(g.current_user, request.get_json(silent=True) or {})
    return jsonify(discount.to_dict())


@odds_bp.route('/admin/deposit-commissions/<int:subadmin_id>', methods=['GET'])
@require_role(UserRole.ADMIN)
def deposit_commission(subadmin_id):
    return jsonify(odds_service.get_deposit_commission(subadmin_id))


@odds_bp.route('/admin/deposit-commissions/<int:subadmin_id>', methods=['POST'])
@require_role(UserRole.ADMIN)
def set_deposit_commission(subadmin_id):
    data = request.get_json(silent=True) or {}
    result = odds_service.set_deposit_commission(subadmin_id, data.get('commissionRate'))
    return jsonify({'success': True, 'message': 'Deposit commission updated successfully', **result})
