"""
Satamatka market management, betting and the jantri board
"""

from flask import Blueprint, request, jsonify, g
import logging

from betdesk.models.betting_models import UserRole
from betdesk.routes.auth import login_required, require_role
from betdesk.schemas import MarketCreate, MarketUpdate
from betdesk.services import satamatka_service
from betdesk.utils.rate_limiter import rate_limit

logger = logging.getLogger(__name__)

satamatka_bp = Blueprint('satamatka', __name__, url_prefix='/api')

STAFF = (UserRole.ADMIN, UserRole.SUBADMIN)


@satamatka_bp.route('/satamatka/markets', methods=['GET'])
def list_markets():
    return jsonify([m.to_dict() for m in satamatka_service.list_markets()])


@satamatka_bp.route('/satamatka/markets/active', methods=['GET'])
def active_markets():
    return jsonify([m.to_dict() for m in satamatka_service.active_markets()])


@satamatka_bp.route('/satamatka/markets/<int:market_id>', methods=['GET'])
def get_market(market_id):
    return jsonify(satamatka_service.get_market(market_id).to_dict())


@satamatka_bp.route('/satamatka/markets/<int:market_id>/games', methods=['GET'])
@require_role(*STAFF)
def market_games(market_id):
    games = satamatka_service.market_games(market_id, g.current_user)
    return jsonify([game.to_dict() for game in games])


@satamatka_bp.route('/satamatka/markets', methods=['POST'])
@require_role(UserRole.ADMIN)
def create_market():
    payload = MarketCreate.model_validate(request.get_json(silent=True) or {})
    return jsonify(satamatka_service.create_market(payload).to_dict()), 201


@satamatka_bp.route('/satamatka/markets/recurring', methods=['POST'])
@require_role(UserRole.ADMIN)
def create_recurring_market():
    payload = MarketCreate.model_validate(request.get_json(silent=True) or {})
    return jsonify(satamatka_service.create_market(payload, recurring=True).to_dict()), 201


@satamatka_bp.route('/satamatka/markets/<int:market_id>', methods=['PATCH'])
@require_role(UserRole.ADMIN)
def update_market(market_id):
    payload = MarketUpdate.model_validate(request.get_json(silent=True) or {})
    return jsonify(satamatka_service.update_market(market_id, payload).to_dict())


@satamatka_bp.route('/satamatka/markets/<int:market_id>/status', methods=['PATCH'])
@require_role(UserRole.ADMIN)
def update_market_status(market_id):
    data = request.get_json(silent=True) or {}
    return jsonify(satamatka_service.set_status(market_id, data.get('status')).to_dict())


@satamatka_bp.route('/satamatka/markets/<int:market_id>/results', methods=['PATCH'])
@require_role(UserRole.ADMIN)
def declare_results(market_id):
    data = request.get_json(silent=True) or {}
    market = satamatka_service.declare_results(
        market_id, data.get('openResult'), data.get('closeResult'), actor=g.current_user
    )
    return jsonify(market.to_dict())


@satamatka_bp.route('/satamatka/markets/<int:market_id>', methods=['DELETE'])
@require_role(UserRole.ADMIN)
def delete_market(market_id):
    satamatka_service.delete_market(market_id)
    return jsonify({'success': True})


@satamatka_bp.route('/satamatka/play', methods=['POST'])
@login_required
@rate_limit()
def play():
    data = request.get_json(silent=True) or {}
    game, balance = satamatka_service.play(
        g.current_user,
        data.get('marketId'),
        data.get('betAmount'),
        data.get('gameMode'),
        data.get('prediction'),
    )
    return jsonify({**game.to_dict(), 'balance': balance}), 201


@satamatka_bp.route('/satamatka/play-multiple', methods=['POST'])
@login_required
@rate_limit()
def play_multiple():
    data = request.get_json(silent=True) or {}
    games, balance = satamatka_service.play_multiple(
        g.current_user, data.get('marketId'), data.get('gameMode'), data.get('bets')
    )
    return jsonify({'games': [game.to_dict() for game in games], 'balance': balance}), 201


@satamatka_bp.route('/jantri/stats', methods=['GET'])
@require_role(*STAFF)
def jantri_stats():
    return jsonify(satamatka_service.jantri_stats(g.current_user))
