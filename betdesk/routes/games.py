"""
Coin flip, game history, leaderboards and the fund ledger
"""

from flask import Blueprint, request, jsonify, g
import logging

from betdesk.models.betting_models import UserRole
from betdesk.routes.auth import login_required, require_role
from betdesk.services import game_service
from betdesk.utils.rate_limiter import rate_limit

logger = logging.getLogger(__name__)

games_bp = Blueprint('games', __name__)

STAFF = (UserRole.ADMIN, UserRole.SUBADMIN)


@games_bp.route('/api/games/play', methods=['POST'])
@login_required
@rate_limit()
def play_coin_flip():
    data = request.get_json(silent=True) or {}
    game, balance = game_service.play_coin_flip(g.current_user, data.get('betAmount'), data.get('prediction'))
    return jsonify({**game.to_dict(), 'balance': balance})


@games_bp.route('/api/games', methods=['GET'])
@login_required
def list_games():
    return jsonify([game.to_dict() for game in game_service.list_games(g.current_user)])


@games_bp.route('/api/games/my-history', methods=['GET'])
@login_required
def my_history():
    return jsonify([game.to_dict() for game in game_service.my_history(g.current_user)])


@games_bp.route('/api/games/recent', methods=['GET'])
@require_role(*STAFF)
def recent_games():
    return jsonify([game.to_dict() for game in game_service.recent_games(g.current_user)])


@games_bp.route('/api/games/top-winners', methods=['GET'])
def top_winners():
    limit = request.args.get('limit', default=10, type=int)
    return jsonify(game_service.top_winners(max(1, min(limit, 100))))


@games_bp.route('/api/games/<int:user_id>', methods=['GET'])
@require_role(*STAFF)
def user_games(user_id):
    return jsonify([game.to_dict() for game in game_service.games_for_user(g.current_user, user_id)])


@games_bp.route('/api/leaderboard', methods=['GET'])
def leaderboard():
    return jsonify(game_service.leaderboard(
        time_frame=request.args.get('timeFrame', 'all-time'),
        sort_by=request.args.get('sortBy', 'totalWinnings'),
        game_type=request.args.get('gameType') or None,
    ))


@games_bp.route('/api/transactions', methods=['GET'])
@login_required
def my_transactions():
    return jsonify([t.to_dict() for t in game_service.list_transactions(g.current_user)])


@games_bp.route('/api/transactions/<int:user_id>', methods=['GET'])
@require_role(*STAFF)
def user_transactions(user_id):
    return jsonify([t.to_dict() for t in game_service.list_transactions(g.current_user, user_id)])
