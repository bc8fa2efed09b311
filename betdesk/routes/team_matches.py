"""
Team match routes, cricket toss markets and sports exposure stats
"""

from flask import Blueprint, request, jsonify, g
import logging

from betdesk.models.betting_models import UserRole
from betdesk.routes.auth import login_required, require_role
from betdesk.schemas import TeamMatchCreate, TeamMatchUpdate, CricketTossCreate
from betdesk.services import team_match_service
from betdesk.utils.rate_limiter import rate_limit

logger = logging.getLogger(__name__)

team_matches_bp = Blueprint('team_matches', __name__, url_prefix='/api')

STAFF = (UserRole.ADMIN, UserRole.SUBADMIN)


def _matches(matches):
    return jsonify([m.to_dict() for m in matches])


@team_matches_bp.route('/team-matches', methods=['GET'])
def list_matches():
    return _matches(team_match_service.list_matches())


@team_matches_bp.route('/team-matches/active', methods=['GET'])
def active_matches():
    return _matches(team_match_service.active_matches())


@team_matches_bp.route('/team-matches/category/<category>', methods=['GET'])
def matches_by_category(category):
    return _matches(team_match_service.matches_by_category(category))


@team_matches_bp.route('/team-matches/<int:match_id>', methods=['GET'])
def get_match(match_id):
    return jsonify(team_match_service.get_match(match_id).to_dict())


@team_matches_bp.route('/team-matches', methods=['POST'])
@require_role(UserRole.ADMIN)
def create_match():
    payload = TeamMatchCreate.model_validate(request.get_json(silent=True) or {})
    return jsonify(team_match_service.create_match(payload).to_dict()), 201


@team_matches_bp.route('/team-matches/<int:match_id>', methods=['PATCH'])
@require_role(UserRole.ADMIN)
def update_match(match_id):
    payload = TeamMatchUpdate.model_validate(request.get_json(silent=True) or {})
    return jsonify(team_match_service.update_match(match_id, payload).to_dict())


@team_matches_bp.route('/team-matches/<int:match_id>/status', methods=['PATCH'])
@require_role(UserRole.ADMIN)
def update_match_status(match_id):
    data = request.get_json(silent=True) or {}
    return jsonify(team_match_service.set_status(match_id, data.get('status')).to_dict())


@team_matches_bp.route('/team-matches/<int:match_id>/result', methods=['PATCH'])
@require_role(UserRole.ADMIN)
def declare_match_result(match_id):
    data = request.get_json(silent=True) or {}
    match = team_match_service.declare_result(match_id, data.get('result'), actor=g.current_user)
    return jsonify(match.to_dict())


@team_matches_bp.route('/team-matches/<int:match_id>/play', methods=['POST'])
@login_required
@rate_limit()
def play_match(match_id):
    data = request.get_json(silent=True) or {}
    game, balance = team_match_service.play(g.current_user, match_id, data.get('prediction'), data.get('betAmount'))
    return jsonify({**game.to_dict(), 'balance': balance}), 201


@team_matches_bp.route('/team-matches/<int:match_id>/play-toss', methods=['POST'])
@login_required
@rate_limit()
def play_toss(match_id):
    data = request.get_json(silent=True) or {}
    game, balance = team_match_service.play_toss(g.current_user, match_id, data.get('betOn'), data.get('betAmount'))
    return jsonify({**game.to_dict(), 'balance': balance}), 201


@team_matches_bp.route('/team-matches/<int:match_id>/games', methods=['GET'])
@require_role(*STAFF)
def match_games(match_id):
    games = team_match_service.match_games(match_id, g.current_user)
    return jsonify([game.to_dict() for game in games])


# Cricket toss

@team_matches_bp.route('/cricket-toss', methods=['GET'])
def list_tosses():
    return _matches(team_match_service.list_matches(toss=True))


@team_matches_bp.route('/cricket-toss/active', methods=['GET'])
def active_tosses():
    return _matches(team_match_service.active_matches(toss=True))


@team_matches_bp.route('/cricket-toss/<int:match_id>', methods=['GET'])
def get_toss(match_id):
    return jsonify(team_match_service.get_match(match_id, toss=True).to_dict())


@team_matches_bp.route('/cricket-toss', methods=['POST'])
@require_role(UserRole.ADMIN)
def create_toss():
    payload = CricketTossCreate.model_validate(request.get_json(silent=True) or {})
    return jsonify(team_match_service.create_toss(payload).to_dict()), 201


@team_matches_bp.route('/cricket-toss/<int:match_id>/status', methods=['PATCH'])
@require_role(UserRole.ADMIN)
def update_toss_status(match_id):
    data = request.get_json(silent=True) or {}
    return jsonify(team_match_service.set_status(match_id, data.get('status'), toss=True).to_dict())


@team_matches_bp.route('/cricket-toss/<int:match_id>/result', methods=['PATCH'])
@require_role(UserRole.ADMIN)
def declare_toss_result(match_id):
    data = request.get_json(silent=True) or {}
    match = team_match_service.declare_result(match_id, data.get('result'), actor=g.current_user, toss=True)
    return jsonify(match.to_dict())


@team_matches_bp.route('/cricket-toss/<int:match_id>/play', methods=['POST'])
@login_required
@rate_limit()
def play_cricket_toss(match_id):
    data = request.get_json(silent=True) or {}
    game, balance = team_match_service.play(
        g.current_user, match_id, data.get('prediction'), data.get('betAmount'), toss=True
    )
    return jsonify({**game.to_dict(), 'balance': balance}), 201


@team_matches_bp.route('/sports/stats', methods=['GET'])
@require_role(*STAFF)
def sports_stats():
    return jsonify(team_match_service.sports_stats(g.current_user))
