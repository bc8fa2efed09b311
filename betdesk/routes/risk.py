"""
Risk management views and threshold configuration
"""

from flask import Blueprint, request, jsonify, g
import logging

from betdesk.models.betting_models import UserRole
from betdesk.routes.auth import require_role
from betdesk.services import risk_service

logger = logging.getLogger(__name__)

risk_bp = Blueprint('risk', __name__, url_prefix='/api/risk')

STAFF = (UserRole.ADMIN, UserRole.SUBADMIN)


@risk_bp.route('/satamatka', methods=['GET'])
@require_role(*STAFF)
def satamatka_risk():
    return jsonify(risk_service.satamatka_risk(g.current_user))


@risk_bp.route('/cricket-toss', methods=['GET'])
@require_role(*STAFF)
def cricket_toss_risk():
    return jsonify(risk_service.cricket_toss_risk(g.current_user))


@risk_bp.route('/admin', methods=['GET'])
@require_role(UserRole.ADMIN)
def admin_risk():
    return jsonify(risk_service.risk_overview(g.current_user))


@risk_bp.route('/subadmin', methods=['GET'])
@require_role(UserRole.SUBADMIN)
def subadmin_risk():
    return jsonify(risk_service.risk_overview(g.current_user))


@risk_bp.route('/thresholds', methods=['GET'])
@require_role(*STAFF)
def thresholds():
    return jsonify(risk_service.get_thresholds())


@risk_bp.route('/thresholds', methods=['POST'])
@require_role(UserRole.ADMIN)
def set_thresholds():
    data = request.get_json(silent=True) or {}
    return jsonify(risk_service.set_thresholds(data.get('high'), data.get('medium')))
