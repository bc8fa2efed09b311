"""
Generic platform settings
"""

from flask import Blueprint, request, jsonify
import logging

from betdesk.models.betting_models import UserRole
from betdesk.routes.auth import require_role
from betdesk.services import settings_service

logger = logging.getLogger(__name__)

settings_bp = Blueprint('system_settings', __name__)


@settings_bp.route('/api/settings', methods=['GET'])
@require_role(UserRole.ADMIN, UserRole.SUBADMIN)
def get_settings():
    settings = settings_service.get_settings_by_type(request.args.get('type'))
    return jsonify([s.to_dict() for s in settings])


@settings_bp.route('/api/settings', methods=['POST'])
@require_role(UserRole.ADMIN)
def upsert_setting():
    data = request.get_json(silent=True) or {}
    setting = settings_service.save_generic_setting(
        data.get('settingType'), data.get('settingKey'), data.get('settingValue')
    )
    return jsonify(setting.to_dict())
