"""
Deposit and withdrawal requests, payment details and proof uploads
"""

from flask import Blueprint, request, jsonify, g, current_app, send_from_directory
from werkzeug.utils import secure_filename
import logging
import os
import uuid

from betdesk.errors import ValidationFailed
from betdesk.models.betting_models import UserRole
from betdesk.routes.auth import login_required, require_role
from betdesk.services import wallet_service

logger = logging.getLogger(__name__)

wallet_bp = Blueprint('wallet', __name__)

STAFF = (UserRole.ADMIN, UserRole.SUBADMIN)


@wallet_bp.route('/api/wallet/requests', methods=['POST'])
@login_required
def create_request():
    wallet_request = wallet_service.create_request(g.current_user, request.get_json(silent=True) or {})
    return jsonify(wallet_request.to_dict()), 201


@wallet_bp.route('/api/wallet/requests', methods=['GET'])
@require_role(*STAFF)
def list_requests():
    requests = wallet_service.list_requests(
        g.current_user,
        status=request.args.get('status') or None,
        request_type=request.args.get('type') or None,
    )
    return jsonify([r.to_dict() for r in requests])


@wallet_bp.route('/api/wallet/my-requests', methods=['GET'])
@login_required
def my_requests():
    return jsonify([r.to_dict() for r in wallet_service.my_requests(g.current_user)])


@wallet_bp.route('/api/wallet/requests/<int:request_id>', methods=['PATCH'])
@require_role(*STAFF)
def review_request(request_id):
    data = request.get_json(silent=True) or {}
    wallet_request = wallet_service.review_request(
        g.current_user, request_id, data.get('status'), data.get('notes')
    )
    return jsonify(wallet_request.to_dict())


@wallet_bp.route('/api/wallet/payment-details', methods=['GET'])
def payment_details():
    return jsonify(wallet_service.get_payment_details())


@wallet_bp.route('/api/wallet/payment-details', methods=['PUT'])
@require_role(UserRole.ADMIN)
def update_payment_details():
    details = request.get_json(silent=True)
    wallet_service.set_payment_details(details)
    return jsonify({'success': True, 'message': 'Payment details updated successfully'})


def _proof_dir():
    return os.path.join(os.path.abspath(current_app.config['UPLOAD_DIR']), 'proofs')


@wallet_bp.route('/api/upload/proof', methods=['POST'])
@login_required
def upload_proof():
    if 'proofImage' not in request.files:
        raise ValidationFailed("No file uploaded")

    file = request.files['proofImage']
    if file.filename == '':
        raise ValidationFailed("No file selected")
    if not (file.mimetype or '').startswith('image/'):
        raise ValidationFailed("Only image files are allowed")

    data = file.read()
    if len(data) > current_app.config.get('MAX_CONTENT_LENGTH', 5 * 1024 * 1024):
        raise ValidationFailed("File is too large (max 5MB)")

    extension = os.path.splitext(secure_filename(file.filename))[1].lower()
    filename = f"proof-{uuid.uuid4().hex}{extension}"
    directory = _proof_dir()
    os.makedirs(directory, exist_ok=True)
    with open(os.path.join(directory, filename), 'wb') as fh:
        fh.write(data)

    logger.info(f"Proof image {filename} uploaded by user {g.current_user.id}")
    return jsonify({'imageUrl': f"/uploads/proofs/{filename}"})


@wallet_bp.route('/uploads/proofs/<path:filename>', methods=['GET'])
def serve_proof(filename):
    return send_from_directory(_proof_dir(), filename)
