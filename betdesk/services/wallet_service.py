"""
Balance mutation, the fund ledger and deposit/withdrawal requests.

Debits are a single conditional UPDATE so two concurrent wagers can never
overdraw an account. Callers own the commit: every helper here only flushes,
so a bet's debit, game row and ledger row land in one transaction.
"""

import json
import logging
from sqlalchemy import update, select

from betdesk.models.betting_models import (
    db, User, Transaction, WalletRequest, UserRole, RequestStatus, RequestType, PaymentMode,
    PlayerDepositDiscount, DepositCommission,
)
from betdesk.errors import (
    ValidationFailed, InsufficientBalance, NotFound, PermissionDenied, Conflict,
)
from betdesk.services import settings_service
from betdesk.utils.logging_config import log_business_event

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_DETAILS = {
    'upi': {
        'id': 'example@upi',
        'qrCode': None,
    },
    'bank': {
        'name': 'Sample Bank',
        'accountNumber': '123456789',
        'ifscCode': 'SBIN0001234',
        'accountHolder': 'Administrator',
    },
    'cash': {
        'instructions': 'Contact administrator for cash payment',
    },
}


def _current_balance(user_id):
    return db.session.execute(select(User.balance).where(User.id == user_id)).scalar_one()


def _expire_cached_user(user_id):
    cached = db.session.identity_map.get(db.session.identity_key(User, user_id))
    if cached is not None:
        db.session.expire(cached, ['balance'])


def debit(user_id, amount):
    """Atomically subtract amount; raises InsufficientBalance if the balance is short"""
    amount = int(amount)
    if amount <= 0:
        raise ValidationFailed("Amount must be positive")

    result = db.session.execute(
        update(User)
        .where(User.id == user_id, User.balance >= amount)
        .values(balance=User.balance - amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        if db.session.get(User, user_id) is None:
            raise NotFound("User not found")
        raise InsufficientBalance()

    _expire_cached_user(user_id)
    return _current_balance(user_id)


def credit(user_id, amount):
    """Atomically add amount and return the new balance"""
    amount = int(amount)
    if amount < 0:
        raise ValidationFailed("Amount must not be negative")

    result = db.session.execute(
        update(User)
        .where(User.id == user_id)
        .values(balance=User.balance + amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFound("User not found")

    _expire_cached_user(user_id)
    return _current_balance(user_id)


def record_transaction(user_id, amount, performed_by, description, balance_after=None, request_id=None):
    txn = Transaction(
        user_id=user_id,
        amount=int(amount),
        performed_by=performed_by,
        description=description,
        balance_after=balance_after,
        request_id=request_id,
    )
    db.session.add(txn)
    db.session.flush()
    return txn


def adjust_balance(actor, target, amount, description=None):
    """
    Manual fund movement by an admin or subadmin.

    A subadmin crediting a player pays from their own balance; a debit returns
    the funds to the subadmin. Admin movements are not mirrored.
    """
    try:
        amount = int(amount)
    except (TypeError, ValueError):
        raise ValidationFailed("Amount must be a whole number of paise")
    if amount == 0:
        raise ValidationFailed("Amount must not be zero")

    is_subadmin = actor.role == UserRole.SUBADMIN.value
    description = description or ("Funds added" if amount > 0 else "Funds removed")

    try:
        if amount > 0:
            if is_subadmin:
                actor_balance = debit(actor.id, amount)
                record_transaction(actor.id, -amount, actor.id,
                                   f"Transfer to {target.username}", actor_balance)
            target_balance = credit(target.id, amount)
        else:
            try:
                target_balance = debit(target.id, -amount)
            except InsufficientBalance:
                raise InsufficientBalance("Player balance cannot go below zero")
            if is_subadmin:
                actor_balance = credit(actor.id, -amount)
                record_transaction(actor.id, -amount, actor.id,
                                   f"Transfer from {target.username}", actor_balance)

        record_transaction(target.id, amount, actor.id, description, target_balance)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log_business_event('balance_adjusted', target_user=target.id, performed_by=actor.id, amount=amount)
    return db.session.get(User, target.id)


def calculate_deposit_bonus(amount, rate_bp):
    """Bonus in paise for a deposit at rate_bp basis points"""
    if not rate_bp or rate_bp <= 0:
        return 0
    return (int(amount) * int(rate_bp)) // 10000


def deposit_bonus_rate(user):
    """Active bonus rate for a deposit by user: a player's discount from its subadmin, a subadmin's commission"""
    if user.role == UserRole.PLAYER.value and user.assigned_to:
        discount = PlayerDepositDiscount.query.filter_by(
            user_id=user.id, subadmin_id=user.assigned_to, is_active=True
        ).first()
        return discount.discount_rate if discount else 0
    if user.role == UserRole.SUBADMIN.value:
        commission = DepositCommission.query.filter_by(subadmin_id=user.id, is_active=True).first()
        return commission.commission_rate if commission else 0
    return 0


def create_request(user, data):
    try:
        amount = int(data.get('amount'))
    except (TypeError, ValueError):
        raise ValidationFailed("Amount must be a positive number")
    if amount <= 0:
        raise ValidationFailed("Amount must be a positive number")

    request_type = data.get('requestType')
    if request_type not in {t.value for t in RequestType}:
        raise ValidationFailed("Invalid request type")
    payment_mode = data.get('paymentMode')
    if payment_mode not in {m.value for m in PaymentMode}:
        raise ValidationFailed("Invalid payment mode")

    wallet_request = WalletRequest(
        user_id=user.id,
        amount=amount,
        request_type=request_type,
        payment_mode=payment_mode,
        proof_image_url=data.get('proofImageUrl'),
        notes=data.get('notes'),
    )
    wallet_request.set_payment_details(data.get('paymentDetails'))
    db.session.add(wallet_request)
    db.session.commit()

    log_business_event('wallet_request_created', player_id=user.id, wallet_request_id=wallet_request.id,
                       request_type=request_type, amount=amount)
    return wallet_request


def list_requests(actor, status=None, request_type=None):
    query = WalletRequest.query
    if actor.role == UserRole.SUBADMIN.value:
        player_ids = select(User.id).where(User.assigned_to == actor.id)
        query = query.filter(WalletRequest.user_id.in_(player_ids))
    elif actor.role != UserRole.ADMIN.value:
        raise PermissionDenied()

    if status:
        query = query.filter(WalletRequest.status == status)
    if request_type:
        query = query.filter(WalletRequest.request_type == request_type)
    return query.order_by(WalletRequest.created_at.desc(), WalletRequest.id.desc()).all()


def my_requests(user):
    return (
        WalletRequest.query
        .filter_by(user_id=user.id)
        .order_by(WalletRequest.created_at.desc(), WalletRequest.id.desc())
        .all()
    )


def _claim_request(wallet_request, status, reviewer_id, notes):
    """Flip a pending request to its reviewed status; Conflict if another reviewer got there first"""
    values = {'status': status, 'reviewed_by': reviewer_id}
    if notes is not None:
        values['notes'] = notes
    claimed = db.session.execute(
        update(WalletRequest)
        .where(WalletRequest.id == wallet_request.id, WalletRequest.status == RequestStatus.PENDING.value)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        raise Conflict("Request has already been processed")
    db.session.expire(wallet_request)


def review_request(actor, request_id, status, notes=None):
    if status not in (RequestStatus.APPROVED.value, RequestStatus.REJECTED.value):
        raise ValidationFailed("Status must be approved or rejected")

    wallet_request = db.session.get(WalletRequest, request_id)
    if wallet_request is None:
        raise NotFound("Request not found")

    requester = db.session.get(User, wallet_request.user_id)
    if actor.role == UserRole.SUBADMIN.value:
        if requester is None or requester.assigned_to != actor.id:
            raise PermissionDenied("You can only review requests from your assigned players")
    elif actor.role != UserRole.ADMIN.value:
        raise PermissionDenied()

    if wallet_request.status != RequestStatus.PENDING.value:
        raise Conflict("Request has already been processed")

    amount = wallet_request.amount
    request_type = wallet_request.request_type
    payment_mode = wallet_request.payment_mode
    try:
        _claim_request(wallet_request, status, actor.id, notes)
        if status == RequestStatus.APPROVED.value:
            if request_type == RequestType.DEPOSIT.value:
                bonus = calculate_deposit_bonus(amount, deposit_bonus_rate(requester))
                balance = credit(requester.id, amount + bonus)
                description = f"Deposit via {payment_mode}"
                if bonus:
                    description += f" (bonus {bonus})"
                record_transaction(requester.id, amount + bonus, actor.id,
                                   description, balance, request_id=request_id)
            else:
                balance = debit(requester.id, amount)
                record_transaction(requester.id, -amount, actor.id,
                                   f"Withdrawal via {payment_mode}", balance,
                                   request_id=request_id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log_business_event('wallet_request_reviewed', wallet_request_id=request_id, status=status,
                       reviewed_by=actor.id, amount=amount)
    return wallet_request


def get_payment_details():
    raw = settings_service.get_setting_value('payment', 'payment_details')
    if raw is None:
        return DEFAULT_PAYMENT_DETAILS
    return json.loads(raw)


def set_payment_details(details):
    if not isinstance(details, dict):
        raise ValidationFailed("Payment details must be an object")
    settings_service.upsert_setting('payment', 'payment_details', json.dumps(details))
