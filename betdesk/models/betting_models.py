"""
Database models for the multi-tenant betting platform
"""

from flask_sqlalchemy import SQLAlchemy
from datetime import datetime, timezone
from enum import Enum
import json

db = SQLAlchemy()


def utcnow():
    """Naive UTC timestamp; all DateTime columns hold naive UTC"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class UserRole(str, Enum):
    ADMIN = "admin"
    SUBADMIN = "subadmin"
    PLAYER = "player"


class GameType(str, Enum):
    COIN_FLIP = "coin_flip"
    SATAMATKA = "satamatka"
    TEAM_MATCH = "team_match"
    CRICKET_TOSS = "cricket_toss"


class GameOutcome(str, Enum):
    HEADS = "heads"
    TAILS = "tails"


class GameResult(str, Enum):
    PENDING = "pending"
    WIN = "win"
    LOSS = "loss"


class TeamMatchResult(str, Enum):
    TEAM_A = "team_a"
    TEAM_B = "team_b"
    DRAW = "draw"
    PENDING = "pending"


class MatchCategory(str, Enum):
    CRICKET = "cricket"
    FOOTBALL = "football"
    BASKETBALL = "basketball"
    OTHER = "other"


class MarketType(str, Enum):
    DISHAWAR = "dishawar"
    GALI = "gali"
    MUMBAI = "mumbai"
    KALYAN = "kalyan"


class MarketStatus(str, Enum):
    WAITING = "waiting"
    OPEN = "open"
    CLOSED = "closed"
    RESULTED = "resulted"


class SatamatkaGameMode(str, Enum):
    JODI = "jodi"
    HARF = "harf"
    CROSSING = "crossing"
    ODD_EVEN = "odd_even"


class RequestType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class PaymentMode(str, Enum):
    UPI = "upi"
    BANK = "bank"
    CASH = "cash"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class User(db.Model):
    """Players, subadmins and admins share one table; assigned_to links a player to its manager"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default=UserRole.PLAYER.value)
    balance = db.Column(db.Integer, nullable=False, default=1000)  # paise
    assigned_to = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    is_blocked = db.Column(db.Boolean, nullable=False, default=False)
    blocked_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    games = db.relationship('Game', backref='user', lazy=True, cascade='all, delete-orphan')

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN.value

    @property
    def is_subadmin(self):
        return self.role == UserRole.SUBADMIN.value

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'role': self.role,
            'balance': self.balance,
            'assignedTo': self.assigned_to,
            'isBlocked': self.is_blocked,
            'blockedBy': self.blocked_by,
            'createdAt': _iso(self.created_at),
        }


class Game(db.Model):
    """A single wager; result/payout stay pending until the market or match is resulted"""
    __tablename__ = 'games'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    game_type = db.Column(db.String(20), nullable=False, default=GameType.COIN_FLIP.value)
    bet_amount = db.Column(db.Integer, nullable=False)  # paise
    prediction = db.Column(db.String(100), nullable=False)
    result = db.Column(db.String(20), nullable=False, default=GameResult.PENDING.value)
    payout = db.Column(db.Integer, nullable=False, default=0)  # paise
    balance_after = db.Column(db.Integer)

    # Satamatka
    market_id = db.Column(db.Integer, db.ForeignKey('satamatka_markets.id'), nullable=True, index=True)
    game_mode = db.Column(db.String(20))

    # Team match / cricket toss
    match_id = db.Column(db.Integer, db.ForeignKey('team_matches.id'), nullable=True, index=True)
    game_data = db.Column(db.Text)  # JSON snapshot of teams and odds at bet time

    created_at = db.Column(db.DateTime, default=utcnow)

    def get_game_data(self):
        return json.loads(self.game_data) if self.game_data else {}

    def set_game_data(self, data):
        self.game_data = json.dumps(data, default=str)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'gameType': self.game_type,
            'betAmount': self.bet_amount,
            'prediction': self.prediction,
            'result': self.result,
            'payout': self.payout,
            'balanceAfter': self.balance_after,
            'marketId': self.market_id,
            'gameMode': self.game_mode,
            'matchId': self.match_id,
            'gameData': self.get_game_data() or None,
            'createdAt': _iso(self.created_at),
        }


class SatamatkaMarket(db.Model):
    __tablename__ = 'satamatka_markets'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    type = db.Column(db.String(20), nullable=False)
    cover_image = db.Column(db.String(255))
    market_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    open_time = db.Column(db.DateTime, nullable=False)
    close_time = db.Column(db.DateTime, nullable=False)
    result_time = db.Column(db.DateTime)
    open_result = db.Column(db.String(2))
    close_result = db.Column(db.String(2))
    status = db.Column(db.String(20), nullable=False, default=MarketStatus.OPEN.value)
    is_recurring = db.Column(db.Boolean, nullable=False, default=False)
    recurrence_pattern = db.Column(db.String(20), default="daily")
    created_at = db.Column(db.DateTime, default=utcnow)

    games = db.relationship('Game', backref='market', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'type': self.type,
            'coverImage': self.cover_image,
            'marketDate': _iso(self.market_date),
            'openTime': _iso(self.open_time),
            'closeTime': _iso(self.close_time),
            'resultTime': _iso(self.result_time),
            'openResult': self.open_result,
            'closeResult': self.close_result,
            'status': self.status,
            'isRecurring': self.is_recurring,
            'recurrencePattern': self.recurrence_pattern,
            'createdAt': _iso(self.created_at),
        }


class TeamMatch(db.Model):
    """Team matches; is_toss marks the ones offered as cricket toss markets"""
    __tablename__ = 'team_matches'

    id = db.Column(db.Integer, primary_key=True)
    team_a = db.Column(db.String(100), nullable=False)
    team_b = db.Column(db.String(100), nullable=False)
    category = db.Column(db.String(20), nullable=False, default=MatchCategory.CRICKET.value)
    description = db.Column(db.Text)
    match_time = db.Column(db.DateTime, nullable=False)
    result = db.Column(db.String(20), nullable=False, default=TeamMatchResult.PENDING.value)
    odd_team_a = db.Column(db.Integer, nullable=False, default=200)  # 2.00x
    odd_team_b = db.Column(db.Integer, nullable=False, default=200)
    odd_draw = db.Column(db.Integer, default=300)
    status = db.Column(db.String(20), nullable=False, default=MarketStatus.OPEN.value)
    is_toss = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    games = db.relationship('Game', backref='match', lazy=True)

    @property
    def name(self):
        return f"{self.team_a} vs {self.team_b}"

    def odds_for(self, side):
        if side == TeamMatchResult.TEAM_A.value:
            return self.odd_team_a
        if side == TeamMatchResult.TEAM_B.value:
            return self.odd_team_b
        if side == TeamMatchResult.DRAW.value:
            return self.odd_draw or 300
        return 0

    def to_dict(self):
        return {
            'id': self.id,
            'teamA': self.team_a,
            'teamB': self.team_b,
            'category': self.category,
            'description': self.description,
            'matchTime': _iso(self.match_time),
            'result': self.result,
            'oddTeamA': self.odd_team_a,
            'oddTeamB': self.odd_team_b,
            'oddDraw': self.odd_draw,
            'status': self.status,
            'isToss': self.is_toss,
            'createdAt': _iso(self.created_at),
        }


class Transaction(db.Model):
    """Fund ledger: positive for credits, negative for debits"""
    __tablename__ = 'transactions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False)
    performed_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    description = db.Column(db.String(255))
    request_id = db.Column(db.Integer, db.ForeignKey('wallet_requests.id'), nullable=True)
    balance_after = db.Column(db.Integer)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'amount': self.amount,
            'performedBy': self.performed_by,
            'description': self.description,
            'requestId': self.request_id,
            'balanceAfter': self.balance_after,
            'createdAt': _iso(self.created_at),
        }


class WalletRequest(db.Model):
    __tablename__ = 'wallet_requests'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    amount = db.Column(db.Integer, nullable=False)
    request_type = db.Column(db.String(20), nullable=False)
    payment_mode = db.Column(db.String(20), nullable=False)
    payment_details = db.Column(db.Text)  # JSON
    status = db.Column(db.String(20), nullable=False, default=RequestStatus.PENDING.value)
    proof_image_url = db.Column(db.String(255))
    notes = db.Column(db.Text)
    reviewed_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    user = db.relationship('User', foreign_keys=[user_id])

    def get_payment_details(self):
        return json.loads(self.payment_details) if self.payment_details else {}

    def set_payment_details(self, details):
        self.payment_details = json.dumps(details or {})

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'username': self.user.username if self.user else None,
            'amount': self.amount,
            'requestType': self.request_type,
            'paymentMode': self.payment_mode,
            'paymentDetails': self.get_payment_details(),
            'status': self.status,
            'proofImageUrl': self.proof_image_url,
            'notes': self.notes,
            'reviewedBy': self.reviewed_by,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }


class SystemSetting(db.Model):
    __tablename__ = 'system_settings'
    __table_args__ = (db.UniqueConstraint('setting_type', 'setting_key', name='uq_setting_type_key'),)

    id = db.Column(db.Integer, primary_key=True)
    setting_type = db.Column(db.String(50), nullable=False)
    setting_key = db.Column(db.String(100), nullable=False)
    setting_value = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'settingType': self.setting_type,
            'settingKey': self.setting_key,
            'settingValue': self.setting_value,
            'updatedAt': _iso(self.updated_at),
        }


class GameOdd(db.Model):
    """Odds in hundredths (190 = 1.90x); admin rows have set_by_admin and no subadmin"""
    __tablename__ = 'game_odds'

    id = db.Column(db.Integer, primary_key=True)
    game_type = db.Column(db.String(50), nullable=False)
    odd_value = db.Column(db.Integer, nullable=False)
    set_by_admin = db.Column(db.Boolean, nullable=False, default=True)
    subadmin_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'gameType': self.game_type,
            'oddValue': self.odd_value,
            'setByAdmin': self.set_by_admin,
            'subadminId': self.subadmin_id,
        }


class SubadminCommission(db.Model):
    """Commission in basis points per game type"""
    __tablename__ = 'subadmin_commissions'
    __table_args__ = (db.UniqueConstraint('subadmin_id', 'game_type', name='uq_commission_subadmin_game'),)

    id = db.Column(db.Integer, primary_key=True)
    subadmin_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    game_type = db.Column(db.String(50), nullable=False)
    commission_rate = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'subadminId': self.subadmin_id,
            'gameType': self.game_type,
            'commissionRate': self.commission_rate,
        }


class UserDiscount(db.Model):
    __tablename__ = 'user_discounts'
    __table_args__ = (db.UniqueConstraint('subadmin_id', 'user_id', 'game_type', name='uq_discount_user_game'),)

    id = db.Column(db.Integer, primary_key=True)
    subadmin_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    game_type = db.Column(db.String(50), nullable=False)
    discount_rate = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'subadminId': self.subadmin_id,
            'userId': self.user_id,
            'gameType': self.game_type,
            'discountRate': self.discount_rate,
        }


class DepositCommission(db.Model):
    __tablename__ = 'deposit_commissions'

    id = db.Column(db.Integer, primary_key=True)
    subadmin_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, unique=True)
    commission_rate = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)


class PlayerDepositDiscount(db.Model):
    __tablename__ = 'player_deposit_discounts'
    __table_args__ = (db.UniqueConstraint('subadmin_id', 'user_id', name='uq_deposit_discount_user'),)

    id = db.Column(db.Integer, primary_key=True)
    subadmin_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    discount_rate = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'subadminId': self.subadmin_id,
            'userId': self.user_id,
            'discountRate': self.discount_rate,
            'isActive': self.is_active,
        }
