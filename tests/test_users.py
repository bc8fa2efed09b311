"""
User management across the admin → subadmin → player hierarchy
"""

import pytest

from betdesk.errors import PermissionDenied
from betdesk.models.betting_models import db, User, Transaction, UserRole
from betdesk.services import game_service, user_service, wallet_service, odds_service, satamatka_service


def test_admin_lists_everyone_and_filters_by_manager(client, login, admin, subadmin, player, other_player):
    login(admin)
    names = {u['username'] for u in client.get('/api/users').get_json()}
    assert {'admin', 'subadmin', 'player', 'outsider'} <= names

    filtered = client.get(f'/api/users?assignedTo={subadmin.id}').get_json()
    assert [u['username'] for u in filtered] == ['player']


def test_subadmin_sees_only_own_players(client, login, subadmin, player, other_player):
    login(subadmin)
    assert [u['username'] for u in client.get('/api/users').get_json()] == ['player']

    assert client.get(f'/api/users/{player.id}').status_code == 200
    assert client.get(f'/api/users/{other_player.id}').status_code == 403


def test_subadmin_cannot_unblock_admin_block(client, login, admin, subadmin, player):
    user_service.set_blocked(admin, player.id, True)

    login(subadmin)
    response = client.patch(f'/api/users/{player.id}/unblock')
    assert response.status_code == 403
    assert db.session.get(User, player.id).is_blocked is True


def test_subadmin_block_and_unblock_own_player(client, login, subadmin, player):
    login(subadmin)
    blocked = client.patch(f'/api/users/{player.id}/block').get_json()
    assert blocked['isBlocked'] is True
    assert blocked['blockedBy'] == subadmin.id

    unblocked = client.patch(f'/api/users/{player.id}/unblock').get_json()
    assert unblocked['isBlocked'] is False
    assert unblocked['blockedBy'] is None


def test_blocked_player_is_locked_out(client, login, admin, player):
    login(player)
    user_service.set_blocked(admin, player.id, True)
    assert client.post('/api/games/play', json={'betAmount': 10, 'prediction': 'heads'}).status_code == 403


def test_subadmin_funding_moves_money_from_own_balance(client, login, subadmin, player):
    wallet_service.credit(subadmin.id, 5000)
    db.session.commit()
    subadmin_before = db.session.get(User, subadmin.id).balance
    player_before = db.session.get(User, player.id).balance

    login(subadmin)
    response = client.patch(f'/api/users/{player.id}/balance', json={'amount': 2000})
    assert response.status_code == 200
    assert response.get_json()['balance'] == player_before + 2000
    assert db.session.get(User, subadmin.id).balance == subadmin_before - 2000

    ledger = Transaction.query.filter_by(user_id=subadmin.id).all()
    assert [t.amount for t in ledger] == [-2000]


def test_subadmin_without_funds_cannot_credit(client, login, subadmin, player):
    wallet_service.debit(subadmin.id, db.session.get(User, subadmin.id).balance)
    db.session.commit()

    login(subadmin)
    response = client.patch(f'/api/users/{player.id}/balance', json={'amount': 500})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Insufficient balance'


def test_balance_cannot_go_negative(client, login, admin, player):
    login(admin)
    balance = db.session.get(User, player.id).balance
    response = client.patch(f'/api/users/{player.id}/balance', json={'amount': -(balance + 1)})
    assert response.status_code == 400
    assert db.session.get(User, player.id).balance == balance


def test_subadmin_cannot_fund_foreign_player(client, login, subadmin, other_player):
    login(subadmin)
    response = client.patch(f'/api/users/{other_player.id}/balance', json={'amount': 100})
    assert response.status_code == 403


def test_subadmin_edit_is_password_only(client, login, subadmin, player):
    login(subadmin)
    assert client.patch(f'/api/users/{player.id}/edit', json={'username': 'renamed'}).status_code == 403
    assert client.patch(f'/api/users/{player.id}/edit', json={'password': 'newpass1'}).status_code == 200


def test_assign_requires_staff_target(client, login, admin, subadmin, player, other_player):
    login(admin)
    response = client.patch(f'/api/users/{other_player.id}/assign', json={'adminId': subadmin.id})
    assert response.get_json()['assignedTo'] == subadmin.id

    assert client.patch(f'/api/users/{other_player.id}/assign', json={'adminId': player.id}).status_code == 400


def test_create_subadmin_with_commissions(client, login, admin):
    login(admin)
    response = client.post('/api/subadmin/create-with-commissions', json={
        'username': 'region1',
        'password': 'secret1',
        'commissions': {'coin_flip': 2.5, 'satamatka_jodi': 5},
    })
    assert response.status_code == 201
    subadmin_id = response.get_json()['id']

    rows = {r['gameType']: r for r in client.get(f'/api/commissions/subadmin/{subadmin_id}').get_json()}
    assert rows['coin_flip']['commissionRate'] == 250
    assert rows['satamatka_jodi']['commissionRate'] == 500
    assert rows['team_match']['isDefault'] is True


def test_user_stats_win_rate(app, player, rng):
    for _ in range(4):
        game_service.play_coin_flip(player, 10, 'heads', rng=rng)
    stats = user_service.user_stats(player)
    assert stats['totalBets'] == 4
    assert 0 <= stats['winRate'] <= 100


def test_get_visible_user_blocks_players(app, player, other_player):
    with pytest.raises(PermissionDenied):
        user_service.get_visible_user(player, other_player.id)


class Coin:
    def __init__(self, outcome):
        self.outcome = outcome

    def choice(self, options):
        return self.outcome


def _request(user, amount):
    return wallet_service.create_request(user, {
        'amount': amount, 'requestType': 'deposit', 'paymentMode': 'upi',
    })


@pytest.fixture
def stats_book(admin, subadmin, player, open_market):
    """Subadmin with one active and one idle player; a rival subadmin with one active player"""
    user_service.create_user("idle", "password123", creator=subadmin)

    game_service.play_coin_flip(player, 1000, 'heads', rng=Coin('heads'))
    game_service.play_coin_flip(player, 1000, 'heads', rng=Coin('tails'))
    satamatka_service.play(player, open_market.id, 500, 'jodi', '42')

    odds_service.set_player_deposit_discount(subadmin, {'userId': player.id, 'discountRate': 500})
    wallet_service.review_request(subadmin, _request(player, 10000).id, 'approved')
    wallet_service.review_request(subadmin, _request(player, 7000).id, 'rejected')

    rival = user_service.create_user("rival", "password123", role=UserRole.SUBADMIN.value, creator=admin)
    rival_player = user_service.create_user("rivalplayer", "password123", creator=rival)
    game_service.play_coin_flip(rival_player, 400, 'tails', rng=Coin('heads'))
    return rival


def test_subadmin_stats_counts_settled_games_and_approved_deposits(app, subadmin, stats_book):
    stats = user_service.subadmin_stats(subadmin)
    # 2000 staked on settled flips, 1950 paid back; the pending jodi bet is excluded
    assert stats['totalProfit'] == 50
    # approved 10000 deposit plus its 5% discount bonus; the rejected request adds nothing
    assert stats['totalDeposits'] == 10500
    assert stats['totalUsers'] == 2
    assert stats['activeUsers'] == 1


def test_subadmin_stats_scoping(client, login, admin, subadmin, stats_book):
    login(subadmin)
    own = client.get(f'/api/subadmin/stats?subadminId={stats_book.id}').get_json()
    assert own['totalUsers'] == 2
    assert own['totalProfit'] == 50

    login(admin)
    rival = client.get(f'/api/subadmin/stats?subadminId={stats_book.id}').get_json()
    assert rival == {'totalProfit': 400, 'totalDeposits': 0, 'totalUsers': 1, 'activeUsers': 1}


def test_player_cannot_read_subadmin_stats(client, login, player):
    login(player)
    assert client.get('/api/subadmin/stats').status_code == 403
