"""
Satamatka prediction rules, market lifecycle, settlement and the jantri board
"""

from datetime import timedelta

import pytest
from sqlalchemy import update

from betdesk.errors import ValidationFailed, MarketClosed, Conflict
from betdesk.models.betting_models import db, User, Game, SatamatkaMarket, utcnow
from betdesk.schemas import MarketCreate
from betdesk.services import satamatka_service, odds_service, game_service


@pytest.mark.parametrize('mode,prediction', [
    ('jodi', '07'),
    ('harf', '5'),
    ('harf', 'L3'),
    ('harf', 'R9'),
    ('crossing', '1,2,3'),
    ('crossing', 'Combinations of 1,2'),
    ('crossing', '3 digits (9 combinations)'),
    ('odd_even', 'odd'),
])
def test_valid_predictions(mode, prediction):
    assert satamatka_service.validate_prediction(mode, prediction) == prediction


@pytest.mark.parametrize('mode,prediction', [
    ('jodi', '7'),
    ('jodi', '100'),
    ('harf', 'X1'),
    ('crossing', 'abc'),
    ('odd_even', 'both'),
    ('sangam', '12'),
])
def test_invalid_predictions(mode, prediction):
    with pytest.raises(ValidationFailed):
        satamatka_service.validate_prediction(mode, prediction)


@pytest.mark.parametrize('mode,prediction,result,wins', [
    ('jodi', '42', '42', True),
    ('jodi', '24', '42', False),
    ('harf', '4', '42', True),
    ('harf', 'L4', '42', True),
    ('harf', 'L2', '42', False),
    ('harf', 'R2', '42', True),
    ('crossing', '1,2', '42', True),
    ('crossing', '1,3', '42', False),
    ('odd_even', 'even', '42', True),
    ('odd_even', 'odd', '42', False),
])
def test_winning_predictions(mode, prediction, result, wins):
    assert satamatka_service.is_winning_prediction(mode, prediction, result) is wins


def test_bets_only_while_open(app, player):
    now = utcnow()
    market = satamatka_service.create_market(MarketCreate(
        name="Later", type='kalyan', openTime=now + timedelta(hours=1),
        closeTime=now + timedelta(hours=4), status='waiting',
    ))
    with pytest.raises(MarketClosed) as exc:
        satamatka_service.play(player, market.id, 100, 'jodi', '12')
    assert exc.value.message == "Market is not yet active for betting"


def test_settlement_pays_winners_once(app, player, other_player, open_market):
    satamatka_service.play(player, open_market.id, 100, 'jodi', '42')
    satamatka_service.play(other_player, open_market.id, 100, 'jodi', '24')
    satamatka_service.play(player, open_market.id, 100, 'odd_even', 'even')
    before = db.session.get(User, player.id).balance

    satamatka_service.set_status(open_market.id, 'closed')
    market = satamatka_service.declare_results(open_market.id, '15', '42')
    assert market.status == 'resulted'

    games = Game.query.filter_by(market_id=market.id).order_by(Game.id).all()
    assert [g.result for g in games] == ['win', 'loss', 'win']
    assert games[0].payout == 100 * 9000 // 100
    assert games[2].payout == 100 * 180 // 100
    assert db.session.get(User, player.id).balance == before + games[0].payout + games[2].payout

    # a resulted market cannot be settled again
    with pytest.raises(ValidationFailed):
        satamatka_service.declare_results(open_market.id, None, '42')
    assert db.session.get(User, player.id).balance == before + games[0].payout + games[2].payout


def test_declare_requires_closed_market(app, open_market):
    with pytest.raises(ValidationFailed):
        satamatka_service.declare_results(open_market.id, None, '42')


def test_declare_rejects_malformed_result(app, open_market):
    satamatka_service.set_status(open_market.id, 'closed')
    with pytest.raises(ValidationFailed):
        satamatka_service.declare_results(open_market.id, None, '4')


def test_open_result_alone_keeps_market_closed(app, player, open_market):
    satamatka_service.play(player, open_market.id, 100, 'jodi', '42')
    satamatka_service.set_status(open_market.id, 'closed')

    market = satamatka_service.declare_results(open_market.id, '15', None)
    assert market.status == 'closed'
    assert Game.query.filter_by(market_id=market.id).one().result == 'pending'


def test_settlement_uses_subadmin_odds(app, subadmin, player, open_market):
    odds_service.upsert_odd('satamatka_jodi', 8500, subadmin.id)
    game, _ = satamatka_service.play(player, open_market.id, 10, 'jodi', '42')

    satamatka_service.set_status(open_market.id, 'closed')
    satamatka_service.declare_results(open_market.id, None, '42')
    assert db.session.get(Game, game.id).payout == 850


def test_recurring_market_rolls_over(app):
    now = utcnow()
    market = satamatka_service.create_market(MarketCreate(
        name="Daily", type='dishawar', openTime=now - timedelta(hours=2),
        closeTime=now - timedelta(hours=1),
    ), recurring=True)
    satamatka_service.set_status(market.id, 'closed')
    satamatka_service.declare_results(market.id, '11', '22')

    markets = SatamatkaMarket.query.filter_by(name="Daily").order_by(SatamatkaMarket.id).all()
    assert len(markets) == 2
    assert markets[1].status == 'open'
    assert markets[1].open_time == markets[0].open_time + timedelta(days=1)
    assert markets[1].close_result is None


def test_resulted_status_requires_closed(app, open_market):
    with pytest.raises(ValidationFailed):
        satamatka_service.set_status(open_market.id, 'resulted')


def test_delete_market_with_bets_refused(app, player, open_market):
    satamatka_service.play(player, open_market.id, 10, 'jodi', '42')
    with pytest.raises(Conflict):
        satamatka_service.delete_market(open_market.id)


def test_play_multiple_debits_total(app, player, open_market):
    before = db.session.get(User, player.id).balance
    games, balance = satamatka_service.play_multiple(player, open_market.id, 'jodi', [
        {'prediction': '11', 'betAmount': 100},
        {'prediction': '22', 'betAmount': 250},
    ])
    assert len(games) == 2
    assert balance == before - 350


def test_play_multiple_rejects_any_bad_slip(app, player, open_market):
    before = db.session.get(User, player.id).balance
    with pytest.raises(ValidationFailed):
        satamatka_service.play_multiple(player, open_market.id, 'jodi', [
            {'prediction': '11', 'betAmount': 100},
            {'prediction': '2', 'betAmount': 100},
        ])
    assert db.session.get(User, player.id).balance == before
    assert Game.query.count() == 0


def test_jantri_board(app, admin, subadmin, player, other_player, open_market):
    satamatka_service.play(player, open_market.id, 100, 'jodi', '07')
    satamatka_service.play(other_player, open_market.id, 50, 'jodi', '07')
    satamatka_service.play(player, open_market.id, 30, 'harf', '7')

    board = satamatka_service.jantri_stats(admin)[0]
    assert board['marketId'] == open_market.id
    assert len(board['numbers']) == 100
    seven = board['numbers'][7]
    assert seven['number'] == '07'
    assert seven['totalBets'] == 2
    assert seven['totalAmount'] == 150
    assert seven['uniqueUsers'] == 2
    assert seven['potentialWinAmount'] == 150 * 9000 // 100

    scoped = satamatka_service.jantri_stats(subadmin)[0]['numbers'][7]
    assert scoped['totalBets'] == 1


def test_market_routes(client, login, admin, player):
    login(admin)
    now = utcnow()
    response = client.post('/api/satamatka/markets', json={
        'name': 'Route Market',
        'type': 'mumbai',
        'openTime': (now - timedelta(hours=1)).isoformat() + 'Z',
        'closeTime': (now + timedelta(hours=1)).isoformat() + 'Z',
    })
    assert response.status_code == 201
    market_id = response.get_json()['id']

    bad = client.post('/api/satamatka/markets', json={
        'name': 'Backwards', 'type': 'mumbai',
        'openTime': now.isoformat(), 'closeTime': (now - timedelta(hours=1)).isoformat(),
    })
    assert bad.status_code == 400

    login(player)
    placed = client.post('/api/satamatka/play', json={
        'marketId': market_id, 'betAmount': 100, 'gameMode': 'jodi', 'prediction': '55',
    })
    assert placed.status_code == 201
    assert placed.get_json()['result'] == 'pending'

    active = client.get('/api/satamatka/markets/active').get_json()
    assert [m['id'] for m in active] == [market_id]

    assert client.patch(f'/api/satamatka/markets/{market_id}/status', json={'status': 'closed'}).status_code == 403

    login(admin)
    client.patch(f'/api/satamatka/markets/{market_id}/status', json={'status': 'closed'})
    declared = client.patch(f'/api/satamatka/markets/{market_id}/results', json={'closeResult': '55'})
    assert declared.get_json()['status'] == 'resulted'

    games = client.get(f'/api/satamatka/markets/{market_id}/games').get_json()
    assert games[0]['result'] == 'win'


@pytest.mark.parametrize('result', ['36', '60', '03'])
def test_crossing_summary_names_no_digits(result):
    summary = '3 digits (6 combinations)'
    assert satamatka_service.crossing_digits(summary) == set()
    assert satamatka_service.is_winning_prediction('crossing', summary, result) is False


def test_crossing_summary_bet_settles_as_loss(app, player, open_market):
    game, _ = satamatka_service.play(player, open_market.id, 100, 'crossing', '3 digits (6 combinations)')
    before = db.session.get(User, player.id).balance

    satamatka_service.set_status(open_market.id, 'closed')
    satamatka_service.declare_results(open_market.id, None, '36')

    settled = db.session.get(Game, game.id)
    assert settled.result == 'loss'
    assert settled.payout == 0
    assert db.session.get(User, player.id).balance == before


def test_result_declared_by_another_admin_pays_nothing(app, player, open_market):
    game, _ = satamatka_service.play(player, open_market.id, 100, 'jodi', '42')
    satamatka_service.set_status(open_market.id, 'closed')
    market = db.session.get(SatamatkaMarket, open_market.id)
    assert market.status == 'closed'

    # another admin resolves the market after this session read it as closed
    db.session.execute(
        update(SatamatkaMarket).where(SatamatkaMarket.id == market.id)
        .values(status='resulted', close_result='42')
        .execution_options(synchronize_session=False)
    )
    before = db.session.get(User, player.id).balance

    with pytest.raises(ValidationFailed):
        satamatka_service.declare_results(market.id, None, '42')
    assert db.session.get(User, player.id).balance == before
    assert db.session.get(Game, game.id).result == 'pending'


def test_claimed_game_is_not_claimed_again(app, player, open_market):
    game, _ = satamatka_service.play(player, open_market.id, 100, 'jodi', '42')
    assert game.result == 'pending'

    db.session.execute(
        update(Game).where(Game.id == game.id)
        .values(result='win', payout=9000)
        .execution_options(synchronize_session=False)
    )
    assert game_service.claim_pending_game(game, 'loss') is False
    assert game.result == 'win'
    assert game.payout == 9000
