"""
Exposure aggregation and risk thresholds
"""

import pytest

from betdesk.errors import ValidationFailed
from betdesk.services import risk_service, satamatka_service, team_match_service

THRESHOLDS = {'high': 500000, 'medium': 100000}


@pytest.mark.parametrize('amount,level', [
    (0, 'none'),
    (1, 'low'),
    (100000, 'low'),
    (100001, 'medium'),
    (500000, 'medium'),
    (500001, 'high'),
])
def test_classify_risk(amount, level):
    assert risk_service.classify_risk(amount, THRESHOLDS) == level


def test_thresholds_default_and_update(app):
    assert risk_service.get_thresholds() == THRESHOLDS

    risk_service.set_thresholds(20000, 5000)
    assert risk_service.get_thresholds() == {'high': 20000, 'medium': 5000}

    with pytest.raises(ValidationFailed):
        risk_service.set_thresholds(5000, 5000)


def test_satamatka_groups(app, admin, player, other_player, open_market):
    satamatka_service.play(player, open_market.id, 1000, 'jodi', '12')
    satamatka_service.play(player, open_market.id, 500, 'jodi', '34')
    satamatka_service.play(other_player, open_market.id, 2000, 'odd_even', 'odd')

    groups = {g['gameMode']: g for g in risk_service.satamatka_risk(admin)}
    jodi = groups['jodi']
    assert jodi['gameType'] == 'satamatka_jodi'
    assert jodi['marketId'] == open_market.id
    assert jodi['totalBets'] == 2
    assert jodi['totalAmount'] == 1500
    assert jodi['potentialLiability'] == 1500 * 90
    assert jodi['highestBet'] == 1000
    assert jodi['playerCount'] == 1
    assert jodi['riskLevel'] == 'medium'
    assert jodi['players'][0]['prediction'] == '12, 34'

    odd_even = groups['odd_even']
    assert odd_even['potentialLiability'] == 3600
    assert odd_even['riskLevel'] == 'low'


def test_closed_market_still_counts(app, admin, player, open_market):
    satamatka_service.play(player, open_market.id, 100, 'jodi', '12')
    satamatka_service.set_status(open_market.id, 'closed')
    assert len(risk_service.satamatka_risk(admin)) == 1

    satamatka_service.declare_results(open_market.id, None, '99')
    assert risk_service.satamatka_risk(admin) == []


def test_overview_scoped_for_subadmin(client, login, admin, subadmin, player, other_player, open_market, toss_match):
    satamatka_service.play(player, open_market.id, 100, 'jodi', '12')
    satamatka_service.play(other_player, open_market.id, 100, 'jodi', '13')
    team_match_service.play(player, toss_match.id, 'team_a', 100, toss=True)

    login(subadmin)
    overview = client.get('/api/risk/subadmin').get_json()
    summary = overview['summary']
    assert summary['scope'] == 'assigned'
    assert summary['totalBets'] == 2
    assert summary['totalAmount'] == 200
    assert summary['totalPotentialLiability'] == 9000 + 190
    assert overview['cricketToss'][0]['matchId'] == toss_match.id
    assert client.get('/api/risk/admin').status_code == 403

    login(admin)
    summary = client.get('/api/risk/admin').get_json()['summary']
    assert summary['scope'] == 'all'
    assert summary['totalBets'] == 3
    assert summary['thresholds'] == THRESHOLDS


def test_threshold_routes(client, login, admin, subadmin):
    login(subadmin)
    assert client.post('/api/risk/thresholds', json={'high': 10, 'medium': 5}).status_code == 403

    login(admin)
    assert client.post('/api/risk/thresholds', json={'high': 10, 'medium': 50}).status_code == 400
    assert client.post('/api/risk/thresholds', json={'high': 900, 'medium': 50}).get_json() == {
        'high': 900, 'medium': 50,
    }
