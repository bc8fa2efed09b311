"""
Team matches and cricket toss betting
"""

from datetime import timedelta

import pytest
from sqlalchemy import update

from betdesk.errors import ValidationFailed, Conflict, NotFound, MarketClosed
from betdesk.models.betting_models import db, User, Game, TeamMatch, utcnow
from betdesk.services import team_match_service, odds_service


def test_match_bet_snapshots_odds(app, player, football_match):
    game, _ = team_match_service.play(player, football_match.id, 'team_b', 1000)
    data = game.get_game_data()
    assert data['odds'] == 220
    assert data['teamA'] == 'Arsenal'
    assert game.result == 'pending'


def test_settles_at_snapshot_odds(app, admin, player, football_match):
    game, _ = team_match_service.play(player, football_match.id, 'team_b', 1000)
    football_match.odd_team_b = 400
    db.session.commit()
    before = db.session.get(User, player.id).balance

    team_match_service.declare_result(football_match.id, 'team_b', actor=admin)
    settled = db.session.get(Game, game.id)
    assert settled.result == 'win'
    assert settled.payout == 2200
    assert db.session.get(User, player.id).balance == before + 2200


def test_draw_bet(app, admin, player, other_player, football_match):
    draw, _ = team_match_service.play(player, football_match.id, 'draw', 100)
    side, _ = team_match_service.play(other_player, football_match.id, 'team_a', 100)

    team_match_service.declare_result(football_match.id, 'draw', actor=admin)
    assert db.session.get(Game, draw.id).payout == 300
    assert db.session.get(Game, side.id).result == 'loss'


def test_result_declared_once(app, admin, football_match):
    team_match_service.declare_result(football_match.id, 'team_a', actor=admin)
    with pytest.raises(Conflict):
        team_match_service.declare_result(football_match.id, 'team_b', actor=admin)


def test_pending_is_not_a_result(app, admin, football_match):
    with pytest.raises(ValidationFailed):
        team_match_service.declare_result(football_match.id, 'pending', actor=admin)


def test_closed_or_started_match_refuses_bets(app, player, football_match):
    team_match_service.set_status(football_match.id, 'closed')
    with pytest.raises(MarketClosed):
        team_match_service.play(player, football_match.id, 'team_a', 100)

    team_match_service.set_status(football_match.id, 'open')
    football_match.match_time = utcnow() - timedelta(minutes=1)
    db.session.commit()
    with pytest.raises(ValidationFailed):
        team_match_service.play(player, football_match.id, 'team_a', 100)


def test_resulted_status_needs_result(app, football_match):
    with pytest.raises(ValidationFailed):
        team_match_service.set_status(football_match.id, 'resulted')


def test_toss_rules(app, admin, player, toss_match):
    with pytest.raises(ValidationFailed):
        team_match_service.play(player, toss_match.id, 'draw', 100, toss=True)
    with pytest.raises(ValidationFailed):
        team_match_service.play(player, toss_match.id, 'team_a', 5, toss=True)
    with pytest.raises(ValidationFailed):
        team_match_service.declare_result(toss_match.id, 'draw', actor=admin, toss=True)


def test_toss_lookup_is_typed(app, football_match, toss_match):
    with pytest.raises(NotFound):
        team_match_service.get_match(football_match.id, toss=True)
    assert [m.id for m in team_match_service.active_matches(toss=True)] == [toss_match.id]
    assert [m.id for m in team_match_service.active_matches()] == [football_match.id]


def test_play_toss_on_match(app, admin, subadmin, player, football_match):
    odds_service.upsert_odd('cricket_toss', 175, subadmin.id)
    game, _ = team_match_service.play_toss(player, football_match.id, 'team_a', 100)
    assert game.game_type == 'cricket_toss'
    assert game.get_game_data()['odds'] == 180

    team_match_service.declare_result(football_match.id, 'team_a', actor=admin)
    assert db.session.get(Game, game.id).payout == 180


def test_sports_stats(app, admin, subadmin, player, other_player, football_match):
    team_match_service.play(player, football_match.id, 'team_a', 100)
    team_match_service.play(other_player, football_match.id, 'draw', 50)

    stats = team_match_service.sports_stats(admin)
    assert len(stats) == 1
    assert stats[0]['teamABets'] == {'totalBets': 1, 'totalAmount': 100, 'potentialWin': 180}
    assert stats[0]['drawBets']['potentialWin'] == 150
    assert stats[0]['totalAmount'] == 150

    assert team_match_service.sports_stats(subadmin)[0]['totalAmount'] == 100


def test_team_match_routes(client, login, admin, player):
    login(admin)
    match_time = (utcnow() + timedelta(days=2)).isoformat()
    response = client.post('/api/team-matches', json={
        'teamA': 'Lakers', 'teamB': 'Celtics', 'category': 'basketball', 'matchTime': match_time,
    })
    assert response.status_code == 201
    match_id = response.get_json()['id']
    assert response.get_json()['oddDraw'] == 300

    assert client.post('/api/team-matches', json={
        'teamA': 'Lakers', 'teamB': 'Celtics', 'matchTime': match_time, 'oddTeamA': 90,
    }).status_code == 400
    assert client.get('/api/team-matches/category/hockey').status_code == 400
    assert len(client.get('/api/team-matches/category/basketball').get_json()) == 1

    login(player)
    placed = client.post(f'/api/team-matches/{match_id}/play', json={'prediction': 'team_a', 'betAmount': 500})
    assert placed.status_code == 201

    login(admin)
    declared = client.patch(f'/api/team-matches/{match_id}/result', json={'result': 'team_a'})
    assert declared.get_json()['status'] == 'resulted'
    assert client.patch(f'/api/team-matches/{match_id}/result', json={'result': 'team_a'}).status_code == 409


def test_cricket_toss_routes(client, login, admin, player):
    login(admin)
    response = client.post('/api/cricket-toss', json={
        'teamA': 'India', 'teamB': 'England', 'tossTime': (utcnow() + timedelta(hours=2)).isoformat(),
    })
    assert response.status_code == 201
    toss = response.get_json()
    assert toss['isToss'] is True
    assert toss['oddTeamA'] == 190

    assert client.post('/api/cricket-toss', json={
        'teamA': 'I', 'teamB': 'England', 'tossTime': utcnow().isoformat(),
    }).status_code == 400

    login(player)
    placed = client.post(f"/api/cricket-toss/{toss['id']}/play", json={'prediction': 'team_b', 'betAmount': 50})
    assert placed.status_code == 201
    assert client.get('/api/cricket-toss/active').get_json()[0]['id'] == toss['id']


def test_result_declared_by_another_admin_is_a_conflict(app, admin, player, football_match):
    game, _ = team_match_service.play(player, football_match.id, 'team_a', 1000)
    match = team_match_service.get_match(football_match.id)
    assert match.result == 'pending'

    # another admin declares after this session read the match as pending
    db.session.execute(
        update(TeamMatch).where(TeamMatch.id == match.id)
        .values(result='team_a', status='resulted')
        .execution_options(synchronize_session=False)
    )
    before = db.session.get(User, player.id).balance

    with pytest.raises(Conflict):
        team_match_service.declare_result(match.id, 'team_a', actor=admin)
    assert db.session.get(User, player.id).balance == before
    assert db.session.get(Game, game.id).result == 'pending'
