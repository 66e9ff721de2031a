import random

import pytest

from conftest import play_to_completion
from memory_game import db
from memory_game.engine import Game, NotCompleted
from memory_game.models import Score, User
from memory_game.services.leaderboard import Leaderboard, validate_result


class Clock:
    def __init__(self):
        self.now = 1_700_000_000

    def __call__(self):
        return self.now


def make_user(name):
    user = User(username=name)
    user.set_password('correct-horse-42!')
    db.session.add(user)
    db.session.commit()
    return user


def finished_game(owner_id, wasted_turns=0, seconds=30, difficulty='small'):
    clock = Clock()
    game = Game(difficulty, owner_id, rng=random.Random(owner_id), clock=clock)
    slots = {}
    for position, card in enumerate(game.cards):
        slots.setdefault(card.image, []).append(position)
    pairs = list(slots.values())
    for _ in range(wasted_turns):
        game.flip_card(pairs[0][0])
        game.flip_card(pairs[1][0])
        game.hide_pending_reveal()
    for a, b in pairs:
        game.flip_card(a)
        game.flip_card(b)
    clock.now += seconds
    return game


@pytest.fixture()
def board(flask_app):
    return Leaderboard(db.session)


def test_record_and_rank(board):
    alice = make_user('alice')
    bob = make_user('bob')
    board.record(finished_game(alice.id, wasted_turns=7), alice)
    board.record(finished_game(bob.id, seconds=50), bob)
    board.record(finished_game(alice.id, seconds=20), alice)

    top = board.top(10)
    assert [(s.username, s.score, s.time_seconds) for s in top] == [
        ('alice', 300, 20),
        ('bob', 300, 50),
        ('alice', 260, 30),
    ]
    assert board.top(1)[0].time_seconds == 20


def test_player_scores_and_stats(board):
    alice = make_user('alice')
    board.record(finished_game(alice.id, wasted_turns=7), alice)
    board.record(finished_game(alice.id, seconds=12), alice)

    scores = board.for_player(alice.id)
    assert [s.score for s in scores] == [300, 260]
    stats = board.player_stats(alice.id)
    assert stats['games_played'] == 2
    assert stats['best_score'] == 300
    assert stats['average_score'] == 280.0
    assert stats['best_time'] == 12
    assert stats['total_moves'] == 3 + 10


def test_stats_for_unknown_player(board):
    stats = board.player_stats(999)
    assert stats['games_played'] == 0
    assert stats['best_score'] is None
    assert stats['average_score'] is None


def test_global_stats(board):
    assert board.global_stats()['total_games'] == 0
    alice = make_user('alice')
    bob = make_user('bob')
    board.record(finished_game(alice.id), alice)
    board.record(finished_game(bob.id, difficulty='large'), bob)
    stats = board.global_stats()
    assert stats == {'total_games': 2, 'total_players': 2, 'average_score': 450.0, 'best_score': 600}


def test_record_requires_completed_game(board):
    alice = make_user('alice')
    with pytest.raises(NotCompleted):
        board.record(Game('small', alice.id), alice)


def test_record_requires_matching_owner(board):
    alice = make_user('alice')
    bob = make_user('bob')
    with pytest.raises(ValueError):
        board.record(finished_game(alice.id), bob)
    with pytest.raises(ValueError):
        board.record(finished_game(None), alice)
    assert Score.query.count() == 0


def test_is_top_score(board):
    alice = make_user('alice')
    for _ in range(3):
        board.record(finished_game(alice.id, wasted_turns=7), alice)
    assert board.is_top_score(100, limit=5)
    assert not board.is_top_score(260, limit=3)
    assert board.is_top_score(270, limit=3)


def test_validate_result():
    assert validate_result(3, 3, 10, 300) == []
    assert len(validate_result(4, 2, -1, 10)) == 4


def test_score_entry_metrics(flask_app, board):
    alice = make_user('alice')
    entry = board.record(finished_game(alice.id, wasted_turns=7, seconds=45), alice)
    data = entry.to_dict()
    assert data['moves_count'] == 10
    assert data['efficiency_percentage'] == 60.0
    assert data['average_time_per_pair'] == 15.0
    assert data['time_formatted'] == '45 sec'
    assert data['performance_level'] == 'Average'

    fast = board.record(finished_game(alice.id, seconds=20), alice)
    assert fast.to_dict()['performance_level'] == 'Excellent'


def test_leaderboard_endpoint_limit(client, flask_app):
    alice = make_user('alice')
    board = Leaderboard(db.session)
    for seconds in (10, 20, 30):
        board.record(finished_game(alice.id, seconds=seconds), alice)
    data = client.get('/api/scores/leaderboard?limit=2').get_json()
    assert [entry['rank'] for entry in data['leaderboard']] == [1, 2]
    assert data['total_players'] == 1
    assert data['global_stats']['total_games'] == 3


def test_personal_scores_require_login(client):
    res = client.get('/api/scores/me')
    assert res.status_code == 401


def test_personal_scores(logged_in_client):
    play_to_completion(logged_in_client)
    data = logged_in_client.get('/api/scores/me').get_json()
    assert data['username'] == 'alice'
    assert len(data['scores']) == 1
    assert data['player_stats']['games_played'] == 1


def test_global_stats_endpoint(client):
    data = client.get('/api/scores/stats').get_json()
    assert data['total_games'] == 0
