from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from memory_game import db
from memory_game.services.leaderboard import Leaderboard


scores_api = Blueprint('scores_api', __name__)


def _limit(config_key, default):
    configured = int(current_app.config.get(config_key, default))
    requested = request.args.get('limit', type=int)
    if requested is None or requested <= 0:
        return configured
    return min(requested, configured)


@scores_api.route('/leaderboard', methods=['GET'])
def leaderboard():
    board = Leaderboard(db.session)
    entries = board.top(_limit('LEADERBOARD_SIZE', 10))
    stats = board.global_stats()
    return jsonify({
        'leaderboard': [
            dict(entry.to_dict(), rank=rank) for rank, entry in enumerate(entries, start=1)
        ],
        'global_stats': stats,
        'total_players': stats['total_players'],
    })


@scores_api.route('/me', methods=['GET'])
@login_required
def personal_scores():
    board = Leaderboard(db.session)
    entries = board.for_player(current_user.id, _limit('PERSONAL_SCORES_LIMIT', 20))
    return jsonify({
        'username': current_user.username,
        'user_id': current_user.id,
        'scores': [entry.to_dict() for entry in entries],
        'player_stats': board.player_stats(current_user.id),
    })


@scores_api.route('/stats', methods=['GET'])
def global_statistics():
    return jsonify(Leaderboard(db.session).global_stats())
