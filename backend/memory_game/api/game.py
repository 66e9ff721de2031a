from flask import Blueprint, jsonify, request, current_app, session
from flask_login import current_user
from memory_game import db, socketio
from memory_game.engine import DIFFICULTY_SETTINGS, Game, GameError
from memory_game.engine.errors import INVALID_POSITION, PROTOCOL_MESSAGES
from memory_game.services.leaderboard import Leaderboard
from memory_game.services.session_store import GameSessionStore


game_api = Blueprint('game_api', __name__)


def _store() -> GameSessionStore:
    return GameSessionStore(session)


def _no_game():
    return jsonify({'success': False, 'message': 'No game in progress. Start a new game.'}), 404


def _current_owner_id():
    return current_user.id if current_user.is_authenticated else None


def _state_payload(game: Game) -> dict:
    payload = game.state()
    payload['hide_delay_ms'] = current_app.config.get('HIDE_DELAY_MS', 1000)
    return payload


def _parse_position(raw):
    # JSON numbers and numeric strings are accepted, booleans are not
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


def _record_score(game: Game) -> bool:
    if game.owner_id is None or not current_user.is_authenticated or current_user.id != game.owner_id:
        current_app.logger.info(f"[score_skip] owner={game.owner_id} reason=no matching logged-in user")
        return False
    try:
        entry = Leaderboard(db.session).record(game, current_user)
    except ValueError as exc:
        db.session.rollback()
        current_app.logger.warning(f"[score_rejected] owner={game.owner_id} error={exc}")
        return False
    socketio.emit('leaderboard_update', {'score': entry.to_dict()}, to='leaderboard', namespace='/ws')
    return True


@game_api.route('/difficulties', methods=['GET'])
def list_difficulties():
    return jsonify([
        {'difficulty': difficulty.value, **settings}
        for difficulty, settings in DIFFICULTY_SETTINGS.items()
    ])


@game_api.route('/new', methods=['POST'])
def new_game():
    data = request.get_json(silent=True) or {}
    difficulty = data.get('difficulty', 'small')
    try:
        game = _store().create(difficulty, _current_owner_id())
    except GameError as exc:
        return jsonify(exc.to_dict()), 400
    current_app.logger.info(f"[new_game] difficulty={game.difficulty.value} owner={game.owner_id}")
    return jsonify({
        'success': True,
        'message': f"New {game.difficulty.value} game created! Find all the pairs.",
        'game': _state_payload(game),
    }), 201


@game_api.route('/state', methods=['GET'])
def get_state():
    game = _store().load()
    if game is None:
        return _no_game()
    return jsonify({'success': True, 'game': _state_payload(game)})


@game_api.route('/flip', methods=['POST'])
def flip_card():
    store = _store()
    game = store.load()
    if game is None:
        return _no_game()

    data = request.get_json(silent=True) or {}
    position = _parse_position(data.get('position'))
    if position is None:
        return jsonify({
            'success': False,
            'error_code': INVALID_POSITION,
            'message': PROTOCOL_MESSAGES[INVALID_POSITION],
        }), 400

    result = game.flip_card(position)
    if not result.success:
        current_app.logger.info(f"[flip_rejected] position={position} code={result.error_code}")
        return jsonify(result.to_dict()), 400

    store.save(game)
    payload = result.to_dict()
    if result.hide_required:
        payload['hide_delay_ms'] = current_app.config.get('HIDE_DELAY_MS', 1000)
    if result.game_completed:
        payload['final_stats'] = game.final_stats()
        payload['score_saved'] = _record_score(game)
        current_app.logger.info(
            f"[finish] owner={game.owner_id} score={game.score()} moves={game.moves} time={game.elapsed_seconds()}s"
        )
    payload['game'] = _state_payload(game)
    return jsonify(payload)


@game_api.route('/hide', methods=['POST'])
def hide_cards():
    store = _store()
    game = store.load()
    if game is None:
        return _no_game()
    hidden = game.hide_pending_reveal()
    store.save(game)
    return jsonify({'success': True, 'hidden': hidden, 'game': _state_payload(game)})


@game_api.route('/restart', methods=['POST'])
def restart_game():
    store = _store()
    game = store.load()
    if game is None:
        return _no_game()
    fresh = store.create(game.difficulty, game.owner_id)
    current_app.logger.info(f"[restart] difficulty={fresh.difficulty.value} owner={fresh.owner_id}")
    return jsonify({'success': True, 'message': 'Game restarted!', 'game': _state_payload(fresh)})


@game_api.route('/stats', methods=['GET'])
def final_stats():
    game = _store().load()
    if game is None:
        return _no_game()
    try:
        stats = game.final_stats()
    except GameError as exc:
        return jsonify(exc.to_dict()), 400
    return jsonify({'success': True, 'stats': stats})


@game_api.route('', methods=['DELETE'])
def abandon_game():
    _store().clear()
    return jsonify({'success': True})
