import hmac
from functools import wraps

from flask import Blueprint, current_app, jsonify, request
from memory_match.models import Team
from memory_match.services.game import get_services
from memory_match.services.game.deck import list_deck, replace_deck
from memory_match.services.game.errors import GameError

admin = Blueprint('admin', __name__)


def admin_required(view):
    """Gate a view behind the shared X-Admin-Key secret."""
    @wraps(view)
    def wrapped(*args, **kwargs):
        supplied = request.headers.get('X-Admin-Key') or ''
        expected = current_app.config.get('ADMIN_KEY') or ''
        if not expected or not hmac.compare_digest(supplied.encode(), expected.encode()):
            current_app.logger.warning(f"[admin-denied] path={request.path}")
            return jsonify({'error': 'Unauthorized'}), 401
        return view(*args, **kwargs)
    return wrapped


@admin.errorhandler(GameError)
def handle_game_error(exc):
    return jsonify(exc.to_dict()), exc.status_code


@admin.route('', methods=['GET'])
@admin_required
def overview():
    """
    Returns configuration, deck and teams for the admin dashboard.
    """
    services = get_services()
    return jsonify({
        'config': services.lifecycle.config_snapshot(),
        'deck': [entry.to_dict() for entry in list_deck()],
        'teams': [team.to_dict() for team in Team.query.order_by(Team.id).all()],
    }), 200


@admin.route('/config', methods=['POST'])
@admin_required
def update_config():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'JSON object required'}), 400
    fields = {k: data.get(k) for k in ('timeLimitSec', 'matchPoints', 'missPenalty') if k in data}
    config = get_services().lifecycle.update_config(**fields)
    return jsonify({'ok': True, 'config': config}), 200


@admin.route('/deck', methods=['POST'])
@admin_required
def update_deck():
    """
    Replaces the whole deck. Only boards dealt afterwards use it.
    """
    data = request.get_json(silent=True) or {}
    count = replace_deck(data.get('pairs'))
    current_app.logger.info(f"[deck] replaced pairs={count}")
    return jsonify({'ok': True, 'count': count}), 200


@admin.route('/start', methods=['POST'])
@admin_required
def start_game():
    get_services().lifecycle.start()
    return jsonify({'ok': True}), 200


@admin.route('/reset', methods=['POST'])
@admin_required
def reset_game():
    get_services().lifecycle.reset()
    return jsonify({'ok': True}), 200
