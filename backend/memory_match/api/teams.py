from flask import Blueprint, jsonify, request
from memory_match.services.game import get_services
from memory_match.services.game.errors import GameError
from memory_match.services.game.teams import join_team, board_state

teams = Blueprint('teams', __name__)


@teams.errorhandler(GameError)
def handle_game_error(exc):
    return jsonify(exc.to_dict()), exc.status_code


@teams.route('/join', methods=['POST'])
def join():
    """
    Joins (or re-joins) a team by name and returns its token and board.
    """
    data = request.get_json(silent=True) or {}
    services = get_services()
    team, created = join_team(data.get('teamName'))
    if created:
        services.gateway.broadcast_scoreboard(services.lifecycle.remaining_seconds())

    payload = {'teamToken': team.token, 'teamName': team.name}
    payload.update(board_state(team, services.lifecycle))
    return jsonify(payload), 200


@teams.route('/scoreboard', methods=['GET'])
def scoreboard():
    services = get_services()
    return jsonify(services.gateway.scoreboard(services.lifecycle.remaining_seconds())), 200
