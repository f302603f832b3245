from flask import current_app, request
from flask_socketio import emit, join_room

from memory_match import socketio
from memory_match.services.game import get_services
from memory_match.services.game.broadcast import NAMESPACE, team_room
from memory_match.services.game.errors import GameError, InvalidToken
from memory_match.services.game.teams import board_refresh, find_team


def handle_connect():
    services = get_services()
    emit('connected', {'message': f'Connected to {NAMESPACE}'})
    emit('scoreboard', services.gateway.scoreboard(services.lifecycle.remaining_seconds()))


def handle_disconnect(*args):
    current_app.logger.debug(f"[ws-disconnect] sid={request.sid}")


def _reject(exc: GameError) -> None:
    # Rejections go to the requester only
    emit('flipResult', exc.to_dict())


def handle_flip_card(data):
    data = data or {}
    token = data.get('teamToken')
    card_id = data.get('cardId')
    if not token or card_id is None:
        return
    services = get_services()
    team = find_team(token)
    if team is not None:
        # cardsHidden is delivered through the team room
        join_room(team_room(team.id))
    try:
        services.turns.flip(token, card_id, reply=lambda event, payload: emit(event, payload))
    except GameError as exc:
        current_app.logger.info(f"[flip-reject] sid={request.sid} code={exc.code}")
        _reject(exc)


def handle_get_board(data):
    token = (data or {}).get('teamToken')
    services = get_services()
    try:
        team, state = board_refresh(token, services.lifecycle)
    except InvalidToken as exc:
        _reject(exc)
        return
    join_room(team_room(team.id))
    emit('boardUpdate', state)


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('flipCard', handle_flip_card, namespace=NAMESPACE)
    socketio.on_event('getBoard', handle_get_board, namespace=NAMESPACE)
