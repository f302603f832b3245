"""Game domain services: boards, turns, clock and broadcasts.

This package holds the game mechanics imported by HTTP routes and socket
handlers, keeping transport concerns separated from the game itself.
"""

from dataclasses import dataclass

from flask import current_app

from memory_match import socketio
from .broadcast import BroadcastGateway
from .lifecycle import GameLifecycle
from .turns import TurnCoordinator


EXTENSION_KEY = 'memory_match'


@dataclass
class GameServices:
    gateway: BroadcastGateway
    lifecycle: GameLifecycle
    turns: TurnCoordinator


def init_game_services(app) -> GameServices:
    gateway = BroadcastGateway(socketio)
    lifecycle = GameLifecycle(app, gateway)
    turns = TurnCoordinator(
        app,
        lifecycle,
        gateway,
        spawn=socketio.start_background_task,
        sleep=socketio.sleep,
    )
    lifecycle.turns = turns
    services = GameServices(gateway=gateway, lifecycle=lifecycle, turns=turns)
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services(app=None) -> GameServices:
    return (app or current_app).extensions[EXTENSION_KEY]
