"""Server-initiated Socket.IO pushes.

All emits are fire-and-forget: no acknowledgement, no retry.
"""

from typing import List

from memory_match.models import Team
from . import board

NAMESPACE = '/ws'


def team_room(team_id: int) -> str:
    return f"team:{team_id}"


class BroadcastGateway:
    def __init__(self, sio, namespace: str = NAMESPACE):
        self.sio = sio
        self.namespace = namespace

    def _emit(self, event: str, payload=None, to=None) -> None:
        if payload is None:
            self.sio.emit(event, to=to, namespace=self.namespace)
        else:
            self.sio.emit(event, payload, to=to, namespace=self.namespace)

    def scoreboard(self, remaining_time: int) -> List[dict]:
        teams = Team.query.order_by(Team.score.desc(), Team.id).all()
        matched = board.matched_counts()
        return [
            {
                'teamName': t.name,
                'score': t.score,
                'matchesFound': matched.get(t.id, 0) // 2,
                'remainingTime': remaining_time,
            }
            for t in teams
        ]

    def broadcast_scoreboard(self, remaining_time: int) -> List[dict]:
        snapshot = self.scoreboard(remaining_time)
        self._emit('scoreboard', snapshot)
        return snapshot

    def push_timer(self, remaining_time: int) -> None:
        self._emit('timer', {'remainingTime': remaining_time})

    def game_started(self, remaining_time: int) -> None:
        self._emit('gameStarted', {'remainingTime': remaining_time})

    def game_ended(self) -> None:
        self._emit('gameEnded')

    def game_reset(self) -> None:
        self._emit('gameReset')

    def cards_hidden(self, team_id: int, card_ids) -> None:
        self._emit('cardsHidden', {'cardIds': list(card_ids)}, to=team_room(team_id))
