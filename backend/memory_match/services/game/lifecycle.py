"""Game clock and lifecycle: start, reset, timer tick, configuration.

All writes to the configuration singleton go through this module.
"""

import threading
import time
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

from memory_match import db
from memory_match.models import GameConfig, Team
from . import board
from .deck import enabled_entries
from .errors import StorageError, ValidationError


CONFIG_FIELDS = {
    # payload key: (column, minimum)
    'timeLimitSec': ('time_limit_sec', 1),
    'matchPoints': ('match_points', 0),
    'missPenalty': ('miss_penalty', 0),
}


def _now_ms() -> int:
    return int(time.time() * 1000)


def remaining_seconds_for(cfg: GameConfig, now_ms: int) -> int:
    if not cfg.game_started or cfg.game_start_time is None:
        return 0
    remaining = cfg.time_limit_sec * 1000 - (now_ms - cfg.game_start_time)
    return max(0, remaining // 1000)


class GameLifecycle:
    def __init__(self, app, gateway, now: Callable[[], int] = _now_ms):
        self.app = app
        self.gateway = gateway
        self.now = now
        self.turns = None  # wired by init_game_services
        self._lock = threading.RLock()

    def config(self) -> GameConfig:
        return GameConfig.get()

    def config_snapshot(self) -> dict:
        return self.config().to_dict()

    def remaining_seconds(self) -> int:
        return remaining_seconds_for(self.config(), self.now())

    def is_active(self) -> bool:
        cfg = self.config()
        return bool(cfg.game_started) and remaining_seconds_for(cfg, self.now()) > 0

    def _commit(self, what: str) -> None:
        try:
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            self.app.logger.exception(f"[{what}-fail]")
            raise StorageError() from exc

    def update_config(self, **fields) -> dict:
        """Apply any subset of timeLimitSec / matchPoints / missPenalty."""
        unknown = set(fields) - set(CONFIG_FIELDS)
        if unknown:
            raise ValidationError(f"unknown config field(s): {', '.join(sorted(unknown))}")
        cleaned = {}
        for key, value in fields.items():
            if value is None:
                continue
            column, minimum = CONFIG_FIELDS[key]
            if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
                raise ValidationError(f"{key} must be an integer")
            try:
                number = int(value)
            except (TypeError, ValueError):
                raise ValidationError(f"{key} must be an integer")
            if number < minimum:
                raise ValidationError(f"{key} must be >= {minimum}")
            cleaned[column] = number

        with self._lock:
            cfg = self.config()
            for column, number in cleaned.items():
                setattr(cfg, column, number)
            self._commit('config')
            snapshot = cfg.to_dict()
        self.app.logger.info(f"[config] {snapshot}")
        return snapshot

    def start(self) -> None:
        with self._lock:
            with self.turns.exclusive():
                try:
                    Team.query.update({Team.score: 0})
                    board.discard_all()
                    entries = enabled_entries()
                    teams = Team.query.order_by(Team.id).all()
                    for team in teams:
                        board.create_board(team.id, entries)
                    cfg = self.config()
                    cfg.game_started = True
                    cfg.game_start_time = self.now()
                    db.session.commit()
                except SQLAlchemyError as exc:
                    db.session.rollback()
                    self.app.logger.exception("[game-start-fail]")
                    raise StorageError() from exc
                time_limit = cfg.time_limit_sec
            self.app.logger.info(f"[game-start] teams={len(teams)} pairs={len(entries)} limit={time_limit}s")
        self.gateway.broadcast_scoreboard(self.remaining_seconds())
        self.gateway.game_started(time_limit)

    def reset(self) -> None:
        with self._lock:
            with self.turns.exclusive(retire=True):
                try:
                    cfg = self.config()
                    cfg.game_started = False
                    cfg.game_start_time = None
                    board.discard_all()
                    Team.query.delete()
                    db.session.commit()
                except SQLAlchemyError as exc:
                    db.session.rollback()
                    self.app.logger.exception("[game-reset-fail]")
                    raise StorageError() from exc
            self.app.logger.info("[game-reset]")
        self.gateway.broadcast_scoreboard(0)
        self.gateway.game_reset()

    def tick(self) -> bool:
        """Push the remaining time; end the game once the clock runs out.

        Returns True only on the tick that ended the game.
        """
        with self._lock:
            db.session.expire_all()
            cfg = self.config()
            if not cfg.game_started or cfg.game_start_time is None:
                return False
            remaining = remaining_seconds_for(cfg, self.now())
            ended = False
            if remaining <= 0:
                cfg.game_started = False
                self._commit('game-end')
                ended = True
        self.gateway.push_timer(remaining)
        if ended:
            self.app.logger.info("[game-end] time is up")
            self.gateway.game_ended()
            self.gateway.broadcast_scoreboard(0)
        return ended
