"""Per-team turn state machine and flip resolution.

A team is Idle (no open card), OneOpen, or Locked while a mismatched pair
waits to be hidden again. Every transition for a team happens under that
team's lock, so concurrent flips of one team are processed one at a time while
other teams proceed independently.
"""

import itertools
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from memory_match import db
from memory_match.models import Team, Card, CARD_FLIPPED, CARD_HIDDEN, CARD_MATCHED
from . import board
from .errors import (
    AlreadyFlipped,
    AlreadyMatched,
    CardNotFound,
    GameNotActive,
    InvalidToken,
    RateLimited,
    ResolutionInProgress,
    StorageError,
    TwoCardsOpen,
)

IDLE = 'idle'
ONE_OPEN = 'one_open'
LOCKED = 'locked'


@dataclass
class HideTask:
    """Deferred hide of a mismatched pair, retried until its commit lands."""
    team_id: int
    card_ids: Tuple[int, int]
    delay: float
    attempts: int = 0
    cancelled: threading.Event = field(default_factory=threading.Event)
    done: threading.Event = field(default_factory=threading.Event)

    def cancel(self) -> None:
        self.cancelled.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self.done.wait(timeout)


@dataclass
class TeamTurnState:
    team_id: int
    lock: threading.Lock = field(default_factory=threading.Lock)
    open_cards: List[int] = field(default_factory=list)
    pending_hide: Optional[HideTask] = None
    # Arrival ticket issued when the pending hide was scheduled
    locked_since: int = 0
    last_flip_at: Optional[float] = None
    retired: bool = False

    @property
    def phase(self) -> str:
        if self.pending_hide is not None:
            return LOCKED
        return ONE_OPEN if self.open_cards else IDLE

    def clear(self) -> None:
        if self.pending_hide is not None:
            self.pending_hide.cancel()
        self.pending_hide = None
        self.locked_since = 0
        self.open_cards = []
        self.last_flip_at = None


@dataclass
class FlipOutcome:
    team_id: int
    card_id: int
    content: str
    match: Optional[dict] = None

    @property
    def revealed(self) -> dict:
        return {'cardId': self.card_id, 'content': self.content}


class TurnCoordinator:
    def __init__(self, app, lifecycle, gateway, spawn: Callable, sleep: Callable, clock: Callable = time.monotonic):
        self.app = app
        self.lifecycle = lifecycle
        self.gateway = gateway
        self._spawn = spawn
        self._sleep = sleep
        self.clock = clock
        self._states: Dict[int, TeamTurnState] = {}
        self._registry_lock = threading.Lock()
        self._arrivals = itertools.count(1)

    @property
    def cooldown_sec(self) -> float:
        return int(self.app.config.get('FLIP_COOLDOWN_MS', 400)) / 1000.0

    @property
    def hide_delay_sec(self) -> float:
        return int(self.app.config.get('MISMATCH_HIDE_DELAY_MS', 1200)) / 1000.0

    @property
    def hide_retry_sec(self) -> float:
        return int(self.app.config.get('HIDE_RETRY_MS', 250)) / 1000.0

    def _state_for(self, team_id: int) -> TeamTurnState:
        with self._registry_lock:
            state = self._states.get(team_id)
            if state is None:
                state = TeamTurnState(team_id=team_id)
                self._states[team_id] = state
            return state

    def _existing_state(self, team_id: int) -> Optional[TeamTurnState]:
        with self._registry_lock:
            return self._states.get(team_id)

    # ---- introspection ----

    def open_cards(self, team_id: int) -> List[int]:
        state = self._existing_state(team_id)
        return list(state.open_cards) if state else []

    def phase(self, team_id: int) -> str:
        state = self._existing_state(team_id)
        return state.phase if state else IDLE

    def is_locked(self, team_id: int) -> bool:
        return self.phase(team_id) == LOCKED

    def pending_hide(self, team_id: int) -> Optional[HideTask]:
        state = self._existing_state(team_id)
        return state.pending_hide if state else None

    # ---- flip ----

    def flip(self, token: str, card_id, reply: Optional[Callable[[str, dict], None]] = None) -> FlipOutcome:
        """Flip one card for the team owning ``token``.

        ``reply(event, payload)`` receives ``cardFlipped`` and, when a pair
        completes, ``matchResult``; both are meant for the requester only.
        Raises a GameError subclass when the flip is rejected.
        """
        ticket = next(self._arrivals)
        if not self.lifecycle.is_active():
            raise GameNotActive()
        team = Team.query.filter_by(token=token).first() if token else None
        if team is None:
            raise InvalidToken()
        try:
            card_id = int(card_id)
        except (TypeError, ValueError):
            raise CardNotFound()

        state = self._state_for(team.id)
        with state.lock:
            if state.retired:
                raise InvalidToken()
            now = self.clock()
            if state.last_flip_at is not None and now - state.last_flip_at < self.cooldown_sec:
                raise RateLimited()
            state.last_flip_at = now
            if state.pending_hide is not None:
                if ticket < state.locked_since:
                    # Queued behind the flip that opened the second card
                    raise TwoCardsOpen()
                raise ResolutionInProgress()

            # Another thread may have committed since this session loaded
            db.session.expire_all()
            team = db.session.get(Team, team.id)
            if team is None:
                raise InvalidToken()
            card = board.get_card(team.id, card_id)
            if card is None:
                raise CardNotFound()
            if card.state == CARD_MATCHED:
                raise AlreadyMatched()
            if card.state == CARD_FLIPPED:
                raise AlreadyFlipped()
            if len(state.open_cards) >= 2:
                raise TwoCardsOpen()

            opened = state.open_cards + [card.id]
            outcome = FlipOutcome(team_id=team.id, card_id=card.id, content=card.content)
            try:
                board.set_state(card.id, CARD_FLIPPED)
                if len(opened) == 2:
                    outcome.match = self._resolve_pair(team, opened)
                db.session.commit()
            except SQLAlchemyError as exc:
                db.session.rollback()
                self.app.logger.exception(f"[flip-fail] team={team.id} card={card_id}")
                raise StorageError() from exc

            self.app.logger.info(f"[flip] team={team.id} card={card.id} open={len(opened)}")
            if outcome.match is None:
                state.open_cards = opened
            elif outcome.match['matched']:
                state.open_cards = []
            else:
                state.open_cards = opened
                state.locked_since = next(self._arrivals)
                state.pending_hide = self._schedule_hide(team.id, opened)

        if reply is not None:
            reply('cardFlipped', outcome.revealed)
            if outcome.match is not None:
                reply('matchResult', outcome.match)
        if outcome.match is not None:
            self.gateway.broadcast_scoreboard(self.lifecycle.remaining_seconds())
        return outcome

    def _resolve_pair(self, team: Team, card_ids: List[int]) -> dict:
        cards = {c.id: c for c in Card.query.filter(Card.id.in_(card_ids)).all()}
        first, second = cards[card_ids[0]], cards[card_ids[1]]
        cfg = self.lifecycle.config()
        matched = first.pair_id == second.pair_id
        if matched:
            board.set_states_for_pair(card_ids, CARD_MATCHED)
            team.score = team.score + cfg.match_points
            self.app.logger.info(f"[match] team={team.id} pair={first.pair_id} score={team.score}")
        else:
            team.score = max(0, team.score - cfg.miss_penalty)
            self.app.logger.info(f"[miss] team={team.id} cards={card_ids} score={team.score}")
        return {'matched': matched, 'cardIds': list(card_ids), 'score': team.score}

    # ---- delayed hide ----

    def _schedule_hide(self, team_id: int, card_ids: List[int]) -> HideTask:
        task = HideTask(team_id=team_id, card_ids=tuple(card_ids), delay=self.hide_delay_sec)
        self.app.logger.info(f"[hide-set] team={team_id} cards={list(card_ids)} delay={task.delay}s")
        self._spawn(self._run_hide, task)
        return task

    def _run_hide(self, task: HideTask) -> None:
        delay = task.delay
        try:
            while True:
                self._sleep(delay)
                if task.cancelled.is_set():
                    return
                with self.app.app_context():
                    if self._finish_hide(task):
                        return
                delay = self.hide_retry_sec
        finally:
            task.done.set()

    def _finish_hide(self, task: HideTask) -> bool:
        """Hide the pair and unlock the team.

        Returns False when the commit failed; the team stays Locked with
        both cards open and the caller retries the same task.
        """
        state = self._existing_state(task.team_id)
        if state is None:
            return True
        with state.lock:
            if task.cancelled.is_set() or state.pending_hide is not task:
                self.app.logger.info(f"[hide-abort] team={task.team_id} stale task")
                return True
            task.attempts += 1
            try:
                # Cards removed underneath the task simply match no rows
                board.set_states_for_pair(task.card_ids, CARD_HIDDEN)
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                self.app.logger.exception(
                    f"[hide-fail] team={task.team_id} cards={list(task.card_ids)} "
                    f"attempt={task.attempts} retry_in={self.hide_retry_sec}s"
                )
                return False
            state.open_cards = []
            state.pending_hide = None
        self.app.logger.info(f"[hide-fire] team={task.team_id} cards={list(task.card_ids)}")
        self.gateway.cards_hidden(task.team_id, task.card_ids)
        return True

    # ---- lifecycle hooks ----

    @contextmanager
    def exclusive(self, retire: bool = False):
        """Hold every team lock, clearing all turn state.

        Pending hides are cancelled. With ``retire`` the records are dropped
        so tokens of deleted teams stop resolving to live state.
        """
        with self._registry_lock:
            states = sorted(self._states.values(), key=lambda s: s.team_id)
            for state in states:
                state.lock.acquire()
            try:
                for state in states:
                    if state.pending_hide is not None:
                        self.app.logger.info(f"[hide-cancel] team={state.team_id}")
                    state.clear()
                    if retire:
                        state.retired = True
                if retire:
                    self._states.clear()
                yield
            finally:
                for state in reversed(states):
                    state.lock.release()

    def reset_all(self, retire: bool = False) -> None:
        with self.exclusive(retire=retire):
            pass
