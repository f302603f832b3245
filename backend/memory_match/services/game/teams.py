from typing import Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from memory_match import db
from memory_match.models import Team
from . import board
from .deck import enabled_entries
from .errors import InvalidToken, StorageError, ValidationError


def normalize_team_name(raw) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise ValidationError('teamName is required')
    max_len = int(current_app.config.get('TEAM_NAME_MAX_LEN', 30))
    return raw.strip()[:max_len]


def find_team(token) -> Optional[Team]:
    if not token or not isinstance(token, str):
        return None
    return Team.query.filter_by(token=token).first()


def join_team(raw_name) -> Tuple[Team, bool]:
    """Return (team, created). Joining with a known name hands back that team."""
    name = normalize_team_name(raw_name)
    existing = Team.query.filter_by(name=name).first()
    if existing:
        return existing, False
    try:
        team = Team(name=name, score=0)
        db.session.add(team)
        db.session.flush()
        board.create_board(team.id, enabled_entries())
        db.session.commit()
    except IntegrityError:
        # Lost a race against a concurrent join with the same name
        db.session.rollback()
        existing = Team.query.filter_by(name=name).first()
        if existing is None:
            raise StorageError()
        return existing, False
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageError() from exc
    current_app.logger.info(f"[join] team={team.id} name={team.name!r}")
    return team, True


def board_state(team: Team, lifecycle) -> dict:
    return {
        'board': board.get_safe_view(team.id),
        'score': team.score,
        'remainingTime': lifecycle.remaining_seconds(),
        'gameActive': lifecycle.is_active(),
    }


def board_refresh(token, lifecycle) -> Tuple[Team, dict]:
    team = find_team(token)
    if team is None:
        raise InvalidToken()
    return team, board_state(team, lifecycle)
