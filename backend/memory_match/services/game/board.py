"""Per-team card boards.

Mutators stage changes on the session and leave the commit to the caller so a
whole flip step lands in one transaction.
"""

import random
from typing import Iterable, List, Optional

from sqlalchemy import func

from memory_match import db
from memory_match.models import Card, CARD_HIDDEN, CARD_MATCHED, CARD_STATES
from .deck import generate_cards, shuffle_cards


def create_board(team_id: int, deck_entries: Iterable, rng=random) -> List[Card]:
    specs = shuffle_cards(generate_cards(deck_entries), rng=rng)
    cards = [
        Card(
            team_id=team_id,
            pair_id=spec.pair_id,
            content=spec.content,
            side=spec.side,
            state=CARD_HIDDEN,
            position=position,
        )
        for position, spec in enumerate(specs)
    ]
    db.session.add_all(cards)
    db.session.flush()
    return cards


def get_card(team_id: int, card_id) -> Optional[Card]:
    """The card only if it belongs to the given team."""
    return Card.query.filter_by(id=card_id, team_id=team_id).first()


def get_board(team_id: int) -> List[Card]:
    return Card.query.filter_by(team_id=team_id).order_by(Card.position).all()


def get_safe_view(team_id: int) -> List[dict]:
    return [card.to_safe_dict() for card in get_board(team_id)]


def set_state(card_id: int, state: str) -> int:
    return set_states_for_pair([card_id], state)


def set_states_for_pair(card_ids, state: str) -> int:
    """Set the state of every listed card; returns how many rows still existed."""
    if state not in CARD_STATES:
        raise ValueError(f'unknown card state {state!r}')
    ids = list(card_ids)
    if not ids:
        return 0
    return Card.query.filter(Card.id.in_(ids)).update({Card.state: state}, synchronize_session='fetch')


def matched_count(team_id: int) -> int:
    return Card.query.filter_by(team_id=team_id, state=CARD_MATCHED).count()


def matched_counts() -> dict:
    rows = (
        db.session.query(Card.team_id, func.count(Card.id))
        .filter(Card.state == CARD_MATCHED)
        .group_by(Card.team_id)
        .all()
    )
    return {team_id: count for team_id, count in rows}


def discard_all() -> None:
    Card.query.delete()
