import random
from dataclasses import dataclass
from typing import Iterable, List

from sqlalchemy.exc import SQLAlchemyError

from memory_match import db
from memory_match.models import DeckEntry
from .errors import StorageError, ValidationError


DEFAULT_DECK = [
    (1, 'Apple', 'Quả táo'),
    (2, 'Dog', 'Con chó'),
    (3, 'Cat', 'Con mèo'),
    (4, 'House', 'Ngôi nhà'),
    (5, 'Book', 'Quyển sách'),
    (6, 'Water', 'Nước'),
    (7, 'Sun', 'Mặt trời'),
    (8, 'Moon', 'Mặt trăng'),
]


@dataclass
class CardSpec:
    pair_id: int
    content: str
    side: str


def generate_cards(entries: Iterable[DeckEntry]) -> List[CardSpec]:
    """Two unshuffled cards (face A, face B) per enabled deck entry."""
    cards: List[CardSpec] = []
    for entry in entries:
        if not entry.enabled:
            continue
        cards.append(CardSpec(pair_id=entry.pair_id, content=entry.face_a, side='A'))
        cards.append(CardSpec(pair_id=entry.pair_id, content=entry.face_b, side='B'))
    return cards


def shuffle_cards(cards: list, rng=random) -> list:
    # Fisher-Yates
    for i in range(len(cards) - 1, 0, -1):
        j = rng.randint(0, i)
        cards[i], cards[j] = cards[j], cards[i]
    return cards


def enabled_entries() -> List[DeckEntry]:
    return DeckEntry.query.filter_by(enabled=True).order_by(DeckEntry.pair_id).all()


def list_deck() -> List[DeckEntry]:
    return DeckEntry.query.order_by(DeckEntry.pair_id).all()


def seed_default_deck() -> int:
    """Insert the default vocabulary when the deck is empty. Caller commits."""
    if DeckEntry.query.count():
        return 0
    for pair_id, face_a, face_b in DEFAULT_DECK:
        db.session.add(DeckEntry(pair_id=pair_id, face_a=face_a, face_b=face_b, enabled=True))
    return len(DEFAULT_DECK)


def _clean_face(value, field, idx):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f'pairs[{idx}].{field} must be a non-empty string')
    return value.strip()


def validate_pairs(pairs) -> List[dict]:
    if not isinstance(pairs, list):
        raise ValidationError('pairs array required')
    cleaned = []
    seen = set()
    for idx, p in enumerate(pairs):
        if not isinstance(p, dict):
            raise ValidationError(f'pairs[{idx}] must be an object')
        pair_id = p.get('pairId')
        if isinstance(pair_id, bool) or not isinstance(pair_id, int):
            raise ValidationError(f'pairs[{idx}].pairId must be an integer')
        if pair_id in seen:
            raise ValidationError(f'duplicate pairId {pair_id}')
        seen.add(pair_id)
        cleaned.append({
            'pair_id': pair_id,
            'face_a': _clean_face(p.get('faceA'), 'faceA', idx),
            'face_b': _clean_face(p.get('faceB'), 'faceB', idx),
            'enabled': bool(p.get('enabled', True)),
        })
    return cleaned


def replace_deck(pairs) -> int:
    """Replace the whole deck. Boards already dealt are left untouched."""
    cleaned = validate_pairs(pairs)
    try:
        DeckEntry.query.delete()
        for row in cleaned:
            db.session.add(DeckEntry(**row))
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageError() from exc
    return len(cleaned)
