from memory_match import db
import uuid

CARD_HIDDEN = 'hidden'
CARD_FLIPPED = 'flipped'
CARD_MATCHED = 'matched'
CARD_STATES = (CARD_HIDDEN, CARD_FLIPPED, CARD_MATCHED)

DEFAULT_TIME_LIMIT_SEC = 120
DEFAULT_MATCH_POINTS = 10
DEFAULT_MISS_PENALTY = 2


def generate_team_token():
    return str(uuid.uuid4())


class Team(db.Model):
    __tablename__ = 'team'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), unique=True, nullable=False, index=True)
    token = db.Column(db.String(64), unique=True, nullable=False, index=True, default=generate_team_token)
    score = db.Column(db.Integer, nullable=False, default=0)
    cards = db.relationship('Card', back_populates='team', cascade='all, delete-orphan', passive_deletes=True)

    __table_args__ = {'sqlite_autoincrement': True}

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'score': self.score,
        }


class Card(db.Model):
    __tablename__ = 'card'
    id = db.Column(db.Integer, primary_key=True)
    team_id = db.Column(db.Integer, db.ForeignKey('team.id', ondelete='CASCADE'), nullable=False, index=True)
    pair_id = db.Column(db.Integer, nullable=False)
    content = db.Column(db.Text, nullable=False)
    side = db.Column(db.String(1), nullable=False)  # 'A' or 'B'
    state = db.Column(db.String(16), nullable=False, default=CARD_HIDDEN)
    position = db.Column(db.Integer, nullable=False)
    team = db.relationship('Team', back_populates='cards')

    # Ids are never reused, so a stale card id cannot hit a newly dealt board
    __table_args__ = (
        db.UniqueConstraint('team_id', 'position', name='uq_card_team_position'),
        {'sqlite_autoincrement': True},
    )

    @property
    def is_face_up(self):
        return self.state in (CARD_FLIPPED, CARD_MATCHED)

    def to_safe_dict(self):
        # Hidden cards never carry their content to a client
        return {
            'cardId': self.id,
            'position': self.position,
            'state': self.state,
            'content': self.content if self.is_face_up else None,
        }


class DeckEntry(db.Model):
    __tablename__ = 'deck_entry'
    id = db.Column(db.Integer, primary_key=True)
    pair_id = db.Column(db.Integer, nullable=False, unique=True)
    face_a = db.Column(db.Text, nullable=False)
    face_b = db.Column(db.Text, nullable=False)
    enabled = db.Column(db.Boolean, nullable=False, default=True)

    def to_dict(self):
        return {
            'pairId': self.pair_id,
            'faceA': self.face_a,
            'faceB': self.face_b,
            'enabled': self.enabled,
        }


class GameConfig(db.Model):
    """Singleton row (id=1) with scoring rules and the game clock."""
    __tablename__ = 'game_config'
    id = db.Column(db.Integer, primary_key=True)
    time_limit_sec = db.Column(db.Integer, nullable=False, default=DEFAULT_TIME_LIMIT_SEC)
    match_points = db.Column(db.Integer, nullable=False, default=DEFAULT_MATCH_POINTS)
    miss_penalty = db.Column(db.Integer, nullable=False, default=DEFAULT_MISS_PENALTY)
    game_started = db.Column(db.Boolean, nullable=False, default=False)
    game_start_time = db.Column(db.BigInteger, nullable=True)  # unix ms

    __table_args__ = (
        db.CheckConstraint('id = 1', name='ck_game_config_singleton'),
    )

    @classmethod
    def get(cls):
        """Return the singleton row, creating it with defaults when missing."""
        cfg = db.session.get(cls, 1)
        if cfg is None:
            cfg = cls(
                id=1,
                time_limit_sec=DEFAULT_TIME_LIMIT_SEC,
                match_points=DEFAULT_MATCH_POINTS,
                miss_penalty=DEFAULT_MISS_PENALTY,
                game_started=False,
            )
            db.session.add(cfg)
            db.session.flush()
        return cfg

    def to_dict(self):
        return {
            'timeLimitSec': self.time_limit_sec,
            'matchPoints': self.match_points,
            'missPenalty': self.miss_penalty,
            'gameStarted': self.game_started,
            'gameStartTime': self.game_start_time,
        }
