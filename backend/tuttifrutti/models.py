from tuttifrutti import db
from tuttifrutti.services.game.constants import (
    ROOM_CODE_CHARS, ROOM_CODE_LENGTH, ROUND_LETTERS, NULL_ID,
    ROOM_LOBBY, ROUND_WRITING, setting,
)
from datetime import datetime, timezone
import json
import random
import uuid


def _new_id():
    return str(uuid.uuid4())


def utcnow():
    # Naive UTC: SQLite drops tzinfo on the way back
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_room_code(length=None):
    """Random invitation code. Collisions are left to the unique constraint."""
    length = int(length or setting('ROOM_CODE_LENGTH', ROOM_CODE_LENGTH))
    return ''.join(random.choices(ROOM_CODE_CHARS, k=length))


def random_letter():
    return random.choice(ROUND_LETTERS)


class Room(db.Model):
    __tablename__ = 'rooms'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    invitation_code = db.Column(db.String(16), unique=True, nullable=False, index=True)
    # Not a foreign key: holds NULL_ID until the organizer row exists
    organizer_id = db.Column(db.String(36), nullable=False, default=NULL_ID)
    categories_json = db.Column(db.Text, nullable=False, default='[]')
    state = db.Column(db.String(32), nullable=False, default=ROOM_LOBBY)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    players = db.relationship('Player', back_populates='room', order_by='Player.created_at')
    rounds = db.relationship('Round', back_populates='room', order_by='Round.round_number')

    @property
    def categories(self):
        return json.loads(self.categories_json or '[]')

    @categories.setter
    def categories(self, value):
        self.categories_json = json.dumps(list(value))

    def __init__(self, **kwargs):
        super(Room, self).__init__(**kwargs)
        if not self.invitation_code:
            self.invitation_code = generate_room_code()

    def to_dict(self):
        return {
            'id': self.id,
            'invitation_code': self.invitation_code,
            'organizer_id': self.organizer_id,
            'categories': self.categories,
            'state': self.state,
        }


class Player(db.Model):
    __tablename__ = 'players'
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    room_id = db.Column(db.String(36), db.ForeignKey('rooms.id'), nullable=False, index=True)
    name = db.Column(db.String(64), nullable=False)
    is_organizer = db.Column(db.Boolean, default=False, nullable=False)
    is_ready = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    room = db.relationship('Room', back_populates='players')

    def to_dict(self):
        return {
            'id': self.id,
            'room_id': self.room_id,
            'name': self.name,
            'is_organizer': self.is_organizer,
            'is_ready': self.is_ready,
        }


class Round(db.Model):
    __tablename__ = 'rounds'
    __table_args__ = (db.UniqueConstraint('room_id', 'round_number', name='uq_round_room_number'),)
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    room_id = db.Column(db.String(36), db.ForeignKey('rooms.id'), nullable=False, index=True)
    round_number = db.Column(db.Integer, nullable=False)
    letter = db.Column(db.String(1), nullable=False, default=random_letter)
    letter_rerolled = db.Column(db.Boolean, default=False, nullable=False)
    state = db.Column(db.String(32), nullable=False, default=ROUND_WRITING)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    room = db.relationship('Room', back_populates='rounds')
    answers = db.relationship('Answer', back_populates='round', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'room_id': self.room_id,
            'round_number': self.round_number,
            'letter': self.letter,
            'letter_rerolled': self.letter_rerolled,
            'state': self.state,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Answer(db.Model):
    __tablename__ = 'answers'
    __table_args__ = (
        db.UniqueConstraint('round_id', 'player_id', 'category_index', name='uq_answer_round_player_category'),
    )
    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    round_id = db.Column(db.String(36), db.ForeignKey('rounds.id'), nullable=False, index=True)
    player_id = db.Column(db.String(36), db.ForeignKey('players.id'), nullable=False, index=True)
    category_index = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(64), nullable=False, default='')
    text = db.Column(db.String(64), nullable=False, default='')
    points = db.Column(db.Integer, nullable=False, default=0)

    round = db.relationship('Round', back_populates='answers')
    player = db.relationship('Player')

    def to_dict(self):
        return {
            'id': self.id,
            'round_id': self.round_id,
            'player_id': self.player_id,
            'category_index': self.category_index,
            'category': self.category,
            'text': self.text,
            'points': self.points,
        }
