import json
from datetime import UTC, datetime
from gamenight.app import db
from gamenight.services.formatting import serialize_time


def utcnow_naive():
    """Naive UTC timestamp for DateTime columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def _safe_json(raw_value, fallback=None):
    if fallback is None:
        fallback = {}
    if not raw_value:
        return fallback
    try:
        return json.loads(raw_value)
    except (TypeError, ValueError):
        return fallback


class User(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    name = db.Column(db.String(120), default='')
    avatar_url = db.Column(db.String(500), default='')
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    def to_dict(self):
        return {
            'id': self.id, 'username': self.username, 'email': self.email,
            'name': self.name, 'avatar_url': self.avatar_url,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def public_dict(self):
        return {'id': self.id, 'username': self.username, 'name': self.name,
                'avatar_url': self.avatar_url}

    @property
    def display_name(self):
        return self.name or self.username


# ── Games ─────────────────────────────────────────────────────────────

class Game(db.Model):
    """A scheduling context owned by a GM."""
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    gm_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    play_days = db.Column(db.Text, default='[]')  # JSON list, 0=Sunday..6=Saturday
    special_play_dates = db.Column(db.Text, default='[]')  # JSON list of YYYY-MM-DD
    scheduling_window_months = db.Column(db.Integer, default=2, nullable=False)
    default_start_time = db.Column(db.Time, nullable=True)
    default_end_time = db.Column(db.Time, nullable=True)
    timezone = db.Column(db.String(64), nullable=True)
    invite_code = db.Column(db.String(32), unique=True, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    gm = db.relationship('User', backref='games_run')
    memberships = db.relationship('GameMembership', backref='game', lazy='selectin',
                                  cascade='all, delete-orphan')
    availability = db.relationship('Availability', backref='game',
                                   cascade='all, delete-orphan')
    sessions = db.relationship('GameSession', backref='game',
                               cascade='all, delete-orphan')

    @property
    def play_days_list(self):
        return _safe_json(self.play_days, [])

    @play_days_list.setter
    def play_days_list(self, values):
        self.play_days = json.dumps(sorted(set(values or [])))

    @property
    def special_play_dates_list(self):
        return _safe_json(self.special_play_dates, [])

    @special_play_dates_list.setter
    def special_play_dates_list(self, values):
        self.special_play_dates = json.dumps(sorted(set(values or [])))

    def to_dict(self):
        return {
            'id': self.id, 'name': self.name, 'description': self.description,
            'gm_id': self.gm_id,
            'play_days': self.play_days_list,
            'special_play_dates': self.special_play_dates_list,
            'scheduling_window_months': self.scheduling_window_months,
            'default_start_time': serialize_time(self.default_start_time),
            'default_end_time': serialize_time(self.default_end_time),
            'timezone': self.timezone,
            'invite_code': self.invite_code,
            'gm': self.gm.public_dict() if self.gm else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class GameMembership(db.Model):
    """A player on a game's roster; co-GMs may confirm sessions."""
    __table_args__ = (
        db.UniqueConstraint('game_id', 'user_id', name='uq_game_membership_game_user'),
    )
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    is_co_gm = db.Column(db.Boolean, default=False, nullable=False)
    joined_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    user = db.relationship('User', backref='memberships')

    def to_dict(self):
        return {
            'id': self.id, 'game_id': self.game_id, 'user_id': self.user_id,
            'is_co_gm': self.is_co_gm,
            'joined_at': self.joined_at.isoformat() if self.joined_at else None,
            'user': self.user.public_dict() if self.user else None,
        }


class Availability(db.Model):
    """One user's status for one date in one game. Missing row = pending."""
    __table_args__ = (
        db.UniqueConstraint('user_id', 'game_id', 'date', name='uq_availability_user_game_date'),
    )
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False)
    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(20), nullable=False)  # available, unavailable, maybe
    comment = db.Column(db.Text, nullable=True)
    available_after = db.Column(db.Time, nullable=True)
    available_until = db.Column(db.Time, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())
    updated_at = db.Column(db.DateTime, default=lambda: utcnow_naive(),
                           onupdate=lambda: utcnow_naive())

    def to_dict(self):
        return {
            'id': self.id, 'user_id': self.user_id, 'game_id': self.game_id,
            'date': self.date.isoformat() if self.date else None,
            'status': self.status, 'comment': self.comment,
            'available_after': serialize_time(self.available_after),
            'available_until': serialize_time(self.available_until),
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class GameSession(db.Model):
    """A confirmed session. Cancelling deletes the row."""
    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey('game.id'), nullable=False)
    date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=True)
    end_time = db.Column(db.Time, nullable=True)
    status = db.Column(db.String(20), default='confirmed', nullable=False)
    confirmed_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: utcnow_naive())

    def to_dict(self):
        return {
            'id': self.id, 'game_id': self.game_id,
            'date': self.date.isoformat() if self.date else None,
            'start_time': serialize_time(self.start_time),
            'end_time': serialize_time(self.end_time),
            'status': self.status, 'confirmed_by': self.confirmed_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
