from memory_game import db, bcrypt
from memory_game.engine import format_duration
from flask import current_app
from flask_login import UserMixin
from datetime import datetime, timezone
import re

USERNAME_PATTERN = re.compile(r'^[a-zA-Z0-9_-]+$')
PASSWORD_SPECIAL = re.compile(r'[!@#$%^&*()_+\-=\[\]{};\':"\\|,.<>/?]')


def _utcnow():
    return datetime.now(timezone.utc)


def validate_username(username):
    """Return a list of problems with ``username`` (empty when valid)."""
    errors = []
    username = (username or '').strip()
    if len(username) < 3 or len(username) > 20:
        errors.append('Username must be between 3 and 20 characters')
    if username and not USERNAME_PATTERN.match(username):
        errors.append('Username may only contain letters, digits, _ and -')
    return errors


def validate_password(password):
    errors = []
    password = password or ''
    if len(password) < 12:
        errors.append('Password must be at least 12 characters long')
    if not re.search(r'[0-9]', password):
        errors.append('Password must contain at least one digit')
    if not PASSWORD_SPECIAL.search(password):
        errors.append('Password must contain at least one special character')
    return errors


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    scores = db.relationship('Score', back_populates='user', lazy='dynamic')

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password or '')

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class Score(db.Model):
    """A finished game on the leaderboard."""
    __tablename__ = 'score'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    username = db.Column(db.String(64), nullable=False)
    difficulty = db.Column(db.String(16), nullable=False)
    pairs_count = db.Column(db.Integer, nullable=False)
    moves_count = db.Column(db.Integer, nullable=False)
    time_seconds = db.Column(db.Integer, nullable=False)
    score = db.Column(db.Integer, nullable=False, index=True)
    achieved_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    user = db.relationship('User', back_populates='scores')

    @property
    def efficiency_percentage(self):
        if self.moves_count <= 0:
            return 0.0
        return min(100.0, round(self.pairs_count * 2 / self.moves_count * 100, 1))

    @property
    def average_time_per_pair(self):
        if self.pairs_count <= 0:
            return 0.0
        return round(self.time_seconds / self.pairs_count, 1)

    def time_usage_percentage(self, time_limits=None):
        limits = time_limits or current_app.config.get('TIME_LIMITS_SEC', {})
        limit = limits.get(self.pairs_count) or max(limits.values(), default=120)
        return min(100.0, round(self.time_seconds / limit * 100, 1))

    def performance_level(self, time_limits=None):
        efficiency = self.efficiency_percentage
        time_usage = self.time_usage_percentage(time_limits)
        if efficiency >= 90 and time_usage <= 50:
            return 'Excellent'
        if efficiency >= 80 and time_usage <= 75:
            return 'Very good'
        if efficiency >= 70 and time_usage <= 90:
            return 'Good'
        if efficiency >= 60:
            return 'Average'
        return 'Needs improvement'

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'username': self.username,
            'difficulty': self.difficulty,
            'pairs_count': self.pairs_count,
            'moves_count': self.moves_count,
            'time_seconds': self.time_seconds,
            'time_formatted': format_duration(self.time_seconds),
            'score': self.score,
            'efficiency_percentage': self.efficiency_percentage,
            'average_time_per_pair': self.average_time_per_pair,
            'performance_level': self.performance_level(),
            'achieved_at': self.achieved_at.isoformat() if self.achieved_at else None,
        }
