from giftswap import db, bcrypt
from flask import current_app, has_app_context
from flask_login import UserMixin
from datetime import datetime, timezone
import json


def utcnow():
    return datetime.now(timezone.utc)


def _isoformat(value):
    return value.isoformat() if value else None


def _warn(message):
    if has_app_context():
        current_app.logger.warning(message)


def load_json(raw, default, tag='history-malformed'):
    """Decode a JSON text column; unparsable or mistyped payloads give ``default``."""
    if raw is None:
        return default
    if isinstance(raw, (list, dict)):
        value = raw
    else:
        try:
            value = json.loads(raw)
        except (TypeError, ValueError) as exc:
            _warn(f"[{tag}] unparsable payload error={exc}")
            return default
    if not isinstance(value, type(default)):
        _warn(f"[{tag}] expected {type(default).__name__}, got {type(value).__name__}")
        return default
    return value


class Host(UserMixin, db.Model):
    __tablename__ = 'host'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class Participant(db.Model):
    __tablename__ = 'participant'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    is_locked = db.Column(db.Boolean, default=False, nullable=False)
    has_received_package = db.Column(db.Boolean, default=False, nullable=False)
    sort_order = db.Column(db.Integer, nullable=True)
    last_voted_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    @classmethod
    def ordered(cls):
        """Query ordered by sort_order ascending, nulls last, then creation."""
        return cls.query.order_by(cls.sort_order.asc().nulls_last(), cls.created_at.asc(), cls.id.asc())

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'is_locked': self.is_locked,
            'has_received_package': self.has_received_package,
            'sort_order': self.sort_order,
            'last_voted_at': _isoformat(self.last_voted_at),
        }


class VotingSession(db.Model):
    __tablename__ = 'voting_session'
    id = db.Column(db.Integer, primary_key=True)
    current_participant_id = db.Column(db.Integer, db.ForeignKey('participant.id'), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False, index=True)
    # JSON list of participant ids allowed as vote targets (tiebreaker rounds)
    candidate_restriction = db.Column(db.Text, nullable=True)
    resolved_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    current_participant = db.relationship('Participant')

    @property
    def candidate_ids(self):
        if self.candidate_restriction is None:
            return None
        return [int(pid) for pid in load_json(self.candidate_restriction, [], tag='session-malformed')]

    @property
    def is_tiebreaker(self):
        return self.candidate_restriction is not None

    def to_dict(self):
        return {
            'id': self.id,
            'current_participant_id': self.current_participant_id,
            'is_active': self.is_active,
            'is_tiebreaker': self.is_tiebreaker,
            'candidate_ids': self.candidate_ids,
            'resolved_at': _isoformat(self.resolved_at),
        }


class Vote(db.Model):
    __tablename__ = 'vote'
    __table_args__ = (
        db.UniqueConstraint('session_id', 'voter_token', name='uq_vote_session_voter'),
    )
    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('voting_session.id'), nullable=False, index=True)
    voted_for_participant_id = db.Column(db.Integer, db.ForeignKey('participant.id'), nullable=False)
    voter_token = db.Column(db.String(64), nullable=False)
    voter_name = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'session_id': self.session_id,
            'voted_for_participant_id': self.voted_for_participant_id,
            'voter_name': self.voter_name,
        }


class HistoryEntry(db.Model):
    __tablename__ = 'history_entry'
    id = db.Column(db.Integer, primary_key=True)
    # Plain ids: the ledger outlives deleted participants
    participant_id = db.Column(db.Integer, nullable=True, index=True)
    package_owner_id = db.Column(db.Integer, nullable=True, index=True)
    winner_id = db.Column(db.Integer, nullable=True)
    leading_participant_id = db.Column(db.Integer, nullable=True, index=True)
    locked_participant_id = db.Column(db.Integer, nullable=True, index=True)
    results = db.Column(db.Text, nullable=False, default='[]')
    move_count = db.Column(db.Integer, nullable=False, default=0)
    correct_voters = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    @property
    def parsed_results(self):
        rows = []
        for row in load_json(self.results, []):
            if not isinstance(row, dict):
                _warn(f"[history-malformed] entry={self.id} skipped result row {row!r}")
                continue
            pid = row.get('participant_id', row.get('participantId'))
            try:
                count = int(row.get('count') or 0)
            except (TypeError, ValueError):
                count = 0
            rows.append({'participant_id': pid, 'name': row.get('name'), 'count': count})
        return rows

    @property
    def parsed_correct_voters(self):
        return load_json(self.correct_voters, {})

    def to_dict(self):
        return {
            'id': self.id,
            'participant_id': self.participant_id,
            'package_owner_id': self.package_owner_id,
            'winner_id': self.winner_id,
            'locked_participant_id': self.locked_participant_id,
            'results': self.parsed_results,
            'move_count': self.move_count,
            'correct_voters': self.parsed_correct_voters,
            'created_at': _isoformat(self.created_at),
        }
