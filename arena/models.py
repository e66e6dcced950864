from datetime import datetime
from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()


TOURNAMENT_STATUSES = ('upcoming', 'ongoing', 'completed')


def _isoformat(value):
    return value.isoformat() if value else None


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    balance = db.Column(db.Float, nullable=False, default=0.0)
    ff_id = db.Column(db.String(100), nullable=True)  # In-game player id
    role = db.Column(db.String(20), nullable=False, default='player')

    participations = db.relationship('Participant', back_populates='user')

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'balance': self.balance,
            'ff_id': self.ff_id,
            'role': self.role,
        }


class Team(db.Model):
    __tablename__ = 'teams'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    tag = db.Column(db.String(20), nullable=True)
    leader_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    logo_url = db.Column(db.String(500), nullable=True)

    leader = db.relationship('User', backref='led_teams')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'tag': self.tag,
            'leader_id': self.leader_id,
            'logo_url': self.logo_url,
        }


class Tournament(db.Model):
    __tablename__ = 'tournaments'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    entry_fee = db.Column(db.Float, nullable=False, default=0.0)
    prize_pool = db.Column(db.Float, nullable=False, default=0.0)
    start_time = db.Column(db.DateTime, nullable=True)
    map = db.Column(db.String(100), nullable=True)
    mode = db.Column(db.String(50), nullable=True)  # Solo, Duo, Squad
    status = db.Column(db.String(20), nullable=False, default='upcoming')
    max_players = db.Column(db.Integer, nullable=False)
    # Always equal to the number of participant rows; only written by joins
    current_players = db.Column(db.Integer, nullable=False, default=0)
    description = db.Column(db.Text, nullable=True)
    rules = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(500), nullable=True)

    participants = db.relationship('Participant', back_populates='tournament')

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'entry_fee': self.entry_fee,
            'prize_pool': self.prize_pool,
            'start_time': _isoformat(self.start_time),
            'map': self.map,
            'mode': self.mode,
            'status': self.status,
            'max_players': self.max_players,
            'current_players': self.current_players,
            'description': self.description,
            'rules': self.rules,
            'image_url': self.image_url,
        }


class Participant(db.Model):
    __tablename__ = 'participants'

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(db.Integer, db.ForeignKey('tournaments.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    team_id = db.Column(db.Integer, db.ForeignKey('teams.id'), nullable=True)
    joined_at = db.Column(db.DateTime, default=datetime.utcnow)

    tournament = db.relationship('Tournament', back_populates='participants')
    user = db.relationship('User', back_populates='participations')

    __table_args__ = (
        db.UniqueConstraint('tournament_id', 'user_id', name='unique_participant_per_tournament'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'tournament_id': self.tournament_id,
            'user_id': self.user_id,
            'team_id': self.team_id,
            'joined_at': _isoformat(self.joined_at),
        }


class NewsItem(db.Model):
    __tablename__ = 'news'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'image_url': self.image_url,
            'created_at': _isoformat(self.created_at),
        }


class MatchResult(db.Model):
    __tablename__ = 'match_results'

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(db.Integer, db.ForeignKey('tournaments.id'), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)
    rank = db.Column(db.Integer, nullable=True)
    kills = db.Column(db.Integer, nullable=False, default=0)
    earnings = db.Column(db.Float, nullable=False, default=0.0)

    def to_dict(self):
        return {
            'id': self.id,
            'tournament_id': self.tournament_id,
            'user_id': self.user_id,
            'rank': self.rank,
            'kills': self.kills,
            'earnings': self.earnings,
        }
