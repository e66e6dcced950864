"""
Pytest configuration and fixtures for tournament platform tests.
"""
import os
import sys
from datetime import datetime

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Set testing environment before importing app
os.environ['FLASK_ENV'] = 'testing'

from arena.app import create_app
from arena.models import db, User, Team, Tournament, MatchResult
from arena.store import Store
from arena.account_manager import AccountManager
from arena.tournament_registry import TournamentRegistry


@pytest.fixture
def app():
    """Create an application on a fresh in-memory database."""
    app = create_app('testing')

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def db_session(app):
    """Database session bound to the test's app context."""
    yield db.session
    db.session.rollback()


@pytest.fixture
def store(db_session):
    return Store(db_session)


@pytest.fixture
def accounts(store):
    return AccountManager(store)


@pytest.fixture
def registry(store):
    return TournamentRegistry(store)


def make_user(username='player1', balance=100.0, password='secret', **kwargs):
    user = User(
        username=username,
        email=kwargs.pop('email', f'{username}@example.com'),
        balance=balance,
        ff_id=kwargs.pop('ff_id', f'FF-{username}'),
        **kwargs
    )
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


def make_tournament(title='Test Cup', entry_fee=50.0, max_players=12, current_players=0, **kwargs):
    tournament = Tournament(
        title=title,
        entry_fee=entry_fee,
        prize_pool=kwargs.pop('prize_pool', 5000.0),
        start_time=kwargs.pop('start_time', datetime(2026, 3, 10, 20, 0)),
        map=kwargs.pop('map', 'Bermuda'),
        mode=kwargs.pop('mode', 'Squad'),
        max_players=max_players,
        current_players=current_players,
        **kwargs
    )
    db.session.add(tournament)
    db.session.commit()
    return tournament


@pytest.fixture
def user_factory(db_session):
    return make_user


@pytest.fixture
def tournament_factory(db_session):
    return make_tournament


@pytest.fixture
def sample_user(db_session):
    """A player with enough balance for two standard entries."""
    return make_user('player1', balance=100.0)


@pytest.fixture
def sample_tournament(db_session):
    """An open tournament with a 50 entry fee and 12 slots."""
    return make_tournament('FF World Series Qualifier', entry_fee=50.0, max_players=12)


@pytest.fixture
def sample_team(db_session, sample_user):
    team = Team(name='Night Owls', tag='NOWL', leader_id=sample_user.id, logo_url='https://example.com/owl.png')
    db.session.add(team)
    db.session.commit()
    return team


@pytest.fixture
def sample_results(db_session, sample_tournament):
    """Match results for two players: A earns 150 over two games, B earns 20."""
    alice = make_user('alice', balance=0.0)
    bob = make_user('bob', balance=0.0)
    rows = [
        MatchResult(tournament_id=sample_tournament.id, user_id=alice.id, rank=1, kills=5, earnings=100.0),
        MatchResult(tournament_id=sample_tournament.id, user_id=alice.id, rank=2, kills=3, earnings=50.0),
        MatchResult(tournament_id=sample_tournament.id, user_id=bob.id, rank=3, kills=10, earnings=20.0),
    ]
    db.session.add_all(rows)
    db.session.commit()
    return alice, bob
