import os
import sys

import click
from flask import Flask, request, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .config import config
from .models import db, TOURNAMENT_STATUSES
from .errors import AppError, ValidationError
from .store import Store
from .account_manager import AccountManager
from .tournament_registry import TournamentRegistry
from .seed import seed_database


def create_app(config_name: str = None, overrides: dict = None) -> Flask:
    """Application factory for the tournament platform API."""
    if config_name is None:
        config_name = os.getenv('FLASK_ENV', 'development')

    app = Flask(__name__)
    app.config.from_object(config.get(config_name, config['default']))
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(app.config['LOG_LEVEL'])
    _apply_sqlite_options(app)

    # Initialize extensions
    db.init_app(app)

    # Services share one store bound to the app-context scoped session
    store = Store(db.session)
    app.store = store
    app.accounts = AccountManager(store, starting_balance=app.config['STARTING_BALANCE'])
    app.registry = TournamentRegistry(store)

    with app.app_context():
        db.create_all()
        if app.config['SEED_ON_STARTUP']:
            seed_database(store)

    register_error_handlers(app)
    register_api_routes(app)
    register_commands(app)

    return app


def _apply_sqlite_options(app: Flask):
    """Give SQLite connections a busy timeout so concurrent writers wait."""
    if not app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
        return
    options = dict(app.config.get('SQLALCHEMY_ENGINE_OPTIONS') or {})
    connect_args = dict(options.get('connect_args') or {})
    connect_args.setdefault('timeout', app.config['SQLITE_BUSY_TIMEOUT'])
    options['connect_args'] = connect_args
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = options


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return {}
    return data


def _require(data: dict, *fields: str):
    missing = [f for f in fields if data.get(f) in (None, '')]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    return [data[f] for f in fields]


def _as_id(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")


def register_error_handlers(app: Flask):
    """Render every failure as a JSON error body."""

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        app.logger.warning(f"{type(error).__name__}: {error.message}")
        return jsonify({'error': error.message}), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(error: SQLAlchemyError):
        db.session.rollback()
        app.logger.error(f"Database Error: {error}")
        return jsonify({'error': 'Internal server error'}), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException):
        if error.code and error.code >= 500:
            app.logger.error(f"Internal Server Error: {error}")
            return jsonify({'error': 'Internal server error'}), error.code
        return jsonify({'error': error.description}), error.code


def register_api_routes(app: Flask):
    """Register API routes."""

    # ==================== Tournaments ====================

    @app.route('/api/tournaments', methods=['GET'])
    def api_list_tournaments():
        """List tournaments, soonest first."""
        status = request.args.get('status')
        if status and status not in TOURNAMENT_STATUSES:
            raise ValidationError(f"Unknown status: {status}")

        tournaments = app.registry.list_tournaments(status=status)
        return jsonify([t.to_dict() for t in tournaments])

    @app.route('/api/tournaments/<int:tournament_id>', methods=['GET'])
    def api_get_tournament(tournament_id: int):
        tournament = app.registry.get_tournament(tournament_id)
        if not tournament:
            return jsonify({'error': 'Tournament not found'}), 404
        return jsonify(tournament.to_dict())

    @app.route('/api/tournaments/<int:tournament_id>/participants', methods=['GET'])
    def api_list_participants(tournament_id: int):
        participants = app.registry.list_participants(tournament_id)
        return jsonify([p.to_dict() for p in participants])

    @app.route('/api/join-tournament', methods=['POST'])
    def api_join_tournament():
        """Spend the entry fee and take a slot in a tournament."""
        data = _json_body()
        user_id, tournament_id = _require(data, 'userId', 'tournamentId')
        team_id = data.get('teamId')

        new_balance = app.registry.join_tournament(
            user_id=_as_id(user_id, 'userId'),
            tournament_id=_as_id(tournament_id, 'tournamentId'),
            team_id=_as_id(team_id, 'teamId') if team_id is not None else None
        )
        return jsonify({'success': True, 'newBalance': new_balance})

    # ==================== News & Leaderboard ====================

    @app.route('/api/news', methods=['GET'])
    def api_list_news():
        return jsonify([n.to_dict() for n in app.registry.list_news()])

    @app.route('/api/leaderboard', methods=['GET'])
    def api_leaderboard():
        limit = request.args.get('limit', app.config['LEADERBOARD_LIMIT'], type=int)
        limit = max(1, min(limit, app.config['LEADERBOARD_MAX_LIMIT']))
        return jsonify(app.registry.leaderboard(limit=limit))

    # ==================== Teams ====================

    @app.route('/api/teams', methods=['GET'])
    def api_list_teams():
        return jsonify([t.to_dict() for t in app.accounts.list_teams()])

    @app.route('/api/teams', methods=['POST'])
    def api_create_team():
        data = _json_body()
        name, = _require(data, 'name')
        leader_id = data.get('leader_id')

        team = app.accounts.create_team(
            name=name,
            tag=data.get('tag'),
            leader_id=_as_id(leader_id, 'leader_id') if leader_id is not None else None,
            logo_url=data.get('logo_url')
        )
        return jsonify(team.to_dict()), 201

    # ==================== Accounts ====================

    @app.route('/api/register', methods=['POST'])
    def api_register():
        data = _json_body()
        username, email, password = _require(data, 'username', 'email', 'password')

        user = app.accounts.register(
            username=username,
            email=email,
            password=password,
            ff_id=data.get('ff_id')
        )
        return jsonify({
            'id': user.id,
            'username': user.username,
            'balance': user.balance
        }), 201

    @app.route('/api/login', methods=['POST'])
    def api_login():
        data = _json_body()
        email, password = _require(data, 'email', 'password')
        user = app.accounts.authenticate(email, password)
        return jsonify(user.to_dict())

    @app.route('/api/user/<int:user_id>', methods=['GET'])
    def api_get_user(user_id: int):
        return jsonify(app.accounts.get_user(user_id).to_dict())

    @app.route('/api/user/<int:user_id>/team', methods=['GET'])
    def api_user_team(user_id: int):
        team = app.accounts.get_user_team(user_id)
        return jsonify(team.to_dict() if team else None)

    @app.route('/api/user/<int:user_id>/tournaments', methods=['GET'])
    def api_user_tournaments(user_id: int):
        tournaments = app.registry.list_user_tournaments(user_id)
        return jsonify([t.to_dict() for t in tournaments])

    # ==================== Health Check ====================

    @app.route('/api/health')
    def health_check():
        try:
            db.session.execute(db.text('SELECT 1'))
            db_ok = True
        except SQLAlchemyError as e:
            db.session.rollback()
            app.logger.error(f"Health check failed: {e}")
            db_ok = False

        status = 'healthy' if db_ok else 'unhealthy'
        code = 200 if db_ok else 503

        return jsonify({
            'status': status,
            'database': 'connected' if db_ok else 'disconnected'
        }), code


def register_commands(app: Flask):
    """Register maintenance commands on the flask CLI."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create tables and load the seed data if the database is empty."""
        db.create_all()
        if seed_database(app.store):
            click.echo("Database initialized with seed data.")
        else:
            click.echo("Database already seeded.")

    @app.cli.command('check-counters')
    def check_counters_command():
        """Verify every tournament's player counter against its participants."""
        drift = app.registry.find_counter_drift()
        if not drift:
            click.echo("All tournament counters match their participants.")
            return
        for tournament_id, counter, actual in drift:
            click.echo(f"Tournament {tournament_id}: current_players={counter}, participants={actual}")
        sys.exit(1)
