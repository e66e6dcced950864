import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select

from .errors import AlreadyJoined, InsufficientBalance, NotFound, TournamentFull
from .models import MatchResult, NewsItem, Participant, Team, Tournament, User
from .store import ConstraintViolation, Store

logger = logging.getLogger(__name__)


class TournamentRegistry:
    """
    Tournament reads and the join operation.

    Joining is the only write here. It debits the entry fee, bumps the
    tournament's player counter and records the participant in a single
    transaction. The balance and capacity rules are enforced again by the
    UPDATE statements themselves, so two joins racing for the last slot (or
    the last of a user's balance) cannot both commit.
    """

    def __init__(self, store: Store):
        self.store = store

    def get_tournament(self, tournament_id: int) -> Optional[Tournament]:
        return self.store.get(Tournament, tournament_id)

    def list_tournaments(self, status: str = None) -> List[Tournament]:
        """List tournaments by start time, optionally filtered by status."""
        filters = {'status': status} if status else {}
        return self.store.list(Tournament, Tournament.start_time.asc(), Tournament.id.asc(), **filters)

    def list_participants(self, tournament_id: int) -> List[Participant]:
        if not self.get_tournament(tournament_id):
            raise NotFound("Tournament not found")
        return self.store.list(Participant, Participant.id, tournament_id=tournament_id)

    def list_news(self) -> List[NewsItem]:
        return self.store.list(NewsItem, NewsItem.created_at.desc(), NewsItem.id.desc())

    def join_tournament(self, user_id: int, tournament_id: int, team_id: int = None) -> float:
        """
        Enter a user into a tournament and return their new balance.

        Raises NotFound, AlreadyJoined, InsufficientBalance or TournamentFull;
        on any of them nothing is written.
        """
        with self.store.atomic():
            user = self.store.get(User, user_id, for_update=True)
            tournament = self.store.get(Tournament, tournament_id, for_update=True)

            if not user or not tournament:
                raise NotFound("User or Tournament not found")
            if team_id is not None and not self.store.get(Team, team_id):
                raise NotFound("Team not found")

            # Checked ahead of balance and capacity so a repeated join always
            # reports AlreadyJoined.
            if self.store.find(Participant, tournament_id=tournament_id, user_id=user_id):
                raise AlreadyJoined()

            fee = tournament.entry_fee
            if user.balance < fee:
                raise InsufficientBalance()
            if tournament.current_players >= tournament.max_players:
                raise TournamentFull()

            # The reads above may be stale under concurrent joins; these
            # guarded writes decide against the committed row values.
            if not self.store.update(
                Tournament, tournament_id,
                deltas={'current_players': 1},
                where=[Tournament.current_players < Tournament.max_players]
            ):
                raise TournamentFull()

            if not self.store.update(
                User, user_id,
                deltas={'balance': -fee},
                where=[User.balance >= fee]
            ):
                raise InsufficientBalance()

            try:
                self.store.insert(
                    Participant,
                    tournament_id=tournament_id,
                    user_id=user_id,
                    team_id=team_id
                )
            except ConstraintViolation:
                raise AlreadyJoined()

            new_balance = self.store.refresh(user).balance

        logger.info(
            f"User {user_id} joined tournament {tournament_id} "
            f"(fee {fee}, balance now {new_balance})"
        )
        return new_balance

    def list_user_tournaments(self, user_id: int) -> List[Tournament]:
        """Tournaments the user has joined."""
        query = (
            select(Tournament)
            .join(Participant, Participant.tournament_id == Tournament.id)
            .where(Participant.user_id == user_id)
            .order_by(Tournament.start_time.asc(), Tournament.id.asc())
        )
        return list(self.store.session.execute(query).scalars().all())

    def leaderboard(self, limit: int = 10) -> List[Dict]:
        """
        Top players by summed match earnings.

        Ties on earnings are ordered by user id so the ranking is stable.
        """
        total_kills = func.coalesce(func.sum(MatchResult.kills), 0).label('total_kills')
        total_earnings = func.coalesce(func.sum(MatchResult.earnings), 0.0).label('total_earnings')

        query = (
            select(User.username, total_kills, total_earnings)
            .join(MatchResult, MatchResult.user_id == User.id)
            .group_by(User.id, User.username)
            .order_by(total_earnings.desc(), User.id.asc())
            .limit(limit)
        )

        return [
            {
                'username': row.username,
                'total_kills': int(row.total_kills),
                'total_earnings': float(row.total_earnings),
            }
            for row in self.store.session.execute(query)
        ]

    def find_counter_drift(self) -> List[Tuple[int, int, int]]:
        """
        Compare each tournament's player counter with its participant rows.

        Returns (tournament_id, current_players, actual_count) for every
        tournament where the two disagree.
        """
        actual = (
            select(Participant.tournament_id, func.count(Participant.id).label('actual'))
            .group_by(Participant.tournament_id)
            .subquery()
        )
        actual_count = func.coalesce(actual.c.actual, 0)
        query = (
            select(Tournament.id, Tournament.current_players, actual_count)
            .outerjoin(actual, actual.c.tournament_id == Tournament.id)
            .where(Tournament.current_players != actual_count)
            .order_by(Tournament.id)
        )

        drift = [tuple(row) for row in self.store.session.execute(query)]
        for tournament_id, counter, count in drift:
            logger.error(
                f"Tournament {tournament_id} counter drift: "
                f"current_players={counter}, participants={count}"
            )
        return drift
