import logging
from typing import List, Optional

from .errors import DuplicateIdentity, InvalidCredentials, NotFound
from .models import Team, User
from .store import ConstraintViolation, Store

logger = logging.getLogger(__name__)

STARTING_BALANCE = 50.0


class AccountManager:
    """
    Manages player accounts and teams.
    Registration, login and team creation all go through the injected store.
    """

    def __init__(self, store: Store, starting_balance: float = STARTING_BALANCE):
        self.store = store
        self.starting_balance = starting_balance

    def register(
        self,
        username: str,
        email: str,
        password: str,
        ff_id: str = None
    ) -> User:
        """Create a player with the sign-up bonus balance."""
        user = User(
            username=username,
            email=email,
            balance=self.starting_balance,
            ff_id=ff_id
        )
        user.set_password(password)

        try:
            with self.store.atomic():
                self.store.add(user)
        except ConstraintViolation:
            logger.warning(f"Registration rejected for {username!r}: duplicate identity")
            raise DuplicateIdentity("Username or Email already exists")

        logger.info(f"Registered user {user.id} ({username})")
        return user

    def authenticate(self, email: str, password: str) -> User:
        user = self.store.find(User, email=email)
        if not user or not user.check_password(password):
            raise InvalidCredentials()
        return user

    def get_user(self, user_id: int) -> User:
        user = self.store.get(User, user_id)
        if not user:
            raise NotFound("User not found")
        return user

    # ==================== Teams ====================

    def create_team(
        self,
        name: str,
        tag: str = None,
        leader_id: int = None,
        logo_url: str = None
    ) -> Team:
        """Create a team; names are unique across the platform."""
        if leader_id is not None and not self.store.get(User, leader_id):
            raise NotFound("Leader not found")

        try:
            with self.store.atomic():
                team_id = self.store.insert(
                    Team,
                    name=name,
                    tag=tag,
                    leader_id=leader_id,
                    logo_url=logo_url
                )
        except ConstraintViolation:
            raise DuplicateIdentity("Team name already exists")

        logger.info(f"Created team {team_id} ({name}) led by {leader_id}")
        return self.store.get(Team, team_id)

    def list_teams(self) -> List[Team]:
        return self.store.list(Team, Team.id)

    def get_user_team(self, user_id: int) -> Optional[Team]:
        """Team led by the given user, if any."""
        return self.store.find(Team, leader_id=user_id)
