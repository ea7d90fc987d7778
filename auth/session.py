"""Actor session for one terminal.

Holds who is logged in at a terminal. One ActorSession per terminal; it is
passed explicitly to whatever needs to know the current actor instead of
being read from global state. Not safe to share between threads.
"""

import logging

from auth.exceptions import NotAuthenticatedError, PermissionDeniedError
from auth.types import Role, User

logger = logging.getLogger(__name__)


class ActorSession:
    """Login state for a single terminal."""

    def __init__(self):
        self._current: User | None = None

    @property
    def current(self) -> User | None:
        return self._current

    @property
    def is_authenticated(self) -> bool:
        return self._current is not None

    def login(self, user: User) -> None:
        """Make user the current actor, replacing anyone already logged in."""
        if self._current is not None and self._current.username != user.username:
            logger.info("User %s replaced by %s", self._current.username, user.username)
        self._current = user
        logger.info("User %s logged in as %s", user.username, user.role.value)

    def logout(self) -> None:
        if self._current is not None:
            logger.info("User %s logged out", self._current.username)
        self._current = None

    def require_user(self) -> User:
        """
        Current actor.

        Raises:
            NotAuthenticatedError: If nobody is logged in
        """
        if self._current is None:
            raise NotAuthenticatedError("No user is logged in")
        return self._current

    def require_role(self, *roles: Role, operation: str = "perform this operation") -> User:
        """
        Current actor, if they hold one of roles.

        Raises:
            NotAuthenticatedError: If nobody is logged in
            PermissionDeniedError: If the actor holds none of roles
        """
        user = self.require_user()
        if not user.has_role(*roles):
            raise PermissionDeniedError(operation, roles, user.role)
        return user
