"""Authentication service - password login for terminal staff."""

import logging

from auth.database import UserDatabase
from auth.exceptions import InvalidCredentialsError, UserInactiveError
from auth.passwords import hash_password, is_hashed, verify_password
from auth.session import ActorSession
from auth.types import User

logger = logging.getLogger(__name__)


class AuthService:
    """Logs staff in and out of a terminal's ActorSession.

    Handles:
    - Password verification (hashed or legacy plaintext)
    - Upgrading legacy plaintext passwords to hashes on login
    - Logout
    """

    def __init__(self, users: UserDatabase, session: ActorSession):
        self._users = users
        self._session = session

    @property
    def session(self) -> ActorSession:
        return self._session

    def login(self, username: str, password: str) -> User:
        """Verify credentials and make the user the terminal's current actor.

        Returns:
            The logged-in user.

        Raises:
            InvalidCredentialsError: If the user is unknown or the password is wrong.
            UserInactiveError: If the account is deactivated.
        """
        username = (username or "").strip()
        stored = self._users.get_password_hash(username) if username else None
        if stored is None or not verify_password(password or "", stored):
            logger.warning("Failed login for %r", username)
            raise InvalidCredentialsError("Invalid username or password")

        user = self._users.get_user(username)
        if user is None:
            raise InvalidCredentialsError("Invalid username or password")
        if not user.is_active:
            logger.warning("Login refused for inactive user %s", username)
            raise UserInactiveError(f"User {username} is deactivated")

        if not is_hashed(stored):
            self._users.set_password_hash(username, hash_password(password))
            logger.info("Upgraded plaintext password for %s", username)

        self._session.login(user)
        return user

    def logout(self) -> None:
        self._session.logout()

    def current_user(self) -> User | None:
        return self._session.current
