"""Database operations for authentication.

Uses the users table: username, password_hash, role, email, is_active.
"""

from clients.postgres_client import PostgresClient
from auth.types import Role, User


class UserDatabase:
    """Database operations for authentication."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def get_user(self, username: str) -> User | None:
        """Find user by username."""
        row = self._db.execute_single(
            """SELECT id, username, role, email, is_active
               FROM users WHERE username = %s""",
            (username,),
        )
        if row is None:
            return None
        return User(
            id=row["id"],
            username=row["username"],
            role=Role(row["role"].upper()),
            email=row["email"],
            is_active=row["is_active"],
        )

    def get_password_hash(self, username: str) -> str | None:
        """Stored password value, or None if the user does not exist."""
        return self._db.execute_scalar(
            "SELECT password_hash FROM users WHERE username = %s",
            (username,),
        )

    def set_password_hash(self, username: str, password_hash: str) -> bool:
        """Replace a user's stored password. Returns False if the user does not exist."""
        rows = self._db.execute_returning(
            """UPDATE users SET password_hash = %s
               WHERE username = %s
               RETURNING username""",
            (password_hash, username),
        )
        return bool(rows)

    def create_user(self, username: str, password_hash: str, role: Role, email: str | None = None) -> User:
        """Create a new active user."""
        rows = self._db.execute_returning(
            """INSERT INTO users (username, password_hash, role, email, is_active)
               VALUES (%s, %s, %s, %s, TRUE)
               RETURNING id, username, role, email, is_active""",
            (username, password_hash, role.value, email),
        )
        row = rows[0]
        return User(
            id=row["id"],
            username=row["username"],
            role=Role(row["role"].upper()),
            email=row["email"],
            is_active=row["is_active"],
        )
