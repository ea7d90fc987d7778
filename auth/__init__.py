"""Authentication and authorization modules."""

from auth.exceptions import (
    AuthError,
    InvalidCredentialsError,
    NotAuthenticatedError,
    PermissionDeniedError,
    UserInactiveError,
)
from auth.types import Role, User
from auth.passwords import hash_password, verify_password
from auth.session import ActorSession
from auth.database import UserDatabase
from auth.service import AuthService
from auth.permissions import PermissionCheckedStockLedger, requires_role
