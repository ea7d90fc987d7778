"""Typed exceptions for auth failures."""


class AuthError(Exception):
    """Base class for authentication/authorization errors."""


class InvalidCredentialsError(AuthError):
    """
    Username or password is wrong.

    Raised for both unknown users and bad passwords so callers cannot
    tell which one failed.
    """


class UserInactiveError(AuthError):
    """User account is deactivated. Login not permitted."""


class NotAuthenticatedError(AuthError):
    """Operation needs a logged-in actor and nobody is logged in."""


class PermissionDeniedError(AuthError):
    """Current actor lacks the role an operation requires."""

    def __init__(self, operation: str, required_roles: tuple, actual_role=None):
        self.operation = operation
        self.required_roles = required_roles
        self.actual_role = actual_role
        names = " or ".join(getattr(r, "value", str(r)) for r in required_roles)
        super().__init__(f"{names} required to {operation}")
