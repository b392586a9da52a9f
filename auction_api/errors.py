"""
Errors raised while talking to the auction backend or the user pool
"""

from typing import Optional


class BackendError(Exception):
    """A call to the auction backend failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_auth_failure(self) -> bool:
        return self.status_code in (401, 403)


class NotAuthenticatedError(BackendError):
    """No identity token is available for the current user."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message, status_code=401)


class CognitoError(Exception):
    """The user pool rejected a sign-in, sign-up or confirmation request."""

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code
        self.message = message
