"""
Identity collaborator.

Anything that writes records asks an IdentityProvider who is acting.
Verification may run with no identity at all.
"""

import logging
from typing import Optional, Protocol

from signing.errors import AuthenticationRequiredError

from .models import User

logger = logging.getLogger(__name__)


class IdentityProvider(Protocol):
    def current_identity(self) -> Optional[User]: ...


class Session:
    """The logged-in user of one front end."""

    def __init__(self, user: Optional[User] = None):
        self._user = user

    def login(self, user: User) -> None:
        self._user = user
        logger.info("Session started for %s", user.username)

    def logout(self) -> None:
        if self._user:
            logger.info("Session ended for %s", self._user.username)
        self._user = None

    def current_identity(self) -> Optional[User]:
        return self._user

    def require_identity(self) -> User:
        if self._user is None:
            raise AuthenticationRequiredError("Please log in first.")
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None
