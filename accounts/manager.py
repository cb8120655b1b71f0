import logging
from typing import Optional, List

from .hashing import CredentialHasher
from .models import Role, User
from .storage import IStorage

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AccountManager:
    def __init__(self, storage: IStorage, hasher: CredentialHasher):
        self.storage = storage
        self.hasher = hasher

    @staticmethod
    def _canon(username: str) -> str:
        return username.strip().lower()

    def register(self, username: str, password: str, *, full_name: str = "", organization: str = "") -> User:
        username_c = self._canon(username)
        if not username_c:
            raise ValueError("Username cannot be empty.")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
        if self.storage.get_user_by_username(username_c):
            raise ValueError("Username already taken.")

        user = User.new(
            username=username_c,
            pwd_hash=self.hasher.hash(password),
            full_name=full_name.strip(),
            organization=organization.strip(),
        )
        self.storage.save_user(user)
        logger.info("Registered user %s (%s)", user.username, user.user_id)
        return user

    def authenticate(self, username: str, password: str) -> Optional[User]:
        username_c = self._canon(username)
        user = self.storage.get_user_by_username(username_c)
        if not user:
            return None
        if not self.hasher.verify(user.pwd_hash, password):
            logger.info("Failed login for %s", username_c)
            return None
        if self.hasher.needs_rehash(user.pwd_hash):
            user = user.with_changes(pwd_hash=self.hasher.hash(password))
            self.storage.update_user(user)
        return user

    def update_profile(self, user: User, *, full_name: Optional[str] = None, organization: Optional[str] = None) -> User:
        """Update profile fields; None leaves a field unchanged."""
        changes = {}
        if full_name is not None:
            changes["full_name"] = full_name.strip()
        if organization is not None:
            changes["organization"] = organization.strip()
        if not changes:
            return user
        updated = user.with_changes(**changes)
        self.storage.update_user(updated)
        return updated

    def grant_role(self, username: str, role: Role) -> User:
        user = self.get_user_by_username(username)
        if not user:
            raise ValueError(f"No user named {username}")
        updated = user.with_changes(role=Role(role).value)
        self.storage.update_user(updated)
        logger.info("Granted role %s to %s", updated.role, updated.username)
        return updated

    def get_all_users(self) -> List[User]:
        """Get all registered users."""
        return self.storage.get_all_users()

    def get_user(self, user_id: str) -> Optional[User]:
        return self.storage.get_user_by_id(user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        """Get a user by their username."""
        return self.storage.get_user_by_username(self._canon(username))
