from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError


class CredentialHasher:
    def __init__(self, hasher: PasswordHasher = None):
        self._ph = hasher or PasswordHasher()

    def hash(self, password: str) -> str:
        """Create a secure hash for a new password."""
        return self._ph.hash(password)

    def verify(self, stored_hash: str, password: str) -> bool:
        """Check a password attempt against the stored hash."""
        try:
            return self._ph.verify(stored_hash, password)
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, stored_hash: str) -> bool:
        """True when the stored hash was made with weaker parameters than today's."""
        return self._ph.check_needs_rehash(stored_hash)
