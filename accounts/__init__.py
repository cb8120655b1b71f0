"""User accounts, profiles and sessions."""

from .hashing import CredentialHasher
from .manager import AccountManager
from .models import Role, User
from .session import IdentityProvider, Session
from .storage import IStorage, JSONStorage

__all__ = [
    "AccountManager",
    "CredentialHasher",
    "IStorage",
    "IdentityProvider",
    "JSONStorage",
    "Role",
    "Session",
    "User",
]
