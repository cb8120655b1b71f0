from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
import uuid


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class User:
    # basic account information
    user_id: str
    username: str   # canonical (e.g., lowercased)
    pwd_hash: str
    created_at: str   # ISO8601 "YYYY-MM-DDTHH:MM:SSZ"
    role: str = Role.USER.value

    # profile
    full_name: str = ""
    organization: str = ""
    updated_at: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value

    @property
    def display_name(self) -> str:
        return self.full_name or self.username

    def with_changes(self, **changes) -> "User":
        changes.setdefault("updated_at", _now())
        return replace(self, **changes)

    # constructor
    @staticmethod
    def new(
        username: str,
        pwd_hash: str,
        role: Role = Role.USER,
        full_name: str = "",
        organization: str = "",
    ) -> "User":
        now = _now()

        return User(
            user_id=str(uuid.uuid4()),
            username=username.lower(),
            pwd_hash=pwd_hash,
            created_at=now,
            role=Role(role).value,
            full_name=full_name,
            organization=organization,
            updated_at=now,
        )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
