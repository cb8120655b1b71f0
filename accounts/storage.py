"""
User persistence.

users.json layout (version 2):

    {"version": 2, "users": {"<user_id>": {...user fields...}}}

Version 1 files kept users in a list; they are converted on load and
written back in the new layout on the next save.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Dict, List, Optional
import json
import logging
import os
import tempfile

from .models import User

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2

_USER_FIELDS = {f.name for f in fields(User)}


def _to_user(row: Dict[str, Any]) -> User:
    # unknown keys come from older or newer releases
    return User(**{k: v for k, v in row.items() if k in _USER_FIELDS})


class IStorage(ABC):
    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...
    @abstractmethod
    def get_user_by_id(self, user_id: str) -> Optional[User]: ...
    @abstractmethod
    def save_user(self, user: User) -> None:
        """Add a new user. Raises ValueError if the username is taken."""
    @abstractmethod
    def update_user(self, user: User) -> None:
        """Replace a stored user. Raises KeyError for an unknown id."""
    @abstractmethod
    def get_all_users(self) -> List[User]: ...


class JSONStorage(IStorage):
    def __init__(self, path: str = "users.json"):
        self.path = Path(path)
        if not self.path.exists():
            self._save({"version": SCHEMA_VERSION, "users": {}})

    def _load(self) -> Dict[str, Any]:
        with self.path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
        if isinstance(data.get("users"), list):
            logger.info("Converting %s from the list layout", self.path)
            data = {"version": SCHEMA_VERSION, "users": {u["user_id"]: u for u in data["users"]}}
        return data

    def _save(self, data: Dict[str, Any]) -> None:
        fd, tmp = tempfile.mkstemp(prefix="users.", suffix=".tmp", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            Path(tmp).replace(self.path)
        finally:
            Path(tmp).unlink(missing_ok=True)

    def get_user_by_username(self, username: str) -> Optional[User]:
        for row in self._load()["users"].values():
            if row.get("username") == username:
                return _to_user(row)
        return None

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        row = self._load()["users"].get(user_id)
        return _to_user(row) if row else None

    def save_user(self, user: User) -> None:
        data = self._load()
        if any(row.get("username") == user.username for row in data["users"].values()):
            raise ValueError("username already exists")
        data["users"][user.user_id] = asdict(user)
        self._save(data)

    def update_user(self, user: User) -> None:
        data = self._load()
        if user.user_id not in data["users"]:
            raise KeyError(f"unknown user id {user.user_id}")
        data["users"][user.user_id] = asdict(user)
        self._save(data)

    def get_all_users(self) -> List[User]:
        return [_to_user(row) for row in self._load()["users"].values()]
