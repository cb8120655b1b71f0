from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple
import json, logging, os, tempfile

from .errors import KeyPairExistsError
from .keys import KeyPair, generate_key_pair

logger = logging.getLogger(__name__)


class KeyStore(ABC):
    """Local key pairs keyed by identity. Never shared with the record store."""

    @abstractmethod
    def get(self, identity: str) -> Optional[KeyPair]: ...
    @abstractmethod
    def put(self, identity: str, pair: KeyPair) -> Optional[KeyPair]:
        """Store a pair and return the one it replaced, if any."""
    @abstractmethod
    def clear(self, identity: str) -> bool: ...


class InMemoryKeyStore(KeyStore):
    def __init__(self):
        self._pairs: Dict[str, KeyPair] = {}

    def get(self, identity: str) -> Optional[KeyPair]:
        return self._pairs.get(identity)

    def put(self, identity: str, pair: KeyPair) -> Optional[KeyPair]:
        previous = self._pairs.get(identity)
        self._pairs[identity] = pair
        return previous

    def clear(self, identity: str) -> bool:
        return self._pairs.pop(identity, None) is not None


class JSONKeyStore(KeyStore):
    def __init__(self, path: str = "keys.json"):
        self.path = path
        if not os.path.exists(self.path):
            self._save({"keys": {}})

    def _load(self) -> Dict[str, Any]:
        with open(self.path, "r") as f:
            return json.load(f)

    def _save(self, data: Dict[str, Any]) -> None:
        # atomic-ish write to avoid corruption
        fd, tmp = tempfile.mkstemp(prefix="keys.", suffix=".tmp", dir=os.path.dirname(self.path) or ".")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        finally:
            if os.path.exists(tmp):
                os.remove(tmp)

    def get(self, identity: str) -> Optional[KeyPair]:
        entry = self._load()["keys"].get(identity)
        return KeyPair.from_dict(entry) if entry else None

    def put(self, identity: str, pair: KeyPair) -> Optional[KeyPair]:
        data = self._load()
        previous = data["keys"].get(identity)
        data["keys"][identity] = pair.to_dict()
        self._save(data)
        return KeyPair.from_dict(previous) if previous else None

    def clear(self, identity: str) -> bool:
        data = self._load()
        if identity not in data["keys"]:
            return False
        del data["keys"][identity]
        self._save(data)
        return True


def provision_key_pair(store: KeyStore, identity: str, *, overwrite: bool = False) -> Tuple[KeyPair, bool]:
    """
    Generate a key pair for an identity and store it.

    Returns the new pair and whether it replaced an existing one.

    Regenerating is destructive: documents signed with the old pair can no
    longer be checked through the local key. Callers must confirm with the
    user and pass overwrite=True, otherwise KeyPairExistsError is raised.
    """
    if not overwrite and store.get(identity) is not None:
        raise KeyPairExistsError(identity)
    pair = generate_key_pair()
    previous = store.put(identity, pair)
    if previous is not None:
        logger.warning("Replaced existing key pair for identity %s", identity)
    else:
        logger.info("Generated key pair for identity %s", identity)
    return pair, previous is not None
