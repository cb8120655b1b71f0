"""
Shared fixtures for the SignDesk tests.

RSA key generation is slow, so key pairs are generated once per test
session and handed out through an in-memory key store.
"""

import pytest

from accounts.hashing import CredentialHasher
from accounts.manager import AccountManager
from accounts.models import User
from accounts.session import Session
from accounts.storage import JSONStorage
from signing.keys import generate_key_pair
from signing.keystore import InMemoryKeyStore
from signing.session import SigningSession
from signing.verification import SignatureVerifier
from storage.vault import VaultStore


@pytest.fixture(scope="session")
def alice_keys():
    return generate_key_pair()


@pytest.fixture(scope="session")
def bob_keys():
    return generate_key_pair()


@pytest.fixture
def vault(tmp_path):
    return VaultStore(tmp_path / "vault")


@pytest.fixture
def alice():
    return User.new(username="alice", pwd_hash="not-a-real-hash", full_name="Alice Example")


@pytest.fixture
def bob():
    return User.new(username="bob", pwd_hash="not-a-real-hash")


@pytest.fixture
def key_store(alice, bob, alice_keys, bob_keys):
    store = InMemoryKeyStore()
    store.put(alice.user_id, alice_keys)
    store.put(bob.user_id, bob_keys)
    return store


@pytest.fixture
def alice_signer(vault, key_store, alice):
    return SigningSession(vault, key_store, Session(alice))


@pytest.fixture
def bob_signer(vault, key_store, bob):
    return SigningSession(vault, key_store, Session(bob))


@pytest.fixture
def verifier(vault, key_store):
    return SignatureVerifier(vault, key_store)


@pytest.fixture
def accounts(tmp_path):
    return AccountManager(JSONStorage(str(tmp_path / "users.json")), CredentialHasher())
