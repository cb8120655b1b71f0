"""Shared wiring so the CLI and the GUI build the same collaborators."""

import logging
from dataclasses import dataclass

from accounts.hashing import CredentialHasher
from accounts.manager import AccountManager
from accounts.session import Session
from accounts.storage import JSONStorage
from config import AppConfig
from signing.keystore import JSONKeyStore, KeyStore
from signing.session import SigningSession
from signing.verification import SignatureVerifier
from storage.documents import DocumentService
from storage.repository import RecordStore
from storage.vault import VaultStore

logger = logging.getLogger(__name__)


@dataclass
class App:
    config: AppConfig
    accounts: AccountManager
    key_store: KeyStore
    records: RecordStore
    documents: DocumentService
    verifier: SignatureVerifier

    def signing_session(self, session: Session) -> SigningSession:
        return SigningSession(
            self.records,
            self.key_store,
            session,
            max_upload_bytes=self.config.max_upload_bytes,
        )


def create_app(config: AppConfig) -> App:
    config.ensure_home()
    accounts = AccountManager(JSONStorage(str(config.users_file)), CredentialHasher())
    key_store = JSONKeyStore(str(config.keys_file))
    records = VaultStore(config.vault_dir)
    # blobs left behind by signings whose undo failed
    removed = records.sweep_orphan_blobs()
    if removed:
        logger.warning("Removed %d blob(s) left by failed signings", len(removed))
    return App(
        config=config,
        accounts=accounts,
        key_store=key_store,
        records=records,
        documents=DocumentService(records),
        verifier=SignatureVerifier(records, key_store),
    )
