"""
Signing sessions.

One signing action hashes and signs the content, then writes to the
record store in order:

    upload (files only) -> document -> signature -> audit

Each write needs the id produced by the one before it. If a write fails,
the earlier writes are undone in reverse order and SigningStepError names
the failed step. The artifact is reported as still stored only when
undoing the upload itself failed.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple, Union
import uuid

from storage.models import AuditEntry, DocumentRecord, DocumentStatus, SignatureRecord
from storage.repository import ACTION_DOCUMENT_SIGNED, ACTION_KEYS_GENERATED, RecordStore

from .digest import compute_content_digest, read_document
from .errors import (
    AuthenticationRequiredError,
    ContentTooLargeError,
    MissingKeyPairError,
    SigningStepError,
)
from .keys import KeyPair, public_key_fingerprint, public_key_to_b64
from .keystore import KeyStore, provision_key_pair
from .signatures import sign_content

if TYPE_CHECKING:
    from accounts.models import User
    from accounts.session import IdentityProvider

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 10 * 1024 * 1024
DEFAULT_CLIENT = "signdesk"


@dataclass(frozen=True)
class SigningReceipt:
    document: DocumentRecord
    signature: SignatureRecord
    audit: AuditEntry

    @property
    def content_digest(self) -> str:
        return self.document.content_digest

    @property
    def signature_b64(self) -> str:
        return self.signature.signature_b64

    @property
    def public_key(self) -> Optional[str]:
        return self.signature.public_key


class SigningSession:
    def __init__(
        self,
        records: RecordStore,
        key_store: KeyStore,
        identity: "IdentityProvider",
        *,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
        client: str = DEFAULT_CLIENT,
    ):
        self.records = records
        self.key_store = key_store
        self.identity = identity
        self.max_upload_bytes = max_upload_bytes
        self.client = client

    def _require_user(self) -> "User":
        user = self.identity.current_identity()
        if user is None:
            raise AuthenticationRequiredError("Signing requires a logged-in user.")
        return user

    def key_pair(self) -> Optional[KeyPair]:
        """Key pair of the current user, if one was generated."""
        return self.key_store.get(self._require_user().user_id)

    def generate_keys(self, *, overwrite: bool = False) -> KeyPair:
        """
        Generate the current user's key pair.

        Raises KeyPairExistsError when a pair exists and overwrite is False.
        """
        user = self._require_user()
        pair, replaced = provision_key_pair(self.key_store, user.user_id, overwrite=overwrite)
        self.records.insert_audit(AuditEntry.new(
            actor=user.user_id,
            action=ACTION_KEYS_GENERATED,
            resource_type="key_pair",
            metadata={
                "fingerprint": public_key_fingerprint(pair.public_key),
                "replaced": replaced,
            },
        ))
        return pair

    def sign_file(self, filepath: Union[str, Path]) -> SigningReceipt:
        """Sign a file and store it together with its signature."""
        src = Path(filepath).expanduser()
        if src.is_file():
            self._check_size(src.name, src.stat().st_size)
        data = read_document(src)
        # the file may have grown since stat
        self._check_size(src.name, len(data))
        return self._sign(data, display_name=src.name, source="file", suffix=src.suffix)

    def _check_size(self, name: str, size: int) -> None:
        if size > self.max_upload_bytes:
            raise ContentTooLargeError(f"{name} is {size:,} bytes; the limit is {self.max_upload_bytes:,} bytes")

    def sign_text(self, text: str, display_name: Optional[str] = None) -> SigningReceipt:
        """Sign text content. Text is recorded but not uploaded."""
        if not text.strip():
            raise ValueError("Text to sign cannot be empty")
        name = display_name or f"text_document_{uuid.uuid4().hex[:12]}.txt"
        return self._sign(text.encode("utf-8"), display_name=name, source="text", suffix="")

    def _sign(self, data: bytes, *, display_name: str, source: str, suffix: str) -> SigningReceipt:
        user = self._require_user()
        pair = self.key_store.get(user.user_id)
        if pair is None:
            raise MissingKeyPairError("Please generate your key pair first.")

        content_digest = compute_content_digest(data)
        signature_b64 = sign_content(data, pair.private_key)
        public_key = public_key_to_b64(pair.public_key)

        undo: List[Tuple[str, Callable[[], object]]] = []
        blob_path: Optional[str] = None
        document: Optional[DocumentRecord] = None
        step = "upload"
        try:
            if source == "file":
                blob_path = f"{user.user_id}/{uuid.uuid4().hex}{suffix}"
                self.records.put_blob(blob_path, data)
                undo.append(("upload", lambda: self.records.delete_blob(blob_path)))

            step = "document"
            document = self.records.insert_document(DocumentRecord.new(
                owner_id=user.user_id,
                display_name=display_name,
                content_digest=content_digest,
                blob_path=blob_path,
                size=len(data),
                source=source,
                status=DocumentStatus.SIGNED,
            ))
            undo.append(("document", lambda: self.records.delete_document(document.document_id)))

            step = "signature"
            signature = self.records.insert_signature(SignatureRecord.new(
                document_id=document.document_id,
                actor=user.user_id,
                signature_b64=signature_b64,
                digest_at_sign_time=content_digest,
                public_key=public_key,
                client=self.client,
            ))
            undo.append(("signature", lambda: self.records.delete_signature(signature.signature_id)))

            step = "audit"
            audit = self.records.insert_audit(AuditEntry.new(
                actor=user.user_id,
                action=ACTION_DOCUMENT_SIGNED,
                resource_type="document",
                resource_id=document.document_id,
                metadata={
                    "file_name": display_name,
                    "sign_mode": source,
                    "content_digest": content_digest,
                    "public_key": public_key,
                    "client": self.client,
                },
            ))
        except Exception as exc:
            logger.error("Signing %s failed at step %s: %s", display_name, step, exc)
            failed_undo = self._undo(undo)
            raise SigningStepError(
                step,
                exc,
                artifact_stored="upload" in failed_undo,
                document_id=document.document_id if document and "document" in failed_undo else None,
            ) from exc

        logger.info(
            "Signed %s (%s) as document %s, digest %s...",
            display_name, source, document.document_id, content_digest[:12],
        )
        return SigningReceipt(document=document, signature=signature, audit=audit)

    @staticmethod
    def _undo(undo: List[Tuple[str, Callable[[], object]]]) -> List[str]:
        """Run compensating actions newest first; return the steps that could not be undone."""
        failed = []
        for name, action in reversed(undo):
            try:
                action()
            except Exception:
                logger.exception("Could not undo step %s", name)
                failed.append(name)
            else:
                logger.warning("Undid step %s after failed signing", name)
        return failed
