"""
Signature verification with record resolution.

A verification request names the content and, optionally, a signature and
a public key. The material to check against is resolved in three steps:

1. manual: the caller supplied both signature and public key
2. local key: the caller supplied a signature, and the acting identity has
   a key pair in the local key store
3. stored record: look the content digest up in the record store and use
   the signature and public key recorded at sign time

The result always says which step supplied the material. Outcomes stay
distinct: content nobody signed, a record whose key is gone, and a
signature that does not match are three different answers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Optional, Tuple, Union

from storage.models import DocumentRecord, SignatureRecord
from storage.repository import ACTION_DOCUMENT_SIGNED, RecordStore

from .digest import canonical_bytes, compute_content_digest
from .errors import FormatError, IncompleteRecordError, NotFoundError
from .keystore import KeyStore
from .signatures import verify_signature_b64

logger = logging.getLogger(__name__)


class VerificationOutcome(str, Enum):
    VERIFIED = "verified"
    NOT_SIGNED = "not_signed"
    KEY_NOT_FOUND = "key_not_found"
    SIGNATURE_INVALID = "signature_invalid"


class ResolutionSource(str, Enum):
    MANUAL = "manual"
    LOCAL_KEY = "local_key"
    STORED_RECORD = "stored_record"


_MESSAGES = {
    VerificationOutcome.VERIFIED: "Signature verified. Content is authentic and unmodified.",
    VerificationOutcome.NOT_SIGNED: "This content has not been signed, or no signature and public key were provided.",
    VerificationOutcome.KEY_NOT_FOUND: "Public key not found in the signed record. Cannot verify signature.",
    VerificationOutcome.SIGNATURE_INVALID: "Signature verification failed. Content may have been tampered with.",
}


@dataclass(frozen=True)
class VerificationResult:
    outcome: VerificationOutcome
    source: ResolutionSource
    content_digest: str
    message: str
    signature_b64: Optional[str] = None
    public_key: Optional[str] = None
    document_id: Optional[str] = None
    signer: Optional[str] = None
    signed_at: Optional[str] = None

    @property
    def verified(self) -> bool:
        return self.outcome is VerificationOutcome.VERIFIED


def _as_text(material: Union[bytes, str, None]) -> Optional[str]:
    if material is None:
        return None
    if isinstance(material, bytes):
        material = material.decode("ascii", errors="replace")
    return material if material.strip() else None


def recover_public_key(records: RecordStore, document: DocumentRecord, signature: SignatureRecord) -> str:
    """
    Find the public key that belongs to a stored signature.

    The signature row carries it directly. Rows written without one are
    resolved through the document's signing audit entry.

    Raises:
        IncompleteRecordError: neither place holds a key
    """
    if signature.public_key:
        return signature.public_key
    for entry in records.find_audit(document.document_id, ACTION_DOCUMENT_SIGNED):
        public_key = entry.metadata.get("public_key")
        if public_key:
            return public_key
    raise IncompleteRecordError(f"No public key recorded for document {document.document_id}")


def find_signed_record(records: RecordStore, content_digest: str) -> Tuple[DocumentRecord, SignatureRecord]:
    """
    Newest document with this digest that has a signature.

    Raises:
        NotFoundError: no signed document has this digest
    """
    for document in records.find_documents_by_digest(content_digest):
        signatures = records.signatures_for_document(document.document_id)
        if signatures:
            return document, signatures[0]
    raise NotFoundError(f"No signed record for digest {content_digest}")


class SignatureVerifier:
    """Resolves verification material and checks signatures. Never raises on bad input."""

    def __init__(self, records: Optional[RecordStore] = None, key_store: Optional[KeyStore] = None):
        self.records = records
        self.key_store = key_store

    def verify(
        self,
        content: Union[bytes, str],
        *,
        signature: Optional[str] = None,
        public_key: Union[bytes, str, None] = None,
        identity: Optional[str] = None,
    ) -> VerificationResult:
        """
        Verify content against a signature.

        Args:
            content: The exact content to check (file bytes or text)
            signature: Base64 signature entered by the caller, if any
            public_key: Public key entered by the caller, if any
            identity: User id whose local key pair may supply the public key

        Returns:
            VerificationResult with the outcome and the branch that resolved it

        CryptoProviderError is not caught: it means the check could not run.
        """
        data = canonical_bytes(content)
        digest = compute_content_digest(data)
        signature = _as_text(signature)
        public_key = _as_text(public_key)

        if signature and public_key:
            return self._check(data, digest, ResolutionSource.MANUAL, signature, public_key)

        if signature and identity and self.key_store is not None:
            pair = self.key_store.get(identity)
            if pair is not None:
                return self._check(
                    data, digest, ResolutionSource.LOCAL_KEY, signature, pair.public_key.decode("ascii")
                )

        return self._verify_from_records(data, digest)

    def _verify_from_records(self, data: bytes, digest: str) -> VerificationResult:
        source = ResolutionSource.STORED_RECORD
        if self.records is None:
            return self._result(VerificationOutcome.NOT_SIGNED, source, digest)
        try:
            document, stored = find_signed_record(self.records, digest)
        except NotFoundError:
            return self._result(VerificationOutcome.NOT_SIGNED, source, digest)

        context = {
            "document_id": document.document_id,
            "signer": stored.actor,
            "signed_at": stored.created_at,
            "signature_b64": stored.signature_b64,
        }
        try:
            public_key = recover_public_key(self.records, document, stored)
        except IncompleteRecordError:
            return self._result(VerificationOutcome.KEY_NOT_FOUND, source, digest, **context)

        return self._check(data, digest, source, stored.signature_b64, public_key, **context)

    def _check(
        self,
        data: bytes,
        digest: str,
        source: ResolutionSource,
        signature: str,
        public_key: str,
        **context,
    ) -> VerificationResult:
        context.pop("signature_b64", None)
        try:
            valid = verify_signature_b64(data, signature, public_key)
        except FormatError as exc:
            logger.info("Malformed verification input (%s): %s", source.value, exc)
            valid = False
        outcome = VerificationOutcome.VERIFIED if valid else VerificationOutcome.SIGNATURE_INVALID
        return self._result(outcome, source, digest, signature_b64=signature, public_key=public_key, **context)

    @staticmethod
    def _result(outcome: VerificationOutcome, source: ResolutionSource, digest: str, **fields) -> VerificationResult:
        logger.info("Verification of %s... via %s: %s", digest[:12], source.value, outcome.value)
        return VerificationResult(
            outcome=outcome,
            source=source,
            content_digest=digest,
            message=_MESSAGES[outcome],
            **fields,
        )

