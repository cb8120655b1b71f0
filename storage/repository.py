from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional

from .models import AuditEntry, DocumentRecord, SignatureRecord

# Audit action written for every signing action.
ACTION_DOCUMENT_SIGNED = "document_signed"
ACTION_DOCUMENT_DELETED = "document_deleted"
ACTION_KEYS_GENERATED = "keys_generated"


class RecordStore(ABC):
    """
    Persistence collaborator for the signing engine.

    Blobs are keyed by opaque paths chosen by the caller. List methods
    return newest entries first.
    """

    # blobs
    @abstractmethod
    def put_blob(self, path: str, data: bytes) -> None: ...
    @abstractmethod
    def get_blob(self, path: str) -> bytes: ...
    @abstractmethod
    def delete_blob(self, path: str) -> bool: ...
    @abstractmethod
    def list_blobs(self) -> List[str]: ...

    # documents
    @abstractmethod
    def insert_document(self, document: DocumentRecord) -> DocumentRecord: ...
    @abstractmethod
    def get_document(self, document_id: str) -> Optional[DocumentRecord]: ...
    @abstractmethod
    def find_documents_by_digest(self, content_digest: str) -> List[DocumentRecord]: ...
    @abstractmethod
    def list_documents(self, owner_id: str) -> List[DocumentRecord]: ...
    @abstractmethod
    def delete_document(self, document_id: str) -> bool:
        """Delete a document and its signatures."""

    # signatures
    @abstractmethod
    def insert_signature(self, signature: SignatureRecord) -> SignatureRecord: ...
    @abstractmethod
    def signatures_for_document(self, document_id: str) -> List[SignatureRecord]: ...
    @abstractmethod
    def delete_signature(self, signature_id: str) -> bool: ...

    # audit
    @abstractmethod
    def insert_audit(self, entry: AuditEntry) -> AuditEntry: ...
    @abstractmethod
    def find_audit(self, resource_id: str, action: Optional[str] = None) -> List[AuditEntry]: ...
    @abstractmethod
    def list_audit(self, actor: Optional[str] = None, limit: Optional[int] = None) -> List[AuditEntry]:
        """Audit entries of one actor, or of everyone when actor is None."""
    @abstractmethod
    def delete_audit(self, audit_id: str) -> bool: ...
