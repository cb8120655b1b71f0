"""Storage module for signed documents, signatures and audit records."""

from .documents import DocumentService
from .models import AuditEntry, DocumentRecord, DocumentStatus, SignatureRecord
from .repository import (
    ACTION_DOCUMENT_DELETED,
    ACTION_DOCUMENT_SIGNED,
    ACTION_KEYS_GENERATED,
    RecordStore,
)
from .vault import VaultStore

__all__ = [
    "ACTION_DOCUMENT_DELETED",
    "ACTION_DOCUMENT_SIGNED",
    "ACTION_KEYS_GENERATED",
    "AuditEntry",
    "DocumentRecord",
    "DocumentService",
    "DocumentStatus",
    "RecordStore",
    "SignatureRecord",
    "VaultStore",
]
