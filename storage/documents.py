"""Document listing, download, deletion and the audit trail."""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from signing.errors import NotFoundError

from .models import AuditEntry, DocumentRecord, DocumentStatus, SignatureRecord
from .repository import ACTION_DOCUMENT_DELETED, RecordStore

logger = logging.getLogger(__name__)

AUDIT_TRAIL_LIMIT = 50


def _default_download_dir(username: str) -> Path:
    base = Path.home() / "Downloads"
    return base / username


class DocumentService:
    def __init__(self, records: RecordStore):
        self.records = records

    def _owned(self, user, document_id: str) -> DocumentRecord:
        document = self.records.get_document(document_id)
        if document is None:
            raise NotFoundError(f"No document {document_id}")
        if document.owner_id != user.user_id:
            raise PermissionError("Only the owner can access this document")
        return document

    def list_documents(self, user) -> List[DocumentRecord]:
        """The user's documents, newest first."""
        return self.records.list_documents(user.user_id)

    def signatures(self, user, document_id: str) -> List[SignatureRecord]:
        return self.records.signatures_for_document(self._owned(user, document_id).document_id)

    def dashboard_stats(self, user) -> Dict[str, int]:
        documents = self.list_documents(user)
        return {
            "total": len(documents),
            "signed": sum(1 for d in documents if d.status is DocumentStatus.SIGNED),
            "pending": sum(1 for d in documents if d.status is DocumentStatus.PENDING),
        }

    def download(self, user, document_id: str, dest_dir: Optional[str] = None) -> Path:
        """
        Write a stored artifact to disk.

        Args:
            user: The requesting user (must own the document)
            document_id: Document to download
            dest_dir: Destination directory (default: ~/Downloads/{username})

        Returns:
            Path of the written file
        """
        document = self._owned(user, document_id)
        if not document.blob_path:
            raise NotFoundError(f"{document.display_name} was signed as text; no file is stored")
        data = self.records.get_blob(document.blob_path)

        target_dir = Path(dest_dir).expanduser() if dest_dir else _default_download_dir(user.username)
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / Path(document.display_name).name
        target.write_bytes(data)
        return target

    def delete(self, user, document_id: str) -> bool:
        """Delete a document, its stored artifact and its signatures. Owner only."""
        document = self._owned(user, document_id)
        # row first: a blob without a row is swept later, a row without a blob is broken
        deleted = self.records.delete_document(document.document_id)
        if document.blob_path:
            self.records.delete_blob(document.blob_path)
        if deleted:
            self.records.insert_audit(AuditEntry.new(
                actor=user.user_id,
                action=ACTION_DOCUMENT_DELETED,
                resource_type="document",
                resource_id=document.document_id,
                metadata={"file_name": document.display_name},
            ))
            logger.info("Deleted document %s", document.document_id)
        return deleted

    def audit_trail(self, user, limit: int = AUDIT_TRAIL_LIMIT) -> List[AuditEntry]:
        """Own audit entries, newest first. Admins see everyone's."""
        actor = None if user.is_admin else user.user_id
        return self.records.list_audit(actor=actor, limit=limit)
