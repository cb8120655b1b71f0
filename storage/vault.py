"""
File-backed record store.

Layout under the vault root:
    blobs/<owner_id>/<opaque name>   stored artifacts
    records.json                     documents, signatures and audit rows

Every index write goes through a temp file and os.replace, so a crash
never leaves a half-written index behind.
"""

from pathlib import Path
import json
import logging
import os
import tempfile
from typing import Any, Dict, List, Optional

from signing.errors import NotFoundError

from .models import AuditEntry, DocumentRecord, SignatureRecord
from .repository import RecordStore

logger = logging.getLogger(__name__)

VAULT_ROOT = Path("vault")

_TABLES = ("documents", "signatures", "audit")


def _ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


class VaultStore(RecordStore):
    def __init__(self, root: Path = VAULT_ROOT):
        self.root = _ensure_dir(Path(root).expanduser())
        self.blob_root = _ensure_dir(self.root / "blobs")
        self.index_path = self.root / "records.json"

    # ------------------------------------------------------------------
    # Index helpers
    # ------------------------------------------------------------------

    def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        if not self.index_path.exists():
            return {table: [] for table in _TABLES}
        with self.index_path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
        for table in _TABLES:
            data.setdefault(table, [])
        return data

    def _save(self, data: Dict[str, List[Dict[str, Any]]]) -> None:
        fd, tmp = tempfile.mkstemp(prefix="records.", suffix=".json", dir=str(self.root))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            Path(tmp).replace(self.index_path)
        finally:
            tmp_path = Path(tmp)
            if tmp_path.exists():
                tmp_path.unlink(missing_ok=True)

    def _remove(self, table: str, key: str, value: str) -> bool:
        data = self._load()
        kept = [row for row in data[table] if row.get(key) != value]
        if len(kept) == len(data[table]):
            return False
        data[table] = kept
        self._save(data)
        return True

    def _blob_file(self, path: str) -> Path:
        target = (self.blob_root / path).resolve()
        if self.blob_root.resolve() not in target.parents:
            raise ValueError(f"Blob path escapes the vault: {path}")
        return target

    # ------------------------------------------------------------------
    # Blobs
    # ------------------------------------------------------------------

    def put_blob(self, path: str, data: bytes) -> None:
        target = self._blob_file(path)
        _ensure_dir(target.parent)
        target.write_bytes(data)

    def get_blob(self, path: str) -> bytes:
        target = self._blob_file(path)
        if not target.is_file():
            raise NotFoundError(f"Stored blob missing: {path}")
        return target.read_bytes()

    def delete_blob(self, path: str) -> bool:
        target = self._blob_file(path)
        if not target.exists():
            return False
        target.unlink()
        return True

    def list_blobs(self) -> List[str]:
        return sorted(
            p.relative_to(self.blob_root).as_posix()
            for p in self.blob_root.rglob("*")
            if p.is_file()
        )

    def sweep_orphan_blobs(self) -> List[str]:
        """Delete blobs that no document references, e.g. after an aborted signing."""
        referenced = {row.get("blob_path") for row in self._load()["documents"]}
        removed = []
        for path in self.list_blobs():
            if path not in referenced:
                self.delete_blob(path)
                removed.append(path)
        if removed:
            logger.info("Removed %d orphaned blob(s) from %s", len(removed), self.blob_root)
        return removed

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def insert_document(self, document: DocumentRecord) -> DocumentRecord:
        data = self._load()
        data["documents"].append(document.to_dict())
        self._save(data)
        return document

    def get_document(self, document_id: str) -> Optional[DocumentRecord]:
        for row in self._load()["documents"]:
            if row["document_id"] == document_id:
                return DocumentRecord.from_dict(row)
        return None

    def find_documents_by_digest(self, content_digest: str) -> List[DocumentRecord]:
        rows = self._load()["documents"]
        return [
            DocumentRecord.from_dict(row)
            for row in reversed(rows)
            if row["content_digest"] == content_digest
        ]

    def list_documents(self, owner_id: str) -> List[DocumentRecord]:
        rows = self._load()["documents"]
        return [DocumentRecord.from_dict(row) for row in reversed(rows) if row["owner_id"] == owner_id]

    def delete_document(self, document_id: str) -> bool:
        data = self._load()
        kept = [row for row in data["documents"] if row["document_id"] != document_id]
        if len(kept) == len(data["documents"]):
            return False
        data["documents"] = kept
        data["signatures"] = [row for row in data["signatures"] if row["document_id"] != document_id]
        self._save(data)
        return True

    # ------------------------------------------------------------------
    # Signatures
    # ------------------------------------------------------------------

    def insert_signature(self, signature: SignatureRecord) -> SignatureRecord:
        data = self._load()
        if not any(row["document_id"] == signature.document_id for row in data["documents"]):
            raise NotFoundError(f"No document {signature.document_id} for signature")
        data["signatures"].append(signature.to_dict())
        self._save(data)
        return signature

    def signatures_for_document(self, document_id: str) -> List[SignatureRecord]:
        rows = self._load()["signatures"]
        return [SignatureRecord.from_dict(row) for row in reversed(rows) if row["document_id"] == document_id]

    def delete_signature(self, signature_id: str) -> bool:
        return self._remove("signatures", "signature_id", signature_id)

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------

    def insert_audit(self, entry: AuditEntry) -> AuditEntry:
        data = self._load()
        data["audit"].append(entry.to_dict())
        self._save(data)
        return entry

    def find_audit(self, resource_id: str, action: Optional[str] = None) -> List[AuditEntry]:
        rows = self._load()["audit"]
        return [
            AuditEntry.from_dict(row)
            for row in reversed(rows)
            if row.get("resource_id") == resource_id and (action is None or row["action"] == action)
        ]

    def list_audit(self, actor: Optional[str] = None, limit: Optional[int] = None) -> List[AuditEntry]:
        rows = self._load()["audit"]
        entries = [AuditEntry.from_dict(row) for row in reversed(rows) if actor is None or row.get("actor") == actor]
        return entries[:limit] if limit is not None else entries

    def delete_audit(self, audit_id: str) -> bool:
        return self._remove("audit", "audit_id", audit_id)
