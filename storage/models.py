from __future__ import annotations

from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
import uuid


def _now_iso() -> str:
    """Consistent ISO-8601 timestamp (UTC, microsecond precision)."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


class DocumentStatus(str, Enum):
    PENDING = "pending"
    SIGNED = "signed"
    VERIFIED = "verified"
    REJECTED = "rejected"


@dataclass
class DocumentRecord:
    """
    A document known to the record store.

    `blob_path` is the opaque key of the stored artifact. Text documents
    are never uploaded, so theirs is None. `content_digest` is the hex
    SHA-256 of the signed bytes and is what verification looks up.
    """

    document_id: str
    owner_id: str
    display_name: str
    content_digest: str
    status: DocumentStatus
    created_at: str
    updated_at: str
    blob_path: Optional[str] = None
    size: int = 0
    source: str = "file"  # "file" or "text"

    @staticmethod
    def new(
        owner_id: str,
        display_name: str,
        content_digest: str,
        *,
        blob_path: Optional[str] = None,
        size: int = 0,
        source: str = "file",
        status: DocumentStatus = DocumentStatus.PENDING,
    ) -> "DocumentRecord":
        now = _now_iso()
        return DocumentRecord(
            document_id=str(uuid.uuid4()),
            owner_id=owner_id,
            display_name=display_name,
            content_digest=content_digest,
            status=status,
            created_at=now,
            updated_at=now,
            blob_path=blob_path,
            size=size,
            source=source,
        )

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["status"] = self.status.value
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DocumentRecord":
        return cls(
            document_id=data["document_id"],
            owner_id=data["owner_id"],
            display_name=data["display_name"],
            content_digest=data["content_digest"],
            status=DocumentStatus(data.get("status", DocumentStatus.PENDING.value)),
            created_at=data["created_at"],
            updated_at=data.get("updated_at", data["created_at"]),
            blob_path=data.get("blob_path"),
            size=data.get("size", 0),
            source=data.get("source", "file"),
        )


@dataclass
class SignatureRecord:
    """
    One signature over one document.

    `public_key` is the signer's public key as base64 DER. Rows written
    before the column existed have None and fall back to the audit entry.
    `digest_at_sign_time` is always the content digest.
    """

    signature_id: str
    document_id: str
    actor: str
    signature_b64: str
    digest_at_sign_time: str
    created_at: str
    public_key: Optional[str] = None
    client: Optional[str] = None

    @staticmethod
    def new(
        document_id: str,
        actor: str,
        signature_b64: str,
        digest_at_sign_time: str,
        *,
        public_key: Optional[str] = None,
        client: Optional[str] = None,
    ) -> "SignatureRecord":
        return SignatureRecord(
            signature_id=str(uuid.uuid4()),
            document_id=document_id,
            actor=actor,
            signature_b64=signature_b64,
            digest_at_sign_time=digest_at_sign_time,
            created_at=_now_iso(),
            public_key=public_key,
            client=client,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SignatureRecord":
        return cls(
            signature_id=data["signature_id"],
            document_id=data["document_id"],
            actor=data["actor"],
            signature_b64=data["signature_b64"],
            digest_at_sign_time=data["digest_at_sign_time"],
            created_at=data["created_at"],
            public_key=data.get("public_key"),
            client=data.get("client"),
        )


@dataclass
class AuditEntry:
    """Free-form record of one action. `metadata` is opaque to the store."""

    audit_id: str
    actor: Optional[str]
    action: str
    resource_type: str
    resource_id: Optional[str]
    created_at: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def new(
        actor: Optional[str],
        action: str,
        resource_type: str,
        resource_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "AuditEntry":
        return AuditEntry(
            audit_id=str(uuid.uuid4()),
            actor=actor,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            created_at=_now_iso(),
            metadata=metadata or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditEntry":
        return cls(
            audit_id=data["audit_id"],
            actor=data.get("actor"),
            action=data["action"],
            resource_type=data["resource_type"],
            resource_id=data.get("resource_id"),
            created_at=data["created_at"],
            metadata=data.get("metadata") or {},
        )
