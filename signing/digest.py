"""
Content digests.

The digest is the SHA-256 of the exact bytes that get signed. Nothing is
trimmed or normalized: a changed newline is a changed document.
"""

from pathlib import Path
from typing import Union

from cryptography.hazmat.primitives.hashes import Hash, SHA256

TEXT_ENCODING = "utf-8"


def canonical_bytes(content: Union[bytes, str]) -> bytes:
    """Return the byte form of content. Text is always encoded as UTF-8."""
    if isinstance(content, str):
        return content.encode(TEXT_ENCODING)
    return bytes(content)


def read_document(path: Union[str, Path]) -> bytes:
    """
    Read a document exactly as stored on disk.

    Files are never decoded or newline-translated, so the bytes hashed at
    sign time and at verify time are the same bytes.
    """
    src = Path(path).expanduser()
    if not src.is_file():
        raise FileNotFoundError(f"{path} is not a file")
    return src.read_bytes()


def compute_content_digest(content: Union[bytes, str]) -> str:
    """Compute the lowercase hex SHA-256 of content."""
    digest = Hash(SHA256())
    digest.update(canonical_bytes(content))
    return digest.finalize().hex()
