"""
Digital Signature Module

Implements RSASSA-PKCS1-v1_5 signatures with SHA-256.
PKCS#1 v1.5 is deterministic: signing the same content with the same key
always yields the same signature bytes.

The raw content is handed to the primitive, which hashes it internally.
Passing a precomputed digest would hash twice and produce signatures no
other implementation can check.
"""

import base64
import binascii
from typing import Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from .digest import canonical_bytes
from .errors import CryptoProviderError, SignatureFormatError
from .keys import KeyMaterial, load_private_key, load_public_key


def sign_data(data: Union[bytes, str], private_key: KeyMaterial) -> bytes:
    """
    Sign data using RSA PKCS#1 v1.5 with SHA-256.

    Args:
        data: The raw content to sign (file bytes or text)
        private_key: PKCS#8 RSA private key (PEM, DER or base64 DER)

    Returns:
        The signature bytes

    Raises:
        KeyFormatError: the private key cannot be loaded
        CryptoProviderError: the backend cannot sign
    """
    key = load_private_key(private_key)
    try:
        return key.sign(canonical_bytes(data), padding.PKCS1v15(), hashes.SHA256())
    except UnsupportedAlgorithm as exc:
        raise CryptoProviderError(f"RSA signing unavailable: {exc}") from exc


def verify_signature(data: Union[bytes, str], signature: bytes, public_key: KeyMaterial) -> bool:
    """
    Verify an RSA PKCS#1 v1.5 signature.

    Args:
        data: The content that was supposedly signed
        signature: The signature to verify
        public_key: RSA public key of the signer (PEM, DER or base64 DER)

    Returns:
        True if signature is valid, False otherwise

    Raises:
        KeyFormatError: the public key cannot be loaded
        CryptoProviderError: the backend cannot verify
    """
    key = load_public_key(public_key)
    try:
        key.verify(signature, canonical_bytes(data), padding.PKCS1v15(), hashes.SHA256())
        return True
    except InvalidSignature:
        return False
    except UnsupportedAlgorithm as exc:
        raise CryptoProviderError(f"RSA verification unavailable: {exc}") from exc


def signature_to_b64(signature: bytes) -> str:
    return base64.b64encode(signature).decode("ascii")


def signature_from_b64(signature_b64: str) -> bytes:
    """Decode a base64 signature, tolerating pasted line breaks."""
    if isinstance(signature_b64, bytes):
        signature_b64 = signature_b64.decode("ascii", errors="replace")
    compact = "".join(signature_b64.split())
    if not compact:
        raise SignatureFormatError("Signature is empty")
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise SignatureFormatError(f"Signature is not valid base64: {exc}") from exc


def sign_content(content: Union[bytes, str], private_key: KeyMaterial) -> str:
    """Sign content and return the base64-encoded signature."""
    return signature_to_b64(sign_data(content, private_key))


def verify_signature_b64(content: Union[bytes, str], signature_b64: str, public_key: KeyMaterial) -> bool:
    """Verify a base64-encoded signature."""
    return verify_signature(content, signature_from_b64(signature_b64), public_key)
