"""Signing engine: digests, key pairs, signatures and local key storage.

The record-aware parts live in signing.session and signing.verification.
"""

from .digest import canonical_bytes, compute_content_digest, read_document
from .errors import (
    AuthenticationRequiredError,
    ContentTooLargeError,
    CryptoProviderError,
    FormatError,
    IncompleteRecordError,
    KeyFormatError,
    KeyPairExistsError,
    MissingKeyPairError,
    NotFoundError,
    SignatureFormatError,
    SigningError,
    SigningStepError,
)
from .keys import (
    KeyPair,
    generate_key_pair,
    load_private_key,
    load_public_key,
    public_key_fingerprint,
    public_key_to_b64,
)
from .keystore import InMemoryKeyStore, JSONKeyStore, KeyStore, provision_key_pair
from .signatures import (
    sign_content,
    sign_data,
    signature_from_b64,
    signature_to_b64,
    verify_signature,
    verify_signature_b64,
)

__all__ = [
    # Digests
    "canonical_bytes",
    "compute_content_digest",
    "read_document",
    # Keys
    "KeyPair",
    "generate_key_pair",
    "load_private_key",
    "load_public_key",
    "public_key_fingerprint",
    "public_key_to_b64",
    "KeyStore",
    "InMemoryKeyStore",
    "JSONKeyStore",
    "provision_key_pair",
    # Signatures
    "sign_content",
    "sign_data",
    "signature_from_b64",
    "signature_to_b64",
    "verify_signature",
    "verify_signature_b64",
    # Errors
    "AuthenticationRequiredError",
    "ContentTooLargeError",
    "CryptoProviderError",
    "FormatError",
    "IncompleteRecordError",
    "KeyFormatError",
    "KeyPairExistsError",
    "MissingKeyPairError",
    "NotFoundError",
    "SignatureFormatError",
    "SigningError",
    "SigningStepError",
]
