"""
Error types for the signing engine.

Verification mismatches are never errors: the verify functions return False.
Everything here means an operation could not be evaluated, or a record
could not be found.
"""

from typing import Optional


class SigningError(Exception):
    """Base class for all signing engine errors."""


class FormatError(SigningError, ValueError):
    """Key or signature material is not correctly encoded."""


class KeyFormatError(FormatError):
    """Key material is not a valid RSA key in the expected encoding."""


class SignatureFormatError(FormatError):
    """Signature is not valid base64."""


class CryptoProviderError(SigningError):
    """The cryptographic backend cannot perform the requested primitive."""


class NotFoundError(SigningError, LookupError):
    """No matching record exists."""


class IncompleteRecordError(SigningError):
    """A signed record exists but its public key cannot be recovered."""


class KeyPairExistsError(SigningError):
    """A key pair is already stored for this identity."""

    def __init__(self, identity: str):
        super().__init__(f"A key pair already exists for {identity}")
        self.identity = identity


class MissingKeyPairError(SigningError):
    """No key pair is stored for this identity."""


class AuthenticationRequiredError(SigningError):
    """The action writes records and needs an authenticated identity."""


class ContentTooLargeError(SigningError, ValueError):
    """The artifact exceeds the configured upload limit."""


class SigningStepError(SigningError):
    """
    A persistence step of a signing action failed.

    `step` is one of "upload", "document", "signature" or "audit".
    `artifact_stored` tells whether the uploaded blob is still in storage.
    """

    def __init__(
        self,
        step: str,
        cause: BaseException,
        *,
        artifact_stored: bool = False,
        document_id: Optional[str] = None,
    ):
        super().__init__(f"Signing failed at step '{step}': {cause}")
        self.step = step
        self.cause = cause
        self.artifact_stored = artifact_stored
        self.document_id = document_id
