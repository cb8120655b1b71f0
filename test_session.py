"""
Tests for signing sessions: the write sequence and its rollback.
"""
from pathlib import Path

import pytest

from accounts.session import Session
from signing.digest import compute_content_digest
from signing.errors import (
    AuthenticationRequiredError,
    ContentTooLargeError,
    KeyPairExistsError,
    MissingKeyPairError,
    SigningStepError,
)
from signing.keys import public_key_to_b64
from signing.keystore import InMemoryKeyStore
from signing.session import SigningSession
from signing.signatures import verify_signature_b64
from signing.verification import ResolutionSource, SignatureVerifier, VerificationOutcome
from storage.models import DocumentStatus
from storage.repository import ACTION_DOCUMENT_SIGNED, ACTION_KEYS_GENERATED
from storage.vault import VaultStore


class FailingVault(VaultStore):
    """Vault whose write for one step raises."""

    def __init__(self, root, fail_on, fail_undo=()):
        super().__init__(root)
        self.fail_on = fail_on
        self.fail_undo = set(fail_undo)

    def _maybe_fail(self, step):
        if self.fail_on == step:
            raise OSError(f"disk full while writing {step}")

    def put_blob(self, path, data):
        self._maybe_fail("upload")
        super().put_blob(path, data)

    def delete_blob(self, path):
        if "upload" in self.fail_undo:
            raise OSError("blob storage unreachable")
        return super().delete_blob(path)

    def insert_document(self, document):
        self._maybe_fail("document")
        return super().insert_document(document)

    def insert_signature(self, signature):
        self._maybe_fail("signature")
        return super().insert_signature(signature)

    def insert_audit(self, entry):
        self._maybe_fail("audit")
        return super().insert_audit(entry)


def _counts(vault):
    data = vault._load()
    return {table: len(rows) for table, rows in data.items()}, vault.list_blobs()


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------

def test_sign_file_writes_every_record(tmp_path, vault, alice_signer, alice, alice_keys):
    src = tmp_path / "contract.pdf"
    src.write_bytes(b"%PDF-1.7 contract body\r\n")

    receipt = alice_signer.sign_file(src)

    counts, blobs = _counts(vault)
    assert counts == {"documents": 1, "signatures": 1, "audit": 1}
    assert len(blobs) == 1
    assert blobs[0].startswith(f"{alice.user_id}/") and blobs[0].endswith(".pdf")

    document = receipt.document
    assert document.status is DocumentStatus.SIGNED
    assert document.display_name == "contract.pdf"
    assert document.content_digest == compute_content_digest(src.read_bytes())
    assert document.size == src.stat().st_size
    assert vault.get_blob(document.blob_path) == src.read_bytes()

    signature = receipt.signature
    assert signature.digest_at_sign_time == document.content_digest
    assert signature.public_key == public_key_to_b64(alice_keys.public_key)
    assert verify_signature_b64(src.read_bytes(), receipt.signature_b64, alice_keys.public_key)

    audit = receipt.audit
    assert audit.action == ACTION_DOCUMENT_SIGNED
    assert audit.resource_id == document.document_id
    assert audit.metadata["sign_mode"] == "file"
    assert audit.metadata["public_key"] == receipt.public_key
    assert audit.metadata["content_digest"] == receipt.content_digest


def test_sign_text_is_not_uploaded(vault, alice_signer):
    receipt = alice_signer.sign_text("hello world")

    counts, blobs = _counts(vault)
    assert counts == {"documents": 1, "signatures": 1, "audit": 1}
    assert blobs == []
    assert receipt.document.blob_path is None
    assert receipt.document.source == "text"
    assert receipt.document.display_name.startswith("text_document_")
    assert receipt.content_digest == "b94d27b9934d3e08a52e52d7da7dabfac484efe37a5380ee9088f7ace2efcde9"


def test_sign_text_with_display_name(alice_signer):
    assert alice_signer.sign_text("memo", display_name="memo.txt").document.display_name == "memo.txt"


def test_signed_text_verifies_from_records_alone(vault, alice_signer):
    alice_signer.sign_text("hello world")
    verifier = SignatureVerifier(vault)

    ok = verifier.verify("hello world")
    tampered = verifier.verify("hello world!")

    assert ok.outcome is VerificationOutcome.VERIFIED
    assert ok.source is ResolutionSource.STORED_RECORD
    assert tampered.outcome is VerificationOutcome.NOT_SIGNED


def test_signed_file_verifies_with_same_bytes(tmp_path, vault, alice_signer):
    src = tmp_path / "notes.txt"
    src.write_bytes(b"line one\r\nline two\r\n")
    alice_signer.sign_file(src)

    verifier = SignatureVerifier(vault)
    assert verifier.verify(src.read_bytes()).verified
    assert not verifier.verify(b"line one\nline two\n").verified


def test_two_users_sign_same_content(vault, alice_signer, bob_signer, alice_keys, bob_keys):
    first = alice_signer.sign_text("contract v1")
    second = bob_signer.sign_text("contract v1")

    assert first.signature_b64 != second.signature_b64
    assert verify_signature_b64("contract v1", first.signature_b64, alice_keys.public_key)
    assert verify_signature_b64("contract v1", second.signature_b64, bob_keys.public_key)

    result = SignatureVerifier(vault).verify("contract v1")
    assert result.verified
    assert result.document_id == second.document.document_id


# ---------------------------------------------------------------------------
# Preconditions
# ---------------------------------------------------------------------------

def test_signing_requires_login(vault, key_store):
    signer = SigningSession(vault, key_store, Session())

    with pytest.raises(AuthenticationRequiredError):
        signer.sign_text("hello")
    assert _counts(vault) == ({"documents": 0, "signatures": 0, "audit": 0}, [])


def test_signing_requires_key_pair(vault, alice):
    signer = SigningSession(vault, InMemoryKeyStore(), Session(alice))

    with pytest.raises(MissingKeyPairError):
        signer.sign_text("hello")
    assert _counts(vault)[0]["documents"] == 0


def test_empty_text_is_rejected(alice_signer):
    with pytest.raises(ValueError):
        alice_signer.sign_text("   \n")


def test_missing_file_is_rejected(tmp_path, alice_signer):
    with pytest.raises(FileNotFoundError):
        alice_signer.sign_file(tmp_path / "nope.pdf")


def test_upload_limit(tmp_path, vault, key_store, alice):
    signer = SigningSession(vault, key_store, Session(alice), max_upload_bytes=16)
    src = tmp_path / "big.bin"
    src.write_bytes(b"x" * 17)

    with pytest.raises(ContentTooLargeError):
        signer.sign_file(src)
    assert vault.list_blobs() == []

    # text is never uploaded, so the limit does not apply
    signer.sign_text("y" * 64)


def test_upload_limit_checked_before_reading(tmp_path, monkeypatch, vault, key_store, alice):
    signer = SigningSession(vault, key_store, Session(alice), max_upload_bytes=1024)
    src = tmp_path / "big.bin"
    src.write_bytes(b"x" * 2048)
    reads = []
    original = Path.read_bytes

    def tracking_read_bytes(self):
        reads.append(self.name)
        return original(self)

    monkeypatch.setattr(Path, "read_bytes", tracking_read_bytes)

    with pytest.raises(ContentTooLargeError):
        signer.sign_file(src)
    assert reads == []


# ---------------------------------------------------------------------------
# Failure and rollback
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("step", ["upload", "document", "signature", "audit"])
def test_failed_step_rolls_back_earlier_writes(tmp_path, key_store, alice, step):
    vault = FailingVault(tmp_path / "vault", fail_on=step)
    signer = SigningSession(vault, key_store, Session(alice))
    src = tmp_path / "doc.txt"
    src.write_bytes(b"contents")

    with pytest.raises(SigningStepError) as excinfo:
        signer.sign_file(src)

    error = excinfo.value
    assert error.step == step
    assert isinstance(error.cause, OSError)
    assert error.artifact_stored is False
    assert error.document_id is None
    assert _counts(vault) == ({"documents": 0, "signatures": 0, "audit": 0}, [])


def test_failed_text_signing_names_step(tmp_path, key_store, alice):
    vault = FailingVault(tmp_path / "vault", fail_on="signature")
    signer = SigningSession(vault, key_store, Session(alice))

    with pytest.raises(SigningStepError) as excinfo:
        signer.sign_text("hello")

    assert excinfo.value.step == "signature"
    assert _counts(vault)[0]["documents"] == 0


def test_artifact_reported_when_upload_cannot_be_undone(tmp_path, key_store, alice):
    vault = FailingVault(tmp_path / "vault", fail_on="document", fail_undo={"upload"})
    signer = SigningSession(vault, key_store, Session(alice))
    src = tmp_path / "doc.txt"
    src.write_bytes(b"contents")

    with pytest.raises(SigningStepError) as excinfo:
        signer.sign_file(src)

    assert excinfo.value.artifact_stored is True
    assert len(vault.list_blobs()) == 1

    vault.fail_undo.clear()
    assert len(vault.sweep_orphan_blobs()) == 1
    assert vault.list_blobs() == []


def test_failure_leaves_earlier_signings_intact(tmp_path, key_store, alice):
    vault = FailingVault(tmp_path / "vault", fail_on=None)
    signer = SigningSession(vault, key_store, Session(alice))
    signer.sign_text("first")

    vault.fail_on = "audit"
    with pytest.raises(SigningStepError):
        signer.sign_text("second")

    assert _counts(vault)[0] == {"documents": 1, "signatures": 1, "audit": 1}
    assert SignatureVerifier(vault).verify("first").verified


# ---------------------------------------------------------------------------
# Key generation
# ---------------------------------------------------------------------------

def test_generate_keys_records_audit(vault, alice):
    signer = SigningSession(vault, InMemoryKeyStore(), Session(alice))

    pair = signer.generate_keys()

    assert signer.key_pair() == pair
    entries = vault.list_audit(actor=alice.user_id)
    assert [e.action for e in entries] == [ACTION_KEYS_GENERATED]
    assert entries[0].metadata["replaced"] is False


def test_generate_keys_refuses_silent_overwrite(alice_signer, alice_keys):
    with pytest.raises(KeyPairExistsError):
        alice_signer.generate_keys()
    assert alice_signer.key_pair() == alice_keys


def test_regenerated_keys_keep_old_records_verifiable(vault, alice):
    signer = SigningSession(vault, InMemoryKeyStore(), Session(alice))
    signer.generate_keys()
    receipt = signer.sign_text("before rotation")

    signer.generate_keys(overwrite=True)
    verifier = SignatureVerifier(vault, signer.key_store)

    assert verifier.verify("before rotation").verified
    local = verifier.verify("before rotation", signature=receipt.signature_b64, identity=alice.user_id)
    assert local.source is ResolutionSource.LOCAL_KEY
    assert local.outcome is VerificationOutcome.SIGNATURE_INVALID


def test_first_generation_with_overwrite_is_not_a_replacement(vault, alice):
    signer = SigningSession(vault, InMemoryKeyStore(), Session(alice))

    signer.generate_keys(overwrite=True)
    signer.generate_keys(overwrite=True)

    entries = vault.list_audit(actor=alice.user_id)
    assert [e.metadata["replaced"] for e in entries] == [True, False]
