"""
Tests for the terminal front end and the shared app wiring.
"""
import pytest

import cli
from accounts.session import Session
from app import create_app
from config import AppConfig
from signing.errors import CryptoProviderError
from storage.vault import VaultStore


@pytest.fixture
def app(tmp_path):
    return create_app(AppConfig(home=tmp_path / "home"))


@pytest.fixture
def session(app):
    user = app.accounts.register("alice", "secret123")
    return Session(user)


def _answer(monkeypatch, *answers):
    replies = iter(answers)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(replies))


def test_startup_removes_blobs_left_by_failed_signings(tmp_path):
    config = AppConfig(home=tmp_path / "home")
    config.ensure_home()
    VaultStore(config.vault_dir).put_blob("someone/leftover.pdf", b"partial")

    app = create_app(config)

    assert app.records.list_blobs() == []


def test_generate_keys(app, session, capsys):
    cli.handle_generate_keys(app, session)

    assert "✅ RSA-2048 key pair generated" in capsys.readouterr().out
    assert app.key_store.get(session.current_identity().user_id) is not None


def test_generate_keys_reports_storage_failure(app, session, monkeypatch, capsys):
    def refuse(entry):
        raise OSError("disk full")

    monkeypatch.setattr(app.records, "insert_audit", refuse)

    cli.handle_generate_keys(app, session)

    out = capsys.readouterr().out
    assert "❌ Key generation failed: disk full" in out
    assert "stored, but its audit entry was not written" in out


def test_replacing_keys_needs_confirmation(app, session, monkeypatch, capsys):
    cli.handle_generate_keys(app, session)
    user_id = session.current_identity().user_id
    first = app.key_store.get(user_id)

    _answer(monkeypatch, "no")
    cli.handle_generate_keys(app, session)
    assert app.key_store.get(user_id) == first

    _answer(monkeypatch, "yes")
    cli.handle_generate_keys(app, session)
    assert app.key_store.get(user_id) != first
    assert "Cancelled" in capsys.readouterr().out


def test_verify_reports_provider_failure(app, monkeypatch, capsys):
    def unavailable(*args, **kwargs):
        raise CryptoProviderError("RSA verification unavailable")

    monkeypatch.setattr(app.verifier, "verify", unavailable)
    _answer(monkeypatch, "", "")

    cli._verify(app, Session(), b"contract v1")

    out = capsys.readouterr().out
    assert "❌ Verification could not run: RSA verification unavailable" in out
    assert "not a verification failure" in out


def test_verify_anonymously_from_records(app, session, monkeypatch, capsys):
    signer = app.signing_session(session)
    signer.generate_keys()
    signer.sign_text("hello world")
    _answer(monkeypatch, "", "")

    cli._verify(app, Session(), b"hello world")

    assert "✅ Signature verified" in capsys.readouterr().out
