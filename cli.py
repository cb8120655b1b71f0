"""
Command-line interface for SignDesk.

Provides text-based menu for:
- User registration, login and profile
- RSA key pair generation
- Signing files and text
- Verifying files and text (also without logging in)
- Listing, downloading and deleting signed documents
- The audit trail
"""

from getpass import getpass
from pathlib import Path
from typing import Optional

from accounts.models import User
from accounts.session import Session
from app import App
from signing.digest import read_document
from signing.errors import CryptoProviderError, SigningError, SigningStepError
from signing.keys import public_key_fingerprint, public_key_to_b64
from signing.session import SigningReceipt
from signing.verification import VerificationOutcome, VerificationResult

_OUTCOME_ICONS = {
    VerificationOutcome.VERIFIED: "✅",
    VerificationOutcome.NOT_SIGNED: "ℹ️",
    VerificationOutcome.KEY_NOT_FOUND: "⚠️",
    VerificationOutcome.SIGNATURE_INVALID: "❌",
}


def print_menu(logged_in: bool = False, username: str = "") -> None:
    print("\n" + "=" * 50)
    if logged_in:
        print(f"  ✍️ SignDesk - Logged in as: {username}")
    else:
        print("  ✍️ SignDesk")
    print("=" * 50)

    if not logged_in:
        print("  1) Sign up")
        print("  2) Log in")
        print("  3) Verify a file")
        print("  4) Verify text")
        print("  0) Quit")
    else:
        print("  1) Generate key pair")
        print("  2) Sign a file")
        print("  3) Sign text")
        print("  4) Verify a file")
        print("  5) Verify text")
        print("  6) My documents")
        print("  7) Download a document")
        print("  8) Delete a document")
        print("  9) Audit trail")
        print(" 10) Profile")
        print(" 11) Log out")
        print("  0) Quit")
    print("=" * 50)


def read_multiline(prompt: str) -> str:
    """Read lines until an empty line. Line breaks are kept exactly."""
    print(f"{prompt} (finish with an empty line):")
    lines = []
    while True:
        line = input()
        if line == "":
            break
        lines.append(line)
    return "\n".join(lines)


def read_key_input(prompt: str) -> Optional[str]:
    """A public key as base64 DER, or a path to a PEM/DER key file."""
    value = input(prompt).strip()
    if not value:
        return None
    path = Path(value).expanduser()
    if path.is_file():
        return path.read_bytes().decode("ascii", errors="replace")
    return value


def handle_signup(app: App) -> None:
    print("\n📝 Create New Account")
    username = input("Username: ").strip()
    if not username:
        print("❌ Username cannot be empty")
        return

    password = getpass("Password: ")
    confirm = getpass("Confirm password: ")
    if password != confirm:
        print("❌ Passwords don't match")
        return

    full_name = input("Full name (optional): ").strip()

    try:
        user = app.accounts.register(username, password, full_name=full_name)
        print(f"✅ Account created: {user.username}")
        print(f"   User ID: {user.user_id}")
        print("   Generate a key pair after logging in to start signing")
    except ValueError as e:
        print(f"❌ Error: {e}")


def handle_login(app: App, session: Session) -> None:
    print("\n🔑 Login")
    username = input("Username: ").strip()
    password = getpass("Password: ")

    user = app.accounts.authenticate(username, password)
    if user:
        session.login(user)
        stats = app.documents.dashboard_stats(user)
        print(f"✅ Welcome back, {user.display_name}!")
        print(f"   📊 {stats['total']} documents | {stats['signed']} signed | {stats['pending']} pending")
        if app.key_store.get(user.user_id) is None:
            print("   🔑 No key pair yet: choose 'Generate key pair' before signing")
    else:
        print("❌ Invalid credentials")


def handle_generate_keys(app: App, session: Session) -> None:
    print("\n🔑 Generate Key Pair")
    signer = app.signing_session(session)
    before = signer.key_pair()
    overwrite = False
    if before is not None:
        print("⚠️ You already have a key pair.")
        print("   Documents signed with it can no longer be checked with your local key.")
        confirm = input("Replace it? (yes/no): ").strip().lower()
        if confirm != "yes":
            print("   Cancelled")
            return
        overwrite = True

    try:
        pair = signer.generate_keys(overwrite=overwrite)
    except (SigningError, OSError) as e:
        print(f"❌ Key generation failed: {e}")
        if signer.key_pair() != before:
            print("   The new key pair was stored, but its audit entry was not written")
        return

    print("✅ RSA-2048 key pair generated")
    print(f"   Fingerprint: {public_key_fingerprint(pair.public_key)}")
    print(f"   Public key (share this for manual verification):\n{public_key_to_b64(pair.public_key)}")


def _print_receipt(receipt: SigningReceipt) -> None:
    print("\n✅ Signed successfully!")
    print(f"   📄 Name: {receipt.document.display_name}")
    print(f"   🔑 Document ID: {receipt.document.document_id}")
    print(f"   #️⃣ SHA-256: {receipt.content_digest}")
    print(f"   ✍️ Signature (Base64):\n{receipt.signature_b64}")


def _sign(app: App, session: Session, sign) -> None:
    try:
        receipt = sign(app.signing_session(session))
    except SigningStepError as e:
        print(f"❌ Signing failed while writing '{e.step}': {e.cause}")
        if e.artifact_stored:
            print("   The uploaded file is still stored; it will be removed the next time SignDesk starts")
        else:
            print("   Nothing was stored")
        return
    except (SigningError, OSError, ValueError) as e:
        print(f"❌ Signing failed: {e}")
        return
    _print_receipt(receipt)


def handle_sign_file(app: App, session: Session) -> None:
    print("\n📤 Sign a File")
    filepath = input("File path: ").strip()
    if not filepath:
        print("❌ File path cannot be empty")
        return
    _sign(app, session, lambda signer: signer.sign_file(filepath))


def handle_sign_text(app: App, session: Session) -> None:
    print("\n📝 Sign Text")
    text = read_multiline("Text to sign")
    if not text.strip():
        print("❌ Text cannot be empty")
        return
    _sign(app, session, lambda signer: signer.sign_text(text))


def _print_result(result: VerificationResult) -> None:
    print(f"\n{_OUTCOME_ICONS[result.outcome]} {result.message}")
    print(f"   Resolved from: {result.source.value.replace('_', ' ')}")
    print(f"   #️⃣ SHA-256: {result.content_digest}")
    if result.signed_at:
        print(f"   🕒 Signed at: {result.signed_at}")
    if result.signature_b64:
        print(f"   ✍️ Signature: {result.signature_b64[:32]}...")


def _verify(app: App, session: Session, content: bytes) -> None:
    print("\nLeave blank to auto-fill from your key or from the signed record.")
    signature = input("Signature (Base64): ").strip() or None
    public_key = read_key_input("Public key (Base64 or key file path): ")
    user: Optional[User] = session.current_identity()
    try:
        result = app.verifier.verify(
            content,
            signature=signature,
            public_key=public_key,
            identity=user.user_id if user else None,
        )
    except CryptoProviderError as e:
        print(f"❌ Verification could not run: {e}")
        print("   The signature was not checked; this is not a verification failure")
        return
    _print_result(result)


def handle_verify_file(app: App, session: Session) -> None:
    print("\n🔍 Verify a File")
    filepath = input("File path: ").strip()
    try:
        content = read_document(filepath)
    except OSError as e:
        print(f"❌ {e}")
        return
    _verify(app, session, content)


def handle_verify_text(app: App, session: Session) -> None:
    print("\n🔍 Verify Text")
    text = read_multiline("Text to verify")
    if not text.strip():
        print("❌ Text cannot be empty")
        return
    _verify(app, session, text.encode("utf-8"))


def _choose_document(app: App, user: User, action: str):
    documents = app.documents.list_documents(user)
    if not documents:
        print("   No documents yet")
        return None
    for i, d in enumerate(documents, 1):
        print(f"   {i}. {d.display_name} [{d.status.value}] ({d.size:,} bytes)")
    try:
        choice = int(input(f"\nSelect document to {action}: ")) - 1
    except ValueError:
        print("❌ Invalid input")
        return None
    if choice < 0 or choice >= len(documents):
        print("❌ Invalid selection")
        return None
    return documents[choice]


def handle_list_documents(app: App, user: User) -> None:
    print("\n📁 My Documents")
    documents = app.documents.list_documents(user)
    if not documents:
        print("   No documents signed yet")
        return
    for d in documents:
        print(f"   • {d.display_name} [{d.status.value}]")
        print(f"     ID: {d.document_id[:8]}... | {d.size:,} bytes | {d.created_at[:10]} | {d.content_digest[:16]}...")


def handle_download(app: App, user: User) -> None:
    print("\n📥 Download a Document")
    selected = _choose_document(app, user, "download")
    if not selected:
        return
    try:
        target = app.documents.download(user, selected.document_id)
        print(f"✅ Saved to: {target}")
    except (SigningError, OSError) as e:
        print(f"❌ Download failed: {e}")


def handle_delete(app: App, user: User) -> None:
    print("\n🗑️ Delete a Document")
    selected = _choose_document(app, user, "delete")
    if not selected:
        return
    confirm = input(f"Delete '{selected.display_name}'? (yes/no): ").strip().lower()
    if confirm != "yes":
        print("   Cancelled")
        return
    try:
        app.documents.delete(user, selected.document_id)
        print("✅ Document deleted")
    except (SigningError, OSError) as e:
        print(f"❌ Delete failed: {e}")


def handle_audit_trail(app: App, user: User) -> None:
    print("\n📜 Audit Trail")
    entries = app.documents.audit_trail(user)
    if not entries:
        print("   No activity yet")
        return
    for entry in entries:
        name = entry.metadata.get("file_name", "")
        print(f"   • {entry.created_at[:19]} {entry.action} {entry.resource_type} {name}")


def handle_profile(app: App, session: Session) -> None:
    user = session.require_identity()
    print("\n👤 Profile")
    print(f"   Username: {user.username}")
    print(f"   Full name: {user.full_name or '-'}")
    print(f"   Organization: {user.organization or '-'}")
    full_name = input("New full name (Enter to keep): ").strip()
    organization = input("New organization (Enter to keep): ").strip()
    updated = app.accounts.update_profile(
        user,
        full_name=full_name or None,
        organization=organization or None,
    )
    if updated is not user:
        session.login(updated)
        print("✅ Profile updated")


def main(app: App) -> None:
    session = Session()

    print("\n✍️ SignDesk")
    print("   RSA-2048 • SHA-256 • Tamper-evident\n")

    while True:
        user = session.current_identity()
        print_menu(logged_in=user is not None, username=user.username if user else "")
        choice = input("> ").strip()

        if user is None:
            # Not logged in
            if choice == "1":
                handle_signup(app)
            elif choice == "2":
                handle_login(app, session)
            elif choice == "3":
                handle_verify_file(app, session)
            elif choice == "4":
                handle_verify_text(app, session)
            elif choice == "0":
                print("\nGoodbye! 👋")
                break
            else:
                print("❌ Invalid choice")
        else:
            # Logged in
            if choice == "1":
                handle_generate_keys(app, session)
            elif choice == "2":
                handle_sign_file(app, session)
            elif choice == "3":
                handle_sign_text(app, session)
            elif choice == "4":
                handle_verify_file(app, session)
            elif choice == "5":
                handle_verify_text(app, session)
            elif choice == "6":
                handle_list_documents(app, user)
            elif choice == "7":
                handle_download(app, user)
            elif choice == "8":
                handle_delete(app, user)
            elif choice == "9":
                handle_audit_trail(app, user)
            elif choice == "10":
                handle_profile(app, session)
            elif choice == "11":
                print(f"\n👋 Logged out from {user.username}")
                session.logout()
            elif choice == "0":
                print("\nGoodbye! 👋")
                break
            else:
                print("❌ Invalid choice")
