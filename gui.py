import logging
import sys
from typing import Optional

from PySide6.QtCore import Signal, Qt
from PySide6.QtGui import QAction
from PySide6.QtWidgets import (
    QApplication,
    QFileDialog,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QStackedWidget,
    QTabWidget,
    QVBoxLayout,
    QWidget,
    QListWidget,
    QListWidgetItem,
)

from accounts.models import User
from accounts.session import Session
from app import App
from signing.digest import read_document
from signing.errors import CryptoProviderError, SigningError, SigningStepError
from signing.keys import public_key_fingerprint, public_key_to_b64
from signing.verification import VerificationOutcome
from storage.models import DocumentRecord

logger = logging.getLogger(__name__)


class LoginPage(QWidget):
    """Credentials on top, anonymous verification below."""

    authenticated = Signal(object)  # User

    def __init__(self, app: App, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.app = app
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)

        account_box = QGroupBox("Account")
        form = QFormLayout(account_box)
        self.username_edit = QLineEdit()
        self.password_edit = QLineEdit()
        self.password_edit.setEchoMode(QLineEdit.Password)
        self.full_name_edit = QLineEdit()
        self.full_name_edit.setPlaceholderText("Only used when signing up")
        form.addRow("Username", self.username_edit)
        form.addRow("Password", self.password_edit)
        form.addRow("Full name", self.full_name_edit)

        row = QHBoxLayout()
        sign_in = QPushButton("Sign in")
        create = QPushButton("Create account")
        row.addStretch(1)
        row.addWidget(create)
        row.addWidget(sign_in)
        form.addRow(row)

        self.status_label = QLabel("")
        self.status_label.setStyleSheet("color: darkred;")
        form.addRow(self.status_label)
        layout.addWidget(account_box)

        verify_box = QGroupBox("Verify without an account")
        QVBoxLayout(verify_box).addWidget(VerifyPanel(self.app, Session(), verify_box))
        layout.addWidget(verify_box)

        sign_in.clicked.connect(self._sign_in)
        create.clicked.connect(self._create_account)
        self.password_edit.returnPressed.connect(self._sign_in)

    def _credentials(self) -> Optional[tuple[str, str]]:
        username = self.username_edit.text().strip()
        password = self.password_edit.text()
        if not username or not password:
            self.status_label.setText("Enter a username and a password.")
            return None
        return username, password

    def _sign_in(self) -> None:
        credentials = self._credentials()
        if credentials is None:
            return
        user = self.app.accounts.authenticate(*credentials)
        if user is None:
            self.status_label.setText("Unknown username or wrong password.")
            return
        self.status_label.clear()
        self.password_edit.clear()
        self.authenticated.emit(user)

    def _create_account(self) -> None:
        credentials = self._credentials()
        if credentials is None:
            return
        try:
            user = self.app.accounts.register(*credentials, full_name=self.full_name_edit.text())
        except ValueError as exc:
            self.status_label.setText(str(exc))
            return
        self.status_label.clear()
        self.full_name_edit.clear()
        QMessageBox.information(
            self,
            "Welcome",
            f"Account {user.username} is ready. Sign in, then generate a key pair before signing.",
        )


class VerifyPanel(QWidget):
    """Verify a file or text. Works with or without a logged-in user."""

    def __init__(self, app: App, session: Session, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.app = app
        self.session = session
        self._file_content: Optional[bytes] = None
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)

        file_row = QHBoxLayout()
        self.file_label = QLabel("No file selected")
        choose = QPushButton("Choose file…")
        clear = QPushButton("Use text instead")
        file_row.addWidget(self.file_label, 1)
        file_row.addWidget(choose)
        file_row.addWidget(clear)
        layout.addLayout(file_row)

        self.text_input = QPlainTextEdit()
        self.text_input.setPlaceholderText("Enter the text to verify...")
        layout.addWidget(self.text_input)

        form = QFormLayout()
        self.signature_input = QLineEdit()
        self.signature_input.setPlaceholderText("Paste the signature, or leave blank to auto-fill")
        self.public_key_input = QLineEdit()
        self.public_key_input.setPlaceholderText("Paste the public key, or leave blank to auto-fill")
        form.addRow("Signature (Base64)", self.signature_input)
        form.addRow("Public key (Base64)", self.public_key_input)
        layout.addLayout(form)

        verify = QPushButton("Verify")
        layout.addWidget(verify)
        self.result_label = QLabel("")
        self.result_label.setWordWrap(True)
        layout.addWidget(self.result_label)

        choose.clicked.connect(self._choose_file)
        clear.clicked.connect(self._clear_file)
        verify.clicked.connect(self._handle_verify)

    def _choose_file(self) -> None:
        filepath, _ = QFileDialog.getOpenFileName(self, "Select document to verify")
        if not filepath:
            return
        try:
            self._file_content = read_document(filepath)
        except OSError as exc:
            QMessageBox.critical(self, "Cannot read file", str(exc))
            return
        self.file_label.setText(filepath)
        self.text_input.setEnabled(False)
        self.result_label.clear()

    def _clear_file(self) -> None:
        self._file_content = None
        self.file_label.setText("No file selected")
        self.text_input.setEnabled(True)

    def _handle_verify(self) -> None:
        if self._file_content is not None:
            content = self._file_content
        else:
            text = self.text_input.toPlainText()
            if not text.strip():
                QMessageBox.warning(self, "Content required", "Please choose a file or enter text to verify.")
                return
            content = text.encode("utf-8")

        user = self.session.current_identity()
        try:
            result = self.app.verifier.verify(
                content,
                signature=self.signature_input.text(),
                public_key=self.public_key_input.text(),
                identity=user.user_id if user else None,
            )
        except CryptoProviderError as exc:
            self.result_label.clear()
            QMessageBox.critical(self, "Verification unavailable", f"The signature could not be checked: {exc}")
            return
        colour = "green" if result.outcome is VerificationOutcome.VERIFIED else "darkred"
        self.result_label.setStyleSheet(f"color: {colour};")
        self.result_label.setText(
            f"{result.message}\nResolved from: {result.source.value.replace('_', ' ')}\n"
            f"SHA-256: {result.content_digest}"
        )
        if result.signature_b64 and not self.signature_input.text().strip():
            self.signature_input.setText(result.signature_b64)


class WorkspacePage(QWidget):
    def __init__(self, app: App, session: Session, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self.app = app
        self.session = session
        self._build_ui()

    def _build_ui(self) -> None:
        layout = QVBoxLayout(self)
        layout.setSpacing(12)

        self.welcome = QLabel("")
        self.welcome.setStyleSheet("font-size: 16px; font-weight: bold;")
        layout.addWidget(self.welcome)
        self.stats = QLabel("")
        layout.addWidget(self.stats)

        tabs = QTabWidget()
        tabs.addTab(self._build_sign_tab(), "Sign")
        tabs.addTab(VerifyPanel(self.app, self.session, self), "Verify")
        tabs.addTab(self._build_documents_tab(), "Documents")
        tabs.addTab(self._build_audit_tab(), "Audit trail")
        layout.addWidget(tabs)

    def _build_sign_tab(self) -> QWidget:
        tab = QWidget()
        layout = QVBoxLayout(tab)

        key_row = QHBoxLayout()
        self.key_label = QLabel("")
        generate_btn = QPushButton("Generate key pair")
        key_row.addWidget(self.key_label, 1)
        key_row.addWidget(generate_btn)
        layout.addLayout(key_row)

        self.sign_text_input = QPlainTextEdit()
        self.sign_text_input.setPlaceholderText("Enter the text you want to sign...")
        layout.addWidget(self.sign_text_input)

        btn_layout = QHBoxLayout()
        sign_file_btn = QPushButton("Sign file…")
        sign_text_btn = QPushButton("Sign text")
        btn_layout.addWidget(sign_file_btn)
        btn_layout.addWidget(sign_text_btn)
        layout.addLayout(btn_layout)

        layout.addWidget(QLabel("Generated signature (Base64):"))
        self.signature_output = QPlainTextEdit()
        self.signature_output.setReadOnly(True)
        self.signature_output.setMaximumHeight(90)
        layout.addWidget(self.signature_output)

        generate_btn.clicked.connect(self._handle_generate_keys)
        sign_file_btn.clicked.connect(self._handle_sign_file)
        sign_text_btn.clicked.connect(self._handle_sign_text)
        return tab

    def _build_documents_tab(self) -> QWidget:
        tab = QWidget()
        layout = QVBoxLayout(tab)
        self.documents_list = QListWidget()
        layout.addWidget(self.documents_list)

        btn_layout = QHBoxLayout()
        download_btn = QPushButton("Download selected")
        delete_btn = QPushButton("Delete selected")
        btn_layout.addWidget(download_btn)
        btn_layout.addWidget(delete_btn)
        layout.addLayout(btn_layout)

        download_btn.clicked.connect(self._handle_download)
        delete_btn.clicked.connect(self._handle_delete)
        self.documents_list.itemDoubleClicked.connect(self._handle_download)
        return tab

    def _build_audit_tab(self) -> QWidget:
        tab = QWidget()
        layout = QVBoxLayout(tab)
        self.audit_list = QListWidget()
        layout.addWidget(self.audit_list)
        return tab

    def set_user(self, user: User) -> None:
        self.session.login(user)
        self.welcome.setText(f"Welcome, {user.display_name}!")
        self._reload()

    def clear_user(self) -> None:
        self.session.logout()
        self.welcome.setText("")
        self.stats.setText("")
        self.documents_list.clear()
        self.audit_list.clear()
        self.signature_output.clear()

    def _reload(self) -> None:
        user = self.session.current_identity()
        if not user:
            return

        pair = self.app.key_store.get(user.user_id)
        if pair:
            self.key_label.setText(f"Key fingerprint: {public_key_fingerprint(pair.public_key)}")
        else:
            self.key_label.setText("No key pair yet. Generate one before signing.")

        stats = self.app.documents.dashboard_stats(user)
        self.stats.setText(f"{stats['total']} documents, {stats['signed']} signed, {stats['pending']} pending")

        self.documents_list.clear()
        for document in self.app.documents.list_documents(user):
            text = f"{document.display_name} [{document.status.value}] ({document.size} bytes)"
            item = QListWidgetItem(text)
            item.setData(Qt.UserRole, document)
            self.documents_list.addItem(item)

        self.audit_list.clear()
        for entry in self.app.documents.audit_trail(user):
            name = entry.metadata.get("file_name", "")
            self.audit_list.addItem(f"{entry.created_at[:19]}  {entry.action}  {name}")

    def _handle_generate_keys(self) -> None:
        signer = self.app.signing_session(self.session)
        before = signer.key_pair()
        if before is not None:
            answer = QMessageBox.question(
                self,
                "Replace key pair?",
                "You already have a key pair. Documents signed with it can no longer be "
                "checked with your local key. Replace it?",
            )
            if answer != QMessageBox.Yes:
                return
        try:
            pair = signer.generate_keys(overwrite=before is not None)
        except (SigningError, OSError) as exc:
            detail = str(exc)
            if signer.key_pair() != before:
                detail += "\n\nThe new key pair was stored, but its audit entry was not written."
            self._reload()
            QMessageBox.critical(self, "Key generation failed", detail)
            return

        self._reload()
        QMessageBox.information(
            self,
            "Keys generated",
            "Your RSA-2048 key pair is ready.\n\n"
            f"Public key (share for manual verification):\n{public_key_to_b64(pair.public_key)}",
        )

    def _sign(self, sign) -> None:
        try:
            receipt = sign(self.app.signing_session(self.session))
        except SigningStepError as exc:
            stored = "The uploaded file is still stored until SignDesk restarts." if exc.artifact_stored else "Nothing was stored."
            QMessageBox.critical(self, "Signing failed", f"Step '{exc.step}' failed: {exc.cause}\n{stored}")
            return
        except (SigningError, OSError, ValueError) as exc:
            logger.exception("Signing failed")
            QMessageBox.critical(self, "Signing failed", f"{type(exc).__name__}: {exc}")
            return

        self.signature_output.setPlainText(receipt.signature_b64)
        self._reload()
        QMessageBox.information(
            self,
            "Signed",
            f"Signed: {receipt.document.display_name}\nSHA-256: {receipt.content_digest}",
        )

    def _handle_sign_file(self) -> None:
        filepath, _ = QFileDialog.getOpenFileName(self, "Select file to sign")
        if filepath:
            self._sign(lambda signer: signer.sign_file(filepath))

    def _handle_sign_text(self) -> None:
        text = self.sign_text_input.toPlainText()
        if not text.strip():
            QMessageBox.warning(self, "Text required", "Please enter text to sign.")
            return
        self._sign(lambda signer: signer.sign_text(text))

    def _selected_document(self) -> Optional[DocumentRecord]:
        current = self.documents_list.currentItem()
        if not current:
            QMessageBox.warning(self, "No selection", "Please select a document.")
            return None
        return current.data(Qt.UserRole)

    def _handle_download(self) -> None:
        document = self._selected_document()
        if not document:
            return
        dest_dir = QFileDialog.getExistingDirectory(self, "Save to folder")
        if not dest_dir:
            return
        try:
            target = self.app.documents.download(self.session.require_identity(), document.document_id, dest_dir)
        except (SigningError, OSError) as exc:
            QMessageBox.critical(self, "Download failed", str(exc))
            return
        QMessageBox.information(self, "Download complete", f"Saved to: {target}")

    def _handle_delete(self) -> None:
        document = self._selected_document()
        if not document:
            return
        answer = QMessageBox.question(self, "Delete document", f"Delete '{document.display_name}' permanently?")
        if answer != QMessageBox.Yes:
            return
        try:
            self.app.documents.delete(self.session.require_identity(), document.document_id)
        except (SigningError, OSError) as exc:
            QMessageBox.critical(self, "Delete failed", str(exc))
            return
        self._reload()


class MainWindow(QMainWindow):
    def __init__(self, app: App):
        super().__init__()
        self.setWindowTitle("SignDesk")
        self.resize(640, 560)

        self.app = app
        self.stack = QStackedWidget()
        self.setCentralWidget(self.stack)

        self.login_page = LoginPage(app)
        self.workspace_page = WorkspacePage(app, Session())

        self.stack.addWidget(self.login_page)
        self.stack.addWidget(self.workspace_page)
        self.stack.setCurrentWidget(self.login_page)

        self.login_page.authenticated.connect(self._handle_authenticated)

        logout_action = QAction("Log out", self)
        logout_action.triggered.connect(self._show_login_again)
        self.logout_action = logout_action
        self.logout_action.setEnabled(False)

        account_menu = self.menuBar().addMenu("Account")
        account_menu.addAction(self.logout_action)

    def _handle_authenticated(self, user: User) -> None:
        self.workspace_page.set_user(user)
        self.stack.setCurrentWidget(self.workspace_page)
        self.logout_action.setEnabled(True)

    def _show_login_again(self) -> None:
        self.workspace_page.clear_user()
        self.stack.setCurrentWidget(self.login_page)
        self.logout_action.setEnabled(False)


def main(app: App) -> int:
    qt_app = QApplication(sys.argv)
    window = MainWindow(app)
    window.show()
    return qt_app.exec()
