"""
Sign-in dialog for MemeForge.
"""

from typing import Any, Dict, Optional

from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLabel,
    QLineEdit,
    QVBoxLayout,
    QWidget,
)

from memeforge.services.api_client import ApiError
from memeforge.services.auth_service import AuthService
from memeforge.services.logging_service import get_logger


class SignInDialog(QDialog):
    """
    Email/password form that signs in through AuthService.

    The dialog stays open and shows the backend's message when the
    credentials are rejected.
    """

    def __init__(self, auth_service: AuthService, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._auth = auth_service
        self._user: Optional[Dict[str, Any]] = None

        self.setWindowTitle("Sign In")
        self.setMinimumWidth(340)
        self._setup_ui()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        form = QFormLayout()

        self._email = QLineEdit()
        self._email.setPlaceholderText("you@example.com")
        form.addRow("Email", self._email)

        self._password = QLineEdit()
        self._password.setEchoMode(QLineEdit.EchoMode.Password)
        form.addRow("Password", self._password)
        layout.addLayout(form)

        self._error = QLabel()
        self._error.setWordWrap(True)
        self._error.setStyleSheet("color: #ef5350;")
        self._error.hide()
        layout.addWidget(self._error)

        self._buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Ok | QDialogButtonBox.StandardButton.Cancel
        )
        self._buttons.button(QDialogButtonBox.StandardButton.Ok).setText("Sign In")
        self._buttons.accepted.connect(self._on_accept)
        self._buttons.rejected.connect(self.reject)
        layout.addWidget(self._buttons)

    @property
    def user(self) -> Optional[Dict[str, Any]]:
        """User record after a successful sign-in."""
        return self._user

    def _show_error(self, message: str) -> None:
        self._error.setText(message)
        self._error.show()

    def _on_accept(self) -> None:
        email = self._email.text().strip()
        password = self._password.text()
        if not email or not password:
            self._show_error("Email and password are required")
            return

        self._buttons.setEnabled(False)
        try:
            self._user = self._auth.sign_in(email, password)
        except ApiError as e:
            self._logger.warning(f"Sign in failed: {e.message}")
            self._show_error(e.message or "Sign in failed")
            return
        finally:
            self._buttons.setEnabled(True)

        self.accept()
