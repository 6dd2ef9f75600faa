"""
Main window for MemeForge.

This module contains the main application window with the editor widget
and the menu bar (file actions and account).
"""

from typing import Optional

from PySide6.QtCore import Slot
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import QMainWindow, QMessageBox, QWidget

from memeforge import __version__
from memeforge.editor.editor_session import EditorSession
from memeforge.editor.editor_widget import EditorWidget
from memeforge.services.auth_service import AuthService
from memeforge.services.config_service import ConfigService
from memeforge.services.logging_service import get_logger
from memeforge.ui.sign_in_dialog import SignInDialog


class MainWindow(QMainWindow):
    """
    Main application window for MemeForge.

    Features:
    - Dark themed UI
    - Menu bar with File, Account and Help menus
    - Meme editor widget

    Sign-in state is reflected in the title and the Account menu. When the
    backend rejects the session (refresh failed) the sign-in dialog is
    offered again.
    """

    def __init__(
        self,
        session: EditorSession,
        auth_service: Optional[AuthService] = None,
        config_service: Optional[ConfigService] = None,
        parent: Optional[QWidget] = None
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._session = session
        self._auth = auth_service
        self._config = config_service
        self._editor: Optional[EditorWidget] = None

        self._setup_window()
        self._setup_central_widget()
        self._setup_menu_bar()
        self._update_account_state()

        self._logger.info("MainWindow initialized")

    def _setup_window(self) -> None:
        """Configure main window properties."""
        self.setMinimumSize(900, 600)
        self.resize(1200, 800)

    def _setup_central_widget(self) -> None:
        """Set up the central widget (editor)."""
        self._editor = EditorWidget(self._session, self._config, self)
        self.setCentralWidget(self._editor)

    def _setup_menu_bar(self) -> None:
        """Create and configure the menu bar."""
        menu_bar = self.menuBar()

        # ─── File Menu ────────────────────────────────────────────────
        file_menu = menu_bar.addMenu("&File")

        open_action = QAction("&Open Image...", self)
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self._editor._open_image)
        file_menu.addAction(open_action)

        save_action = QAction("&Save to Collection...", self)
        save_action.setShortcut(QKeySequence.StandardKey.Save)
        save_action.triggered.connect(self._editor._save)
        file_menu.addAction(save_action)

        download_action = QAction("&Download PNG", self)
        download_action.setShortcut("Ctrl+D")
        download_action.triggered.connect(self._editor._download)
        file_menu.addAction(download_action)

        file_menu.addSeparator()

        quit_action = QAction("&Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        # ─── Account Menu ─────────────────────────────────────────────
        account_menu = menu_bar.addMenu("&Account")

        self._sign_in_action = QAction("Sign &In...", self)
        self._sign_in_action.triggered.connect(self.prompt_sign_in)
        account_menu.addAction(self._sign_in_action)

        self._sign_out_action = QAction("Sign &Out", self)
        self._sign_out_action.triggered.connect(self._on_sign_out)
        account_menu.addAction(self._sign_out_action)

        # ─── Help Menu ────────────────────────────────────────────────
        help_menu = menu_bar.addMenu("&Help")

        about_action = QAction("&About", self)
        about_action.triggered.connect(self._show_about_dialog)
        help_menu.addAction(about_action)

    @property
    def editor(self) -> EditorWidget:
        return self._editor

    # ─── Account ──────────────────────────────────────────────────────────

    def _update_account_state(self) -> None:
        signed_in = bool(self._auth and self._auth.is_authenticated)
        self._sign_in_action.setEnabled(self._auth is not None and not signed_in)
        self._sign_out_action.setEnabled(signed_in)

        title = "MemeForge"
        if signed_in:
            user = self._auth.user or {}
            name = user.get("username") or user.get("email")
            if name:
                title = f"MemeForge - {name}"
        self.setWindowTitle(title)

    @Slot()
    def prompt_sign_in(self) -> bool:
        """Show the sign-in dialog. Returns True when the user signed in."""
        if self._auth is None:
            return False
        dialog = SignInDialog(self._auth, self)
        accepted = bool(dialog.exec())
        self._update_account_state()
        if accepted:
            self._session.notification.emit("Signed in", "success")
        return accepted

    @Slot()
    def on_auth_failed(self) -> None:
        """Session expired and could not be refreshed."""
        self._logger.warning("Session expired, asking user to sign in again")
        self._update_account_state()
        self._session.notification.emit("Your session has expired. Please sign in again.", "error")
        self.prompt_sign_in()

    def _on_sign_out(self) -> None:
        if self._auth is None:
            return
        self._auth.sign_out()
        self._update_account_state()
        self._session.notification.emit("Signed out", "info")

    # ─── Help ─────────────────────────────────────────────────────────────

    def _show_about_dialog(self) -> None:
        """Display the About dialog."""
        about_text = (
            "<h2>MemeForge</h2>"
            "<p>Meme text-overlay editor</p>"
            f"<p><b>Version:</b> {__version__}</p>"
            "<hr>"
            "<p><b>Features:</b></p>"
            "<ul>"
            "<li>Draggable, resizable, rotatable text</li>"
            "<li>AI image generation</li>"
            "<li>Save to collection, download, share</li>"
            "</ul>"
            "<p><b>Keyboard Shortcuts:</b></p>"
            "<ul>"
            "<li>T - Add text</li>"
            "<li>Delete - Remove selected text</li>"
            "<li>Esc - Deselect</li>"
            "<li>Ctrl+O - Open image</li>"
            "<li>Ctrl+S - Save to collection</li>"
            "<li>Ctrl+D - Download PNG</li>"
            "</ul>"
        )

        QMessageBox.about(self, "About MemeForge", about_text)

    def closeEvent(self, event) -> None:
        self._logger.info("MainWindow closing")
        super().closeEvent(event)
