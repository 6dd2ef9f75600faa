"""
Application core for MemeForge.

This module contains the AppCore class which is responsible for:
- Initializing all services (config, session, API, compositor)
- Creating and managing the main window
- Applying global styling (dark theme)
- Wiring the auth-failure path back to the sign-in dialog

This is the central orchestration point for the application.
"""

from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject, QTimer, Slot
from PySide6.QtGui import QColor, QPalette
from PySide6.QtWidgets import QApplication

from memeforge.editor.compositor import CanvasCompositor, ImageLoader
from memeforge.editor.editor_session import EditorSession
from memeforge.services.api_client import ApiClient
from memeforge.services.auth_service import AuthService
from memeforge.services.config_service import ConfigService
from memeforge.services.logging_service import get_logger
from memeforge.services.meme_service import MemeService
from memeforge.services.session_store import SessionStore
from memeforge.ui.main_window import MainWindow


Role = QPalette.ColorRole

DARK_PALETTE = {
    Role.Window: (45, 45, 45),
    Role.WindowText: (220, 220, 220),
    Role.Base: (30, 30, 30),
    Role.AlternateBase: (50, 50, 50),
    Role.Text: (220, 220, 220),
    Role.BrightText: (255, 255, 255),
    Role.Button: (55, 55, 55),
    Role.ButtonText: (220, 220, 220),
    Role.Highlight: (74, 144, 226),
    Role.HighlightedText: (255, 255, 255),
    Role.ToolTipBase: (60, 60, 60),
    Role.ToolTipText: (220, 220, 220),
    Role.PlaceholderText: (140, 140, 140),
}
DISABLED_ROLES = (Role.WindowText, Role.Text, Role.ButtonText)
DISABLED_TEXT = (127, 127, 127)

DARK_STYLESHEET = """
    QToolTip { background-color: #3d3d3d; color: #dcdcdc; border: 1px solid #5a5a5a; padding: 4px; }
    QMenuBar { background-color: #2d2d2d; padding: 2px; }
    QMenuBar::item:selected { background-color: #4a4a4a; }
    QMenu { background-color: #2d2d2d; border: 1px solid #3a3a3a; }
    QMenu::item:selected { background-color: #4a90e2; }
    QDialog { background-color: #2d2d2d; }
    QLineEdit { background-color: #3a3a3a; color: #ddd; border: 1px solid #555; padding: 4px; }
"""


class AppCore(QObject):
    """
    Central application core that wires together all components.

    Responsibilities:
    - Initialize all services
    - Restore the persisted session and refresh it when close to expiry
    - Apply global dark theme
    - Create and show the MainWindow
    """

    def __init__(
        self,
        app: QApplication,
        config_service: Optional[ConfigService] = None,
        session_store: Optional[SessionStore] = None,
    ) -> None:
        """
        Initialize the application core.

        Args:
            app: The QApplication instance.
            config_service: Preconfigured settings (defaults to the user's config file).
            session_store: Preconfigured session storage.
        """
        super().__init__()
        self._app = app
        self._logger = get_logger(__name__)

        self._config_service = config_service
        self._session_store = session_store
        self._api: Optional[ApiClient] = None
        self._auth_service: Optional[AuthService] = None
        self._session: Optional[EditorSession] = None
        self._main_window: Optional[MainWindow] = None

        # Initialize in order
        self._init_services()
        self._restore_session()
        self._apply_dark_theme()
        self._init_ui()

    def _init_services(self) -> None:
        """Initialize all application services."""
        self._logger.info("Initializing MemeForge application core...")

        if self._config_service is None:
            self._config_service = ConfigService()
        config = self._config_service
        self._logger.info(f"API: {config.api_url}, assets: {config.assets_url}")

        if self._session_store is None:
            self._session_store = SessionStore()

        self._api = ApiClient(
            config.api_url,
            self._session_store,
            on_auth_failed=self._on_auth_failed,
            timeout=config.request_timeout,
        )
        self._auth_service = AuthService(self._api, self._session_store)

        loader = ImageLoader(
            assets_url=config.assets_url,
            http_client=self._api.http,
            timeout=config.request_timeout,
        )
        self._session = EditorSession(
            CanvasCompositor(loader),
            meme_service=MemeService(self._api),
            save_folder=Path(config.default_save_folder).expanduser(),
            default_color=config.default_color,
            default_font=config.default_font,
            default_font_size=config.default_font_size,
        )

    def _restore_session(self) -> None:
        """Load the persisted session and refresh the token if it is about to expire."""
        if not self._session_store.load():
            self._logger.info("No stored session")
            return

        self._logger.info("Restored stored session")
        if self._auth_service.refresh_if_expiring():
            self._logger.info("Stored session refreshed")

    def _apply_dark_theme(self) -> None:
        """Apply DARK_PALETTE and the menu/tooltip stylesheet when the theme is dark."""
        if self._config_service.theme != "dark":
            return

        palette = QPalette()
        for role, rgb in DARK_PALETTE.items():
            palette.setColor(role, QColor(*rgb))
        for role in DISABLED_ROLES:
            palette.setColor(QPalette.ColorGroup.Disabled, role, QColor(*DISABLED_TEXT))

        self._app.setPalette(palette)
        self._app.setStyleSheet(DARK_STYLESHEET)
        self._logger.debug("Dark theme applied")

    def _init_ui(self) -> None:
        """Create and show the main window."""
        self._main_window = MainWindow(
            self._session, self._auth_service, self._config_service
        )
        self._main_window.show()
        self._logger.info("Main window shown")

    # ─── Auth ─────────────────────────────────────────────────────────────

    def _on_auth_failed(self) -> None:
        """Called by ApiClient from inside a request; the dialog opens once it unwinds."""
        if self._main_window is not None:
            QTimer.singleShot(0, self._main_window.on_auth_failed)

    # ─── Application Lifecycle ────────────────────────────────────────────

    @Slot()
    def shutdown(self) -> None:
        """Clean shutdown of all services."""
        self._logger.info("Shutting down MemeForge...")
        if self._session is not None:
            self._session.close()
        if self._api is not None:
            self._api.close()

    # ─── Properties ───────────────────────────────────────────────────────

    @property
    def config(self) -> ConfigService:
        """Get the configuration service."""
        if self._config_service is None:
            raise RuntimeError("ConfigService not initialized")
        return self._config_service

    @property
    def session(self) -> EditorSession:
        if self._session is None:
            raise RuntimeError("EditorSession not initialized")
        return self._session

    @property
    def main_window(self) -> MainWindow:
        """Get the main window."""
        if self._main_window is None:
            raise RuntimeError("MainWindow not initialized")
        return self._main_window
