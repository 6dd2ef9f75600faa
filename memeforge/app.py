"""
MemeForge - meme text-overlay editor.

This is the main entry point for the application.
Run with: python -m memeforge.app  (or the ``memeforge`` script)
"""

import signal
import sys

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QApplication

from memeforge import __version__
from memeforge.core.app_core import AppCore
from memeforge.services.logging_service import get_logger, setup_logging


def main() -> int:
    """
    Main entry point for MemeForge application.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    # Initialize basic logging first to catch early errors
    setup_logging()
    logger = get_logger(__name__)

    try:
        logger.info("Starting MemeForge application...")

        app = QApplication(sys.argv)
        app.setApplicationName("MemeForge")
        app.setOrganizationName("MemeForge")
        app.setApplicationVersion(__version__)

        # Ctrl+C quits; the timer lets Python run signal handlers during exec()
        signal.signal(signal.SIGINT, lambda signum, frame: app.quit())
        signal.signal(signal.SIGTERM, lambda signum, frame: app.quit())
        wake_timer = QTimer()
        wake_timer.timeout.connect(lambda: None)
        wake_timer.start(200)

        core = AppCore(app)
        app.aboutToQuit.connect(core.shutdown)

        logger.info("MemeForge initialization complete. Entering event loop...")
        exit_code = app.exec()

        logger.info(f"MemeForge exiting with code {exit_code}")
        return exit_code

    except Exception as e:
        # Log any unhandled exceptions
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
