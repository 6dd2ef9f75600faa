"""
Smoke tests for the editor widget and main window wiring.
"""

import unittest
from unittest.mock import MagicMock

from memeforge.editor.compositor import CanvasCompositor
from memeforge.editor.editor_session import EditorSession
from memeforge.services.auth_service import AuthService
from memeforge.ui.main_window import MainWindow


class TestMainWindow(unittest.TestCase):

    def setUp(self):
        self.session = EditorSession(CanvasCompositor())

    def test_signed_out_window(self):
        auth = MagicMock(spec=AuthService)
        auth.is_authenticated = False
        window = MainWindow(self.session, auth)

        self.assertEqual(window.windowTitle(), "MemeForge")
        self.assertTrue(window._sign_in_action.isEnabled())
        self.assertFalse(window._sign_out_action.isEnabled())
        window.deleteLater()

    def test_signed_in_title_shows_user(self):
        auth = MagicMock(spec=AuthService)
        auth.is_authenticated = True
        auth.user = {"username": "grumpycat"}
        window = MainWindow(self.session, auth)

        self.assertEqual(window.windowTitle(), "MemeForge - grumpycat")
        self.assertTrue(window._sign_out_action.isEnabled())
        window.deleteLater()

    def test_busy_disables_actions(self):
        window = MainWindow(self.session)
        editor = window.editor

        self.session.busy_changed.emit(True)
        self.assertFalse(editor._download_btn.isEnabled())
        self.assertFalse(editor._save_btn.isEnabled())

        self.session.busy_changed.emit(False)
        self.assertTrue(editor._download_btn.isEnabled())
        window.deleteLater()

    def test_style_bar_follows_selection(self):
        window = MainWindow(self.session)
        editor = window.editor
        overlay_id = self.session.add_text()
        self.session.model.update(overlay_id, font="Arial", font_size=50)

        self.assertEqual(editor._style_bar._font.currentText(), "Arial")
        self.assertEqual(editor._style_bar._size.value(), 50)

        editor._style_bar._size.setValue(20)
        self.assertEqual(self.session.model.get(overlay_id).font_size, 20)
        window.deleteLater()


if __name__ == "__main__":
    unittest.main()
