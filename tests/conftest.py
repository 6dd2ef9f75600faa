"""
Pytest configuration for the MemeForge test suite.

Widgets, fonts and QImage painting need a QApplication. Tests run headless
on the offscreen platform plugin.
"""

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtWidgets import QApplication


@pytest.fixture(scope="session", autouse=True)
def qapp():
    """One QApplication for the whole session."""
    app = QApplication.instance() or QApplication([])
    yield app
