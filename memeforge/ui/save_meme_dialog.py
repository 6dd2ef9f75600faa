"""
Save-to-collection dialog for MemeForge.

Collects the title, description and visibility of a meme before upload.
"""

from typing import Optional

from PySide6.QtWidgets import (
    QCheckBox,
    QDialog,
    QDialogButtonBox,
    QFormLayout,
    QLabel,
    QLineEdit,
    QPlainTextEdit,
    QVBoxLayout,
    QWidget,
)

from memeforge.services.meme_service import MAX_TITLE_LENGTH, SaveMemeRequest


class SaveMemeDialog(QDialog):
    """Modal form producing a SaveMemeRequest."""

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Save Meme")
        self.setMinimumWidth(380)
        self._setup_ui()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)
        form = QFormLayout()

        self._title = QLineEdit()
        self._title.setMaxLength(MAX_TITLE_LENGTH)
        self._title.setPlaceholderText("Give your meme a title")
        form.addRow("Title", self._title)

        self._description = QPlainTextEdit()
        self._description.setPlaceholderText("Optional description")
        self._description.setFixedHeight(90)
        form.addRow("Description", self._description)

        self._public = QCheckBox("Make this meme public")
        form.addRow("", self._public)
        layout.addLayout(form)

        self._error = QLabel()
        self._error.setStyleSheet("color: #ef5350;")
        self._error.hide()
        layout.addWidget(self._error)

        buttons = QDialogButtonBox(
            QDialogButtonBox.StandardButton.Save | QDialogButtonBox.StandardButton.Cancel
        )
        buttons.accepted.connect(self._on_accept)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    def request(self) -> SaveMemeRequest:
        return SaveMemeRequest(
            title=self._title.text().strip(),
            description=self._description.toPlainText().strip(),
            is_public=self._public.isChecked(),
        )

    def _on_accept(self) -> None:
        problem = self.request().validate()
        if problem:
            self._error.setText(problem)
            self._error.show()
            return
        self.accept()
