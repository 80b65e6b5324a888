"""
Reusable UI Components
======================
Small widgets shared by the main window.
"""

from pathlib import Path
from typing import Optional

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QColor, QWheelEvent
from PyQt6.QtWidgets import (
    QFileDialog, QHBoxLayout, QLineEdit, QListWidget, QListWidgetItem,
    QPushButton, QSlider, QWidget
)

IMAGE_FILTER = "圖片 (*.png *.jpg *.jpeg *.bmp *.gif)"


class NoWheelSlider(QSlider):
    """Slider that ignores the mouse wheel (prevents accidental changes while scrolling)."""

    def __init__(self, orientation=Qt.Orientation.Horizontal, parent=None):
        super().__init__(orientation, parent)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

    def wheelEvent(self, event: QWheelEvent):
        event.ignore()


class PathPicker(QWidget):
    """
    Line edit + browse button for choosing a folder or an image file.

    Signals:
        path_changed(str): Emitted when the text changes.
    """

    path_changed = pyqtSignal(str)

    def __init__(
            self,
            select_folder: bool = True,
            placeholder: str = "",
            parent: Optional[QWidget] = None
    ):
        super().__init__(parent)
        self._select_folder = select_folder

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(8)

        self.line_edit = QLineEdit()
        self.line_edit.setPlaceholderText(placeholder)
        layout.addWidget(self.line_edit, 1)

        self.browse_btn = QPushButton("瀏覽...")
        self.browse_btn.setCursor(Qt.CursorShape.PointingHandCursor)
        self.browse_btn.setFixedWidth(80)
        layout.addWidget(self.browse_btn)

        self.browse_btn.clicked.connect(self._browse)
        self.line_edit.textChanged.connect(self.path_changed.emit)

    def _browse(self):
        start = self.path() or str(Path.home())
        if self._select_folder:
            chosen = QFileDialog.getExistingDirectory(self, "選擇資料夾", start)
        else:
            chosen, _ = QFileDialog.getOpenFileName(self, "選擇水印圖片", start, IMAGE_FILTER)

        if chosen:
            self.set_path(chosen)

    def path(self) -> str:
        return self.line_edit.text().strip()

    def set_path(self, path: str):
        self.line_edit.setText(path)


class ResultLogWidget(QListWidget):
    """List of per-file outcomes, newest at the bottom."""

    COLOR_SUCCESS = "#9ECE6A"
    COLOR_FAILED = "#F7768E"
    COLOR_SKIPPED = "#E0AF68"

    def add_entry(self, text: str, color: str):
        item = QListWidgetItem(text)
        item.setForeground(QColor(color))
        self.addItem(item)
        self.scrollToBottom()

    def add_success(self, text: str):
        self.add_entry(f"✓ {text}", self.COLOR_SUCCESS)

    def add_failure(self, text: str):
        self.add_entry(f"✕ {text}", self.COLOR_FAILED)

    def add_skipped(self, text: str):
        self.add_entry(f"– {text}", self.COLOR_SKIPPED)
