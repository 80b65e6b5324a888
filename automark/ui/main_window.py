"""
Main Window
===========
單一視窗：選擇資料夾與水印，設定尺寸、透明度與並行數，然後批次處理。
"""

from typing import Optional

from PyQt6.QtCore import Qt, QSettings, QTimer, pyqtSignal
from PyQt6.QtGui import QCloseEvent
from PyQt6.QtWidgets import (
    QApplication, QFormLayout, QFrame, QHBoxLayout, QLabel, QMainWindow,
    QMessageBox, QProgressBar, QPushButton, QSpinBox, QStatusBar,
    QVBoxLayout, QWidget
)

from automark.core.pipeline import (
    DEFAULT_MAX_HEIGHT, DEFAULT_MAX_WIDTH, DEFAULT_MAX_WORKERS, DEFAULT_OPACITY
)
from .widgets import NoWheelSlider, PathPicker, ResultLogWidget


class MainWindow(QMainWindow):
    """
    Batch resize + watermark window.

    Signals:
        start_requested(dict): Emitted with the current settings
        cancel_requested(): Emitted when the user presses Cancel
        closing(): Emitted when the window is about to close
    """

    APP_NAME = "AutoMark"
    APP_VERSION = "1.0.0"

    start_requested = pyqtSignal(dict)
    cancel_requested = pyqtSignal()
    closing = pyqtSignal()

    # QSettings keys
    SETTINGS_ORG = "AutoMark"
    SETTINGS_APP = "BatchWatermark"
    KEY_INPUT_FOLDER = "input_folder"
    KEY_WATERMARK = "watermark_path"
    KEY_MAX_WIDTH = "max_width"
    KEY_MAX_HEIGHT = "max_height"
    KEY_OPACITY = "opacity_percent"
    KEY_WORKERS = "max_workers"
    KEY_WINDOW_GEOMETRY = "window_geometry"

    def __init__(self, parent: Optional[QWidget] = None):
        super().__init__(parent)
        self._settings = QSettings(self.SETTINGS_ORG, self.SETTINGS_APP)

        self._setup_window()
        self._setup_ui()
        self._setup_statusbar()
        self._connect_signals()
        self._restore_settings()

    def _setup_window(self):
        """Setup window properties."""
        self.setWindowTitle(self.APP_NAME)
        self.setMinimumSize(640, 560)
        self.resize(760, 640)

        # Center on screen
        screen = QApplication.primaryScreen()
        if screen:
            geo = screen.availableGeometry()
            x = (geo.width() - self.width()) // 2
            y = (geo.height() - self.height()) // 2
            self.move(x, y)

    def _setup_ui(self):
        central = QWidget()
        self.setCentralWidget(central)

        layout = QVBoxLayout(central)
        layout.setContentsMargins(16, 16, 16, 16)
        layout.setSpacing(12)

        # ===== 輸入 =====
        form = QFormLayout()
        form.setLabelAlignment(Qt.AlignmentFlag.AlignRight)
        form.setSpacing(10)

        self.folder_picker = PathPicker(select_folder=True, placeholder="包含圖片的資料夾")
        form.addRow("圖片資料夾", self.folder_picker)

        self.watermark_picker = PathPicker(select_folder=False, placeholder="水印圖片（建議 PNG）")
        form.addRow("水印圖片", self.watermark_picker)

        # ===== 尺寸 =====
        size_row = QHBoxLayout()
        self.width_spin = self._create_spin(1, 20000, DEFAULT_MAX_WIDTH, " px")
        self.height_spin = self._create_spin(1, 20000, DEFAULT_MAX_HEIGHT, " px")
        size_row.addWidget(self.width_spin)
        size_row.addWidget(QLabel("×"))
        size_row.addWidget(self.height_spin)
        size_row.addStretch(1)
        form.addRow("最大尺寸", size_row)

        # ===== 透明度 =====
        opacity_row = QHBoxLayout()
        self.opacity_slider = NoWheelSlider(Qt.Orientation.Horizontal)
        self.opacity_slider.setRange(0, 100)
        self.opacity_spin = self._create_spin(0, 100, int(DEFAULT_OPACITY * 100), " %")
        self.opacity_slider.setValue(self.opacity_spin.value())
        opacity_row.addWidget(self.opacity_slider, 1)
        opacity_row.addWidget(self.opacity_spin)
        form.addRow("水印透明度", opacity_row)

        # Sync slider and spin
        self.opacity_slider.valueChanged.connect(self.opacity_spin.setValue)
        self.opacity_spin.valueChanged.connect(self.opacity_slider.setValue)

        self.workers_spin = self._create_spin(1, 32, DEFAULT_MAX_WORKERS, "")
        form.addRow("同時處理數", self.workers_spin)

        layout.addLayout(form)

        sep = QFrame()
        sep.setFrameShape(QFrame.Shape.HLine)
        layout.addWidget(sep)

        # ===== 控制 =====
        buttons = QHBoxLayout()
        buttons.addStretch(1)

        self.start_btn = QPushButton("開始處理")
        self.start_btn.setCursor(Qt.CursorShape.PointingHandCursor)
        self.start_btn.setFixedHeight(36)
        buttons.addWidget(self.start_btn)

        self.cancel_btn = QPushButton("取消")
        self.cancel_btn.setCursor(Qt.CursorShape.PointingHandCursor)
        self.cancel_btn.setFixedHeight(36)
        self.cancel_btn.setVisible(False)
        buttons.addWidget(self.cancel_btn)

        layout.addLayout(buttons)

        self.progress_bar = QProgressBar()
        self.progress_bar.setVisible(False)
        layout.addWidget(self.progress_bar)

        self.status_label = QLabel("")
        layout.addWidget(self.status_label)

        # ===== 紀錄 =====
        self.result_log = ResultLogWidget()
        layout.addWidget(self.result_log, 1)

    def _create_spin(self, min_val: int, max_val: int, default: int, suffix: str) -> QSpinBox:
        spin = QSpinBox()
        spin.setRange(min_val, max_val)
        spin.setValue(default)
        spin.setSuffix(suffix)
        spin.setFixedWidth(100)
        return spin

    def _setup_statusbar(self):
        """Setup minimal status bar."""
        self.statusbar = QStatusBar()
        self.setStatusBar(self.statusbar)

        self.status_message = QLabel("系統就緒")
        self.statusbar.addWidget(self.status_message)

        right_label = QLabel(f"◇ {self.APP_NAME} v{self.APP_VERSION}")
        self.statusbar.addPermanentWidget(right_label)

    def _connect_signals(self):
        self.start_btn.clicked.connect(self._on_start_clicked)
        self.cancel_btn.clicked.connect(self.cancel_requested.emit)

    def _on_start_clicked(self):
        """Handle start button click."""
        self.start_requested.emit(self.get_config())

    def _restore_settings(self):
        """Restore user settings."""
        self.folder_picker.set_path(self._settings.value(self.KEY_INPUT_FOLDER, "", type=str))
        self.watermark_picker.set_path(self._settings.value(self.KEY_WATERMARK, "", type=str))
        self.width_spin.setValue(
            self._settings.value(self.KEY_MAX_WIDTH, DEFAULT_MAX_WIDTH, type=int))
        self.height_spin.setValue(
            self._settings.value(self.KEY_MAX_HEIGHT, DEFAULT_MAX_HEIGHT, type=int))
        self.opacity_spin.setValue(
            self._settings.value(self.KEY_OPACITY, int(DEFAULT_OPACITY * 100), type=int))
        self.workers_spin.setValue(
            self._settings.value(self.KEY_WORKERS, DEFAULT_MAX_WORKERS, type=int))

        geometry = self._settings.value(self.KEY_WINDOW_GEOMETRY)
        if geometry is not None:
            self.restoreGeometry(geometry)

    def _save_settings(self):
        """Save user settings."""
        self._settings.setValue(self.KEY_INPUT_FOLDER, self.folder_picker.path())
        self._settings.setValue(self.KEY_WATERMARK, self.watermark_picker.path())
        self._settings.setValue(self.KEY_MAX_WIDTH, self.width_spin.value())
        self._settings.setValue(self.KEY_MAX_HEIGHT, self.height_spin.value())
        self._settings.setValue(self.KEY_OPACITY, self.opacity_spin.value())
        self._settings.setValue(self.KEY_WORKERS, self.workers_spin.value())
        self._settings.setValue(self.KEY_WINDOW_GEOMETRY, self.saveGeometry())
        self._settings.sync()

    # === Public API ===

    def get_config(self) -> dict:
        """Get current configuration."""
        return {
            "input_folder": self.folder_picker.path(),
            "watermark_path": self.watermark_picker.path(),
            "max_width": self.width_spin.value(),
            "max_height": self.height_spin.value(),
            "opacity": self.opacity_spin.value() / 100.0,
            "max_workers": self.workers_spin.value(),
        }

    def set_progress(self, current: int, total: int, filename: str = ""):
        """Update progress bar."""
        self.progress_bar.setVisible(True)
        self.progress_bar.setMaximum(total)
        self.progress_bar.setValue(current)
        if filename:
            self.status_label.setText(f"處理中: {filename} ({current}/{total})")

    def set_status(self, message: str):
        self.status_label.setText(message)

    def set_processing(self, is_processing: bool):
        """Set processing state."""
        self.start_btn.setVisible(not is_processing)
        self.cancel_btn.setVisible(is_processing)
        self.cancel_btn.setEnabled(is_processing)
        self.progress_bar.setVisible(is_processing)

        for widget in (
                self.folder_picker, self.watermark_picker, self.width_spin,
                self.height_spin, self.opacity_slider, self.opacity_spin,
                self.workers_spin):
            widget.setEnabled(not is_processing)

        if is_processing:
            self.progress_bar.setValue(0)
            self.result_log.clear()

    def set_complete(self, success: bool = True, message: str = ""):
        """Set completion state."""
        if success:
            self.status_label.setText(message or "✓ 完成！")
            self.status_label.setStyleSheet("color: #9ECE6A;")
        else:
            self.status_label.setText(message or "✕ 失敗")
            self.status_label.setStyleSheet("color: #F7768E;")

    def show_message(self, message: str, timeout: int = 3000):
        """Show a message in the status bar."""
        self.status_message.setText(message)
        if timeout > 0:
            QTimer.singleShot(timeout, lambda: self.status_message.setText("系統就緒"))

    def show_error(self, title: str, message: str):
        """Show an error dialog."""
        QMessageBox.critical(self, title, message)

    def show_warning(self, title: str, message: str):
        QMessageBox.warning(self, title, message)

    def closeEvent(self, event: QCloseEvent):
        """Handle window close."""
        self._save_settings()
        self.closing.emit()
        event.accept()
