"""
AutoMark - Main Entry Point
===========================
A desktop application that resizes a folder of images and stamps each one
with an automatically placed image watermark.

Usage:
    python main.py

Architecture:
    - Model: automark/core/ (pure image logic + batch pipeline)
    - View: automark/ui/ (PyQt6 interface)
    - Controller: This file (signal/slot connections)

Output:
    <input folder>/resize/       resized copies
    <input folder>/watermarked/  resized + watermarked copies
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from PyQt6.QtWidgets import QApplication

from automark.core import AutoMarkError, BatchReport, FileResult, FileStatus
from automark.ui import MainWindow
from automark.workers import BatchWorker, BatchConfig

logger = logging.getLogger("automark")


def setup_logging(level: int = logging.INFO):
    """Setup consistent logging configuration"""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )


class BatchController:
    """
    Controller class that connects UI signals to the batch worker.

    Responsibilities:
    - Validate user input before processing
    - Build the pipeline (construction errors are shown, nothing starts)
    - Create and manage the worker thread
    - Update UI based on worker progress/results
    """

    def __init__(self, main_window: MainWindow):
        """
        Initialize the controller.

        Args:
            main_window: The main application window.
        """
        self.window = main_window

        # Worker reference (to prevent garbage collection)
        self._worker: Optional[BatchWorker] = None
        self._last_report: Optional[BatchReport] = None

        self._connect_signals()

    def _connect_signals(self):
        """Connect UI signals to controller slots."""
        self.window.start_requested.connect(self._on_start_requested)
        self.window.cancel_requested.connect(self._on_cancel)
        self.window.closing.connect(self.shutdown)

    def _validate_config(self, config: dict) -> Optional[str]:
        """
        Validate batch configuration.

        Returns:
            Error message if validation fails, None otherwise.
        """
        if not config.get("input_folder"):
            return "請選擇圖片資料夾"

        if not config.get("watermark_path"):
            return "請選擇水印圖片"

        return None

    def _create_config(self, config_dict: dict) -> BatchConfig:
        return BatchConfig(
            input_folder=Path(config_dict["input_folder"]),
            watermark_path=Path(config_dict["watermark_path"]),
            max_width=int(config_dict.get("max_width", 1280)),
            max_height=int(config_dict.get("max_height", 720)),
            opacity=float(config_dict.get("opacity", 0.5)),
            max_workers=int(config_dict.get("max_workers", 5))
        )

    def _on_start_requested(self, config_dict: dict):
        """
        Handle start request from UI.

        Args:
            config_dict: Configuration dictionary from MainWindow.
        """
        if self._worker is not None and self._worker.isRunning():
            return

        error = self._validate_config(config_dict)
        if error:
            self.window.show_error("配置錯誤", error)
            return

        try:
            config = self._create_config(config_dict)
            pipeline = config.create_pipeline()
        except (AutoMarkError, OSError, ValueError) as e:
            self.window.show_error("配置錯誤", str(e))
            return

        self._worker = BatchWorker(pipeline)

        # Connect worker signals
        self._worker.progress.connect(self._on_progress)
        self._worker.image_completed.connect(self._on_image_completed)
        self._worker.finished_all.connect(self._on_finished)
        self._worker.error.connect(self._on_error)

        # Update UI state
        self.window.set_processing(True)
        self.window.set_status("正在處理...")
        self.window.show_message("開始處理圖片...")

        self._worker.start()

    def _on_progress(self, current: int, total: int, filename: str):
        """Handle progress update."""
        self.window.set_progress(current, total, filename)

    def _on_image_completed(self, result: FileResult):
        """Handle single image completion."""
        name = result.source_path.name
        if result.status is FileStatus.SUCCESS:
            width, height = result.resized_size
            self.window.result_log.add_success(
                f"{name}  →  {width}×{height}，水印位置 {result.position}"
            )
        elif result.status is FileStatus.SKIPPED:
            self.window.result_log.add_skipped(f"{name} 已略過（已取消）")
        else:
            self.window.result_log.add_failure(f"{name}: {result.error_message}")

    def _on_finished(self, report: BatchReport):
        """Handle batch completion."""
        self._last_report = report
        self.window.set_processing(False)

        if report.total == 0:
            self.window.set_complete(False, "資料夾中沒有支援的圖片")
        elif report.failed == 0 and not report.cancelled:
            message = f"成功處理 {report.succeeded} 張圖片"
            self.window.set_complete(True, f"✓ {message}")
            self.window.show_message(f"全部完成！{message}", 5000)
        else:
            message = (
                f"成功 {report.succeeded}，失敗 {report.failed}，"
                f"略過 {report.skipped}"
            )
            self.window.set_complete(report.failed == 0, message)
            self.window.show_message(f"處理完成：{message}", 5000)

            if report.failures:
                self._show_failures_dialog(report)

        # Cleanup worker
        if self._worker:
            self._worker.wait()
            self._worker.deleteLater()
            self._worker = None

    def _show_failures_dialog(self, report: BatchReport):
        """Show dialog for partial success."""
        failed = report.failures

        message = "處理完成\n\n"
        message += f"✅ 成功：{report.succeeded} 張\n"
        message += f"❌ 失敗：{len(failed)} 張\n\n"
        message += "失敗詳情：\n"
        for r in failed[:5]:  # Show max 5 failures
            message += f"  • {r.source_path.name}: {r.error_message}\n"
        if len(failed) > 5:
            message += f"  ... 還有 {len(failed) - 5} 個錯誤\n"

        self.window.show_warning("處理完成（部分失敗）", message)

    def _on_error(self, error_message: str):
        """Handle worker error."""
        self.window.set_status(f"❌ 錯誤: {error_message}")

    def _on_cancel(self):
        """Handle cancellation."""
        if self._worker and self._worker.isRunning():
            self._worker.cancel()
            self.window.cancel_btn.setEnabled(False)
            self.window.set_status("正在取消...")
            self.window.show_message("正在取消操作...")

    def shutdown(self):
        """Cancel a running batch and wait for its thread before the app exits."""
        if self._worker is not None and self._worker.isRunning():
            logger.info("Window closing, stopping the running batch")
            self._worker.cancel()
            self._worker.wait()


def main():
    """Application entry point."""
    setup_logging()

    app = QApplication(sys.argv)
    app.setApplicationName("AutoMark")
    app.setApplicationVersion("1.0.0")
    app.setOrganizationName("AutoMark")

    window = MainWindow()

    # Create controller (connects signals)
    controller = BatchController(window)

    window.show()
    logger.info("AutoMark started")

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
