"""
Batch Worker - Async Batch Processing
=====================================
QThread worker that runs a BatchPipeline without blocking the UI.

Workflow:
1. The controller builds a BatchPipeline (construction errors surface there)
2. The worker runs it on its own thread; the pipeline's pool does the work
3. Progress and per-file results are forwarded as Qt signals
4. finished_all is always emitted, even after a critical error

Cancellation is cooperative: cancel() flips the pipeline's token, files
already in flight finish and the rest are skipped.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QThread, pyqtSignal

from automark.core.pipeline import (
    DEFAULT_MAX_HEIGHT, DEFAULT_MAX_WIDTH, DEFAULT_MAX_WORKERS, DEFAULT_OPACITY,
    BatchPipeline, BatchReport, FileResult
)

logger = logging.getLogger(__name__)


@dataclass
class BatchConfig:
    """Complete configuration for a batch run."""
    input_folder: Path
    watermark_path: Path
    max_width: int = DEFAULT_MAX_WIDTH
    max_height: int = DEFAULT_MAX_HEIGHT
    opacity: float = DEFAULT_OPACITY  # 0-1
    max_workers: int = DEFAULT_MAX_WORKERS

    def create_pipeline(self) -> BatchPipeline:
        """
        Build the pipeline for this configuration.

        Raises:
            FolderNotFoundError, WatermarkNotFoundError, DecodeError,
            ValueError: see BatchPipeline.
        """
        return BatchPipeline(
            input_folder=self.input_folder,
            watermark_path=self.watermark_path,
            max_width=self.max_width,
            max_height=self.max_height,
            opacity=self.opacity,
            max_workers=self.max_workers
        )


class BatchWorker(QThread):
    """
    Worker thread for batch resize + watermark.

    Signals:
        progress(int, int, str): (processed, total, current_file_name)
        image_completed(FileResult): Emitted when each file settles
        finished_all(BatchReport): Emitted when the batch is done
        error(str): Emitted on critical errors
    """

    # Signals
    progress = pyqtSignal(int, int, str)  # processed, total, filename
    image_completed = pyqtSignal(object)  # FileResult
    finished_all = pyqtSignal(object)  # BatchReport
    error = pyqtSignal(str)  # Error message

    def __init__(
            self,
            pipeline: BatchPipeline,
            close_when_done: bool = True,
            parent=None
    ):
        """
        Initialize the batch worker.

        Args:
            pipeline: A constructed BatchPipeline.
            close_when_done: Release the pipeline's watermark after run().
            parent: Optional parent QObject.
        """
        super().__init__(parent)
        self.pipeline = pipeline
        self._close_when_done = close_when_done
        self.report: Optional[BatchReport] = None

    @classmethod
    def from_config(cls, config: BatchConfig, parent=None) -> "BatchWorker":
        """Build the pipeline from ``config`` and wrap it in a worker."""
        return cls(config.create_pipeline(), parent=parent)

    def cancel(self):
        """Request cancellation of the batch."""
        self.pipeline.cancel()

    def _on_progress(self, total: int, processed: int, filename: str):
        self.progress.emit(processed, total, filename)

    def _on_result(self, result: FileResult):
        self.image_completed.emit(result)

    def run(self):
        """
        Main worker execution.

        Runs the pipeline and emits progress signals.
        """
        report = BatchReport()

        try:
            report = self.pipeline.run(
                progress_callback=self._on_progress,
                result_callback=self._on_result
            )

            if report.total == 0:
                self.error.emit("No images to process")

        except Exception as e:
            logger.exception("Batch run failed")
            self.error.emit(f"Critical error: {str(e)}")

        finally:
            if self._close_when_done:
                self.pipeline.close()

        self.report = report
        self.finished_all.emit(report)
