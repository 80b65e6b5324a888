"""
AutoMark Application Package
============================
Batch resize + automatically placed image watermark.

Modules:
    - core: Pure image logic and the batch pipeline (no UI dependencies)
    - workers: QThread worker that runs the pipeline off the UI thread
    - ui: PyQt6 user interface components

Usage:
    from automark.core import BatchPipeline
    from automark.workers import BatchWorker, BatchConfig
    from automark.ui import MainWindow

Only the core is imported here so headless use doesn't pull in Qt.
"""

__version__ = "1.0.0"
__author__ = "AutoMark"
__app_name__ = "AutoMark"

from .core import (
    BatchPipeline,
    BatchReport,
    FileResult,
    FileStatus,
    ProgressSnapshot,
    process_folder,
)

__all__ = [
    # Version info
    "__version__",
    "__author__",
    "__app_name__",

    # Core
    "BatchPipeline",
    "BatchReport",
    "FileResult",
    "FileStatus",
    "ProgressSnapshot",
    "process_folder",
]
