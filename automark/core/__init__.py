"""
Core Module - Pure Image Logic
==============================
This module contains no UI dependencies.
Resizing, watermark placement, compositing and the batch pipeline live here.
"""

from .compositor import apply_watermark, composite
from .errors import (
    AutoMarkError, DecodeError, EncodeError,
    FolderNotFoundError, WatermarkNotFoundError
)
from .pipeline import (
    BatchPipeline, BatchReport, CancellationToken, FileResult, FileStatus,
    ProgressSnapshot, process_folder
)
from .placement import Placement, find_best_position

__all__ = [
    "AutoMarkError",
    "BatchPipeline",
    "BatchReport",
    "CancellationToken",
    "DecodeError",
    "EncodeError",
    "FileResult",
    "FileStatus",
    "FolderNotFoundError",
    "Placement",
    "ProgressSnapshot",
    "WatermarkNotFoundError",
    "apply_watermark",
    "composite",
    "find_best_position",
    "process_folder",
]
