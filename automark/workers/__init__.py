"""
Workers Module - Async Thread Management
========================================
Contains the QThread worker that runs batches off the UI thread.

Components:
- BatchWorker: Runs a BatchPipeline and forwards progress as Qt signals
- BatchConfig: Settings for one batch run
"""

from .batch_worker import BatchWorker, BatchConfig

__all__ = [
    "BatchWorker",
    "BatchConfig",
]
