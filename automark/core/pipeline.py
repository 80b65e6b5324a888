"""
Batch Pipeline
==============
Resizes and watermarks every image in a folder using a bounded worker pool.

Workflow (per file, on one worker thread):
1. Check the cancellation token; skip if set
2. Decode the source
3. Fit it inside max_width x max_height (never upscaled)
4. Save to <input>/resize/<name>
5. Place and blend the watermark
6. Save to <input>/watermarked/<name>
7. Count the file as processed and report progress

Concurrency:
- A thread pool of ``max_workers`` threads runs the per-file work
- A semaphore of the same size is taken by the dispatch loop before each
  submit and given back when the file settles, so at most ``max_workers``
  files are ever in flight
- Success reports are serialised by a reporting lock, so progress
  callbacks see a non-decreasing count that never exceeds the total
- The counter itself sits behind a separate state lock that is released
  before any callback runs, so callbacks may read ``progress``

A failing file is logged and returned as a FAILED FileResult; the rest of
the batch carries on.
"""

import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple, Union

from PIL import Image

from .codec import ensure_output_dirs, list_images, load_image, save_image
from .compositor import apply_watermark
from .errors import FolderNotFoundError, WatermarkNotFoundError
from .resampler import fit_within

logger = logging.getLogger(__name__)

DEFAULT_MAX_WIDTH = 1280
DEFAULT_MAX_HEIGHT = 720
DEFAULT_OPACITY = 0.5
DEFAULT_MAX_WORKERS = 5

ProgressCallback = Callable[[int, int, str], None]


class CancellationToken:
    """Thread-safe, one-way cancellation flag."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


@dataclass(frozen=True)
class ProgressSnapshot:
    """Progress of a batch at one moment."""
    total: int = 0
    processed: int = 0
    current_file: str = ""

    @property
    def percent(self) -> float:
        """processed / total * 100; NaN while total is 0."""
        if self.total == 0:
            return math.nan
        return self.processed / self.total * 100


class FileStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class FileResult:
    """Outcome of processing a single source file."""
    source_path: Path
    status: FileStatus = FileStatus.FAILED
    resized_path: Optional[Path] = None
    watermarked_path: Optional[Path] = None
    resized_size: Optional[Tuple[int, int]] = None
    position: Optional[Tuple[int, int]] = None
    error_type: str = ""
    error_message: str = ""

    @property
    def success(self) -> bool:
        return self.status is FileStatus.SUCCESS


@dataclass
class BatchReport:
    """Aggregate outcome of a batch run."""
    total: int = 0
    results: List[FileResult] = field(default_factory=list)
    cancelled: bool = False

    def _count(self, status: FileStatus) -> int:
        return sum(1 for r in self.results if r.status is status)

    @property
    def succeeded(self) -> int:
        return self._count(FileStatus.SUCCESS)

    @property
    def failed(self) -> int:
        return self._count(FileStatus.FAILED)

    @property
    def skipped(self) -> int:
        return self._count(FileStatus.SKIPPED)

    @property
    def failures(self) -> List[FileResult]:
        return [r for r in self.results if r.status is FileStatus.FAILED]


class BatchPipeline:
    """
    Resize + auto-placed watermark for every supported image in a folder.

    Usage:
        with BatchPipeline("photos", "logo.png", max_workers=4) as pipeline:
            report = pipeline.run(progress_callback=on_progress)

    Construction fails fast when the folder or watermark is missing, and
    creates the ``resize`` and ``watermarked`` output folders.
    """

    def __init__(
            self,
            input_folder: Union[str, Path],
            watermark_path: Union[str, Path],
            max_width: int = DEFAULT_MAX_WIDTH,
            max_height: int = DEFAULT_MAX_HEIGHT,
            opacity: float = DEFAULT_OPACITY,
            max_workers: int = DEFAULT_MAX_WORKERS
    ):
        """
        Initialize the pipeline.

        Args:
            input_folder: Folder holding the source images.
            watermark_path: Watermark image file.
            max_width: Maximum output width (default: 1280).
            max_height: Maximum output height (default: 720).
            opacity: Watermark opacity 0-1 (default: 0.5).
            max_workers: Maximum files processed at once (default: 5).

        Raises:
            FolderNotFoundError: If the input folder doesn't exist.
            WatermarkNotFoundError: If the watermark file doesn't exist.
            DecodeError: If the watermark can't be decoded.
            ValueError: If a numeric setting is out of range.
        """
        input_folder = Path(input_folder)
        watermark_path = Path(watermark_path)

        if not input_folder.is_dir():
            raise FolderNotFoundError(f"Input folder not found: {input_folder}")

        if not watermark_path.is_file():
            raise WatermarkNotFoundError(f"Watermark file not found: {watermark_path}")

        if max_width < 1 or max_height < 1:
            raise ValueError(f"Invalid maximum size: {max_width}x{max_height}")

        if not 0.0 <= opacity <= 1.0:
            raise ValueError("Opacity must be between 0 and 1")

        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")

        self.input_folder = input_folder
        self.watermark_path = watermark_path
        self.max_width = max_width
        self.max_height = max_height
        self.opacity = float(opacity)
        self.max_workers = max_workers

        self._watermark: Optional[Image.Image] = load_image(watermark_path)
        self._token = CancellationToken()

        self._lock = threading.Lock()
        self._report_lock = threading.Lock()
        self._processed = 0
        self._progress = ProgressSnapshot()

        self.resize_folder, self.watermarked_folder = ensure_output_dirs(input_folder)

    # ===== Lifecycle =====

    def __enter__(self) -> "BatchPipeline":
        return self

    def __exit__(self, exc_type, exc_value, tb):
        self.close()

    def close(self):
        """Release the shared watermark image."""
        if self._watermark is not None:
            self._watermark.close()
            self._watermark = None

    @property
    def closed(self) -> bool:
        return self._watermark is None

    # ===== Cancellation / progress =====

    def cancel(self):
        """Request cooperative cancellation. Safe to call from any thread."""
        if not self._token.is_cancelled:
            logger.info("Cancellation requested")
        self._token.cancel()

    @property
    def cancelled(self) -> bool:
        return self._token.is_cancelled

    @property
    def progress(self) -> ProgressSnapshot:
        """The most recent progress snapshot."""
        with self._lock:
            return self._progress

    def image_files(self) -> List[Path]:
        """Supported images in the input folder, in dispatch order."""
        return list_images(self.input_folder)

    # ===== Processing =====

    def process_file(
            self,
            image_path: Path,
            token: Optional[CancellationToken] = None
    ) -> FileResult:
        """
        Resize, save, watermark and save a single image.

        Args:
            image_path: Source image.
            token: Cancellation token checked before any work starts.

        Returns:
            FileResult describing the outcome. Never raises for per-file
            problems.
        """
        token = token or self._token
        result = FileResult(source_path=image_path)

        if token.is_cancelled:
            result.status = FileStatus.SKIPPED
            logger.info("Skipped %s (cancelled)", image_path.name)
            return result

        watermark = self._watermark
        if watermark is None:
            raise RuntimeError("Pipeline is closed")

        original = resized = watermarked = None
        try:
            original = load_image(image_path)

            resized = fit_within(original, self.max_width, self.max_height)
            original.close()
            original = None

            resized_path = save_image(resized, self.resize_folder / image_path.name)
            result.resized_path = resized_path
            result.resized_size = resized.size

            watermarked, placement = apply_watermark(resized, watermark, self.opacity)
            watermarked_path = save_image(
                watermarked, self.watermarked_folder / image_path.name
            )
            result.watermarked_path = watermarked_path
            result.position = placement.position

            result.status = FileStatus.SUCCESS
            logger.debug(
                "Processed %s -> %dx%d, watermark at %s (%s)",
                image_path.name, resized.width, resized.height,
                placement.position, placement.candidate
            )

        except Exception as e:
            result.status = FileStatus.FAILED
            result.error_type = type(e).__name__
            result.error_message = str(e)
            logger.exception("Failed to process %s", image_path)

        finally:
            for image in (original, resized, watermarked):
                if image is not None:
                    image.close()

        return result

    def _report_success(
            self,
            result: FileResult,
            total: int,
            progress_callback: Optional[ProgressCallback]
    ):
        with self._report_lock:
            with self._lock:
                self._processed = min(self._processed + 1, total)
                snapshot = ProgressSnapshot(
                    total=total,
                    processed=self._processed,
                    current_file=result.source_path.name
                )
                self._progress = snapshot

            if progress_callback is not None:
                progress_callback(snapshot.total, snapshot.processed, snapshot.current_file)

    def run(
            self,
            progress_callback: Optional[ProgressCallback] = None,
            result_callback: Optional[Callable[[FileResult], None]] = None
    ) -> BatchReport:
        """
        Process every supported image in the input folder.

        Args:
            progress_callback: Called as (total, processed, file_name) after
                each file that was fully saved.
            result_callback: Called with every settled FileResult, including
                failures and skips.

        Returns:
            BatchReport with one FileResult per dispatched file, in input
            order.
        """
        if self.closed:
            raise RuntimeError("Pipeline is closed")

        files = self.image_files()
        total = len(files)
        report = BatchReport(total=total)

        with self._lock:
            self._processed = 0
            self._progress = ProgressSnapshot(total=total)

        logger.info(
            "Processing %d image(s) in %s with %d worker(s)",
            total, self.input_folder, self.max_workers
        )

        if total == 0:
            return report

        token = self._token
        slots = threading.Semaphore(self.max_workers)

        def task(image_path: Path) -> FileResult:
            try:
                result = self.process_file(image_path, token)

                if result.success:
                    try:
                        self._report_success(result, total, progress_callback)
                    except Exception:
                        logger.exception("Progress callback failed for %s", image_path.name)

                if result_callback is not None:
                    try:
                        result_callback(result)
                    except Exception:
                        logger.exception("Result callback failed for %s", image_path.name)

                return result
            finally:
                slots.release()

        with ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix="automark"
        ) as executor:
            futures = []
            for image_path in files:
                slots.acquire()
                futures.append(executor.submit(task, image_path))

            wait(futures)

        # A fault in the dispatch machinery itself propagates here
        report.results = [f.result() for f in futures]
        report.cancelled = token.is_cancelled

        logger.info(
            "Batch finished: %d succeeded, %d failed, %d skipped",
            report.succeeded, report.failed, report.skipped
        )
        return report


def process_folder(
        input_folder: Union[str, Path],
        watermark_path: Union[str, Path],
        progress_callback: Optional[ProgressCallback] = None,
        **settings
) -> BatchReport:
    """
    Convenience function: build a pipeline, run it once and tear it down.

    Args:
        settings: max_width, max_height, opacity, max_workers.
    """
    with BatchPipeline(input_folder, watermark_path, **settings) as pipeline:
        return pipeline.run(progress_callback=progress_callback)
