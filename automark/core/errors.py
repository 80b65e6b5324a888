"""
Error Types
===========
Exception hierarchy shared by the core modules.

- Construction errors (FolderNotFoundError, WatermarkNotFoundError) stop a
  batch before it starts.
- Codec errors (DecodeError, EncodeError) are raised for a single file and
  recovered by the pipeline into a failed FileResult.
"""


class AutoMarkError(Exception):
    """Base class for all AutoMark errors."""


class FolderNotFoundError(AutoMarkError, FileNotFoundError):
    """The input folder does not exist or is not a directory."""


class WatermarkNotFoundError(AutoMarkError, FileNotFoundError):
    """The watermark image file does not exist."""


class DecodeError(AutoMarkError, ValueError):
    """Image bytes could not be decoded into a pixel buffer."""


class EncodeError(AutoMarkError, OSError):
    """A pixel buffer could not be encoded into the requested format."""
