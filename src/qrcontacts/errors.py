"""
Exception hierarchy for qrcontacts.

Three families:
- fatal errors abort the whole batch (directory source, output directory)
- configuration errors surface before any record is processed
- record errors are caught per record and turned into report entries
"""

from __future__ import annotations

from typing import Any


class QrContactsError(Exception):
    """Base exception for all qrcontacts errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(QrContactsError):
    """Invalid render or run configuration."""


class DirectorySourceError(QrContactsError):
    """The directory source could not be reached or queried."""


class OutputDirectoryError(QrContactsError):
    """The output directory could not be created."""


class RecordError(QrContactsError):
    """Base class for failures that only affect one record."""


class MissingFieldError(RecordError):
    """A field needed for the output filename is empty."""


class EncodingCapacityError(RecordError):
    """Payload does not fit in a QR code at the requested error correction."""


class OutputWriteError(RecordError):
    """Writing a single image file failed."""


class DuplicateOutputPathError(RecordError):
    """Another record in the batch already claimed the same output path."""
