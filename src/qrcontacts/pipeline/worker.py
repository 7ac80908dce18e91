"""
Single record processing worker.

Core processing function for turning one directory record into one QR vCard
image. Records are independent, so this can run on any worker thread.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from qrcontacts.directory.validation import require_valid
from qrcontacts.encoder import MatrixEncoder
from qrcontacts.errors import DuplicateOutputPathError, RecordError
from qrcontacts.render import RenderConfiguration, render
from qrcontacts.vcard import build_vcard

from .coordinator import RecordTask
from .output import write_atomic


LOGGER = logging.getLogger("qrcontacts.pipeline")


@dataclass
class RecordResult:
    """
    Result of processing a single record.

    Attributes:
        index: Position of the record in source order
        identity: Record identity (distinguished name or export id)
        output_path: Target image path, if one was assigned
        success: Whether the image was rendered (and written unless dry run)
        error: Failure reason
        error_type: Exception class name of the failure
        bytes_written: Size of the rendered image
        elapsed_seconds: Processing time
    """

    index: int
    identity: str
    output_path: Path | None
    success: bool
    error: str | None = None
    error_type: str | None = None
    bytes_written: int = 0
    elapsed_seconds: float = 0.0


def process_record(
    task: RecordTask,
    config: RenderConfiguration,
    *,
    encoder: MatrixEncoder | None = None,
    dry_run: bool = False,
) -> RecordResult:
    """
    Process one record: validate, build vCard, render, write.

    Record-level failures (missing name fields, duplicate output path,
    capacity overflow, write errors, and anything unexpected) are returned
    as a failed RecordResult rather than raised.

    Parameters:
        task: Planned record and output path
        config: Render settings for the batch
        encoder: Matrix encoder; defaults to the qrcode backend
        dry_run: Render but do not write

    Returns:
        RecordResult describing the outcome

    Example:
        >>> result = process_record(task, RenderConfiguration())
        >>> print(result.success, result.output_path)
    """
    start_time = time.perf_counter()
    record = task.record

    try:
        require_valid(record)
        if task.duplicate or task.output_path is None:
            raise DuplicateOutputPathError(
                f"Output path already used by another record: {task.output_path}",
                details={"path": str(task.output_path)},
            )

        payload = build_vcard(record)
        data = render(payload, config, encoder=encoder)
        if not dry_run:
            write_atomic(task.output_path, data)

    except RecordError as e:
        LOGGER.warning(
            "record_failed",
            extra={"identity": record.label, "error_type": type(e).__name__, "reason": e.message},
        )
        return RecordResult(
            index=task.index,
            identity=record.label,
            output_path=task.output_path,
            success=False,
            error=e.message,
            error_type=type(e).__name__,
            elapsed_seconds=time.perf_counter() - start_time,
        )
    except Exception as e:
        LOGGER.exception(
            "record_failed_unexpectedly",
            extra={"identity": record.label, "error_type": type(e).__name__},
        )
        return RecordResult(
            index=task.index,
            identity=record.label,
            output_path=task.output_path,
            success=False,
            error=f"{type(e).__name__}: {e}",
            error_type=type(e).__name__,
            elapsed_seconds=time.perf_counter() - start_time,
        )

    elapsed = time.perf_counter() - start_time
    LOGGER.info(
        "record_written" if not dry_run else "record_rendered",
        extra={
            "identity": record.label,
            "path": str(task.output_path),
            "bytes": len(data),
            "elapsed_ms": int(elapsed * 1000),
        },
    )
    return RecordResult(
        index=task.index,
        identity=record.label,
        output_path=task.output_path,
        success=True,
        bytes_written=len(data),
        elapsed_seconds=elapsed,
    )
