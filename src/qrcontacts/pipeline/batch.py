"""
Batch orchestration.

Pulls every record from a directory source, plans output paths, and runs the
per-record worker sequentially or on a bounded thread pool. A failing record
never stops the batch; it becomes an entry in the BatchReport.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from qrcontacts.directory.loaders import DirectorySource
from qrcontacts.encoder import MatrixEncoder
from qrcontacts.errors import ConfigurationError
from qrcontacts.render import RenderConfiguration

from .coordinator import RecordTask, prepare_tasks
from .output import ensure_directory
from .worker import RecordResult, process_record


LOGGER = logging.getLogger("qrcontacts.pipeline")


@dataclass(frozen=True)
class RecordFailure:
    """A record that did not produce an image, and why."""

    identity: str
    reason: str
    error_type: str | None = None


@dataclass
class BatchReport:
    """
    Outcome of a batch run.

    Attributes:
        total: Records returned by the source
        processed: Records whose pipeline ran (succeeded or failed)
        succeeded: Records that produced an image
        failures: Failed records in source order
        written: Image paths produced, in source order
        cancelled: Records never started because the run was cancelled
        bytes_written: Image bytes produced by successful records (rendered only, in a dry run)
        record_seconds: Per-record processing time summed over processed records
        elapsed_seconds: Wall-clock time of the run
    """

    total: int = 0
    processed: int = 0
    succeeded: int = 0
    failures: list[RecordFailure] = field(default_factory=list)
    written: list[Path] = field(default_factory=list)
    cancelled: int = 0
    bytes_written: int = 0
    record_seconds: float = 0.0
    elapsed_seconds: float = 0.0

    @property
    def failed(self) -> int:
        return len(self.failures)


def _collect(results: list[RecordResult | None]) -> BatchReport:
    report = BatchReport(total=len(results))
    for result in results:
        if result is None:
            report.cancelled += 1
            continue
        report.processed += 1
        report.record_seconds += result.elapsed_seconds
        if result.success:
            report.succeeded += 1
            report.bytes_written += result.bytes_written
            if result.output_path is not None:
                report.written.append(result.output_path)
        else:
            report.failures.append(
                RecordFailure(
                    identity=result.identity,
                    reason=result.error or "unknown error",
                    error_type=result.error_type,
                )
            )
    return report


def run_batch(
    source: DirectorySource,
    config: RenderConfiguration,
    output_dir: Path,
    *,
    encoder: MatrixEncoder | None = None,
    workers: int = 1,
    dry_run: bool = False,
    cancel_event: threading.Event | None = None,
) -> BatchReport:
    """
    Generate one QR vCard image per directory record.

    Parameters:
        source: Directory source to read records from
        config: Render settings shared by every record
        output_dir: Directory for image files (created if missing)
        encoder: Matrix encoder; defaults to the qrcode backend
        workers: Worker threads; 1 processes records in order on this thread
        dry_run: Render every record but write nothing
        cancel_event: When set, no further records are started

    Returns:
        BatchReport with counts, failures and written paths

    Raises:
        ConfigurationError: If `workers` is less than 1
        DirectorySourceError: If the source cannot be queried
        OutputDirectoryError: If the output directory cannot be created

    Example:
        >>> report = run_batch(FileDirectorySource("users.json"), RenderConfiguration(), Path("out"))
        >>> print(f"{report.succeeded}/{report.total} written")
    """
    if workers < 1:
        raise ConfigurationError(f"workers must be at least 1, got {workers}")

    start_time = time.perf_counter()
    records = source.fetch_records()

    if not dry_run:
        ensure_directory(output_dir)

    tasks = prepare_tasks(records, output_dir, config.image_format)
    LOGGER.info(
        "batch_started",
        extra={"records": len(tasks), "output_dir": str(output_dir), "workers": workers},
    )

    def cancelled() -> bool:
        return cancel_event is not None and cancel_event.is_set()

    def run_task(task: RecordTask) -> RecordResult | None:
        if cancelled():
            return None
        return process_record(task, config, encoder=encoder, dry_run=dry_run)

    results: list[RecordResult | None] = [None] * len(tasks)
    if workers == 1:
        for task in tasks:
            results[task.index] = run_task(task)
    else:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="qrcontacts") as pool:
            futures = {pool.submit(run_task, task): task.index for task in tasks}
            for future in as_completed(futures):
                results[futures[future]] = future.result()

    report = _collect(results)
    report.elapsed_seconds = time.perf_counter() - start_time

    if report.cancelled:
        LOGGER.warning("batch_cancelled", extra={"cancelled": report.cancelled})
    LOGGER.info(
        "batch_finished",
        extra={
            "records": report.total,
            "succeeded": report.succeeded,
            "failed": report.failed,
            "cancelled": report.cancelled,
            "bytes": report.bytes_written,
            "elapsed_ms": int(report.elapsed_seconds * 1000),
        },
    )
    return report
