"""
Batch planning.

Turns the full record list into processing tasks, one per record, with every
output path decided up front so concurrent workers never race for a filename.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from qrcontacts.directory.models import AttributeRecord
from qrcontacts.directory.validation import validate_record
from qrcontacts.render import OutputFormat

from .output import output_filename, resolve_filenames


@dataclass(frozen=True)
class RecordTask:
    """
    Represents a single record processing task.

    Attributes:
        index: Position of the record in source order
        record: Directory user
        output_path: Where the image should be written (None if the record
            cannot be named)
        duplicate: True when another record already claimed `output_path`
    """

    index: int
    record: AttributeRecord
    output_path: Path | None
    duplicate: bool = False


def prepare_tasks(
    records: Sequence[AttributeRecord],
    output_dir: Path,
    image_format: OutputFormat = OutputFormat.PNG,
) -> list[RecordTask]:
    """
    Plan one task per record, in source order.

    Only records that pass validation take part in filename resolution, so
    an unnamed record never forces a suffix onto a valid one. Colliding
    names are disambiguated with the record identity; unresolvable
    collisions are marked as duplicates.

    Parameters:
        records: Records from the directory source
        output_dir: Directory for image files
        image_format: Output format (sets the extension)

    Returns:
        List of RecordTask objects

    Example:
        >>> tasks = prepare_tasks(records, Path("QR vCards"))
        >>> for task in tasks:
        ...     print(f"{task.record.label} -> {task.output_path}")
    """
    valid = [i for i, record in enumerate(records) if not validate_record(record)]
    names = resolve_filenames([records[i] for i in valid], image_format)
    planned = dict(zip(valid, names))

    tasks: list[RecordTask] = []
    for index, record in enumerate(records):
        if index not in planned:
            tasks.append(RecordTask(index=index, record=record, output_path=None))
            continue

        name = planned[index]
        if name is None:
            wanted = output_filename(record, image_format, suffix=record.identity)
            tasks.append(
                RecordTask(index=index, record=record, output_path=output_dir / wanted, duplicate=True)
            )
        else:
            tasks.append(RecordTask(index=index, record=record, output_path=output_dir / name))

    return tasks
