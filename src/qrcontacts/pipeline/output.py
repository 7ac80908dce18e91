"""
Output naming and file writing.

Derives image filenames from records, resolves filename collisions within a
batch, and writes image files atomically so a failed write never leaves a
partial file behind.
"""

from __future__ import annotations

import contextlib
import os
import re
import tempfile
from collections import Counter
from pathlib import Path
from typing import Sequence

from qrcontacts.directory.models import AttributeRecord
from qrcontacts.errors import OutputDirectoryError, OutputWriteError
from qrcontacts.render import OutputFormat


DEFAULT_OUTPUT_DIR = "QR vCards"
FILE_MODE = 0o644

_UNSAFE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def sanitize_filename(name: str) -> str:
    """
    Replace characters that are not allowed in filenames with "_".

    Example:
        >>> sanitize_filename("R&D / Ops: Jane")
        'R&D _ Ops_ Jane'
    """
    return _UNSAFE.sub("_", name).strip().rstrip(".")


def output_filename(
    record: AttributeRecord,
    image_format: OutputFormat = OutputFormat.PNG,
    *,
    suffix: str | None = None,
) -> str:
    """
    Build the image filename for a record.

    Format: "{display name} - {given name} {surname} QR vCard.{ext}", with
    " [{suffix}]" before the extension when disambiguating.

    Parameters:
        record: Directory user
        image_format: Output format (sets the extension)
        suffix: Optional stable identifier appended on collision

    Returns:
        Sanitized filename (no directory component)

    Example:
        >>> output_filename(record)
        'Jane Doe - Jane Doe QR vCard.png'
    """
    stem = f"{record.display_name} - {record.given_name} {record.surname} QR vCard"
    if suffix:
        stem = f"{stem} [{suffix}]"
    return f"{sanitize_filename(stem)}.{OutputFormat(image_format).extension}"


def resolve_filenames(
    records: Sequence[AttributeRecord],
    image_format: OutputFormat = OutputFormat.PNG,
) -> list[str | None]:
    """
    Assign a unique filename to each record, in input order.

    Names are compared case-insensitively. Every record whose name is shared
    with another record gets its identity appended. If a name is still taken
    after that, the later record gets None (a duplicate output path).

    Returns:
        One filename (or None) per record
    """
    base = [output_filename(r, image_format) for r in records]
    counts = Counter(name.casefold() for name in base)

    claimed: set[str] = set()
    resolved: list[str | None] = []
    for record, name in zip(records, base):
        if counts[name.casefold()] > 1:
            name = output_filename(record, image_format, suffix=record.identity)
        key = name.casefold()
        if key in claimed:
            resolved.append(None)
            continue
        claimed.add(key)
        resolved.append(name)
    return resolved


def ensure_directory(path: Path) -> None:
    """
    Create the output directory (and parents) if needed.

    Raises:
        OutputDirectoryError: If the directory cannot be created
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputDirectoryError(
            f"Could not create output directory {path}: {e}", details={"path": str(path)}
        ) from e


def write_atomic(path: Path, data: bytes) -> None:
    """
    Write bytes to `path`, replacing any existing file.

    The data goes to a temporary file in the same directory which is then
    renamed over the target, so readers see either the old file or the
    complete new one.

    Raises:
        OutputWriteError: If the file cannot be written
    """
    tmp_name: str | None = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=".qrcontacts-", suffix=".tmp", dir=path.parent)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, FILE_MODE)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_name)
        raise OutputWriteError(f"Could not write {path}: {e}", details={"path": str(path)}) from e
