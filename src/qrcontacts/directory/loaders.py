"""
Loading directory records from exported files.

Provides functions to load a JSON or CSV export of directory users from a
local path or an HTTP(S) URL and parse it into AttributeRecord models, plus
the DirectorySource interface the batch pipeline consumes.
"""

from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol
from urllib.parse import urlsplit

import httpx
from pydantic import ValidationError

from qrcontacts.errors import DirectorySourceError

from .models import AttributeRecord


LOGGER = logging.getLogger("qrcontacts.directory")


class DirectorySource(Protocol):
    """Minimal interface for a directory of user records."""

    name: str

    def fetch_records(self) -> list[AttributeRecord]:
        ...


def is_url(path_or_url: str) -> bool:
    return path_or_url.startswith("http://") or path_or_url.startswith("https://")


def fetch_text(url: str, *, timeout: float = 10.0) -> str:
    """
    Fetch text from URL.

    Parameters:
        url: HTTP(S) URL to fetch
        timeout: Request timeout in seconds

    Returns:
        Response body as text

    Raises:
        httpx.HTTPError: If request fails
    """
    with httpx.Client(timeout=timeout, follow_redirects=True) as client:
        resp = client.get(url)
        resp.raise_for_status()
        return resp.text


def load_text(path_or_url: str) -> str:
    """
    Load text from file path or URL.

    Raises:
        FileNotFoundError: If file path doesn't exist
        httpx.HTTPError: If URL fetch fails
    """
    if is_url(path_or_url):
        return fetch_text(path_or_url)

    p = Path(path_or_url).expanduser()
    return p.read_text(encoding="utf-8-sig")


def export_format(path_or_url: str) -> str:
    """Return "csv" or "json" based on the path (or URL path) suffix."""
    suffix = Path(urlsplit(path_or_url).path).suffix.lower()
    return "csv" if suffix == ".csv" else "json"


def _with_identity(record: AttributeRecord, source: str, position: int) -> AttributeRecord:
    if record.identity:
        return record
    return record.model_copy(update={"identity": f"{source}#{position}"})


def parse_records(rows: list[dict[str, Any]], *, source: str = "record") -> list[AttributeRecord]:
    """
    Parse raw user rows into AttributeRecord models.

    Rows without an identity column get a positional identity
    ("<source>#<n>", 1-based) so every record can be named in reports.

    Parameters:
        rows: One dict per user, keyed by field or directory attribute name
        source: Prefix for positional identities

    Returns:
        Records in input order

    Raises:
        pydantic.ValidationError: If a row is not a mapping
    """
    records: list[AttributeRecord] = []
    for position, row in enumerate(rows, start=1):
        record = AttributeRecord.model_validate(row)
        records.append(_with_identity(record, source, position))
    return records


def parse_json_records(text: str, *, source: str = "record") -> list[AttributeRecord]:
    """
    Parse a JSON export: either a list of users or {"users": [...]}.

    Raises:
        json.JSONDecodeError: If JSON is invalid
        ValueError: If the document has neither shape
    """
    data = json.loads(text)
    if isinstance(data, dict) and isinstance(data.get("users"), list):
        data = data["users"]
    if not isinstance(data, list):
        raise ValueError("Expected a list of users or an object with a 'users' list")
    return parse_records(data, source=source)


def parse_csv_records(text: str, *, source: str = "record") -> list[AttributeRecord]:
    """Parse a CSV export with one header row of field or attribute names."""
    reader = csv.DictReader(io.StringIO(text))
    return parse_records(list(reader), source=source)


def load_records(path_or_url: str) -> list[AttributeRecord]:
    """
    Load and parse a directory export from path or URL.

    Example:
        >>> records = load_records("exports/users.json")
        >>> print(len(records))
    """
    source = Path(urlsplit(path_or_url).path).name or path_or_url
    text = load_text(path_or_url)
    if export_format(path_or_url) == "csv":
        return parse_csv_records(text, source=source)
    return parse_json_records(text, source=source)


@dataclass
class FileDirectorySource:
    """Directory source backed by a JSON or CSV export (path or URL)."""

    location: str
    name: str = "file"

    def fetch_records(self) -> list[AttributeRecord]:
        """
        Load every record in the export.

        Raises:
            DirectorySourceError: If the export cannot be read or parsed
        """
        try:
            records = load_records(self.location)
        except (OSError, httpx.HTTPError, ValueError, ValidationError) as e:
            raise DirectorySourceError(
                f"Could not load directory export {self.location}: {e}",
                details={"location": self.location},
            ) from e

        LOGGER.info(
            "directory_loaded",
            extra={"source": self.name, "location": self.location, "records": len(records)},
        )
        return records
