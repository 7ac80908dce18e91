"""
vCard 3.0 payload construction.

Turns an AttributeRecord into the text of a contact card. Values are escaped
per RFC 2426 so directory data cannot break the line structure.
"""

from __future__ import annotations

import re

from qrcontacts.directory.models import AttributeRecord


VCARD_VERSION = "3.0"
LINE_BREAK = "\r\n"

_NEWLINES = re.compile(r"\r\n|\r|\n")


def escape_value(value: str) -> str:
    """
    Escape a text value for a vCard property.

    Example:
        >>> escape_value("Smith, Jones; Partners")
        'Smith\\\\, Jones\\\\; Partners'
    """
    value = value.replace("\\", "\\\\")
    value = value.replace(",", "\\,").replace(";", "\\;")
    return _NEWLINES.sub("\\\\n", value)


def build_vcard(record: AttributeRecord) -> str:
    """
    Build the vCard text for a record.

    Line order and property names are fixed. Empty fields keep their line
    with an empty value (e.g. "EMAIL:").

    Parameters:
        record: Directory user

    Returns:
        vCard text with CRLF line endings (no trailing line break)
    """
    e = escape_value
    lines = [
        "BEGIN:VCARD",
        f"VERSION:{VCARD_VERSION}",
        f"N:{e(record.surname)};{e(record.given_name)}",
        f"FN:{e(record.display_name)}",
        f"ORG:{e(record.company)}",
        f"EMAIL:{e(record.email)}",
        f"TEL;TYPE=WORK,VOICE:{e(record.work_phone)}",
        f"TEL;TYPE=CELL:{e(record.mobile_phone)}",
        f"TITLE:{e(record.title)}",
        "END:VCARD",
    ]
    return LINE_BREAK.join(lines)


def payload_bytes(payload: str) -> bytes:
    return payload.encode("utf-8")
