"""
Directory user records and the sources that produce them.

Basic usage:
    >>> from qrcontacts.directory import FileDirectorySource, validate_record
    >>>
    >>> source = FileDirectorySource("exports/users.json")
    >>> for record in source.fetch_records():
    ...     if not validate_record(record):
    ...         print(record.display_name)

Querying LDAP:
    >>> from qrcontacts.directory import LdapDirectorySource
    >>>
    >>> source = LdapDirectorySource(
    ...     url="ldaps://dc01.example.org",
    ...     search_base="ou=Staff,dc=example,dc=org",
    ...     bind_dn="cn=reader,dc=example,dc=org",
    ...     password="...",
    ... )
    >>> records = source.fetch_records()
"""

from .models import (
    AttributeRecord,
    LDAP_ATTRIBUTES,
)
from .loaders import (
    DirectorySource,
    FileDirectorySource,
    load_records,
    load_text,
    parse_records,
    parse_json_records,
    parse_csv_records,
)
from .ldap import (
    DEFAULT_SEARCH_FILTER,
    LdapDirectorySource,
    entry_to_record,
)
from .validation import (
    REQUIRED_FIELDS,
    ValidationIssue,
    validate_record,
    require_valid,
)

__all__ = [
    # Models
    "AttributeRecord",
    "LDAP_ATTRIBUTES",
    # Sources
    "DirectorySource",
    "FileDirectorySource",
    "LdapDirectorySource",
    "DEFAULT_SEARCH_FILTER",
    "entry_to_record",
    # Loaders
    "load_records",
    "load_text",
    "parse_records",
    "parse_json_records",
    "parse_csv_records",
    # Validation
    "REQUIRED_FIELDS",
    "ValidationIssue",
    "validate_record",
    "require_valid",
]
