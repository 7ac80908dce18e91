"""
LDAP / Active Directory directory source.

Runs one paged subtree search per batch and returns every matching entry as
an AttributeRecord, with all contact attributes fetched in the same query.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from ldap3 import NONE, SUBTREE, Connection, Server
from ldap3.core.exceptions import LDAPException

from qrcontacts.errors import DirectorySourceError

from .models import LDAP_ATTRIBUTES, AttributeRecord


DEFAULT_SEARCH_FILTER = "(&(objectCategory=person)(objectClass=user)(givenName=*)(sn=*))"
PAGED_RESULTS_OID = "1.2.840.113556.1.4.319"

LOGGER = logging.getLogger("qrcontacts.directory")


def entry_to_record(dn: str, attributes: dict[str, Any]) -> AttributeRecord:
    """Build a record from one search result entry (attribute names are case-insensitive)."""
    lowered = {k.lower(): v for k, v in attributes.items()}
    row: dict[str, Any] = {
        attr: lowered.get(attr.lower()) for attr in LDAP_ATTRIBUTES.values()
    }
    row["dn"] = dn
    return AttributeRecord.model_validate(row)


@dataclass
class LdapDirectorySource:
    """
    Directory source backed by an LDAP server.

    Attributes:
        url: Server URL (e.g., "ldaps://dc01.example.org")
        search_base: Base DN limiting the search scope
        search_filter: LDAP filter selecting user entries
        bind_dn: Bind user; anonymous bind when None
        password: Bind password
        page_size: Simple paged results page size
        connection_factory: Returns a bound Connection (used by tests)
    """

    url: str
    search_base: str
    search_filter: str = DEFAULT_SEARCH_FILTER
    bind_dn: str | None = None
    password: str | None = None
    page_size: int = 500
    timeout: float = 10.0
    name: str = "ldap"
    connection_factory: Callable[[], Connection] | None = field(default=None, repr=False)

    def connect(self) -> Connection:
        if self.connection_factory is not None:
            return self.connection_factory()
        server = Server(self.url, get_info=NONE, connect_timeout=self.timeout)
        return Connection(
            server,
            user=self.bind_dn,
            password=self.password,
            auto_bind=True,
            read_only=True,
            receive_timeout=self.timeout,
        )

    def fetch_records(self) -> list[AttributeRecord]:
        """
        Search the directory and return all matching users in server order.

        Raises:
            DirectorySourceError: On connection, bind or search failure
        """
        try:
            conn = self.connect()
        except LDAPException as e:
            raise DirectorySourceError(
                f"Could not connect to {self.url}: {e}", details={"url": self.url}
            ) from e

        try:
            records = list(self._search(conn))
        except LDAPException as e:
            raise DirectorySourceError(
                f"LDAP search failed under {self.search_base}: {e}",
                details={"url": self.url, "search_base": self.search_base},
            ) from e
        finally:
            conn.unbind()

        LOGGER.info(
            "directory_loaded",
            extra={
                "source": self.name,
                "search_base": self.search_base,
                "records": len(records),
            },
        )
        return records

    def _search(self, conn: Connection):
        cookie = None
        while True:
            conn.search(
                search_base=self.search_base,
                search_filter=self.search_filter,
                search_scope=SUBTREE,
                attributes=list(LDAP_ATTRIBUTES.values()),
                paged_size=self.page_size,
                paged_cookie=cookie,
            )
            result = conn.result or {}
            if result.get("result", 0) != 0:
                raise DirectorySourceError(
                    f"LDAP search under {self.search_base} returned "
                    f"{result.get('description')}: {result.get('message')}",
                    details={"search_base": self.search_base, "result": result.get("result")},
                )

            for entry in conn.response or []:
                if entry.get("type") != "searchResEntry":
                    continue
                yield entry_to_record(entry["dn"], entry.get("attributes", {}))

            controls = result.get("controls") or {}
            cookie = controls.get(PAGED_RESULTS_OID, {}).get("value", {}).get("cookie")
            if not cookie:
                break
