"""Tests for the LDAP directory source, using the ldap3 mock strategy."""

import pytest
from ldap3 import MOCK_SYNC, Connection, Server
from ldap3.core.exceptions import LDAPBindError

from qrcontacts.directory import LdapDirectorySource, entry_to_record
from qrcontacts.errors import DirectorySourceError


READER_DN = "cn=reader,dc=acme,dc=test"
STAFF_BASE = "ou=staff,dc=acme,dc=test"


def mock_connection() -> Connection:
    server = Server("fake_directory")
    conn = Connection(server, user=READER_DN, password="secret", client_strategy=MOCK_SYNC)
    conn.strategy.add_entry(READER_DN, {"userPassword": "secret", "sn": "reader"})
    conn.strategy.add_entry(
        f"cn=Jane Doe,{STAFF_BASE}",
        {
            "objectClass": ["top", "person", "user"],
            "displayName": "Jane Doe",
            "givenName": "Jane",
            "sn": "Doe",
            "company": "Acme",
            "mail": "jane@acme.test",
            "telephoneNumber": "+1-555-0100",
            "mobile": "+1-555-0101",
            "title": "Engineer",
        },
    )
    conn.strategy.add_entry(
        f"cn=John Roe,{STAFF_BASE}",
        {
            "objectClass": ["top", "person", "user"],
            "displayName": "John Roe",
            "givenName": "John",
            "sn": "Roe",
            "company": "Acme",
        },
    )
    conn.bind()
    return conn


class TestEntryToRecord:
    """Tests for entry_to_record() function."""

    def test_maps_attributes_case_insensitively(self):
        """Test that attribute names are matched regardless of case."""
        record = entry_to_record(
            "cn=Jane Doe,ou=staff,dc=acme,dc=test",
            {"GIVENNAME": ["Jane"], "SN": ["Doe"], "Mail": ["jane@acme.test"]},
        )

        assert record.identity == "cn=Jane Doe,ou=staff,dc=acme,dc=test"
        assert record.given_name == "Jane"
        assert record.surname == "Doe"
        assert record.email == "jane@acme.test"
        assert record.mobile_phone == ""


class TestLdapDirectorySource:
    """Tests for LdapDirectorySource.fetch_records()."""

    def test_fetches_all_person_entries(self):
        """Test a single search returns complete records for every user."""
        source = LdapDirectorySource(
            url="ldap://fake_directory",
            search_base=STAFF_BASE,
            search_filter="(objectClass=person)",
            connection_factory=mock_connection,
        )
        records = sorted(source.fetch_records(), key=lambda r: r.surname)

        assert [r.display_name for r in records] == ["Jane Doe", "John Roe"]
        jane = records[0]
        assert jane.identity == f"cn=Jane Doe,{STAFF_BASE}"
        assert jane.company == "Acme"
        assert jane.work_phone == "+1-555-0100"
        assert jane.title == "Engineer"
        assert records[1].email == ""

    def test_filter_limits_results(self):
        """Test that the search filter selects entries."""
        source = LdapDirectorySource(
            url="ldap://fake_directory",
            search_base=STAFF_BASE,
            search_filter="(&(objectClass=person)(mail=*))",
            connection_factory=mock_connection,
        )
        records = source.fetch_records()

        assert len(records) == 1
        assert records[0].given_name == "Jane"

    def test_bind_failure_is_source_error(self):
        """Test that connection/bind errors are fatal source errors."""
        def failing_factory():
            raise LDAPBindError("invalid credentials")

        source = LdapDirectorySource(
            url="ldap://fake_directory",
            search_base=STAFF_BASE,
            connection_factory=failing_factory,
        )
        with pytest.raises(DirectorySourceError, match="Could not connect"):
            source.fetch_records()

    def test_unknown_search_base_is_source_error(self):
        """Test that a missing search base is a fatal source error."""
        source = LdapDirectorySource(
            url="ldap://fake_directory",
            search_base="ou=nowhere,dc=acme,dc=test",
            search_filter="(objectClass=person)",
            connection_factory=mock_connection,
        )
        with pytest.raises(DirectorySourceError):
            source.fetch_records()
