"""Tests for directory record validation."""

import pytest

from qrcontacts.directory import AttributeRecord, require_valid, validate_record
from qrcontacts.errors import MissingFieldError


class TestValidateRecord:
    """Tests for validate_record() function."""

    def test_valid_record_passes(self, jane):
        """Test that a complete record has no issues."""
        assert validate_record(jane) == []

    def test_empty_optional_fields_pass(self):
        """Test that only name fields are required."""
        record = AttributeRecord(given_name="Jane", surname="Doe")
        assert validate_record(record) == []

    def test_missing_surname(self):
        """Test that an empty surname is reported."""
        record = AttributeRecord(display_name="Jane", given_name="Jane")
        issues = validate_record(record)

        assert len(issues) == 1
        assert issues[0].field == "surname"

    def test_missing_both_names(self):
        """Test that both name fields are reported."""
        issues = validate_record(AttributeRecord(display_name="Backup Service"))
        assert [i.field for i in issues] == ["given_name", "surname"]


class TestRequireValid:
    """Tests for require_valid() function."""

    def test_passes_for_valid_record(self, jane):
        """Test no exception for a valid record."""
        require_valid(jane)

    def test_raises_missing_field_error(self):
        """Test that MissingFieldError lists the missing fields."""
        with pytest.raises(MissingFieldError) as excinfo:
            require_valid(AttributeRecord(surname="Doe"))

        assert excinfo.value.details["fields"] == ["given_name"]
        assert "given name" in excinfo.value.message
