"""
Validation for directory user records.

Checks only what the contact-card pipeline needs: the fields that make up the
output filename. This is not directory schema validation.
"""

from __future__ import annotations

from dataclasses import dataclass

from qrcontacts.errors import MissingFieldError

from .models import AttributeRecord


# Fields that must be non-empty to build an output filename.
REQUIRED_FIELDS: tuple[str, ...] = ("given_name", "surname")


@dataclass(frozen=True)
class ValidationIssue:
    """
    Represents a validation problem.

    Attributes:
        field: Record field name (e.g., "surname")
        message: Human-readable description of the issue
    """

    field: str
    message: str


def validate_record(record: AttributeRecord) -> list[ValidationIssue]:
    """
    Validate a record for the contact-card pipeline.

    Parameters:
        record: Record to validate

    Returns:
        List of validation issues (empty if valid)

    Example:
        >>> issues = validate_record(record)
        >>> for issue in issues:
        ...     print(f"{issue.field}: {issue.message}")
    """
    issues: list[ValidationIssue] = []

    for name in REQUIRED_FIELDS:
        if not getattr(record, name):
            issues.append(ValidationIssue(name, f"Missing {name.replace('_', ' ')}."))

    return issues


def require_valid(record: AttributeRecord) -> None:
    """
    Raise MissingFieldError if the record has validation issues.

    Raises:
        MissingFieldError: With the missing field names in `details["fields"]`
    """
    issues = validate_record(record)
    if issues:
        fields = [issue.field for issue in issues]
        raise MissingFieldError(
            "; ".join(issue.message for issue in issues),
            details={"fields": fields},
        )
