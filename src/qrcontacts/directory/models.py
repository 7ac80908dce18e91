"""
Pydantic model for directory user records.

An AttributeRecord is one user snapshot taken at query time. It accepts both
Python field names and the directory attribute names used by Active Directory
style schemas, so LDAP entries and file exports can be validated directly.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


# Directory attribute name for each record field, in payload order.
LDAP_ATTRIBUTES: dict[str, str] = {
    "display_name": "displayName",
    "given_name": "givenName",
    "surname": "sn",
    "company": "company",
    "email": "mail",
    "work_phone": "telephoneNumber",
    "mobile_phone": "mobile",
    "title": "title",
}


def _text(value: Any) -> str:
    """Normalize a raw attribute value to stripped text."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        # Multi-valued attribute: first value wins
        return _text(value[0]) if value else ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace").strip()
    return str(value).strip()


class AttributeRecord(BaseModel):
    """
    Normalized view of one directory user.

    All eight contact fields are text and may be empty; absent attributes
    become empty strings. `identity` is a stable directory identifier (a
    distinguished name for LDAP) used in reports and to disambiguate
    colliding filenames.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    identity: str = Field(
        default="",
        validation_alias=AliasChoices("identity", "distinguishedName", "dn", "id"),
    )
    display_name: str = Field(
        default="", validation_alias=AliasChoices("display_name", "displayName")
    )
    given_name: str = Field(
        default="", validation_alias=AliasChoices("given_name", "givenName")
    )
    surname: str = Field(default="", validation_alias=AliasChoices("surname", "sn"))
    company: str = Field(default="", validation_alias=AliasChoices("company"))
    email: str = Field(default="", validation_alias=AliasChoices("email", "mail"))
    work_phone: str = Field(
        default="", validation_alias=AliasChoices("work_phone", "telephoneNumber")
    )
    mobile_phone: str = Field(
        default="", validation_alias=AliasChoices("mobile_phone", "mobile")
    )
    title: str = Field(default="", validation_alias=AliasChoices("title"))

    @field_validator("*", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> str:
        return _text(value)

    @property
    def label(self) -> str:
        """Human-readable identity for logs and reports."""
        if self.identity:
            return self.identity
        name = f"{self.given_name} {self.surname}".strip()
        return self.display_name or name or "<unnamed record>"
