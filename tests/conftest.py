from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

import pytest

from qrcontacts.directory import AttributeRecord
from qrcontacts.encoder import EccLevel, QrcodeEncoder
from qrcontacts.errors import EncodingCapacityError


@dataclass
class FakeEncoder:
    """Matrix encoder returning a fixed matrix; rejects data over `capacity` bytes."""

    matrix: list[list[bool]] = field(
        default_factory=lambda: [[True, False, True], [False, True, False], [True, True, False]]
    )
    capacity: int | None = None
    on_encode: Callable[[], None] | None = None
    name: str = "fake"
    calls: list[tuple[bytes, EccLevel]] = field(default_factory=list)

    def encode(self, data: bytes, ecc_level: EccLevel) -> list[list[bool]]:
        self.calls.append((data, ecc_level))
        if self.on_encode is not None:
            self.on_encode()
        if self.capacity is not None and len(data) > self.capacity:
            raise EncodingCapacityError(f"{len(data)} bytes over fake capacity {self.capacity}")
        return [list(row) for row in self.matrix]


@dataclass
class RecordingEncoder:
    """Real qrcode encoder that remembers the payload bytes it was given."""

    name: str = "recording"
    calls: list[bytes] = field(default_factory=list)

    def encode(self, data: bytes, ecc_level: EccLevel) -> list[list[bool]]:
        self.calls.append(data)
        return QrcodeEncoder().encode(data, ecc_level)


@dataclass
class ListSource:
    """Directory source over an in-memory record list."""

    records: list[AttributeRecord]
    name: str = "list"

    def fetch_records(self) -> list[AttributeRecord]:
        return list(self.records)


@pytest.fixture
def jane() -> AttributeRecord:
    return AttributeRecord(
        identity="CN=Jane Doe,OU=Staff,DC=acme,DC=test",
        display_name="Jane Doe",
        given_name="Jane",
        surname="Doe",
        company="Acme",
        email="jane@acme.test",
        work_phone="+1-555-0100",
        mobile_phone="+1-555-0101",
        title="Engineer",
    )


@pytest.fixture
def fake_encoder() -> FakeEncoder:
    return FakeEncoder()


@pytest.fixture
def make_fake_encoder() -> Callable[..., FakeEncoder]:
    """Factory for fake encoders with a capacity limit or an encode hook."""
    return FakeEncoder


@pytest.fixture
def recording_encoder() -> RecordingEncoder:
    return RecordingEncoder()


@pytest.fixture
def list_source() -> Callable[[list[AttributeRecord]], ListSource]:
    """Factory wrapping a record list as a directory source."""
    return ListSource
