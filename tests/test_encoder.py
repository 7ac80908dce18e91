"""Tests for the qrcode-backed matrix encoder."""

import pytest
import qrcode

from qrcontacts.encoder import EccLevel, QrcodeEncoder
from qrcontacts.errors import EncodingCapacityError


class TestQrcodeEncoder:
    """Tests for QrcodeEncoder.encode()."""

    def test_returns_square_bool_matrix(self):
        """Test that the matrix is square with a valid QR size."""
        matrix = QrcodeEncoder().encode(b"BEGIN:VCARD", EccLevel.MEDIUM)

        size = len(matrix)
        assert all(len(row) == size for row in matrix)
        assert (size - 21) % 4 == 0
        assert all(isinstance(m, bool) for row in matrix for m in row)

    def test_no_quiet_zone(self):
        """Test that the top-left finder pattern starts at (0, 0)."""
        matrix = QrcodeEncoder().encode(b"hello", EccLevel.LOW)
        assert matrix[0][:7] == [True] * 7

    def test_deterministic(self):
        """Test same input, same matrix."""
        encoder = QrcodeEncoder()
        assert encoder.encode(b"abc", EccLevel.HIGH) == encoder.encode(b"abc", EccLevel.HIGH)

    def test_higher_ecc_needs_larger_symbol(self):
        """Test that more redundancy grows the symbol for the same data."""
        data = b"x" * 200
        low = QrcodeEncoder().encode(data, EccLevel.LOW)
        high = QrcodeEncoder().encode(data, EccLevel.HIGH)
        assert len(high) > len(low)

    def test_accepts_string_level(self):
        """Test that plain level names are accepted."""
        matrix = QrcodeEncoder().encode(b"abc", "quartile")
        assert len(matrix) >= 21

    def test_largest_payload_at_high(self):
        """Test that 1273 bytes (version 40-H capacity) still fits."""
        matrix = QrcodeEncoder().encode(b"a" * 1273, EccLevel.HIGH)
        assert len(matrix) == 177

    def test_over_capacity_raises(self):
        """Test that one byte over capacity raises EncodingCapacityError."""
        with pytest.raises(EncodingCapacityError) as excinfo:
            QrcodeEncoder().encode(b"a" * 1274, EccLevel.HIGH)

        assert excinfo.value.details == {"bytes": 1274, "ecc_level": "high"}

    def test_invalid_version_error_is_capacity_error(self, monkeypatch):
        """Test the ValueError qrcode 8 raises for version 41 maps to EncodingCapacityError."""

        def reject_version(self, fit=True):
            raise ValueError("Invalid version (was 41, expected 1 to 40)")

        monkeypatch.setattr(qrcode.QRCode, "make", reject_version)
        with pytest.raises(EncodingCapacityError) as excinfo:
            QrcodeEncoder().encode(b"a" * 10, EccLevel.LOW)

        assert isinstance(excinfo.value.__cause__, ValueError)

    def test_capacity_depends_on_level(self):
        """Test that data too large for high fits at low."""
        data = b"a" * 2000
        with pytest.raises(EncodingCapacityError):
            QrcodeEncoder().encode(data, EccLevel.HIGH)
        assert len(QrcodeEncoder().encode(data, EccLevel.LOW)) <= 177
