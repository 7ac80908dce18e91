from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import qrcode
from qrcode.exceptions import DataOverflowError
from qrcode.util import MODE_8BIT_BYTE, QRData

from qrcontacts.errors import EncodingCapacityError

# Rows of modules, True for dark.
Matrix = list[list[bool]]

LOGGER = logging.getLogger("qrcontacts.encoder")


class EccLevel(str, Enum):
    """QR error-correction tiers, from most capacity to most redundancy."""

    LOW = "low"
    MEDIUM = "medium"
    QUARTILE = "quartile"
    HIGH = "high"


QRCODE_ECC = {
    EccLevel.LOW: qrcode.constants.ERROR_CORRECT_L,
    EccLevel.MEDIUM: qrcode.constants.ERROR_CORRECT_M,
    EccLevel.QUARTILE: qrcode.constants.ERROR_CORRECT_Q,
    EccLevel.HIGH: qrcode.constants.ERROR_CORRECT_H,
}


class MatrixEncoder(Protocol):
    """Minimal interface for a matrix barcode encoder."""

    name: str

    def encode(self, data: bytes, ecc_level: EccLevel) -> Matrix:
        ...


@dataclass
class QrcodeEncoder:
    """QR encoder backed by the `qrcode` package.

    The data is added as a single 8-bit byte segment so the payload bytes are
    stored exactly as given. The symbol version is the smallest that fits.
    The returned matrix has no quiet zone; the renderer adds it.
    """

    name: str = "qrcode"

    def encode(self, data: bytes, ecc_level: EccLevel) -> Matrix:
        """Encode bytes into a module matrix.

        Raises:
            EncodingCapacityError: If the data exceeds version 40 capacity at `ecc_level`
        """
        qr = qrcode.QRCode(
            version=None,
            error_correction=QRCODE_ECC[EccLevel(ecc_level)],
            border=0,
        )
        qr.add_data(QRData(data, mode=MODE_8BIT_BYTE))
        try:
            # qrcode 7 raises DataOverflowError; qrcode 8 rejects version 41 with ValueError
            qr.make(fit=True)
        except (DataOverflowError, ValueError) as e:
            raise EncodingCapacityError(
                f"Payload of {len(data)} bytes exceeds QR capacity at "
                f"{EccLevel(ecc_level).value} error correction",
                details={"bytes": len(data), "ecc_level": EccLevel(ecc_level).value},
            ) from e

        LOGGER.debug(
            "qr_encoded",
            extra={"bytes": len(data), "version": qr.version, "ecc_level": EccLevel(ecc_level).value},
        )
        return [[bool(module) for module in row] for row in qr.get_matrix()]
