"""
QR rendering for contact payloads.

A RenderConfiguration is an immutable value passed to every render call; there
is no process-wide palette or scale. Rendering encodes the payload bytes with
a MatrixEncoder and draws the module matrix as PNG or SVG. PNG rows are
streamed to the writer one at a time, so the full raster is never held in
memory.
"""

from __future__ import annotations

import io
from enum import Enum
from typing import Annotated, Any, BinaryIO, Iterator

import png
from PIL import ImageColor
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from qrcontacts.encoder import EccLevel, Matrix, MatrixEncoder, QrcodeEncoder
from qrcontacts.errors import ConfigurationError
from qrcontacts.vcard import payload_bytes


MIN_SCALE = 10
MAX_SCALE = 2000
DEFAULT_QUIET_ZONE = 4  # modules, as required by ISO/IEC 18004

Channel = Annotated[int, Field(ge=0, le=255)]
RGB = tuple[Channel, Channel, Channel]

_ECC_SHORTHAND = {"l": "low", "m": "medium", "q": "quartile", "h": "high"}


class OutputFormat(str, Enum):
    PNG = "png"
    SVG = "svg"

    @property
    def extension(self) -> str:
        return self.value


def parse_color(value: Any) -> Any:
    """
    Parse a color option into an RGB triple.

    Accepts "r,g,b", any string Pillow's ImageColor understands ("#1a2b3c",
    "navy", "rgb(0,0,128)"), or a sequence of three ints. Range checks are
    left to the model.

    Raises:
        ValueError: If the string cannot be parsed or carries an alpha channel
    """
    if isinstance(value, str):
        text = value.strip()
        if "," in text and not text.lower().startswith(("rgb", "hs")):
            parts = [p.strip() for p in text.split(",")]
            if len(parts) != 3:
                raise ValueError(f"Expected three comma-separated channels, got {value!r}")
            return tuple(int(p) for p in parts)
        rgb = ImageColor.getrgb(text)
        if len(rgb) != 3:
            raise ValueError(f"Alpha channel not supported: {value!r}")
        return rgb
    if isinstance(value, list):
        return tuple(value)
    return value


def color_hex(rgb: tuple[int, int, int]) -> str:
    return "#{:02x}{:02x}{:02x}".format(*rgb)


class RenderConfiguration(BaseModel):
    """
    Settings shared by every record in a batch.

    Attributes:
        scale: Pixels per module (10-2000)
        ecc_level: Error-correction tier
        dark_color: RGB for dark modules
        light_color: RGB for light modules and the quiet zone
        image_format: png or svg
        quiet_zone: Light border width in modules
    """

    model_config = ConfigDict(frozen=True)

    scale: int = Field(default=MIN_SCALE, ge=MIN_SCALE, le=MAX_SCALE)
    ecc_level: EccLevel = EccLevel.MEDIUM
    dark_color: RGB = (0, 0, 0)
    light_color: RGB = (255, 255, 255)
    image_format: OutputFormat = OutputFormat.PNG
    quiet_zone: int = Field(default=DEFAULT_QUIET_ZONE, ge=0, le=16)

    @field_validator("dark_color", "light_color", mode="before")
    @classmethod
    def _parse_color(cls, value: Any) -> Any:
        return parse_color(value)

    @field_validator("ecc_level", mode="before")
    @classmethod
    def _parse_ecc_level(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            return _ECC_SHORTHAND.get(value, value)
        return value

    @field_validator("image_format", mode="before")
    @classmethod
    def _parse_image_format(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @classmethod
    def from_options(cls, **options: Any) -> "RenderConfiguration":
        """
        Build a configuration, dropping None values so defaults apply.

        Raises:
            ConfigurationError: If any option is invalid
        """
        try:
            return cls(**{k: v for k, v in options.items() if v is not None})
        except ValidationError as e:
            problems = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            ]
            raise ConfigurationError(
                "Invalid render configuration: " + "; ".join(problems),
                details={"errors": problems},
            ) from e


def image_side(matrix: Matrix, config: RenderConfiguration) -> int:
    """Rendered width/height in pixels, quiet zone included."""
    return (len(matrix) + 2 * config.quiet_zone) * config.scale


def png_rows(matrix: Matrix, config: RenderConfiguration) -> Iterator[bytes]:
    """
    Yield the image as packed 1-bit pixel rows, top to bottom.

    Each module becomes a `scale` x `scale` block; bit 0 is the light color
    and bit 1 the dark color. Only one packed row per module row is built;
    it is yielded `scale` times.
    """
    border = config.quiet_zone
    side = image_side(matrix, config)
    row_bytes = (side + 7) // 8
    padding = "0" * (row_bytes * 8 - side)

    blank = bytes(row_bytes)
    for _ in range(border * config.scale):
        yield blank

    light = "0" * config.scale
    dark = "1" * config.scale
    edge = light * border
    for row in matrix:
        bits = edge + "".join(dark if module else light for module in row) + edge + padding
        packed = int(bits, 2).to_bytes(row_bytes, "big")
        for _ in range(config.scale):
            yield packed

    for _ in range(border * config.scale):
        yield blank


def write_png(matrix: Matrix, config: RenderConfiguration, stream: BinaryIO) -> None:
    """Write a module matrix to `stream` as a two-color palette PNG."""
    side = image_side(matrix, config)
    writer = png.Writer(
        side,
        side,
        palette=[config.light_color, config.dark_color],
        bitdepth=1,
    )
    writer.write_packed(stream, png_rows(matrix, config))


def vectorize(matrix: Matrix, config: RenderConfiguration) -> str:
    """Draw a module matrix as SVG, one user unit per module."""
    border = config.quiet_zone
    modules = len(matrix) + 2 * border
    side = modules * config.scale

    path = "".join(
        f"M{x + border},{y + border}h1v1h-1z"
        for y, row in enumerate(matrix)
        for x, dark in enumerate(row)
        if dark
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{side}" height="{side}" '
        f'viewBox="0 0 {modules} {modules}" shape-rendering="crispEdges">'
        f'<rect width="{modules}" height="{modules}" fill="{color_hex(config.light_color)}"/>'
        f'<path d="{path}" fill="{color_hex(config.dark_color)}"/>'
        "</svg>\n"
    )


def encode_payload(
    payload: str,
    config: RenderConfiguration,
    *,
    encoder: MatrixEncoder | None = None,
) -> Matrix:
    """
    Encode payload text (UTF-8) into a module matrix.

    Raises:
        EncodingCapacityError: If the payload does not fit at `config.ecc_level`
    """
    encoder = encoder or QrcodeEncoder()
    return encoder.encode(payload_bytes(payload), config.ecc_level)


def render(
    payload: str,
    config: RenderConfiguration,
    *,
    encoder: MatrixEncoder | None = None,
) -> bytes:
    """
    Render a payload to image file bytes in `config.image_format`.

    Parameters:
        payload: Contact card text
        config: Render settings
        encoder: Matrix encoder; defaults to the qrcode backend

    Returns:
        PNG or SVG file content

    Raises:
        EncodingCapacityError: If the payload does not fit at `config.ecc_level`

    Example:
        >>> config = RenderConfiguration(scale=12, ecc_level="quartile")
        >>> data = render(build_vcard(record), config)
    """
    matrix = encode_payload(payload, config, encoder=encoder)

    if config.image_format is OutputFormat.SVG:
        return vectorize(matrix, config).encode("utf-8")

    buf = io.BytesIO()
    write_png(matrix, config, buf)
    return buf.getvalue()
