"""
Monochrome raster encoding for ESC/POS (GS v 0).

Images come from the browser as a data URI, an http(s) URL or bare base64.
The encoder never upscales, flattens transparency onto white and applies a
hard threshold at luminance 128 (no dithering, so photographic logos band).
"""
import io
import base64
import binascii
import logging
import struct
from dataclasses import dataclass
from typing import Optional, Union

import requests
from PIL import Image, UnidentifiedImageError

from bridge.errors import ImageDecodeError

logger = logging.getLogger("print_bridge.raster")

DEFAULT_MAX_WIDTH = 384  # dots on a standard 80mm head
THRESHOLD = 128

GS_V_0 = b"\x1d\x76\x30"
MODE_NORMAL = 0x00
MAX_DIMENSION = 0xFFFF  # xL xH / yL yH are 16-bit


@dataclass(frozen=True)
class RasterResult:
    data: Optional[bytes] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.data is not None


def _read_source(source: str, fetch_timeout: float) -> bytes:
    source = source.strip()
    if source.startswith("data:"):
        _, _, payload = source.partition(",")
        return base64.b64decode(payload, validate=False)
    if source.startswith(("http://", "https://")):
        resp = requests.get(source, timeout=fetch_timeout)
        resp.raise_for_status()
        return resp.content
    return base64.b64decode(source, validate=True)


def load_image(source: Union[str, bytes, Image.Image], fetch_timeout: float = 5.0) -> Image.Image:
    """Decode `source` into a PIL image or raise ImageDecodeError."""
    if isinstance(source, Image.Image):
        return source
    try:
        raw = source if isinstance(source, bytes) else _read_source(source, fetch_timeout)
        img = Image.open(io.BytesIO(raw))
        img.load()
        return img
    except requests.RequestException as e:
        raise ImageDecodeError(f"Could not fetch image: {e}")
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Invalid base64 image data: {e}")
    except Image.DecompressionBombError as e:
        raise ImageDecodeError(f"Image too large: {e}")
    except (UnidentifiedImageError, OSError) as e:
        raise ImageDecodeError(f"Could not decode image: {e}")


def _to_grayscale(img: Image.Image) -> Image.Image:
    if img.mode in ("RGBA", "LA", "P"):
        rgba = img.convert("RGBA")
        background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
        img = Image.alpha_composite(background, rgba)
    return img.convert("L")


def _fit_width(img: Image.Image, max_width: int) -> Image.Image:
    w, h = img.size
    if w <= max_width:
        return img
    new_h = max(1, round(h * max_width / w))
    return img.resize((max_width, new_h), Image.Resampling.LANCZOS)


def pack_rows(img: Image.Image) -> bytes:
    """Pack an L image into rows of MSB-first bytes, 1 = ink."""
    w, h = img.size
    bytes_per_row = (w + 7) // 8
    px = img.load()
    data = bytearray()
    for y in range(h):
        for byte_x in range(bytes_per_row):
            b = 0
            for bit in range(8):
                x = byte_x * 8 + bit
                if x < w and px[x, y] < THRESHOLD:
                    b |= 0x80 >> bit
            data.append(b)
    return bytes(data)


def raster_header(bytes_per_row: int, rows: int) -> bytes:
    return GS_V_0 + bytes([MODE_NORMAL]) + struct.pack("<HH", bytes_per_row, rows)


def encode_image(source, max_width: int = DEFAULT_MAX_WIDTH, fetch_timeout: float = 5.0) -> bytes:
    """
    Encode an image as a GS v 0 raster block.

    Raises ImageDecodeError when the source cannot be read or does not fit
    the 16-bit raster header.
    """
    img = load_image(source, fetch_timeout=fetch_timeout)
    img = _fit_width(img, max_width)
    w, h = img.size
    bytes_per_row = (w + 7) // 8
    if h > MAX_DIMENSION or bytes_per_row > MAX_DIMENSION:
        raise ImageDecodeError(f"Image too large for raster: {w}x{h} after scaling")
    gray = _to_grayscale(img)
    return raster_header(bytes_per_row, h) + pack_rows(gray)


def try_encode_image(source, max_width: int = DEFAULT_MAX_WIDTH, fetch_timeout: float = 5.0) -> RasterResult:
    try:
        return RasterResult(data=encode_image(source, max_width, fetch_timeout))
    except ImageDecodeError as e:
        return RasterResult(error=e.message)
