import base64
import io
import math
import struct

import pytest
import requests
from PIL import Image

from bridge import raster
from bridge.errors import ImageDecodeError


def _png_bytes(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def _header(block: bytes):
    assert block[:4] == b"\x1dv0\x00"
    return struct.unpack("<HH", block[4:8])


def _unpack(block: bytes, width: int) -> Image.Image:
    """Turn a raster block back into a black/white L image."""
    bytes_per_row, rows = _header(block)
    bits = block[8:]
    img = Image.new("L", (width, rows), 255)
    px = img.load()
    for y in range(rows):
        for x in range(width):
            b = bits[y * bytes_per_row + x // 8]
            if b & (0x80 >> (x % 8)):
                px[x, y] = 0
    return img


def test_wide_image_scaled_to_max_width():
    block = raster.encode_image(Image.new("L", (500, 100), 0), max_width=384)
    bytes_per_row, rows = _header(block)
    assert bytes_per_row == math.ceil(384 / 8)
    assert rows == 77
    assert len(block) == 8 + bytes_per_row * rows


def test_narrow_image_not_upscaled():
    block = raster.encode_image(Image.new("L", (100, 10), 255), max_width=384)
    assert _header(block) == (math.ceil(100 / 8), 10)


def test_row_padding_is_blank():
    block = raster.encode_image(Image.new("L", (10, 2), 0))
    assert _header(block) == (2, 2)
    assert block[8:] == bytes([0xFF, 0xC0, 0xFF, 0xC0])


def test_threshold_at_128():
    img = Image.new("L", (8, 1), 255)
    img.putpixel((0, 0), 127)
    img.putpixel((1, 0), 128)
    img.putpixel((7, 0), 0)
    block = raster.encode_image(img)
    assert block[8:] == bytes([0b10000001])


def test_transparent_pixels_are_paper():
    img = Image.new("RGBA", (8, 1), (0, 0, 0, 0))
    img.putpixel((3, 0), (0, 0, 0, 255))
    assert raster.encode_image(img)[8:] == bytes([0b00010000])


def test_threshold_is_idempotent():
    gradient = Image.new("L", (50, 20))
    gradient.putdata([(x * 5 + y * 3) % 256 for y in range(20) for x in range(50)])
    first = raster.encode_image(gradient)
    second = raster.encode_image(_unpack(first, 50))
    assert first == second


def test_sources_data_uri_and_base64():
    png = _png_bytes(Image.new("L", (16, 2), 0))
    b64 = base64.b64encode(png).decode()
    from_uri = raster.encode_image("data:image/png;base64," + b64)
    from_b64 = raster.encode_image(b64)
    assert from_uri == from_b64
    assert _header(from_uri) == (2, 2)


def test_source_url(monkeypatch):
    png = _png_bytes(Image.new("L", (8, 1), 0))

    class Resp:
        content = png

        def raise_for_status(self):
            pass

    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return Resp()

    monkeypatch.setattr(raster.requests, "get", fake_get)
    block = raster.encode_image("https://cdn.example.com/logo.png", fetch_timeout=3)
    assert block[8:] == b"\xff"
    assert calls == [("https://cdn.example.com/logo.png", 3)]


def test_unreachable_url_is_decode_error(monkeypatch):
    def fake_get(url, timeout):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(raster.requests, "get", fake_get)
    with pytest.raises(ImageDecodeError):
        raster.encode_image("http://nowhere.invalid/logo.png")


@pytest.mark.parametrize("source", ["!!!not base64!!!", base64.b64encode(b"hello, this is not an image").decode()])
def test_corrupt_data_is_decode_error(source):
    with pytest.raises(ImageDecodeError):
        raster.encode_image(source)


def test_height_beyond_header_range_is_decode_error():
    with pytest.raises(ImageDecodeError, match="too large for raster"):
        raster.encode_image(Image.new("L", (1, 0x10000), 255))
    # 65535 rows still fit the header
    assert _header(raster.encode_image(Image.new("L", (1, 0xFFFF), 255))) == (1, 0xFFFF)


def test_decompression_bomb_is_decode_error(monkeypatch):
    data = _png_bytes(Image.new("L", (100, 100), 0))
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
    with pytest.raises(ImageDecodeError, match="too large"):
        raster.load_image(data)


def test_try_encode_returns_result():
    good = raster.try_encode_image(Image.new("L", (8, 1), 0))
    bad = raster.try_encode_image("data:image/png;base64,AAAA")
    assert good.ok and good.error is None
    assert not bad.ok and bad.data is None
    assert bad.error
