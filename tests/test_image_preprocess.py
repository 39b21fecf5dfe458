from io import BytesIO

import pytest
from PIL import Image

from food_health.errors import InputError
from food_health.image_preprocess import prepare_image


def png_bytes(size):
    out = BytesIO()
    Image.new("RGBA", size, color=(10, 200, 30, 255)).save(out, format="PNG")
    return out.getvalue()


@pytest.mark.parametrize("data", [None, b""])
def test_empty_payload(data):
    with pytest.raises(InputError):
        prepare_image(data, "image/jpeg")


def test_unsupported_content_type(jpeg_bytes):
    with pytest.raises(InputError) as exc_info:
        prepare_image(jpeg_bytes, "application/pdf")

    assert "Unsupported format" in str(exc_info.value)


def test_resize_to_jpeg():
    prepared = prepare_image(png_bytes((2000, 1000)), "image/png", resize=True, max_side=500)

    assert prepared.media_type == "image/jpeg"
    with Image.open(BytesIO(prepared.data)) as img:
        assert img.format == "JPEG"
        assert img.size == (500, 250)


def test_small_image_is_not_upscaled(jpeg_bytes):
    prepared = prepare_image(jpeg_bytes, "image/jpeg", resize=True, max_side=500)

    with Image.open(BytesIO(prepared.data)) as img:
        assert img.size == (64, 48)


def test_without_resize_payload_is_untouched(jpeg_bytes):
    prepared = prepare_image(jpeg_bytes, "image/jpeg", resize=False)

    assert prepared.data == jpeg_bytes
    assert prepared.data_uri.startswith("data:image/jpeg;base64,")


def test_undecodable_image():
    with pytest.raises(InputError):
        prepare_image(b"definitely not an image", "image/png", resize=True)
