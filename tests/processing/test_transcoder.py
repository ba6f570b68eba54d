import io

import pytest
from PIL import Image

from eyeris.core.errors import ImageError, ImageErrorKind, ThumbnailError
from eyeris.processing.transcoder import ImageTranscoder, bounded_size
from tests.mocks.images import image_format, image_size, make_image_bytes, make_noise_png


@pytest.fixture
def transcoder() -> ImageTranscoder:
    return ImageTranscoder()


@pytest.mark.parametrize(
    "width, height, expected",
    [
        (1600, 1200, (768, 576)),
        (1200, 1600, (576, 768)),
        (768, 768, (768, 768)),
        (769, 10, (768, 9)),
        (300, 200, (300, 200)),
        (5000, 1, (768, 1)),
    ],
)
def test_bounded_size(width, height, expected):
    """The longer side is capped at 768 and the result never collapses to zero."""
    assert bounded_size(width, height, 768) == expected


@pytest.mark.parametrize("fmt", ["PNG", "JPEG", "BMP", "GIF"])
def test_transcode_bounds_larger_dimension(transcoder: ImageTranscoder, fmt: str):
    """Large images of any supported format come out at most 768px with the same aspect ratio."""
    mode = "P" if fmt == "GIF" else "RGB"
    color = 3 if fmt == "GIF" else (10, 200, 30)
    raw = make_image_bytes(2000, 1000, fmt=fmt, mode=mode, color=color)

    result = transcoder.transcode(raw)

    assert max(result.width, result.height) <= 768
    assert abs(result.width / result.height - 2.0) < 0.01
    assert image_size(result.data) == (result.width, result.height)
    assert image_format(result.data) == "JPEG"
    assert result.original_size == len(raw)
    assert result.encoded_size == len(result.data)


def test_transcode_keeps_small_images_unchanged(transcoder: ImageTranscoder):
    raw = make_image_bytes(320, 240, fmt="PNG")

    result = transcoder.transcode(raw)

    assert (result.width, result.height) == (320, 240)


def test_transcode_is_idempotent_on_bounded_images(transcoder: ImageTranscoder):
    """Re-transcoding an already bounded image does not change its dimensions."""
    first = transcoder.transcode(make_image_bytes(3000, 1700, fmt="JPEG"))
    second = transcoder.transcode(first.data)

    assert (second.width, second.height) == (first.width, first.height)


def test_transcode_accepts_images_with_alpha(transcoder: ImageTranscoder):
    raw = make_image_bytes(1024, 1024, fmt="PNG", mode="RGBA", color=(1, 2, 3, 128))

    result = transcoder.transcode(raw)

    assert (result.width, result.height) == (768, 768)
    assert image_format(result.data) == "JPEG"


def test_transcode_uses_low_quality_encoding(transcoder: ImageTranscoder):
    """A noisy image shrinks substantially when re-encoded for analysis."""
    raw = make_noise_png(600, 400)

    result = transcoder.transcode(raw)

    assert result.encoded_size < len(raw) / 2


@pytest.mark.parametrize("raw", [b"", b"not an image at all"])
def test_transcode_rejects_unrecognized_bytes(transcoder: ImageTranscoder, raw: bytes):
    with pytest.raises(ImageError) as exc_info:
        transcoder.transcode(raw)

    assert exc_info.value.kind == ImageErrorKind.UNRECOGNIZED_FORMAT
    assert exc_info.value.original_size == len(raw)
    assert exc_info.value.stage == "transcode"


def test_transcode_reports_corrupt_data_as_decode_failure(transcoder: ImageTranscoder):
    """A PNG cut off in the middle of its pixel data has a valid header but cannot be decoded."""
    full = make_noise_png(200, 200)
    truncated = full[: len(full) // 2]

    with pytest.raises(ImageError) as exc_info:
        transcoder.transcode(truncated)

    assert exc_info.value.kind == ImageErrorKind.DECODE_FAILED
    assert exc_info.value.original_size == len(truncated)
    assert str(len(truncated)) in exc_info.value.message


def test_thumbnail_fits_bound_and_is_jpeg(transcoder: ImageTranscoder):
    raw = make_image_bytes(1200, 600, fmt="PNG")

    thumbnail = transcoder.thumbnail(raw)

    width, height = image_size(thumbnail)
    assert width <= 300 and height <= 300
    assert (width, height) == (300, 150)
    assert image_format(thumbnail) == "JPEG"


def test_thumbnail_is_brightened(transcoder: ImageTranscoder):
    raw = make_image_bytes(400, 400, fmt="PNG", color=(100, 100, 100))

    thumbnail = transcoder.thumbnail(raw)

    with Image.open(io.BytesIO(thumbnail)) as image:
        r, g, b = image.convert("RGB").getpixel((150, 150))
    # 100 * 1.1 = 110, allow for JPEG rounding.
    for channel in (r, g, b):
        assert 107 <= channel <= 113


def test_thumbnail_raises_thumbnail_error_on_bad_input(transcoder: ImageTranscoder):
    with pytest.raises(ThumbnailError) as exc_info:
        transcoder.thumbnail(b"garbage")

    assert exc_info.value.stage == "thumbnail"


async def test_async_variants_run_off_the_event_loop(transcoder: ImageTranscoder):
    raw = make_image_bytes(1600, 900, fmt="JPEG")

    transcoded = await transcoder.transcode_async(raw)
    thumbnail = await transcoder.thumbnail_async(raw)

    assert (transcoded.width, transcoded.height) == (768, 432)
    assert max(image_size(thumbnail)) == 300
