"""
Unit tests for the data-URL image checks.

Tests cover:
- Format and size pre-check
- Pillow decoding of real, corrupt and mislabelled images
"""

import base64

import pytest

from myshelf.services.image_guard import (
    MAX_AUTHOR_IMAGE_SIZE_BYTES,
    image_mime_type,
    image_rejection_reason,
    validate_image,
    validate_image_content,
)


def _oversized_data_url(size_bytes: int) -> str:
    padding = "A" * int(size_bytes / 0.75 + 100)
    return f"data:image/png;base64,{padding}"


class TestImagePrecheck:
    """Tests for the prefix and size check."""

    def test_missing_image_passes(self):
        assert validate_image(None)
        assert validate_image("")

    def test_allowed_types_pass(self, png_data_url, jpeg_data_url, webp_data_url):
        assert validate_image(png_data_url)
        assert validate_image(jpeg_data_url)
        assert validate_image(webp_data_url)

    def test_not_a_data_url(self):
        assert not validate_image("https://example.com/cover.png")
        assert "not a valid data URL" in image_rejection_reason("cover.png")

    def test_disallowed_mime_type(self):
        reason = image_rejection_reason("data:image/gif;base64,R0lGODlh")
        assert "image/gif is not allowed" in reason

    def test_mime_type_extraction(self, jpeg_data_url):
        assert image_mime_type(jpeg_data_url) == "image/jpeg"
        assert image_mime_type("not a url") is None

    def test_cover_size_limit(self):
        reason = image_rejection_reason(_oversized_data_url(500 * 1024))
        assert "exceeds limit of 500KB" in reason

    def test_author_photo_limit_is_smaller(self):
        data_url = _oversized_data_url(300 * 1024)
        assert validate_image(data_url)
        assert not validate_image(data_url, MAX_AUTHOR_IMAGE_SIZE_BYTES)


class TestImageContent:
    """Tests for decoding the payload."""

    @pytest.mark.asyncio
    async def test_missing_image_passes(self):
        assert await validate_image_content(None)

    @pytest.mark.asyncio
    async def test_real_images_decode(self, png_data_url, jpeg_data_url, webp_data_url):
        assert await validate_image_content(png_data_url)
        assert await validate_image_content(jpeg_data_url)
        assert await validate_image_content(webp_data_url)

    @pytest.mark.asyncio
    async def test_corrupt_payload_fails(self, corrupt_png_data_url):
        assert validate_image(corrupt_png_data_url)
        assert not await validate_image_content(corrupt_png_data_url)

    @pytest.mark.asyncio
    async def test_invalid_base64_fails(self):
        assert not await validate_image_content("data:image/png;base64,@@not-base64@@")

    @pytest.mark.asyncio
    async def test_declared_type_must_match_content(self, png_data_url):
        payload = png_data_url.split(",", 1)[1]
        mislabelled = f"data:image/jpeg;base64,{payload}"
        assert not await validate_image_content(mislabelled)

    @pytest.mark.asyncio
    async def test_text_payload_fails(self):
        payload = base64.b64encode(b"hello world").decode("ascii")
        assert not await validate_image_content(f"data:image/png;base64,{payload}")
