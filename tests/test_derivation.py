"""Tests for fedicore.media.derivation."""

from __future__ import annotations

import io

import pytest
from PIL import Image

from fedicore.media.derivation import (
    DerivedAssets,
    derive_assets,
    difference_hash,
    hamming_distance,
)
from fedicore.media.errors import DecodeError
from fedicore.media.types import MediaKind

from conftest import make_flac, make_gif, make_image, make_mp4, make_wav


def _open(data: bytes) -> Image.Image:
    return Image.open(io.BytesIO(data))


# ---------------------------------------------------------------------------
# TestImages
# ---------------------------------------------------------------------------


class TestImages:
    """Tests for still image derivation."""

    def test_records_dimensions(self):
        result = derive_assets(make_image((800, 600)), MediaKind.IMAGE)

        assert result.original.width == 800
        assert result.original.height == 600
        assert result.original.size == 480_000
        assert result.original.aspect == pytest.approx(800 / 600)
        assert result.original.duration is None

    def test_thumbnail_longest_edge_capped(self):
        result = derive_assets(make_image((1000, 250)), MediaKind.IMAGE, 200)

        thumb = _open(result.thumbnail_bytes)
        assert thumb.size == (200, 50)
        assert (result.small.width, result.small.height) == (200, 50)

    def test_small_images_not_upscaled(self):
        result = derive_assets(make_image((100, 50)), MediaKind.IMAGE)

        assert (result.small.width, result.small.height) == (100, 50)

    def test_opaque_thumbnail_is_jpeg(self):
        result = derive_assets(make_image(fmt="PNG"), MediaKind.IMAGE)

        assert result.thumbnail_content_type == "image/jpeg"
        assert _open(result.thumbnail_bytes).format == "JPEG"

    def test_alpha_thumbnail_is_png(self):
        result = derive_assets(make_image(mode="RGBA"), MediaKind.IMAGE)

        assert result.thumbnail_content_type == "image/png"
        assert _open(result.thumbnail_bytes).format == "PNG"

    def test_jpeg_and_webp_accepted(self):
        for fmt in ("JPEG", "WEBP"):
            result = derive_assets(make_image(fmt=fmt), MediaKind.IMAGE)
            assert result.original.width == 800

    def test_exif_orientation_applied(self):
        img = Image.new("RGB", (200, 100), (200, 10, 10))
        exif = Image.Exif()
        exif[0x0112] = 6  # rotate 90 clockwise for display
        buf = io.BytesIO()
        img.save(buf, format="JPEG", exif=exif.tobytes())

        result = derive_assets(buf.getvalue(), MediaKind.IMAGE)

        assert (result.original.width, result.original.height) == (100, 200)

    def test_content_hash_is_16_hex_chars(self):
        result = derive_assets(make_image(), MediaKind.IMAGE)

        assert len(result.content_hash) == 16
        int(result.content_hash, 16)

    def test_gif_bytes_rejected_as_image(self):
        with pytest.raises(DecodeError):
            derive_assets(make_gif(), MediaKind.IMAGE)


# ---------------------------------------------------------------------------
# TestGifs
# ---------------------------------------------------------------------------


class TestGifs:
    """Tests for GIF derivation."""

    def test_animated_gif_frame_count(self):
        result = derive_assets(make_gif(frames=3), MediaKind.GIF)

        assert result.frame_count == 3
        assert result.is_animated is True
        assert result.thumbnail_content_type == "image/png"

    def test_single_frame_gif(self):
        result = derive_assets(make_gif(frames=1), MediaKind.GIF)

        assert result.is_animated is False
        assert (result.original.width, result.original.height) == (64, 48)

    def test_png_rejected_as_gif(self):
        with pytest.raises(DecodeError):
            derive_assets(make_image(), MediaKind.GIF)


# ---------------------------------------------------------------------------
# TestAudioVideo
# ---------------------------------------------------------------------------


class TestAudioVideo:
    """Tests for audio/video derivation."""

    def test_video_metadata_and_placeholder(self):
        result = derive_assets(make_mp4(640, 360), MediaKind.VIDEO)

        assert (result.original.width, result.original.height) == (640, 360)
        assert result.original.duration == pytest.approx(5.0)
        assert (result.small.width, result.small.height) == (512, 288)
        assert result.thumbnail_content_type == "image/png"
        assert _open(result.thumbnail_bytes).size == (512, 288)
        assert result.content_hash is None

    def test_video_without_dimensions_gets_square_placeholder(self):
        result = derive_assets(b"\x1a\x45\xdf\xa3" + b"\x00" * 32, MediaKind.VIDEO)

        assert (result.small.width, result.small.height) == (128, 128)
        assert result.original.width == 0
        assert result.thumbnail_bytes

    def test_wav_duration(self):
        result = derive_assets(make_wav(1.5), MediaKind.AUDIO)

        assert result.original.duration == pytest.approx(1.5)
        assert result.original.width == 0
        assert result.thumbnail_bytes

    def test_flac_duration(self):
        result = derive_assets(make_flac(44100, 88200), MediaKind.AUDIO)

        assert result.original.duration == pytest.approx(2.0)

    def test_unrecognized_video(self):
        with pytest.raises(DecodeError):
            derive_assets(b"\x00" * 64, MediaKind.VIDEO)

    def test_truncated_mp4(self):
        with pytest.raises(DecodeError):
            derive_assets(make_mp4()[:40], MediaKind.VIDEO)


# ---------------------------------------------------------------------------
# TestFailures
# ---------------------------------------------------------------------------


class TestFailures:
    """Tests for inputs that cannot be derived."""

    def test_empty(self):
        with pytest.raises(DecodeError):
            derive_assets(b"", MediaKind.IMAGE)

    def test_corrupt_image(self):
        with pytest.raises(DecodeError):
            derive_assets(b"\x89PNG\r\n\x1a\n not really", MediaKind.IMAGE)

    def test_truncated_image(self):
        with pytest.raises(DecodeError):
            derive_assets(make_image()[:200], MediaKind.IMAGE)

    def test_unknown_kind(self):
        with pytest.raises(DecodeError):
            derive_assets(make_image(), MediaKind.UNKNOWN)


# ---------------------------------------------------------------------------
# TestDeterminism
# ---------------------------------------------------------------------------


class TestDeterminism:
    """Identical bytes must give identical results."""

    @pytest.mark.parametrize(
        "build, kind",
        [
            (lambda: make_image(), MediaKind.IMAGE),
            (lambda: make_image(mode="RGBA"), MediaKind.IMAGE),
            (lambda: make_gif(frames=2), MediaKind.GIF),
            (lambda: make_mp4(), MediaKind.VIDEO),
            (lambda: make_wav(), MediaKind.AUDIO),
        ],
    )
    def test_same_input_same_output(self, build, kind):
        data = build()

        first = derive_assets(data, kind)
        second = derive_assets(data, kind)

        assert isinstance(first, DerivedAssets)
        assert first == second


# ---------------------------------------------------------------------------
# TestDifferenceHash
# ---------------------------------------------------------------------------


class TestDifferenceHash:
    """Tests for difference_hash and hamming_distance."""

    def test_resized_copy_is_close(self):
        original = _open(make_image((800, 600)))
        smaller = original.resize((400, 300))

        distance = hamming_distance(
            difference_hash(original), difference_hash(smaller)
        )

        assert distance <= 4

    def test_mirrored_image_is_far(self):
        original = _open(make_image((800, 600)))
        mirrored = original.transpose(Image.Transpose.FLIP_LEFT_RIGHT)

        distance = hamming_distance(
            difference_hash(original), difference_hash(mirrored)
        )

        assert distance > 32

    def test_hamming_distance_bounds(self):
        assert hamming_distance("0" * 16, "0" * 16) == 0
        assert hamming_distance("0" * 16, "f" * 16) == 64
