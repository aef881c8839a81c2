"""Asset derivation: metadata, thumbnail and perceptual hash from raw bytes.

derive_assets() is pure and synchronous. It touches nothing but the buffer it
is given, uses no clock and no randomness, so the same bytes always produce
the same metadata, thumbnail bytes and hash. It is CPU bound; async callers
should run it with asyncio.to_thread().
"""

from __future__ import annotations

import io
import struct
from dataclasses import dataclass

from PIL import Image, ImageDraw, ImageOps, UnidentifiedImageError

from fedicore.media.errors import DecodeError
from fedicore.media.probe import ProbeResult, probe_audio, probe_video
from fedicore.media.types import MediaKind, VariantMeta


THUMBNAIL_MAX_SIZE = 512
JPEG_QUALITY = 85

# Edge length of the placeholder used when the media has no known aspect
PLACEHOLDER_SIZE = 128
PLACEHOLDER_BACKGROUND = (40, 44, 52)
PLACEHOLDER_FOREGROUND = (200, 204, 212)

# dHash: compare HASH_SIZE + 1 columns pairwise across HASH_SIZE rows
HASH_SIZE = 8

IMAGE_FORMATS = {"JPEG", "PNG", "WEBP"}
GIF_FORMATS = {"GIF"}


@dataclass(frozen=True)
class DerivedAssets:
    """Everything the lifecycle manager persists after a successful derive."""

    original: VariantMeta
    small: VariantMeta
    thumbnail_bytes: bytes
    thumbnail_content_type: str
    content_hash: str | None = None
    frame_count: int = 1

    @property
    def is_animated(self) -> bool:
        return self.frame_count > 1


def derive_assets(
    data: bytes,
    kind: MediaKind,
    max_thumbnail_size: int = THUMBNAIL_MAX_SIZE,
) -> DerivedAssets:
    """Derive metadata and a thumbnail for one media payload.

    Args:
        data: Complete media file contents
        kind: Media kind declared at ingest
        max_thumbnail_size: Cap on the thumbnail's longest edge

    Returns:
        DerivedAssets for the payload

    Raises:
        DecodeError: The payload is empty, corrupt, or not of the given kind.
            No partial result is ever returned.
    """
    if not data:
        raise DecodeError("empty payload")

    if kind in (MediaKind.IMAGE, MediaKind.GIF):
        return _derive_image(data, kind, max_thumbnail_size)
    if kind not in (MediaKind.VIDEO, MediaKind.AUDIO):
        raise DecodeError(f"cannot derive assets for {kind.value} media")

    probe = probe_video if kind is MediaKind.VIDEO else probe_audio
    try:
        result = probe(data)
    except struct.error as e:
        raise DecodeError(f"truncated {kind.value} container: {e}") from e
    return _derive_placeholder(
        result, max_thumbnail_size, play=kind is MediaKind.VIDEO
    )


# ---------------------------------------------------------------------------
# Images and GIFs
# ---------------------------------------------------------------------------


def _derive_image(data: bytes, kind: MediaKind, max_size: int) -> DerivedAssets:
    allowed = GIF_FORMATS if kind is MediaKind.GIF else IMAGE_FORMATS
    try:
        with Image.open(io.BytesIO(data)) as img:
            if img.format not in allowed:
                raise DecodeError(
                    f"{img.format or 'unknown'} data is not valid {kind.value} media"
                )
            frame_count = getattr(img, "n_frames", 1)
            img.load()
            # Honour EXIF orientation so stored dimensions match what viewers see
            frame = ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, Image.DecompressionBombError) as e:
        raise DecodeError(f"cannot decode {kind.value}: {e}") from e
    except (OSError, ValueError, SyntaxError, EOFError) as e:
        raise DecodeError(f"corrupt {kind.value} data: {e}") from e

    width, height = frame.size
    thumbnail, content_type = _encode_thumbnail(
        frame, max_size, force_png=kind is MediaKind.GIF
    )

    return DerivedAssets(
        original=VariantMeta.from_dimensions(width, height),
        small=VariantMeta.from_dimensions(*thumbnail.size),
        thumbnail_bytes=_save(thumbnail, content_type),
        thumbnail_content_type=content_type,
        content_hash=difference_hash(frame),
        frame_count=frame_count,
    )


def _has_alpha(img: Image.Image) -> bool:
    if img.mode in ("RGBA", "LA", "PA"):
        return True
    return img.mode == "P" and "transparency" in img.info


def _encode_thumbnail(
    frame: Image.Image, max_size: int, force_png: bool = False
) -> tuple[Image.Image, str]:
    thumb = frame.copy()
    # thumbnail() keeps aspect ratio and never upscales
    thumb.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)
    if force_png or _has_alpha(thumb):
        return thumb.convert("RGBA"), "image/png"
    return thumb.convert("RGB"), "image/jpeg"


def _save(img: Image.Image, content_type: str) -> bytes:
    buf = io.BytesIO()
    if content_type == "image/jpeg":
        img.save(buf, format="JPEG", quality=JPEG_QUALITY)
    else:
        img.save(buf, format="PNG")
    return buf.getvalue()


def difference_hash(img: Image.Image) -> str:
    """Compute a 64-bit difference hash (dHash) as 16 hex chars.

    Visually similar images land within a small Hamming distance of each
    other, which is what duplicate detection relies on.
    """
    grey = img.convert("L").resize(
        (HASH_SIZE + 1, HASH_SIZE), Image.Resampling.LANCZOS
    )
    pixels = grey.tobytes()
    row_width = HASH_SIZE + 1
    bits = 0
    for row in range(HASH_SIZE):
        base = row * row_width
        for col in range(HASH_SIZE):
            bits = (bits << 1) | (pixels[base + col] > pixels[base + col + 1])
    return f"{bits:0{HASH_SIZE * HASH_SIZE // 4}x}"


def hamming_distance(hash_a: str, hash_b: str) -> int:
    """Number of differing bits between two difference hashes."""
    return bin(int(hash_a, 16) ^ int(hash_b, 16)).count("1")


# ---------------------------------------------------------------------------
# Audio and video
# ---------------------------------------------------------------------------


def _placeholder_size(probe: ProbeResult, max_size: int) -> tuple[int, int]:
    if not (probe.width and probe.height):
        edge = min(PLACEHOLDER_SIZE, max_size)
        return edge, edge
    scale = min(1.0, max_size / max(probe.width, probe.height))
    return (
        max(1, round(probe.width * scale)),
        max(1, round(probe.height * scale)),
    )


def _derive_placeholder(probe: ProbeResult, max_size: int, play: bool) -> DerivedAssets:
    width, height = _placeholder_size(probe, max_size)
    img = Image.new("RGB", (width, height), PLACEHOLDER_BACKGROUND)
    if play:
        # centred play triangle, a third of the shorter edge tall
        side = min(width, height) / 3
        cx, cy = width / 2, height / 2
        ImageDraw.Draw(img).polygon(
            [
                (cx - side / 3, cy - side / 2),
                (cx - side / 3, cy + side / 2),
                (cx + side * 2 / 3, cy),
            ],
            fill=PLACEHOLDER_FOREGROUND,
        )

    return DerivedAssets(
        original=VariantMeta.from_dimensions(
            probe.width, probe.height, duration=probe.duration
        ),
        small=VariantMeta.from_dimensions(width, height),
        thumbnail_bytes=_save(img, "image/png"),
        thumbnail_content_type="image/png",
    )
