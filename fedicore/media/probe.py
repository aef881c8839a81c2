"""Container sniffing for audio and video payloads.

Only the headers are inspected; nothing is decoded. Each probe either
returns what it could learn (dimensions, duration) or raises DecodeError
when the bytes are not a container of the expected family.

Supported:
- ISO base media (MP4, MOV, M4A): ftyp + moov/mvhd duration, tkhd display size
- Matroska / WebM: EBML magic only
- Ogg: page magic only
- WAV: RIFF/WAVE fmt + data chunks
- FLAC: STREAMINFO block
- MP3: ID3 tag or MPEG frame sync
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterator

from fedicore.media.errors import DecodeError


EBML_MAGIC = b"\x1a\x45\xdf\xa3"
OGG_MAGIC = b"OggS"
FLAC_MAGIC = b"fLaC"

# Containers nest tracks inside these boxes
_MP4_CONTAINER_BOXES = {b"moov", b"trak"}


@dataclass(frozen=True)
class ProbeResult:
    container: str
    width: int = 0
    height: int = 0
    duration: float | None = None


# ---------------------------------------------------------------------------
# ISO base media (MP4 / MOV / M4A)
# ---------------------------------------------------------------------------


def _iter_boxes(data: bytes, start: int, end: int) -> Iterator[tuple[bytes, int, int]]:
    """Yield (type, payload_start, box_end) for each box in data[start:end].

    A box whose declared size runs past the end is clamped and ends the
    iteration, so a file cut short inside mdat still yields its moov.
    """
    offset = start
    while offset + 8 <= end:
        size, box_type = struct.unpack_from(">I4s", data, offset)
        header = 8
        if size == 1:
            if offset + 16 > end:
                return
            (size,) = struct.unpack_from(">Q", data, offset + 8)
            header = 16
        elif size == 0:
            size = end - offset
        if size < header:
            raise DecodeError(f"corrupt {box_type!r} box (size {size})")
        box_end = offset + size
        if box_end > end:
            yield box_type, offset + header, end
            return
        yield box_type, offset + header, box_end
        offset = box_end


def _read_mvhd(data: bytes, start: int, end: int) -> float | None:
    if start >= end:
        raise DecodeError("empty mvhd box")
    version = data[start]
    if version == 1:
        if start + 32 > end:
            raise DecodeError("truncated mvhd box")
        timescale, duration = struct.unpack_from(">IQ", data, start + 20)
    else:
        if start + 20 > end:
            raise DecodeError("truncated mvhd box")
        timescale, duration = struct.unpack_from(">II", data, start + 12)
    if not timescale:
        return None
    return duration / timescale


def _read_tkhd(data: bytes, start: int, end: int) -> tuple[int, int]:
    if start >= end:
        raise DecodeError("empty tkhd box")
    # width/height are 16.16 fixed point after the version-dependent header,
    # 52 bytes of reserved/layer/volume/matrix fields
    offset = start + (88 if data[start] == 1 else 76)
    if offset + 8 > end:
        raise DecodeError("truncated tkhd box")
    width, height = struct.unpack_from(">II", data, offset)
    return width >> 16, height >> 16


def probe_mp4(data: bytes) -> ProbeResult:
    boxes = _iter_boxes(data, 0, len(data))
    first = next(boxes, None)
    if first is None or first[0] != b"ftyp":
        raise DecodeError("not an ISO base media file (missing ftyp)")

    duration: float | None = None
    width = height = 0
    found_moov = False

    for box_type, payload, box_end in boxes:
        if box_type != b"moov":
            continue
        found_moov = True
        # Depth-first over nested containers; nesting depth is unbounded
        stack = [_iter_boxes(data, payload, box_end)]
        while stack:
            child = next(stack[-1], None)
            if child is None:
                stack.pop()
                continue
            child_type, child_payload, child_end = child
            if child_type == b"mvhd":
                duration = _read_mvhd(data, child_payload, child_end)
            elif child_type == b"tkhd" and not (width and height):
                width, height = _read_tkhd(data, child_payload, child_end)
            elif child_type in _MP4_CONTAINER_BOXES:
                stack.append(_iter_boxes(data, child_payload, child_end))

    if not found_moov:
        raise DecodeError("ISO base media file has no moov box")
    return ProbeResult("mp4", width=width, height=height, duration=duration)


# ---------------------------------------------------------------------------
# Audio-only containers
# ---------------------------------------------------------------------------


def probe_wav(data: bytes) -> ProbeResult:
    if len(data) < 12 or data[:4] != b"RIFF" or data[8:12] != b"WAVE":
        raise DecodeError("not a RIFF/WAVE file")

    byte_rate = 0
    data_size: int | None = None
    offset = 12
    while offset + 8 <= len(data):
        chunk_id, chunk_size = struct.unpack_from("<4sI", data, offset)
        payload = offset + 8
        if chunk_id == b"fmt ":
            if chunk_size < 16 or payload + 16 > len(data):
                raise DecodeError("truncated WAVE fmt chunk")
            (byte_rate,) = struct.unpack_from("<I", data, payload + 8)
        elif chunk_id == b"data":
            data_size = min(chunk_size, len(data) - payload)
            break
        # chunks are word aligned
        offset = payload + chunk_size + (chunk_size & 1)

    if not byte_rate or data_size is None:
        raise DecodeError("WAVE file missing fmt or data chunk")
    return ProbeResult("wav", duration=data_size / byte_rate)


def probe_flac(data: bytes) -> ProbeResult:
    if len(data) < 26 or data[:4] != FLAC_MAGIC:
        raise DecodeError("not a FLAC stream")
    if data[4] & 0x7F != 0:
        raise DecodeError("FLAC stream does not start with STREAMINFO")
    # 20 bits sample rate, 3 channels, 5 bits per sample, 36 total samples
    packed = int.from_bytes(data[18:26], "big")
    sample_rate = packed >> 44
    total_samples = packed & ((1 << 36) - 1)
    if not sample_rate:
        raise DecodeError("FLAC STREAMINFO has zero sample rate")
    duration = total_samples / sample_rate if total_samples else None
    return ProbeResult("flac", duration=duration)


def probe_mp3(data: bytes) -> ProbeResult:
    if data[:3] == b"ID3":
        return ProbeResult("mp3")
    if len(data) >= 2 and data[0] == 0xFF and data[1] & 0xE0 == 0xE0:
        return ProbeResult("mp3")
    raise DecodeError("not an MPEG audio stream")


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


def _is_mp4(data: bytes) -> bool:
    return len(data) >= 12 and data[4:8] == b"ftyp"


def probe_video(data: bytes) -> ProbeResult:
    """Identify a video container and read what its headers expose."""
    if _is_mp4(data):
        return probe_mp4(data)
    if data[:4] == EBML_MAGIC:
        return ProbeResult("matroska")
    if data[:4] == OGG_MAGIC:
        return ProbeResult("ogg")
    raise DecodeError("unrecognized video container")


def probe_audio(data: bytes) -> ProbeResult:
    """Identify an audio container and read its duration where cheap."""
    if data[:4] == b"RIFF":
        return probe_wav(data)
    if data[:4] == FLAC_MAGIC:
        return probe_flac(data)
    if data[:4] == OGG_MAGIC:
        return ProbeResult("ogg")
    if _is_mp4(data):
        result = probe_mp4(data)
        return ProbeResult("mp4", duration=result.duration)
    if data[:4] == EBML_MAGIC:
        return ProbeResult("matroska")
    return probe_mp3(data)
