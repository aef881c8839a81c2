"""Shared fixtures for fedicore tests."""

from __future__ import annotations

import asyncio
import io
import struct
import wave

import pytest
from PIL import Image

from fedicore.config.settings import MediaSettings
from fedicore.media.derivation import derive_assets
from fedicore.media.errors import StorageReadError, StorageWriteError
from fedicore.media.lifecycle import AttachmentLifecycleManager
from fedicore.media.store import InMemoryAttachmentStore


BASE_URL = "https://media.example.org/fileserver"


# ---------------------------------------------------------------------------
# Media payload builders
# ---------------------------------------------------------------------------


def make_image(
    size: tuple[int, int] = (800, 600), mode: str = "RGB", fmt: str = "PNG"
) -> bytes:
    """Encode a dark-to-light horizontal gradient."""
    img = Image.linear_gradient("L").rotate(90).resize(size).convert(mode)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def make_gif(frames: int = 2, size: tuple[int, int] = (64, 48)) -> bytes:
    # Distinct colours, Pillow merges identical consecutive frames
    images = [
        Image.new("RGB", size, color=(i * 80 % 256, 0, 255 - i * 80 % 256))
        for i in range(frames)
    ]
    buf = io.BytesIO()
    images[0].save(
        buf,
        format="GIF",
        save_all=True,
        append_images=images[1:],
        duration=100,
        loop=0,
    )
    return buf.getvalue()


def make_wav(seconds: float = 1.0, rate: int = 8000) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(rate)
        w.writeframes(b"\x00\x00" * int(rate * seconds))
    return buf.getvalue()


def make_flac(sample_rate: int = 44100, total_samples: int = 88200) -> bytes:
    """fLaC marker plus a STREAMINFO block; no audio frames."""
    packed = (sample_rate << 44) | (1 << 41) | (15 << 36) | total_samples
    streaminfo = (
        struct.pack(">HH", 4096, 4096)
        + b"\x00" * 6
        + packed.to_bytes(8, "big")
        + b"\x00" * 16
    )
    header = bytes([0x80]) + len(streaminfo).to_bytes(3, "big")
    return b"fLaC" + header + streaminfo


def mp4_box(box_type: bytes, payload: bytes) -> bytes:
    return struct.pack(">I4s", 8 + len(payload), box_type) + payload


def make_mp4(
    width: int = 640,
    height: int = 360,
    timescale: int = 1000,
    duration: int = 5000,
) -> bytes:
    """Minimal ISO BMFF: ftyp, then moov with mvhd and one trak/tkhd."""
    mvhd = struct.pack(">B3xIIII", 0, 0, 0, timescale, duration) + b"\x00" * 80
    tkhd = b"\x00" * 76 + struct.pack(">II", width << 16, height << 16)
    trak = mp4_box(b"trak", mp4_box(b"tkhd", tkhd))
    moov = mp4_box(b"moov", mp4_box(b"mvhd", mvhd) + trak)
    ftyp = mp4_box(b"ftyp", b"isom\x00\x00\x02\x00isomiso2")
    return ftyp + moov + mp4_box(b"mdat", b"\x00" * 32)


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------


class FakeStorage:
    """In-memory StorageAdapter that records every call.

    Set fail_put to a substring to make matching puts raise StorageWriteError.
    """

    def __init__(self, base_url: str = BASE_URL) -> None:
        self.base_url = base_url
        self.blobs: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.puts: list[str] = []
        self.deletes: list[str] = []
        self.fail_put: str | None = None

    async def put(self, path: str, data: bytes, content_type: str) -> None:
        await asyncio.sleep(0)
        if self.fail_put is not None and self.fail_put in path:
            raise StorageWriteError(path, "disk full")
        self.puts.append(path)
        self.blobs[path] = data
        self.content_types[path] = content_type

    async def get(self, path: str) -> bytes:
        await asyncio.sleep(0)
        if path not in self.blobs:
            raise StorageReadError(path, "no such blob")
        return self.blobs[path]

    async def delete(self, path: str) -> None:
        self.deletes.append(path)
        self.blobs.pop(path, None)

    def url_for(self, path: str) -> str:
        return f"{self.base_url}/{path}"


class CountingDeriver:
    """Wraps derive_assets and counts invocations."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self, data, kind, max_size):
        self.calls += 1
        return derive_assets(data, kind, max_size)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def png_bytes() -> bytes:
    return make_image((800, 600))


@pytest.fixture
def media_settings() -> MediaSettings:
    return MediaSettings(base_url=BASE_URL, max_upload_bytes=5 * 1024 * 1024)


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def store() -> InMemoryAttachmentStore:
    return InMemoryAttachmentStore()


@pytest.fixture
def deriver() -> CountingDeriver:
    return CountingDeriver()


@pytest.fixture
def manager(store, storage, media_settings, deriver) -> AttachmentLifecycleManager:
    return AttachmentLifecycleManager(
        store=store, storage=storage, settings=media_settings, derive=deriver
    )
