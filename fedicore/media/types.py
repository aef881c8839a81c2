"""Domain types for media attachments.

A MediaAttachment is an immutable value. The lifecycle manager is the only
code that produces new versions of it (via dataclasses.replace) and hands
them to an AttachmentStore.

Asset locations are a closed union:
- LocalAsset: blob lives in our StorageAdapter and is served by us
- RemoteAsset: blob lives on the origin server of a federated-in attachment
An asset with location None has not been written anywhere yet, which is only
legal while the attachment is still RECEIVED.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Union

from fedicore.media.errors import InvalidFocusError
from fedicore.utils.time import utcnow


class MediaKind(str, enum.Enum):
    """Kind of media, fixed at ingest."""

    IMAGE = "image"
    GIF = "gif"
    AUDIO = "audio"
    VIDEO = "video"
    UNKNOWN = "unknown"


class ProcessingState(str, enum.Enum):
    """How far along the processing pipeline an attachment is.

    RECEIVED: accepted, raw bytes staged, no thumbnail yet.
    PROCESSING: claimed by exactly one worker; thumbnail location reserved.
    PROCESSED: original and thumbnail stored, metadata populated.
    ERROR: terminal failure; eligible for deletion only.
    """

    RECEIVED = "received"
    PROCESSING = "processing"
    PROCESSED = "processed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingState.PROCESSED, ProcessingState.ERROR)


ALLOWED_TRANSITIONS: dict[ProcessingState, frozenset[ProcessingState]] = {
    ProcessingState.RECEIVED: frozenset({ProcessingState.PROCESSING}),
    ProcessingState.PROCESSING: frozenset(
        {ProcessingState.PROCESSED, ProcessingState.ERROR}
    ),
    ProcessingState.PROCESSED: frozenset(),
    ProcessingState.ERROR: frozenset(),
}


def can_transition(old: ProcessingState, new: ProcessingState) -> bool:
    return new in ALLOWED_TRANSITIONS[old]


def kind_for_content_type(content_type: str) -> MediaKind:
    """Map a MIME type to the media kind it declares."""
    ct = content_type.split(";", 1)[0].strip().lower()
    if ct == "image/gif":
        return MediaKind.GIF
    major = ct.split("/", 1)[0]
    if major == "image":
        return MediaKind.IMAGE
    if major == "video":
        return MediaKind.VIDEO
    if major == "audio":
        return MediaKind.AUDIO
    return MediaKind.UNKNOWN


# ---------------------------------------------------------------------------
# Asset locations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LocalAsset:
    """Blob held in our storage, served from our fileserver."""

    path: str
    url: str


@dataclass(frozen=True)
class RemoteAsset:
    """Blob held by the origin server of a federated attachment."""

    remote_url: str


AssetLocation = Union[LocalAsset, RemoteAsset]


@dataclass(frozen=True)
class MediaAsset:
    """One stored variant (original or thumbnail) of an attachment."""

    location: AssetLocation | None = None
    content_type: str | None = None
    byte_size: int = 0
    updated_at: datetime | None = None

    @property
    def is_stored(self) -> bool:
        return self.location is not None

    @property
    def path(self) -> str | None:
        if isinstance(self.location, LocalAsset):
            return self.location.path
        return None

    @property
    def url(self) -> str | None:
        """URL a client should fetch this variant from."""
        if isinstance(self.location, LocalAsset):
            return self.location.url
        if isinstance(self.location, RemoteAsset):
            return self.location.remote_url
        return None


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VariantMeta:
    """Dimensions of one variant. duration is seconds, None for still media."""

    width: int = 0
    height: int = 0
    size: int = 0
    aspect: float = 0.0
    duration: float | None = None

    @classmethod
    def from_dimensions(
        cls, width: int, height: int, duration: float | None = None
    ) -> "VariantMeta":
        aspect = width / height if height else 0.0
        return cls(
            width=width,
            height=height,
            size=width * height,
            aspect=aspect,
            duration=duration,
        )


@dataclass(frozen=True)
class Focus:
    """Visual centre of the media for cropping; x and y within [-1, 1]."""

    x: float = 0.0
    y: float = 0.0

    def __post_init__(self) -> None:
        for axis, value in (("x", self.x), ("y", self.y)):
            if not -1.0 <= value <= 1.0:
                raise InvalidFocusError(f"focus {axis}={value} outside [-1, 1]")

    @classmethod
    def parse(cls, value: str) -> "Focus":
        """Parse the "x,y" form used by client APIs."""
        try:
            x_str, y_str = value.split(",")
            x, y = float(x_str), float(y_str)
        except ValueError as e:
            raise InvalidFocusError(f"malformed focus {value!r}") from e
        return cls(x, y)


@dataclass(frozen=True)
class FileMeta:
    original: VariantMeta = field(default_factory=VariantMeta)
    small: VariantMeta = field(default_factory=VariantMeta)
    focus: Focus | None = None


# ---------------------------------------------------------------------------
# Attachment
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MediaAttachment:
    """A user-uploaded or federated-in image/gif/audio/video attachment."""

    id: str
    account_id: str
    kind: MediaKind
    processing_state: ProcessingState = ProcessingState.RECEIVED
    original: MediaAsset = field(default_factory=MediaAsset)
    thumbnail: MediaAsset | None = None
    meta: FileMeta = field(default_factory=FileMeta)
    content_hash: str | None = None
    description: str | None = None
    status_id: str | None = None
    staging_path: str | None = None
    error_reason: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        state = self.processing_state
        has_thumbnail = self.thumbnail is not None and self.thumbnail.is_stored
        wants_thumbnail = state in (
            ProcessingState.PROCESSING,
            ProcessingState.PROCESSED,
        )
        if has_thumbnail != wants_thumbnail:
            raise ValueError(
                f"attachment {self.id}: thumbnail location must be set "
                f"exactly when processing or processed (state={state.value})"
            )
        if state is ProcessingState.PROCESSED and not self.original.is_stored:
            raise ValueError(
                f"attachment {self.id}: processed without a stored original"
            )
        if (self.error_reason is not None) != (state is ProcessingState.ERROR):
            raise ValueError(
                f"attachment {self.id}: error_reason is set only in error state"
            )

    @property
    def is_local(self) -> bool:
        return not isinstance(self.original.location, RemoteAsset)

    @property
    def is_servable(self) -> bool:
        """Whether normal serving paths may show this attachment.

        RECEIVED and PROCESSING attachments are shown without a preview;
        ERROR attachments are excluded.
        """
        return self.processing_state is not ProcessingState.ERROR

    def stored_paths(self) -> list[str]:
        """All local blob paths this attachment currently references."""
        paths = [self.staging_path, self.original.path]
        if self.thumbnail is not None:
            paths.append(self.thumbnail.path)
        return [p for p in paths if p]
