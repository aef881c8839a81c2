"""Exceptions raised by the media attachment pipeline."""

from __future__ import annotations


class MediaError(Exception):
    """Base class for media pipeline errors."""


class DecodeError(MediaError):
    """Raised when media bytes cannot be decoded as the declared kind."""


class StorageError(MediaError):
    """Raised when the blob store fails."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"storage error at {path}: {message}")


class StorageWriteError(StorageError):
    """Raised when a blob cannot be written or deleted."""


class StorageReadError(StorageError):
    """Raised when a blob cannot be read."""


class AttachmentNotFoundError(MediaError):
    """Raised when no attachment exists with the given id."""

    def __init__(self, attachment_id: str) -> None:
        self.attachment_id = attachment_id
        super().__init__(f"attachment {attachment_id} not found")


class InvalidTransitionError(MediaError):
    """Raised when a processing state change would move backwards."""

    def __init__(self, old: object, new: object) -> None:
        self.old = old
        self.new = new
        super().__init__(f"invalid processing transition {old} -> {new}")


class UnsupportedMediaError(MediaError, ValueError):
    """Raised at ingest for content types or kinds the pipeline does not accept."""


class UploadTooLargeError(MediaError, ValueError):
    """Raised at ingest when the payload exceeds the configured limit."""

    def __init__(self, size: int, limit: int) -> None:
        self.size = size
        self.limit = limit
        super().__init__(f"upload of {size} bytes exceeds limit of {limit} bytes")


class InvalidFocusError(MediaError, ValueError):
    """Raised when a focus point lies outside [-1, 1] on either axis."""


class AttachmentBusyError(MediaError):
    """Raised when an operation needs an attachment that is mid-processing."""

    def __init__(self, attachment_id: str) -> None:
        self.attachment_id = attachment_id
        super().__init__(f"attachment {attachment_id} is being processed")
