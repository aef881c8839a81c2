"""Attachment lifecycle: ingest, processing state machine and cleanup.

    RECEIVED --advance()--> PROCESSING --> PROCESSED
                                      `--> ERROR

ingest() only stages the raw bytes and records a RECEIVED attachment; the
work happens in advance(), which may run later, elsewhere, and more than
once. advance() claims the attachment with a compare-and-swap on its state,
so of any number of concurrent callers exactly one derives and writes; the
others return the state they observe. A caller that gives up waiting on
ingest() never leaves a half-written record: the attachment stays RECEIVED
until the next sweep. Cancelling advance() itself after the claim records
the attempt as ERROR before the cancellation propagates.

Any failure during processing is recorded on the attachment (ERROR +
error_reason) rather than raised. ERROR is terminal; such attachments can
only be deleted.
"""

from __future__ import annotations

import asyncio
import mimetypes
from collections import Counter
from dataclasses import replace
from typing import Callable, Iterable

from fedicore.config.settings import MediaSettings
from fedicore.media.derivation import DerivedAssets, derive_assets
from fedicore.media.errors import (
    AttachmentBusyError,
    AttachmentNotFoundError,
    DecodeError,
    StorageError,
    UnsupportedMediaError,
    UploadTooLargeError,
)
from fedicore.media.logger import logger
from fedicore.media.storage import StorageAdapter
from fedicore.media.store import AttachmentStore
from fedicore.media.types import (
    FileMeta,
    Focus,
    LocalAsset,
    MediaAsset,
    MediaAttachment,
    MediaKind,
    ProcessingState,
    RemoteAsset,
    kind_for_content_type,
)
from fedicore.utils.ids import new_id
from fedicore.utils.time import utcnow


Deriver = Callable[[bytes, MediaKind, int], DerivedAssets]

STAGING = "staging"
ORIGINAL = "original"
SMALL = "small"


def extension_for(content_type: str | None) -> str:
    if not content_type:
        return ""
    return mimetypes.guess_extension(content_type, strict=False) or ""


def normalize_content_type(content_type: str) -> str:
    return content_type.split(";", 1)[0].strip().lower()


class AttachmentLifecycleManager:
    """Owns the processing state machine of media attachments."""

    def __init__(
        self,
        store: AttachmentStore,
        storage: StorageAdapter,
        settings: MediaSettings | None = None,
        derive: Deriver = derive_assets,
    ) -> None:
        self.store = store
        self.storage = storage
        self.settings = settings or MediaSettings()
        self.derive = derive

    # -------------------------------------------------------------------------
    # Storage layout
    # -------------------------------------------------------------------------

    @staticmethod
    def storage_path(
        account_id: str,
        variant: str,
        attachment_id: str,
        content_type: str | None = None,
    ) -> str:
        """Blob path, namespaced per account and per attachment.

        Staging and thumbnail blobs carry no extension: the thumbnail's
        format is only known after derivation, and its content type lives
        on the record.
        """
        return (
            f"{account_id}/attachment/{variant}/{attachment_id}"
            f"{extension_for(content_type)}"
        )

    def _local(self, path: str) -> LocalAsset:
        return LocalAsset(path=path, url=self.storage.url_for(path))

    # -------------------------------------------------------------------------
    # Ingest
    # -------------------------------------------------------------------------

    def _validate_upload(self, data: bytes, kind: MediaKind, content_type: str) -> str:
        if not data:
            raise UnsupportedMediaError("empty upload")
        if len(data) > self.settings.max_upload_bytes:
            raise UploadTooLargeError(len(data), self.settings.max_upload_bytes)

        ct = normalize_content_type(content_type)
        if ct not in self.settings.allowed_content_types:
            raise UnsupportedMediaError(f"content type {ct!r} is not accepted")
        declared = kind_for_content_type(ct)
        if kind is MediaKind.UNKNOWN or kind is not declared:
            raise UnsupportedMediaError(
                f"kind {kind.value} does not match content type {ct!r}"
            )
        return ct

    async def ingest(
        self,
        data: bytes,
        account_id: str,
        kind: MediaKind,
        content_type: str,
        focus: Focus | None = None,
        description: str | None = None,
        status_id: str | None = None,
    ) -> str:
        """Accept an upload and record it as RECEIVED.

        The raw bytes are staged in storage; no derivation happens here.

        Returns:
            The new attachment id

        Raises:
            UnsupportedMediaError: Empty payload, content type not accepted,
                or kind disagreeing with the content type
            UploadTooLargeError: Payload above the configured limit
            StorageWriteError: The bytes could not be staged (nothing is
                recorded in that case)
        """
        if not account_id:
            raise ValueError("account_id is required")
        ct = self._validate_upload(data, kind, content_type)

        attachment_id = new_id()
        staging_path = self.storage_path(account_id, STAGING, attachment_id)
        await self.storage.put(staging_path, data, ct)

        now = utcnow()
        await self.store.save(
            MediaAttachment(
                id=attachment_id,
                account_id=account_id,
                kind=kind,
                processing_state=ProcessingState.RECEIVED,
                original=MediaAsset(content_type=ct, byte_size=len(data)),
                meta=FileMeta(focus=focus),
                description=description,
                status_id=status_id,
                staging_path=staging_path,
                created_at=now,
                updated_at=now,
            )
        )
        logger.attachment_received(attachment_id, kind.value, len(data))
        return attachment_id

    async def ingest_remote(
        self,
        remote_url: str,
        account_id: str,
        kind: MediaKind,
        content_type: str | None = None,
        remote_thumbnail_url: str | None = None,
        meta: FileMeta | None = None,
        content_hash: str | None = None,
        description: str | None = None,
        status_id: str | None = None,
    ) -> str:
        """Record a federated-in attachment by reference.

        The origin server already derived its variants, so the record is
        PROCESSED immediately and both assets point at remote URLs. Without
        a remote thumbnail the original doubles as preview.
        """
        if not remote_url:
            raise ValueError("remote_url is required")
        if not account_id:
            raise ValueError("account_id is required")

        attachment_id = new_id()
        now = utcnow()
        await self.store.save(
            MediaAttachment(
                id=attachment_id,
                account_id=account_id,
                kind=kind,
                processing_state=ProcessingState.PROCESSED,
                original=MediaAsset(
                    location=RemoteAsset(remote_url),
                    content_type=normalize_content_type(content_type)
                    if content_type
                    else None,
                    updated_at=now,
                ),
                thumbnail=MediaAsset(
                    location=RemoteAsset(remote_thumbnail_url or remote_url),
                    updated_at=now,
                ),
                meta=meta or FileMeta(),
                content_hash=content_hash,
                description=description,
                status_id=status_id,
                created_at=now,
                updated_at=now,
            )
        )
        return attachment_id

    # -------------------------------------------------------------------------
    # Processing
    # -------------------------------------------------------------------------

    async def get(self, attachment_id: str) -> MediaAttachment:
        attachment = await self.store.load(attachment_id)
        if attachment is None:
            raise AttachmentNotFoundError(attachment_id)
        return attachment

    async def advance(self, attachment_id: str) -> ProcessingState:
        """Process a RECEIVED attachment; a no-op in any other state.

        Returns:
            The attachment's state after this call

        Raises:
            AttachmentNotFoundError: No such attachment
        """
        current = await self.get(attachment_id)
        if current.processing_state is not ProcessingState.RECEIVED:
            logger.attachment_skipped(attachment_id, current.processing_state.value)
            return current.processing_state

        thumbnail_path = self.storage_path(current.account_id, SMALL, attachment_id)
        claim = replace(
            current,
            processing_state=ProcessingState.PROCESSING,
            thumbnail=MediaAsset(location=self._local(thumbnail_path)),
            updated_at=utcnow(),
        )
        claimed = await self.store.compare_and_swap_state(
            attachment_id, ProcessingState.RECEIVED, claim
        )
        if claimed is None:
            # Lost the race: someone else is (or was) processing it
            latest = await self.get(attachment_id)
            logger.attachment_skipped(attachment_id, latest.processing_state.value)
            return latest.processing_state

        logger.attachment_claimed(attachment_id)
        return await self._process(claimed)

    async def _process(self, claimed: MediaAttachment) -> ProcessingState:
        assert claimed.thumbnail is not None and claimed.staging_path is not None
        thumbnail_path = claimed.thumbnail.path
        original_type = claimed.original.content_type or "application/octet-stream"
        original_path = self.storage_path(
            claimed.account_id, ORIGINAL, claimed.id, original_type
        )

        written: list[str] = []
        try:
            data = await self.storage.get(claimed.staging_path)
            derived = await asyncio.to_thread(
                self.derive, data, claimed.kind, self.settings.thumbnail_max_size
            )
            await self.storage.put(
                thumbnail_path, derived.thumbnail_bytes, derived.thumbnail_content_type
            )
            written.append(thumbnail_path)
            await self.storage.put(original_path, data, original_type)
            written.append(original_path)

            now = utcnow()
            processed = replace(
                claimed,
                processing_state=ProcessingState.PROCESSED,
                original=MediaAsset(
                    location=self._local(original_path),
                    content_type=original_type,
                    byte_size=len(data),
                    updated_at=now,
                ),
                thumbnail=MediaAsset(
                    location=self._local(thumbnail_path),
                    content_type=derived.thumbnail_content_type,
                    byte_size=len(derived.thumbnail_bytes),
                    updated_at=now,
                ),
                meta=replace(
                    claimed.meta, original=derived.original, small=derived.small
                ),
                content_hash=derived.content_hash,
                staging_path=None,
                updated_at=now,
            )
            stored = await self.store.compare_and_swap_state(
                claimed.id, ProcessingState.PROCESSING, processed
            )
        except (DecodeError, StorageError) as e:
            return await self._fail(claimed, str(e), written)
        except asyncio.CancelledError:
            await self._fail(claimed, "processing interrupted", written)
            raise
        except Exception as e:
            # Anything else would strand the record in PROCESSING
            return await self._fail(
                claimed, f"unexpected failure: {type(e).__name__}: {e}", written
            )

        if stored is None:
            # The record vanished or was moved on while we worked
            await self._remove_blobs(written)
            return (await self.get(claimed.id)).processing_state

        await self._remove_blobs([claimed.staging_path])
        logger.attachment_processed(
            claimed.id,
            derived.original.width,
            derived.original.height,
            derived.original.duration,
        )
        return ProcessingState.PROCESSED

    async def _fail(
        self, claimed: MediaAttachment, reason: str, written: list[str]
    ) -> ProcessingState:
        """Move a claimed attachment to ERROR, keeping the staged bytes."""
        logger.attachment_failed(claimed.id, reason)
        await self._remove_blobs(written)
        failed = replace(
            claimed,
            processing_state=ProcessingState.ERROR,
            thumbnail=None,
            error_reason=reason,
            updated_at=utcnow(),
        )
        await self.store.compare_and_swap_state(
            claimed.id, ProcessingState.PROCESSING, failed
        )
        return ProcessingState.ERROR

    async def _remove_blobs(self, paths: Iterable[str]) -> None:
        """Best-effort removal of blobs no record points at any more."""
        for path in paths:
            try:
                await self.storage.delete(path)
            except StorageError as e:
                logger.cleanup_failed(path, e.message)

    async def advance_many(
        self,
        attachment_ids: Iterable[str],
        concurrency: int = 4,
        on_done: Callable[[str, ProcessingState | None], None] | None = None,
    ) -> Counter[ProcessingState]:
        """Advance several attachments with bounded parallelism.

        One attachment's trouble never stops the others: an id deleted since
        it was listed is skipped, and any other error from advance() is
        logged and leaves that attachment for the next sweep.

        Args:
            attachment_ids: Attachments to advance
            concurrency: Maximum advance() calls in flight
            on_done: Called with (id, resulting state) as each one finishes;
                the state is None when the attachment could not be advanced

        Returns:
            Count of resulting states, not including ids that could not be
            advanced
        """
        semaphore = asyncio.Semaphore(concurrency)

        async def _one(attachment_id: str) -> ProcessingState | None:
            state: ProcessingState | None = None
            try:
                async with semaphore:
                    state = await self.advance(attachment_id)
            except AttachmentNotFoundError:
                logger.attachment_gone(attachment_id)
            except Exception as e:
                logger.advance_failed(attachment_id, e)
            if on_done is not None:
                on_done(attachment_id, state)
            return state

        states = await asyncio.gather(*(_one(i) for i in attachment_ids))
        return Counter(s for s in states if s is not None)

    async def list_pending(
        self, limit: int | None = None, account_id: str | None = None
    ) -> list[str]:
        """Ids of RECEIVED attachments, oldest first."""
        pending = await self.store.list_by_state(
            ProcessingState.RECEIVED, limit=limit, account_id=account_id
        )
        return [a.id for a in pending]

    # -------------------------------------------------------------------------
    # Deletion
    # -------------------------------------------------------------------------

    async def delete(self, attachment_id: str) -> None:
        """Remove an attachment's blobs, then its record.

        Raises:
            AttachmentNotFoundError: No such attachment
            AttachmentBusyError: The attachment is mid-processing
            StorageWriteError: A blob could not be removed; the record is kept
        """
        attachment = await self.get(attachment_id)
        if attachment.processing_state is ProcessingState.PROCESSING:
            raise AttachmentBusyError(attachment_id)
        for path in attachment.stored_paths():
            await self.storage.delete(path)
        await self.store.delete(attachment_id)
