"""Sweep worker for the media pipeline.

Finds RECEIVED attachments and advances them. Safe to run on several hosts
at once: the state compare-and-swap lets only one of them process each
attachment, the rest count it as skipped.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from fedicore.config.settings import AppSettings, load_config
from fedicore.core import BaseOrchestrator
from fedicore.db.engine import dispose_engines
from fedicore.db.repositories import SQLAttachmentStore
from fedicore.media.lifecycle import AttachmentLifecycleManager
from fedicore.media.logger import logger
from fedicore.media.storage import FileSystemStorage
from fedicore.media.types import MediaKind, ProcessingState, kind_for_content_type


class MediaOrchestrator(BaseOrchestrator):
    """Advances pending attachments in bounded-concurrency batches."""

    def __init__(self, settings: AppSettings, concurrency: int = 4) -> None:
        super().__init__(settings.database_url)
        self.settings = settings
        self.concurrency = concurrency
        self.manager = AttachmentLifecycleManager(
            store=SQLAttachmentStore(self.async_session),
            storage=FileSystemStorage(
                settings.media.storage_root, settings.media.base_url
            ),
            settings=settings.media,
        )
        # Stats
        self.processed = 0
        self.failed = 0
        self.skipped = 0

    async def _run_pipeline(
        self,
        account_id: str | None = None,
        limit: int | None = None,
    ) -> None:
        """Advance every pending attachment (optionally filtered)."""
        pending = await self.manager.list_pending(limit=limit, account_id=account_id)
        if not pending:
            logger.info("No pending attachments")
            return

        logger.info(f"Advancing {len(pending)} pending attachments")
        with logger.progress_context() as progress:
            task = progress.add_task("Advancing attachments", total=len(pending))
            states = await self.manager.advance_many(
                pending,
                self.concurrency,
                on_done=lambda _id, _state: progress.advance(task),
            )
        processed = states[ProcessingState.PROCESSED]
        failed = states[ProcessingState.ERROR]
        self.processed += processed
        self.failed += failed
        # Claimed by another worker, deleted, or left for the next sweep
        self.skipped += len(pending) - processed - failed

    def _log_summary(self, elapsed: float) -> None:
        logger.summary(
            processed=self.processed,
            failed=self.failed,
            skipped=self.skipped,
            elapsed=elapsed,
        )

    async def ingest_file(
        self,
        path: str | Path,
        account_id: str,
        content_type: str,
        kind: MediaKind | None = None,
        description: str | None = None,
    ) -> str:
        """Accept a file from disk as a new upload and process it right away."""
        await self.init_db()
        data = await asyncio.to_thread(Path(path).read_bytes)
        kind = kind or kind_for_content_type(content_type)

        with logger.block(str(path)) as block:
            block.field("kind", kind.value)
            block.field("size", f"{len(data):,} bytes")
            attachment_id = await self.manager.ingest(
                data,
                account_id=account_id,
                kind=kind,
                content_type=content_type,
                description=description,
            )
            block.field("id", attachment_id, color="cyan")

            state = await self.manager.advance(attachment_id)
            attachment = await self.manager.get(attachment_id)
            if state is ProcessingState.PROCESSED:
                meta = attachment.meta.original
                block.field("dimensions", f"{meta.width}x{meta.height}")
                block.field("url", attachment.original.url)
                block.result(state.value)
            else:
                block.result(attachment.error_reason or state.value, success=False)
        return attachment_id


async def run_media(
    config_path: str = "config.json",
    account_id: str | None = None,
    limit: int | None = None,
    concurrency: int = 4,
) -> None:
    """Entry point for running the media sweep."""
    settings = load_config(config_path)
    orchestrator = MediaOrchestrator(settings, concurrency=concurrency)
    try:
        await orchestrator.run(account_id=account_id, limit=limit)
    finally:
        await dispose_engines()


async def ingest_media(
    path: str,
    account_id: str,
    content_type: str,
    config_path: str = "config.json",
    kind: MediaKind | None = None,
    description: str | None = None,
) -> str:
    """Entry point for ingesting a single local file."""
    settings = load_config(config_path)
    orchestrator = MediaOrchestrator(settings)
    try:
        return await orchestrator.ingest_file(
            path,
            account_id=account_id,
            content_type=content_type,
            kind=kind,
            description=description,
        )
    finally:
        await dispose_engines()
