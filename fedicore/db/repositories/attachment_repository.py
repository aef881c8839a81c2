"""Media attachment repository.

SQLAttachmentStore implements the AttachmentStore protocol on top of an
async session factory. Each call uses its own short-lived session, so the
store can be shared by concurrent advance() calls.
"""

from __future__ import annotations

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fedicore.db.models import MediaAttachmentRow
from fedicore.media.mappers import attachment_values, map_attachment, map_row
from fedicore.media.store import check_transition
from fedicore.media.types import MediaAttachment, ProcessingState


class SQLAttachmentStore:
    """AttachmentStore persisted in the media_attachments table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def load(self, attachment_id: str) -> MediaAttachment | None:
        async with self.session_factory() as session:
            result = await session.execute(
                select(MediaAttachmentRow).where(MediaAttachmentRow.id == attachment_id)
            )
            row = result.scalar_one_or_none()
            return map_row(row) if row is not None else None

    async def save(self, attachment: MediaAttachment) -> None:
        """Insert a new attachment record."""
        async with self.session_factory() as session:
            session.add(map_attachment(attachment))
            await session.commit()

    async def compare_and_swap_state(
        self,
        attachment_id: str,
        expected: ProcessingState,
        updated: MediaAttachment,
    ) -> MediaAttachment | None:
        """Rewrite the row only if its state is still `expected`.

        The state check and the write are one UPDATE statement, so the
        database decides the single winner among concurrent callers.

        Returns:
            The stored record if this call won, None otherwise
        """
        check_transition(expected, updated)
        values = attachment_values(updated)
        values.pop("id")
        values.pop("created_at")

        stmt = (
            update(MediaAttachmentRow)
            .where(
                MediaAttachmentRow.id == attachment_id,
                MediaAttachmentRow.processing_state == expected,
            )
            .values(**values)
            .returning(MediaAttachmentRow)
            .execution_options(synchronize_session=False)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
            if row is None:
                await session.rollback()
                return None
            stored = map_row(row)
            await session.commit()
            return stored

    async def delete(self, attachment_id: str) -> None:
        async with self.session_factory() as session:
            await session.execute(
                delete(MediaAttachmentRow).where(MediaAttachmentRow.id == attachment_id)
            )
            await session.commit()

    async def list_by_state(
        self,
        state: ProcessingState,
        limit: int | None = None,
        account_id: str | None = None,
    ) -> list[MediaAttachment]:
        """Attachments in `state`, oldest first."""
        stmt = (
            select(MediaAttachmentRow)
            .where(MediaAttachmentRow.processing_state == state)
            .order_by(MediaAttachmentRow.created_at, MediaAttachmentRow.id)
        )
        if account_id is not None:
            stmt = stmt.where(MediaAttachmentRow.account_id == account_id)
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return [map_row(row) for row in result.scalars().all()]
