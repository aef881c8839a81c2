"""Base orchestrator for batch pipelines.

Provides the shared run() skeleton for pipelines that work through the
database in one pass:
- Database engine and session factory
- Table initialization
- Timing around the pipeline body

Usage:
    class MyOrchestrator(BaseOrchestrator):
        async def _run_pipeline(self, account_id, limit):
            ...

        def _log_summary(self, elapsed):
            ...
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from fedicore.db.engine import get_async_session, get_engine
from fedicore.db.models import Base

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker


class BaseOrchestrator(ABC):
    """Abstract base class for pipeline orchestrators.

    Subclasses implement _run_pipeline() and _log_summary().
    """

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url
        self.engine: AsyncEngine = get_engine(database_url)
        self.async_session: async_sessionmaker[AsyncSession] = get_async_session(
            database_url
        )
        self.start_time: float = 0.0

    async def init_db(self) -> None:
        """Create tables if they don't exist."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def run(
        self,
        account_id: str | None = None,
        limit: int | None = None,
    ) -> None:
        """Run the pipeline.

        Args:
            account_id: If provided, only work on this account's records.
            limit: If provided, stop after this many records.
        """
        self.start_time = time.time()

        await self.init_db()
        await self._run_pipeline(account_id=account_id, limit=limit)

        elapsed = time.time() - self.start_time
        self._log_summary(elapsed)

    @abstractmethod
    async def _run_pipeline(
        self,
        account_id: str | None = None,
        limit: int | None = None,
    ) -> None:
        """Execute the pipeline logic."""
        ...

    @abstractmethod
    def _log_summary(self, elapsed: float) -> None:
        """Log the final summary statistics.

        Args:
            elapsed: Total time elapsed in seconds.
        """
        ...
