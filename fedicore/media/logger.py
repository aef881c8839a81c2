"""Rich-based logging for the media attachment pipeline."""

from __future__ import annotations

from typing import Any

from fedicore.utils.pipeline_logger import BasePipelineLogger


class MediaLogger(BasePipelineLogger):
    """Logger for attachment lifecycle events.

    Routine transitions go to DEBUG so a busy sweeper stays quiet at INFO;
    failures are always WARNING.
    """

    def __init__(self) -> None:
        super().__init__(__name__)

    # -------------------------------------------------------------------------
    # Lifecycle events
    # -------------------------------------------------------------------------

    def attachment_received(
        self, attachment_id: str, kind: str, byte_size: int
    ) -> None:
        self._logger.debug(
            f"Received {kind} attachment {attachment_id} ({byte_size:,} bytes)"
        )

    def attachment_claimed(self, attachment_id: str) -> None:
        self._logger.debug(f"Claimed attachment {attachment_id} for processing")

    def attachment_skipped(self, attachment_id: str, state: str) -> None:
        self._logger.debug(f"Attachment {attachment_id} already {state}, skipping")

    def attachment_processed(
        self, attachment_id: str, width: int, height: int, duration: float | None
    ) -> None:
        detail = f"{width}x{height}"
        if duration is not None:
            detail += f", {duration:.1f}s"
        self._logger.debug(f"Processed attachment {attachment_id} ({detail})")

    def attachment_failed(self, attachment_id: str, reason: str) -> None:
        self._logger.warning(f"Attachment {attachment_id} failed: {reason}")

    def attachment_gone(self, attachment_id: str) -> None:
        self._logger.debug(f"Attachment {attachment_id} no longer exists, skipping")

    def advance_failed(self, attachment_id: str, error: BaseException) -> None:
        self._logger.error(
            f"Could not advance attachment {attachment_id}: "
            f"{type(error).__name__}: {error}"
        )

    def cleanup_failed(self, path: str, reason: str) -> None:
        self._logger.warning(f"Could not remove blob {path}: {reason}")

    # -------------------------------------------------------------------------
    # Summary
    # -------------------------------------------------------------------------

    def summary(
        self,
        processed: int = 0,
        failed: int = 0,
        skipped: int = 0,
        elapsed: float = 0.0,
        **kwargs: Any,
    ) -> None:
        """Print final sweep summary."""
        self.print_summary(
            "Media processing",
            elapsed=elapsed,
            stats={
                "Processed": processed,
                "Failed": failed,
                "Skipped": skipped,
            },
            throughput=processed + failed,
        )


# Global logger instance
logger = MediaLogger()
