"""Batch processing service for verifying many label images.

Items run in consecutive chunks of at most ``concurrency_limit``. Every
item in a chunk runs concurrently and the whole chunk settles before the
next one starts. A failed item is recorded and the run carries on.
Cancellation is checked only between chunks, so a chunk already in flight
always completes and its results are kept.
"""

import asyncio
import uuid
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from ..config import get_settings
from ..models.schemas import (
    ApplicationData,
    BatchItemError,
    BatchProgress,
    VerificationVerdict,
)
from .fields import get_field_definitions
from .pipeline import VerificationPipeline

logger = logging.getLogger(__name__)


ProgressListener = Callable[[BatchProgress], None]


@dataclass
class BatchItem:
    """One label image to verify."""
    file_name: str
    image_bytes: bytes
    media_type: Optional[str] = None


class BatchState(str, Enum):
    """Lifecycle of a batch run."""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def chunked(items: Sequence[BatchItem], size: int) -> List[Sequence[BatchItem]]:
    """Split items into consecutive chunks of at most ``size``."""
    return [items[i:i + size] for i in range(0, len(items), size)]


class BatchRun:
    """
    A single batch verification run.

    Progress snapshots go to ``on_progress`` once per settled chunk; the
    run's counters and accumulated lists are only touched at that point.
    """

    def __init__(
        self,
        pipeline: VerificationPipeline,
        on_progress: Optional[ProgressListener] = None,
        run_id: Optional[str] = None,
    ):
        self.settings = get_settings()
        self.pipeline = pipeline
        self.on_progress = on_progress
        self.run_id = run_id or str(uuid.uuid4())
        self.state = BatchState.IDLE

        self._cancel_requested = False
        self._generation = 0
        self._clear()

    def _clear(self) -> None:
        self._total = 0
        self._completed = 0
        self._failed = 0
        self._in_progress = 0
        self._results: List[VerificationVerdict] = []
        self._errors: List[BatchItemError] = []

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_requested

    def snapshot(self) -> BatchProgress:
        """Current progress; lists are copies."""
        return BatchProgress(
            total=self._total,
            completed=self._completed,
            failed=self._failed,
            in_progress=self._in_progress,
            results=list(self._results),
            errors=list(self._errors),
        )

    async def start(
        self,
        items: Sequence[BatchItem],
        application: ApplicationData,
        concurrency_limit: Optional[int] = None,
    ) -> BatchProgress:
        """
        Verify every item against the shared application data.

        Args:
            items: Label images, processed in order
            application: Expected values shared by every item
            concurrency_limit: Max items in flight (defaults to config)

        Returns:
            Final progress snapshot

        Raises:
            ValueError: If concurrency_limit is less than 1
            RuntimeError: If the run is already running
            UnknownBeverageTypeError: If the application's beverage type is not registered
        """
        if concurrency_limit is None:
            concurrency_limit = self.settings.batch_concurrency
        if concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be at least 1, got {concurrency_limit}")
        if self.state == BatchState.RUNNING:
            raise RuntimeError(f"Batch run {self.run_id} is already running")

        get_field_definitions(application.beverage_type)

        self._clear()
        self._cancel_requested = False
        self._generation += 1
        generation = self._generation
        self._total = len(items)
        self.state = BatchState.RUNNING

        logger.info(f"Batch {self.run_id}: {len(items)} items, concurrency {concurrency_limit}")

        try:
            for chunk in chunked(items, concurrency_limit):
                if self._cancel_requested:
                    break

                self._in_progress = len(chunk)
                outcomes = await asyncio.gather(
                    *(self._verify_item(item, application) for item in chunk),
                    return_exceptions=True,
                )

                if generation != self._generation:
                    # reset() ran while the chunk was in flight
                    return self.snapshot()

                results, errors = self._settle_chunk(chunk, outcomes)
                self._apply_chunk(results, errors)
                logger.info(
                    f"Batch {self.run_id}: {self._completed + self._failed}/{self._total} processed"
                )
                self._emit()
        finally:
            if generation == self._generation:
                self._finish()

        return self.snapshot()

    async def _verify_item(self, item: BatchItem, application: ApplicationData) -> VerificationVerdict:
        return await self.pipeline.verify_image(
            item.image_bytes,
            application,
            media_type=item.media_type,
            file_name=item.file_name,
        )

    def _settle_chunk(
        self,
        chunk: Sequence[BatchItem],
        outcomes: list,
    ) -> Tuple[List[VerificationVerdict], List[BatchItemError]]:
        """Split a settled chunk into verdicts and item errors without touching run state."""
        results = []
        errors = []
        for item, outcome in zip(chunk, outcomes):
            if isinstance(outcome, BaseException):
                message = str(outcome) or type(outcome).__name__
                logger.warning(f"Batch {self.run_id}: {item.file_name} failed: {message}")
                errors.append(BatchItemError(file_name=item.file_name, error=message))
            else:
                results.append(outcome)
        return results, errors

    def _apply_chunk(self, results: List[VerificationVerdict], errors: List[BatchItemError]) -> None:
        self._in_progress = 0
        self._results.extend(results)
        self._errors.extend(errors)
        self._completed += len(results)
        self._failed += len(errors)

    def _finish(self) -> None:
        """Leave the running state; unprocessed items mean the run was stopped early."""
        self._in_progress = 0
        processed = self._completed + self._failed
        if processed < self._total:
            self.state = BatchState.CANCELLED
        else:
            self.state = BatchState.COMPLETED

        logger.info(
            f"Batch {self.run_id} {self.state.value}: {self._completed} verified, "
            f"{self._failed} failed, {self._total - processed} not started"
        )

    def _emit(self) -> None:
        if self.on_progress is not None:
            self.on_progress(self.snapshot())

    def cancel(self) -> None:
        """Request a stop; the chunk in flight still completes."""
        if self.state == BatchState.RUNNING:
            logger.info(f"Batch {self.run_id}: cancellation requested")
        self._cancel_requested = True

    def reset(self) -> None:
        """Force cancellation and clear all progress."""
        self._cancel_requested = True
        self._generation += 1
        self._clear()
        self.state = BatchState.IDLE
