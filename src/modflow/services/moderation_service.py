"""
Orchestration of a complete moderation run for one stored submission.

The service loads the submission, drives the moderation pipeline, uploads an
accepted replacement image, and writes the final decision back to the
submission store. Progress is exposed through the persisted
``moderation_stage`` column, which only ever moves forward:

    queued -> analyzing -> running_moderation -> [uploading_generated_image]
           -> finalizing -> completed

or to ``error`` from any stage when the run fails unexpectedly. Each stage is
written before the work of that stage starts, so a poller always sees the last
stage actually reached.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, List, Mapping, Protocol, Set, Tuple

from modflow.datatypes.moderation_datatypes import (
    Decision,
    ModerationRecord,
    ModerationResult,
    ModerationStage,
)
from modflow.datatypes.submission_datatypes import SubmissionRecord
from modflow.configuration.moderation_settings import ModerationSettings
from modflow.exceptions import StageTransitionError, SubmissionNotFoundError
from modflow.moderation import decision_policy
from modflow.moderation.moderation_pipeline import ModerationPipeline
from modflow.repositories.submission_repo import utc_now_iso
from modflow.util import image_utils
from modflow.util.logger import get_logger

logger = get_logger("moderation_service")

NO_SUMMARY_PROVIDED = "No summary provided"

ImageFetcher = Callable[[str], Awaitable[Tuple[bytes, str]]]


class SubmissionStore(Protocol):
    async def fetch_by_id(self, submission_id: str) -> SubmissionRecord | None: ...

    async def update(self, submission_id: str, fields: Mapping[str, Any]) -> bool: ...


class BlobStore(Protocol):
    async def upload(self, data: bytes, content_type: str) -> str: ...


class StageTracker:
    """Persists stage transitions for one run and rejects regressions."""

    def __init__(self, submission_id: str, store: SubmissionStore) -> None:
        self.submission_id = submission_id
        self._store = store
        self.stage = ModerationStage.QUEUED

    async def advance(self, stage: ModerationStage, **fields: Any) -> None:
        """Durably move to `stage`, writing any extra `fields` in the same update.

        Raises:
            StageTransitionError: If `stage` is not after the current stage.
        """
        if self.stage.is_terminal:
            raise StageTransitionError(f"run already ended in stage {self.stage.value}")
        if stage is not ModerationStage.ERROR and stage.order <= self.stage.order:
            raise StageTransitionError(f"cannot move from {self.stage.value} to {stage.value}")

        await self._store.update(
            self.submission_id,
            {"moderation_stage": stage, "updated_at": utc_now_iso(), **fields},
        )
        logger.debug("[STAGE] %s: %s -> %s", self.submission_id, self.stage.value, stage.value)
        self.stage = stage


class ModerationService:
    """
    Entry point for moderating stored submissions.

    Attributes:
        store: Submission store the run reads from and writes to.
        blob_store: Durable storage for accepted replacement images.
        pipeline: Pipeline engine applied to each submission.
        settings: Policy thresholds for the final status computation.
    """

    def __init__(
        self,
        store: SubmissionStore,
        blob_store: BlobStore,
        pipeline: ModerationPipeline,
        settings: ModerationSettings | None = None,
        fetch_image: ImageFetcher = image_utils.fetch_image_bytes_async,
    ) -> None:
        self.store = store
        self.blob_store = blob_store
        self.pipeline = pipeline
        self.settings = settings or ModerationSettings()
        self._fetch_image = fetch_image
        self._background_tasks: Set[asyncio.Task] = set()

    async def run_moderation(self, submission_id: str) -> ModerationResult:
        """
        Moderate a submission and persist the outcome.

        Raises:
            SubmissionNotFoundError: If the submission does not exist. Nothing is written.
            Exception: Any unexpected failure, including a stored row that
                cannot be decoded, after the submission has been marked
                ``status=flagged, moderation_stage=error``.
        """
        tracker = StageTracker(submission_id, self.store)
        try:
            submission = await self.store.fetch_by_id(submission_id)
            if submission is None:
                raise SubmissionNotFoundError(submission_id)
            return await self._run(submission, tracker)
        except SubmissionNotFoundError:
            raise
        except Exception as exc:
            logger.error("[MODERATION] Run failed for %s: %s", submission_id, exc, exc_info=True)
            await self._record_failure(tracker, exc)
            raise

    def run_moderation_async(self, submission_id: str) -> None:
        """
        Schedule `run_moderation` in the background and return immediately.

        The outcome is only observable through the submission store. Must be
        called from a running event loop.
        """
        task = asyncio.create_task(self.run_moderation(submission_id), name=f"moderation-{submission_id}")
        self._background_tasks.add(task)
        task.add_done_callback(self._on_background_done)
        logger.info("[MODERATION] Queued background moderation for %s", submission_id)

    async def wait_for_background_tasks(self) -> None:
        """Wait until every scheduled background run has finished."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run(self, submission: SubmissionRecord, tracker: StageTracker) -> ModerationResult:
        submission_id = submission.submission_id

        await tracker.advance(ModerationStage.ANALYZING)
        record = ModerationRecord.create(
            submission.submission_type,
            text_content=submission.content,
            image_url=submission.image_url,
        )

        await tracker.advance(ModerationStage.RUNNING_MODERATION)
        run = await self.pipeline.run(record)
        final = run.record
        for diagnostic in final.diagnostics:
            logger.warning("[MODERATION] %s: %s", submission_id, diagnostic)

        final_image_url = submission.image_url
        if final.image_replaced_by_ai and final.generated_image_url:
            await tracker.advance(ModerationStage.UPLOADING_GENERATED_IMAGE)
            uploaded_url = await self._upload_generated_image(final.generated_image_url)
            if uploaded_url is None:
                # The original image stays, so it is judged on its own flags
                final = self._without_replacement(record, run.trace)
            else:
                final_image_url = uploaded_url

        status, reasoning = decision_policy.finalize(final, self.settings)
        analysis = final.technical_analysis()
        summary = final.summary or final.text_summary or NO_SUMMARY_PROVIDED

        await tracker.advance(ModerationStage.FINALIZING)
        await tracker.advance(
            ModerationStage.COMPLETED,
            status=status,
            summary=summary,
            reasoning=reasoning,
            toxicity=analysis.toxicity,
            nsfw_text=analysis.nsfw_text,
            nsfw_image=analysis.nsfw_image,
            violence=analysis.violence,
            image_replaced_by_ai=analysis.image_replaced_by_ai,
            image_url=final_image_url,
            completed_at=utc_now_iso(),
        )

        logger.info("[MODERATION] %s completed with status %s", submission_id, status.value)
        return ModerationResult(
            submission_id=submission_id,
            status=status,
            summary=summary,
            reasoning=reasoning,
            technical_analysis=analysis,
            image_url=final_image_url,
        )

    async def _upload_generated_image(self, generated_url: str) -> str | None:
        """Copy the generated image into durable storage.

        Returns None if the image cannot be fetched or stored.
        """
        try:
            data, content_type = await self._fetch_image(generated_url)
            return await self.blob_store.upload(data, content_type or "image/png")
        except Exception as exc:
            logger.error("[MODERATION] Uploading generated image failed, keeping original: %s", exc)
            return None

    @staticmethod
    def _without_replacement(
        initial: ModerationRecord,
        trace: List[Tuple[str, ModerationRecord]],
    ) -> ModerationRecord:
        """Return the last traced record from before the replacement was accepted."""
        before = initial
        for _, traced in trace:
            if traced.image_replaced_by_ai:
                break
            before = traced
        return before.update(
            should_replace_image=False,
            generated_image_url=None,
        ).with_diagnostic("upload_generated_image: upload failed, original image kept")

    async def _record_failure(self, tracker: StageTracker, exc: Exception) -> None:
        try:
            await tracker.advance(
                ModerationStage.ERROR,
                status=Decision.FLAGGED,
                reasoning=f"Moderation error: {exc}",
            )
        except Exception:
            logger.exception("[MODERATION] Could not record failure for %s", tracker.submission_id)

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background_tasks.discard(task)
        if task.cancelled():
            logger.warning("[MODERATION] Background task %s was cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("[MODERATION] Background task %s failed: %s", task.get_name(), exc)
