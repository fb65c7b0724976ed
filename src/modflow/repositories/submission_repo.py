"""
Repository for the submissions table.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping

from modflow.database.db_connection import ConnectionManager
from modflow.datatypes.moderation_datatypes import ModerationStage, SubmissionType
from modflow.datatypes.submission_datatypes import SubmissionRecord
from modflow.util.logger import get_logger

logger = get_logger("submission_repo")

# Columns callers may change through update()
UPDATABLE_COLUMNS = frozenset({
    "content",
    "image_url",
    "status",
    "moderation_stage",
    "summary",
    "reasoning",
    "toxicity",
    "nsfw_text",
    "nsfw_image",
    "violence",
    "image_replaced_by_ai",
    "updated_at",
    "completed_at",
})


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_column_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    return value


class SubmissionRepository:
    """Submission store backed by the shared SQLite connection."""

    def __init__(self, db: ConnectionManager) -> None:
        self._db = db

    async def create(
        self,
        submission_type: SubmissionType,
        content: str | None = None,
        image_url: str | None = None,
    ) -> SubmissionRecord:
        """Insert a new pending submission queued for moderation."""
        submission_id = str(uuid.uuid4())
        now = utc_now_iso()
        async with self._db.transaction() as conn:
            await conn.execute(
                """
                INSERT INTO submissions (id, type, content, image_url, status, moderation_stage, created_at, updated_at)
                VALUES (?, ?, ?, ?, 'pending', ?, ?, ?)
                """,
                (submission_id, submission_type.value, content, image_url, ModerationStage.QUEUED.value, now, now),
            )
        logger.debug("[SUBMISSIONS] Created %s submission %s", submission_type.value, submission_id)

        record = await self.fetch_by_id(submission_id)
        if record is None:
            raise RuntimeError(f"submission {submission_id} vanished after insert")
        return record

    async def fetch_by_id(self, submission_id: str) -> SubmissionRecord | None:
        """Return the submission with `submission_id`, or None if it does not exist."""
        async with self._db.read() as conn:
            async with conn.execute("SELECT * FROM submissions WHERE id = ?", (submission_id,)) as cursor:
                row = await cursor.fetchone()
        return SubmissionRecord.from_row(row) if row is not None else None

    async def update(self, submission_id: str, fields: Mapping[str, Any]) -> bool:
        """Apply a partial update; the last write wins.

        Returns:
            True if a row was updated.

        Raises:
            ValueError: If `fields` names a column that cannot be updated.
        """
        unknown = set(fields) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"cannot update submission columns: {', '.join(sorted(unknown))}")
        if not fields:
            return False

        values: Dict[str, Any] = {key: _to_column_value(value) for key, value in fields.items()}
        assignments = ", ".join(f"{column} = ?" for column in values)
        async with self._db.transaction() as conn:
            cursor = await conn.execute(
                f"UPDATE submissions SET {assignments} WHERE id = ?",
                (*values.values(), submission_id),
            )
            updated = cursor.rowcount > 0

        if not updated:
            logger.warning("[SUBMISSIONS] Update matched no submission %s", submission_id)
        return updated
