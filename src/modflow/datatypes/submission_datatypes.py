"""Persisted submission row as read from the submission store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from modflow.datatypes.moderation_datatypes import ModerationStage, SubmissionType


@dataclass(slots=True)
class SubmissionRecord:
    """A submission row.

    Attributes:
        submission_id: Primary key of the submission.
        submission_type: Text or image submission.
        content: Submitted text, if any.
        image_url: Public URL of the submitted (or final) image, if any.
        status: "pending" until moderated, then approved/flagged/rejected.
        moderation_stage: Last stage durably reached.
        summary: Finding summary written on completion.
        reasoning: Rendered reasoning string written on completion or error.
        toxicity: Persisted toxicity score.
        nsfw_text: Persisted NSFW text flag.
        nsfw_image: Persisted NSFW image flag.
        violence: Persisted violence flag.
        image_replaced_by_ai: Whether the stored image is a generated replacement.
        created_at: ISO-8601 creation timestamp.
        updated_at: ISO-8601 timestamp of the last stage write.
        completed_at: ISO-8601 completion timestamp.
    """

    submission_id: str
    submission_type: SubmissionType
    content: str | None = None
    image_url: str | None = None
    status: str = "pending"
    moderation_stage: ModerationStage = ModerationStage.QUEUED
    summary: str | None = None
    reasoning: str | None = None
    toxicity: float = 0.0
    nsfw_text: bool = False
    nsfw_image: bool = False
    violence: bool = False
    image_replaced_by_ai: bool = False
    created_at: str | None = None
    updated_at: str | None = None
    completed_at: str | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> SubmissionRecord:
        return cls(
            submission_id=str(row["id"]),
            submission_type=SubmissionType(row["type"]),
            content=row["content"],
            image_url=row["image_url"],
            status=row["status"],
            moderation_stage=ModerationStage(row["moderation_stage"]),
            summary=row["summary"],
            reasoning=row["reasoning"],
            toxicity=float(row["toxicity"] or 0.0),
            nsfw_text=bool(row["nsfw_text"]),
            nsfw_image=bool(row["nsfw_image"]),
            violence=bool(row["violence"]),
            image_replaced_by_ai=bool(row["image_replaced_by_ai"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            completed_at=row["completed_at"],
        )
