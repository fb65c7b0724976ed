"""
Core data structures for the moderation workflow.

This module defines the state threaded through the moderation pipeline and the
validated shapes produced at each external-service boundary.

Key Features:
- `ModerationRecord`: Immutable accumulator passed from step to step. Steps
  return an updated copy via `dataclasses.replace`, so every intermediate
  state stays inspectable.
- `TechnicalAnalysis`: The numeric/boolean findings the decision policy reads.
- `TextAnalysis`, `DecisionResult`, `GeneratedImage`: Normalized capability outputs.
- `ModerationResult`: What the orchestration service reports to its caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Tuple


class SubmissionType(Enum):
    """Kind of content a user submitted."""

    TEXT = "text"
    IMAGE = "image"

    def __str__(self) -> str:
        return self.value


class Decision(Enum):
    """Final disposition of a submission."""

    APPROVED = "approved"
    FLAGGED = "flagged"
    REJECTED = "rejected"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Any, default: Decision) -> Decision:
        """Coerce a loosely typed value into a Decision, falling back to `default`."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return default


class ModerationStage(Enum):
    """Coarse progress marker persisted while a submission is processed.

    Members are declared in the order a run advances through them. ERROR is
    reachable from any stage.
    """

    QUEUED = "queued"
    ANALYZING = "analyzing"
    RUNNING_MODERATION = "running_moderation"
    UPLOADING_GENERATED_IMAGE = "uploading_generated_image"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value

    @property
    def order(self) -> int:
        return list(ModerationStage).index(self)

    @property
    def is_terminal(self) -> bool:
        return self in (ModerationStage.COMPLETED, ModerationStage.ERROR)


def clamp_unit(value: float) -> float:
    """Clamp a score into the closed range [0, 1]."""
    return max(0.0, min(1.0, float(value)))


@dataclass(slots=True, frozen=True)
class TechnicalAnalysis:
    """Numeric and boolean findings for a submission.

    Attributes:
        toxicity: Harmful-content likelihood of the text in [0, 1].
        nsfw_text: Text was judged NSFW.
        nsfw_image: Image was judged NSFW.
        violence: Violent content was detected.
        image_replaced_by_ai: The original image was swapped for a generated one.
    """

    toxicity: float = 0.0
    nsfw_text: bool = False
    nsfw_image: bool = False
    violence: bool = False
    image_replaced_by_ai: bool = False

    @property
    def has_issues(self) -> bool:
        return self.nsfw_text or self.nsfw_image or self.violence

    def to_dict(self) -> Dict[str, Any]:
        return {
            "toxicity": self.toxicity,
            "nsfw_text": self.nsfw_text,
            "nsfw_image": self.nsfw_image,
            "violence": self.violence,
            "image_replaced_by_ai": self.image_replaced_by_ai,
        }


@dataclass(slots=True, frozen=True)
class TextAnalysis:
    """Validated output of the text-analysis capability."""

    toxicity: float
    nsfw_text: bool
    summary: str


@dataclass(slots=True, frozen=True)
class DecisionResult:
    """Validated output of the decision-reasoning capability."""

    decision: Decision
    summary: str
    nsfw_image: bool = False
    violence: bool = False


@dataclass(slots=True, frozen=True)
class GeneratedImage:
    """A replacement image produced by the generation capability.

    Exactly one of `url` or `data` is expected to be set. Inline images are
    exposed through `as_url()` as a ``data:`` URL so downstream code can treat
    both forms the same way.
    """

    url: str | None = None
    data_b64: str | None = None
    mime_type: str = "image/png"

    def as_url(self) -> str | None:
        if self.url:
            return self.url
        if self.data_b64:
            return f"data:{self.mime_type};base64,{self.data_b64}"
        return None


@dataclass(slots=True, frozen=True)
class ModerationRecord:
    """State accumulated by the moderation pipeline for one submission.

    A record is created once per pipeline run and never mutated; each step
    returns a new record. Fields default to the values the decision policy
    treats as "nothing found", and `decision` defaults to APPROVED so that a
    run which never reached the decision step still yields a verdict.

    Attributes:
        submission_type: Whether the submission is text or image content.
        text_content: Submitted text, None when no text was provided.
        image_url: Submitted image URL, None when no image was provided.
        image_description: Vision model description of the image.
        toxicity: Text toxicity in [0, 1].
        nsfw_text: Text judged NSFW.
        nsfw_image: Image judged NSFW by the decision step.
        violence: Violence detected by the decision step.
        image_replaced_by_ai: A generated image passed re-analysis and replaces the original.
        should_replace_image: Planning flag set by replacement evaluation. Never persisted.
        generated_image_url: URL (or data: URL) of the generated replacement.
        text_summary: Summary produced by text analysis.
        decision: Base verdict from the decision step.
        summary: Summary produced by the decision step.
        diagnostics: Messages describing contained step failures.
    """

    submission_type: SubmissionType
    text_content: str | None = None
    image_url: str | None = None
    image_description: str | None = None
    toxicity: float = 0.0
    nsfw_text: bool = False
    nsfw_image: bool = False
    violence: bool = False
    image_replaced_by_ai: bool = False
    should_replace_image: bool = False
    generated_image_url: str | None = None
    text_summary: str | None = None
    decision: Decision = Decision.APPROVED
    summary: str = ""
    diagnostics: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def create(
        cls,
        submission_type: SubmissionType,
        text_content: str | None = None,
        image_url: str | None = None,
    ) -> ModerationRecord:
        """Build the initial record for a submission, dropping blank inputs."""
        text = text_content if text_content and text_content.strip() else None
        url = image_url.strip() if image_url and image_url.strip() else None
        return cls(submission_type=submission_type, text_content=text, image_url=url)

    @property
    def has_text(self) -> bool:
        return self.text_content is not None

    @property
    def has_image(self) -> bool:
        return self.image_url is not None

    def update(self, **changes: Any) -> ModerationRecord:
        """Return a copy of the record with `changes` applied."""
        if "toxicity" in changes:
            changes["toxicity"] = clamp_unit(changes["toxicity"])
        return replace(self, **changes)

    def with_diagnostic(self, message: str) -> ModerationRecord:
        return replace(self, diagnostics=self.diagnostics + (message,))

    def technical_analysis(self) -> TechnicalAnalysis:
        return TechnicalAnalysis(
            toxicity=self.toxicity,
            nsfw_text=self.nsfw_text,
            nsfw_image=self.nsfw_image,
            violence=self.violence,
            image_replaced_by_ai=self.image_replaced_by_ai,
        )


@dataclass(slots=True, frozen=True)
class ModerationResult:
    """Terminal outcome of a moderation run, as reported to the caller."""

    submission_id: str
    status: Decision
    summary: str
    reasoning: str
    technical_analysis: TechnicalAnalysis
    image_url: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "submission_id": self.submission_id,
            "status": self.status.value,
            "summary": self.summary,
            "reasoning": self.reasoning,
            "technical_analysis": self.technical_analysis.to_dict(),
            "image_url": self.image_url,
        }
