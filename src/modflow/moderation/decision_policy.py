"""Final status computation and reasoning rendering.

Both functions are pure: the same inputs always give the same output.
"""

from __future__ import annotations

from typing import List, Tuple

from modflow.configuration.moderation_settings import ModerationSettings
from modflow.datatypes.moderation_datatypes import Decision, ModerationRecord, TechnicalAnalysis

REASONING_PREFIXES = {
    Decision.APPROVED: "Content approved:",
    Decision.FLAGGED: "Content flagged for review:",
    Decision.REJECTED: "Content rejected:",
}


def determine_final_status(
    decision: Decision,
    analysis: TechnicalAnalysis,
    settings: ModerationSettings | None = None,
) -> Decision:
    """Return the status to persist for a submission.

    Without an image replacement the base decision stands. After a replacement
    the base decision was made against an image that is no longer shown, so
    the status is recomputed from toxicity and the remaining flags alone.
    """
    if not analysis.image_replaced_by_ai:
        return decision

    settings = settings or ModerationSettings()
    toxicity = analysis.toxicity
    has_issues = analysis.has_issues

    if toxicity < settings.approve_toxicity_below and not has_issues:
        return Decision.APPROVED
    if toxicity > settings.reject_toxicity_above or (has_issues and toxicity > settings.reject_issue_toxicity_above):
        return Decision.REJECTED
    return Decision.FLAGGED


def build_reasoning(status: Decision, analysis: TechnicalAnalysis) -> str:
    """Render a human-readable explanation of `status`.

    Example: ``"Content flagged for review: Toxicity: 45.0%, NSFW text detected"``.
    Only findings that are present are listed; with none, the bare prefix is returned.
    """
    parts: List[str] = []

    if analysis.toxicity:
        parts.append(f"Toxicity: {analysis.toxicity * 100:.1f}%")
    if analysis.nsfw_text:
        parts.append("NSFW text detected")
    if analysis.nsfw_image:
        parts.append("NSFW image detected")
    if analysis.violence:
        parts.append("Violence detected")
    if analysis.image_replaced_by_ai:
        parts.append("Image replaced by AI")

    prefix = REASONING_PREFIXES[status]
    return f"{prefix} {', '.join(parts)}" if parts else prefix


def finalize(record: ModerationRecord, settings: ModerationSettings | None = None) -> Tuple[Decision, str]:
    """Compute the final status and reasoning for a finished pipeline record."""
    analysis = record.technical_analysis()
    status = determine_final_status(record.decision, analysis, settings)
    return status, build_reasoning(status, analysis)
