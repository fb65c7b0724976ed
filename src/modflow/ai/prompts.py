"""Instructions sent to the AI capabilities."""

from __future__ import annotations

from modflow.datatypes.moderation_datatypes import ModerationRecord

TEXT_ANALYSIS_SYSTEM_PROMPT = """\
You are a content moderation AI. Analyze the user's text for toxicity, hate, harassment or NSFW content.
Return ONLY JSON:
{
  "toxicity": 0.5,
  "nsfw_text": false,
  "summary": "Short description"
}
toxicity is a number between 0 (harmless) and 1 (extremely toxic)."""

DECISION_SYSTEM_PROMPT = """\
You are the final reviewer of a content moderation pipeline. Make a moderation decision from the findings.
Use "approved" for safe content, "flagged" when a human should review it and "rejected" for clearly harmful content.
Return ONLY JSON:
{
  "decision": "approved",
  "summary": "Reasoning",
  "technicalAnalysis": {"nsfw_image": false, "violence": false}
}"""

IMAGE_ANALYSIS_PROMPT = (
    "Describe this image in detail. Identify any NSFW, violent, or inappropriate content."
)


def build_text_analysis_input(text: str) -> str:
    return f'Analyze this text: "{text}"'


def build_decision_input(record: ModerationRecord) -> str:
    """Render the findings gathered so far for the decision model."""
    return (
        f"Type: {record.submission_type.value}\n"
        f"Text: {record.text_content if record.text_content is not None else 'none'}\n"
        f"Image: {record.image_description if record.image_description is not None else 'none'}\n"
        f"Toxicity: {record.toxicity}\n"
        f"NSFW Text: {str(record.nsfw_text).lower()}"
    )
