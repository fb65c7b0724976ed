"""
The individual steps of the moderation pipeline.

Every step takes the current `ModerationRecord` and returns an updated copy.
Steps skip themselves when their inputs are absent, only write the fields they
own, and turn capability failures into degraded values plus a diagnostic
rather than raising.

Order of execution (see `moderation_pipeline.build_default_pipeline`):
1. analyze_image
2. analyze_text
3. make_decision
4. evaluate_image_replacement
5. generate_image
6. reanalyze_generated_image
"""

from __future__ import annotations

from modflow.ai.analysis import IMAGE_ANALYSIS_FAILED, ModerationCapabilities
from modflow.configuration.moderation_settings import ModerationSettings
from modflow.datatypes.moderation_datatypes import Decision, ModerationRecord
from modflow.exceptions import CapabilityError
from modflow.moderation.moderation_parsing import DECISION_UNAVAILABLE_SUMMARY
from modflow.moderation.sanitization import find_harm_markers, sanitize_generation_prompt
from modflow.util.logger import get_logger

logger = get_logger("moderation_steps")

TEXT_ANALYSIS_FAILED = "Text analysis failed"


class ModerationSteps:
    """Pipeline steps bound to a set of capabilities and policy settings.

    Attributes:
        capabilities: AI capabilities invoked by the steps.
        settings: Thresholds and limits for the replacement flow.
    """

    def __init__(self, capabilities: ModerationCapabilities, settings: ModerationSettings) -> None:
        self.capabilities = capabilities
        self.settings = settings

    async def analyze_image(self, record: ModerationRecord) -> ModerationRecord:
        """Fill `image_description` from the vision capability."""
        if not record.has_image:
            return record

        logger.debug("[ANALYZE IMAGE] Describing %s", record.image_url[:80])
        description = await self.capabilities.describe_image(record.image_url)
        updated = record.update(image_description=description)
        if description == IMAGE_ANALYSIS_FAILED:
            return updated.with_diagnostic("analyze_image: image analysis failed")
        return updated

    async def analyze_text(self, record: ModerationRecord) -> ModerationRecord:
        """Fill `toxicity`, `nsfw_text` and `text_summary` from the text capability."""
        if not record.has_text:
            return record

        logger.debug("[ANALYZE TEXT] Analyzing %d characters", len(record.text_content))
        try:
            analysis = await self.capabilities.analyze_text(record.text_content)
        except CapabilityError as exc:
            logger.warning("[ANALYZE TEXT] %s", exc)
            return record.update(text_summary=TEXT_ANALYSIS_FAILED).with_diagnostic(f"analyze_text: {exc}")

        return record.update(
            toxicity=analysis.toxicity,
            nsfw_text=analysis.nsfw_text,
            text_summary=analysis.summary,
        )

    async def make_decision(self, record: ModerationRecord) -> ModerationRecord:
        """Set the base verdict, summary and image flags from the reasoning capability.

        An unreachable reasoning service yields FLAGGED so the submission is
        reviewed by a human rather than silently approved.
        """
        try:
            result = await self.capabilities.decide(record)
        except CapabilityError as exc:
            logger.warning("[DECISION] %s", exc)
            return record.update(
                decision=Decision.FLAGGED,
                summary=DECISION_UNAVAILABLE_SUMMARY,
            ).with_diagnostic(f"make_decision: {exc}")

        logger.info(
            "[DECISION] decision=%s nsfw_image=%s violence=%s",
            result.decision.value,
            result.nsfw_image,
            result.violence,
        )
        return record.update(
            decision=result.decision,
            summary=result.summary,
            nsfw_image=result.nsfw_image,
            violence=result.violence,
        )

    async def evaluate_image_replacement(self, record: ModerationRecord) -> ModerationRecord:
        """Decide whether the submitted image should be swapped for a generated one.

        Only image problems on text that is not already highly toxic qualify.
        """
        if not record.has_image:
            return record

        has_image_issues = record.nsfw_image or record.violence
        should_replace = has_image_issues and record.toxicity < self.settings.replacement_toxicity_threshold
        if has_image_issues and not should_replace:
            logger.info(
                "[REPLACEMENT] Skipping regeneration, toxicity %.2f >= %.2f",
                record.toxicity,
                self.settings.replacement_toxicity_threshold,
            )
        return record.update(should_replace_image=should_replace)

    async def generate_image(self, record: ModerationRecord) -> ModerationRecord:
        """Generate a replacement image from the sanitized submission text.

        On failure the replacement is abandoned and the earlier decision stands.
        """
        if not record.should_replace_image or not record.has_text:
            return record

        prompt = sanitize_generation_prompt(record.text_content, self.settings.prompt_max_length)
        image = await self.capabilities.generate_image(prompt)
        if image is None:
            return record.update(
                should_replace_image=False,
                generated_image_url=None,
            ).with_diagnostic("generate_image: image generation failed")

        logger.info("[GENERATE IMAGE] Replacement image generated")
        return record.update(generated_image_url=image.as_url())

    async def reanalyze_generated_image(self, record: ModerationRecord) -> ModerationRecord:
        """Check the generated image before trusting it as a replacement.

        The replacement is discarded when the description mentions harmful
        content or when the image could not be analyzed at all. Otherwise the
        image flags raised against the original image are cleared.
        """
        if not record.generated_image_url:
            return record

        description = await self.capabilities.describe_image(record.generated_image_url)
        if description == IMAGE_ANALYSIS_FAILED:
            return self._discard_generated_image(record, "generated image could not be analyzed")

        markers = find_harm_markers(description, self.settings.harm_markers)
        if markers:
            return self._discard_generated_image(record, f"generated image mentions {', '.join(markers)}")

        logger.info("[REANALYZE] Generated image accepted as replacement")
        return record.update(
            image_replaced_by_ai=True,
            nsfw_image=False,
            violence=False,
        )

    @staticmethod
    def _discard_generated_image(record: ModerationRecord, reason: str) -> ModerationRecord:
        logger.warning("[REANALYZE] Discarding replacement: %s", reason)
        return record.update(
            should_replace_image=False,
            generated_image_url=None,
        ).with_diagnostic(f"reanalyze_generated_image: {reason}")
