"""
Pipeline engine for moderating a single submission.

The pipeline is a fixed, ordered list of asynchronous steps. Each step receives
the record produced by its predecessor and returns a new one; branching happens
inside steps based on the record's data, never in the topology.

Features:
- Strictly sequential execution, one step at a time
- Per-step error containment: an exception inside a step keeps the record from
  before that step, appends a diagnostic and moves on
- A trace of every intermediate record for diagnostics
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Sequence, Tuple

from modflow.ai.analysis import ModerationCapabilities
from modflow.configuration.moderation_settings import ModerationSettings
from modflow.datatypes.moderation_datatypes import ModerationRecord
from modflow.moderation.moderation_steps import ModerationSteps
from modflow.util.logger import get_logger

logger = get_logger("moderation_pipeline")

StepFunc = Callable[[ModerationRecord], Awaitable[ModerationRecord]]


@dataclass(slots=True, frozen=True)
class PipelineStep:
    """A named record transformation."""

    name: str
    func: StepFunc


@dataclass(slots=True)
class PipelineRun:
    """Outcome of one pipeline execution.

    Attributes:
        record: Final record after the last step.
        trace: (step name, record after that step) for every step in order.
        failed_steps: Names of steps whose exception was contained.
    """

    record: ModerationRecord
    trace: List[Tuple[str, ModerationRecord]] = field(default_factory=list)
    failed_steps: List[str] = field(default_factory=list)


class ModerationPipeline:
    """
    Runs a moderation record through an ordered list of steps.

    The pipeline never raises because of a step: whatever happens, `run`
    returns a complete record carrying a decision.
    """

    def __init__(self, steps: Sequence[PipelineStep]) -> None:
        self._steps: Tuple[PipelineStep, ...] = tuple(steps)

    @property
    def step_names(self) -> List[str]:
        return [step.name for step in self._steps]

    async def run(self, record: ModerationRecord) -> PipelineRun:
        """Execute every step in order and return the final record with its trace."""
        run = PipelineRun(record=record)

        for step in self._steps:
            logger.debug("[PIPELINE] Running step %s", step.name)
            try:
                result = await step.func(run.record)
                if not isinstance(result, ModerationRecord):
                    raise TypeError(f"step returned {type(result).__name__}, expected ModerationRecord")
            except Exception as exc:
                logger.error("[PIPELINE] Step %s failed: %s", step.name, exc, exc_info=True)
                run.failed_steps.append(step.name)
                result = run.record.with_diagnostic(f"{step.name}: {exc}")

            run.record = result
            run.trace.append((step.name, result))

        logger.info(
            "[PIPELINE] Completed %d steps, decision=%s, failed=%s",
            len(self._steps),
            run.record.decision.value,
            run.failed_steps or "none",
        )
        return run


def build_default_pipeline(
    capabilities: ModerationCapabilities,
    settings: ModerationSettings,
) -> ModerationPipeline:
    """Assemble the standard six-step moderation pipeline."""
    steps = ModerationSteps(capabilities, settings)
    return ModerationPipeline([
        PipelineStep("analyze_image", steps.analyze_image),
        PipelineStep("analyze_text", steps.analyze_text),
        PipelineStep("make_decision", steps.make_decision),
        PipelineStep("evaluate_image_replacement", steps.evaluate_image_replacement),
        PipelineStep("generate_image", steps.generate_image),
        PipelineStep("reanalyze_generated_image", steps.reanalyze_generated_image),
    ])
