"""Exception types raised across the moderation workflow."""


class ModflowError(Exception):
    """Base class for all Modflow errors."""


class SubmissionNotFoundError(ModflowError):
    """The requested submission does not exist in the submission store."""

    def __init__(self, submission_id: str) -> None:
        super().__init__(f"submission {submission_id} not found")
        self.submission_id = submission_id


class CapabilityError(ModflowError):
    """An external AI capability failed to answer (transport error or timeout).

    Always caught by the pipeline step that owns the capability call.
    """

    def __init__(self, capability: str, message: str) -> None:
        super().__init__(f"{capability}: {message}")
        self.capability = capability


class StageTransitionError(ModflowError):
    """A moderation stage was asked to move backwards."""
