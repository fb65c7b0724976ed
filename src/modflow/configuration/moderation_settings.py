from typing import Any, Dict, List

DEFAULT_HARM_MARKERS: List[str] = [
    "nsfw",
    "nude",
    "nudity",
    "naked",
    "explicit",
    "sexual",
    "pornographic",
    "violence",
    "violent",
    "gore",
    "blood",
    "bloody",
    "weapon",
    "gun",
    "harm",
    "harmful",
    "injury",
    "inappropriate",
]


class ModerationSettings:
    """Policy thresholds and limits used by the moderation pipeline."""

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    @property
    def replacement_toxicity_threshold(self) -> float:
        """Text toxicity at or above which a flagged image is not regenerated."""
        return float(self.data.get("replacement_toxicity_threshold", 0.7))

    @property
    def approve_toxicity_below(self) -> float:
        return float(self.data.get("approve_toxicity_below", 0.3))

    @property
    def reject_toxicity_above(self) -> float:
        return float(self.data.get("reject_toxicity_above", 0.7))

    @property
    def reject_issue_toxicity_above(self) -> float:
        return float(self.data.get("reject_issue_toxicity_above", 0.5))

    @property
    def prompt_max_length(self) -> int:
        return int(self.data.get("prompt_max_length", 300))

    @property
    def harm_markers(self) -> List[str]:
        markers = self.data.get("harm_markers")
        if not isinstance(markers, list) or not markers:
            return list(DEFAULT_HARM_MARKERS)
        return [str(m).strip().lower() for m in markers if str(m).strip()]
