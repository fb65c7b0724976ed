"""Text helpers at the edges of the image-replacement flow.

`sanitize_generation_prompt` is the only route by which submitted text reaches
the image generation service. `find_harm_markers` scans a vision description of
a generated image for signs that the replacement is itself unsafe.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Set

DEFAULT_PROMPT_MAX_LENGTH = 300

GENERATION_PROMPT_TEMPLATE = (
    'A professional, family-friendly image based on: "{text}". Safe for all audiences.'
)

_DISALLOWED_PROMPT_CHARS = re.compile(r"[^A-Za-z0-9\s]")
_CLAUSE_SPLIT = re.compile(r"[.;!?\n]+|\b(?:but|however|although|though|yet)\b")
_NEGATIONS = {
    "no", "not", "without", "none", "nothing", "nobody", "free", "absent",
    "absence", "neither", "nor", "lacks", "never",
}
# Words allowed between a negation and the marker it governs, as in "no gore, blood or weapons"
_LIST_CONNECTORS = {"or", "and", "of", "any"}


def sanitize_generation_prompt(text: str, max_length: int = DEFAULT_PROMPT_MAX_LENGTH) -> str:
    """Build a generation prompt from untrusted submission text.

    Characters other than ASCII letters, digits and whitespace are dropped,
    the result is cut to `max_length` characters and trimmed, then wrapped in
    the fixed safety template.
    """
    cleaned = _DISALLOWED_PROMPT_CHARS.sub("", text or "")[:max_length].strip()
    return GENERATION_PROMPT_TEMPLATE.format(text=cleaned)


def _is_negated(words: List[str], index: int, marker_set: Set[str]) -> bool:
    """True when a negation governs the marker at `index`.

    Walking back from the marker, only other markers and list connectors may
    sit between it and the negation. "no violence, nudity or gore" negates all
    three markers; "not safe, showing explicit nudity" negates none.
    """
    for word in reversed(words[:index]):
        if word in _NEGATIONS or word.endswith("n't"):
            return True
        if word not in marker_set and word not in _LIST_CONNECTORS:
            return False
    return False


def find_harm_markers(description: str, markers: Iterable[str]) -> List[str]:
    """Return the markers that appear un-negated in `description`.

    Matching is case-insensitive on whole words. A marker governed by a
    negation ("no violence", "not explicit", "free of gore") is ignored, since
    vision models routinely describe what an image lacks.
    """
    found: List[str] = []
    marker_set = {m.lower() for m in markers if m}
    if not description or not marker_set:
        return found

    for clause in _CLAUSE_SPLIT.split(description.lower()):
        words = re.findall(r"[a-z0-9']+", clause)
        for index, word in enumerate(words):
            if word not in marker_set or word in found:
                continue
            if _is_negated(words, index, marker_set):
                continue
            found.append(word)
    return found
