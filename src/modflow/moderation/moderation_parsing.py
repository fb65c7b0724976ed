"""Utilities for parsing AI capability responses into validated records.

Generative models wrap their JSON in prose or code fences, and sometimes return
no JSON at all. Every parser here follows the same contract: locate the first
``{...}`` region, decode it, check it against a JSON schema, and normalize each
field into a typed value. Any failure yields a documented default instead of an
exception, so parsing never interrupts the pipeline.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict

import jsonschema
from jsonschema import ValidationError

from modflow.datatypes.moderation_datatypes import (
    Decision,
    DecisionResult,
    TextAnalysis,
    clamp_unit,
)
from modflow.util.logger import get_logger

logger = get_logger("moderation_parsing")

JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

PARSING_ERROR_SUMMARY = "Parsing error"
NO_SUMMARY = "No summary"
DECISION_UNAVAILABLE_SUMMARY = "Decision unavailable"

# Substituted when the text-analysis response cannot be parsed
DEFAULT_TOXICITY = 0.5

TEXT_ANALYSIS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "toxicity": {"type": "number", "minimum": 0, "maximum": 1},
        "nsfw_text": {"type": "boolean"},
        "summary": {"type": "string"},
    },
    "required": ["toxicity", "nsfw_text", "summary"],
}

DECISION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "decision": {"enum": [d.value for d in Decision]},
        "summary": {"type": "string"},
        "technicalAnalysis": {
            "type": "object",
            "properties": {
                "nsfw_image": {"type": "boolean"},
                "violence": {"type": "boolean"},
            },
        },
    },
    "required": ["decision", "summary"],
}


def extract_json_object(raw: str | None) -> Dict[str, Any] | None:
    """Return the first ``{...}`` region of `raw` decoded as a dict, or None."""
    if not raw:
        return None

    match = JSON_OBJECT_PATTERN.search(raw)
    if match is None:
        logger.warning("[EXTRACT] No JSON object found in response (%d chars)", len(raw))
        return None

    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        logger.warning("[EXTRACT] Parsing failed: %s", exc)
        return None

    if not isinstance(payload, dict):
        logger.warning("[EXTRACT] Payload is not an object, got %s", type(payload).__name__)
        return None
    return payload


def matches_schema(payload: Dict[str, Any], schema: Dict[str, Any], label: str) -> bool:
    """Validate `payload` against `schema`, logging the first violation."""
    try:
        jsonschema.validate(instance=payload, schema=schema)
    except ValidationError as exc:
        logger.warning("[PARSE] %s response failed schema validation: %s", label, exc.message)
        return False
    return True


def coerce_bool(value: Any, default: bool = False) -> bool:
    """Interpret booleans, numbers and common string spellings; anything else is `default`."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "yes", "1"):
            return True
        if lowered in ("false", "no", "0"):
            return False
    return default


def coerce_score(value: Any, default: float) -> float:
    """Interpret `value` as a float in [0, 1]; non-numeric values become `default`."""
    if isinstance(value, bool):
        return default
    try:
        score = float(value)
    except (TypeError, ValueError):
        return default
    if score != score:  # NaN
        return default
    return clamp_unit(score)


def coerce_text(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


def parse_text_analysis(raw: str | None) -> TextAnalysis:
    """Parse a text-analysis response.

    Returns ``toxicity=0.5, nsfw_text=False, summary="Parsing error"`` when no
    JSON object can be decoded. Individual fields that are missing or of the
    wrong type fall back to the same conservative values, and toxicity is
    always clamped into [0, 1].
    """
    payload = extract_json_object(raw)
    if payload is None:
        return TextAnalysis(toxicity=DEFAULT_TOXICITY, nsfw_text=False, summary=PARSING_ERROR_SUMMARY)

    matches_schema(payload, TEXT_ANALYSIS_SCHEMA, "Text analysis")

    return TextAnalysis(
        toxicity=coerce_score(payload.get("toxicity"), DEFAULT_TOXICITY),
        nsfw_text=coerce_bool(payload.get("nsfw_text")),
        summary=coerce_text(payload.get("summary"), NO_SUMMARY),
    )


def parse_decision(raw: str | None) -> DecisionResult:
    """Parse a decision-reasoning response.

    The image flags are read from a nested ``technicalAnalysis`` object, or
    from the top level when the model flattened its answer. An unparseable
    response, or a missing or unknown verdict, becomes FLAGGED. A missing
    summary is left empty so callers can fall back to the text-analysis summary.
    """
    payload = extract_json_object(raw)
    if payload is None:
        return DecisionResult(decision=Decision.FLAGGED, summary=DECISION_UNAVAILABLE_SUMMARY)

    matches_schema(payload, DECISION_SCHEMA, "Decision")

    nested = payload.get("technicalAnalysis")
    flags = nested if isinstance(nested, dict) else payload

    return DecisionResult(
        decision=Decision.parse(payload.get("decision"), default=Decision.FLAGGED),
        summary=coerce_text(payload.get("summary"), ""),
        nsfw_image=coerce_bool(flags.get("nsfw_image")),
        violence=coerce_bool(flags.get("violence")),
    )
