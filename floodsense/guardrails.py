"""Output guardrails between raw generated text and the user-facing explanation.

Checks, in order:

1. the text parses as a JSON object;
2. ``summary``, ``uncertainty`` and ``safetyNotice`` are present and non-blank;
3. ``safetyNotice`` contains the first 60 characters of ``SAFETY_NOTICE``
   (the generator may append text but not drop or alter the core);
4. numbers in the summary that appear in no evidence citation are logged as
   possible hallucinations. Advisory only, never a rejection.

Any failure of 1-3 raises ``GuardrailError``; the agent then renders
``build_fallback_output`` instead.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from .constants import SAFETY_NOTICE, SAFETY_NOTICE_PREFIX_LEN
from .errors import FloodSenseError
from .models import EvidenceItem


logger = logging.getLogger("flood.guardrails")

_NUMBER_RE = re.compile(r"\b\d+(?:\.\d+)?\b")

REQUIRED_FIELDS = ("summary", "uncertainty", "safetyNotice")

FALLBACK_SUMMARY = (
    "An explanation could not be generated due to an internal error. "
    "Please refer to the risk signals and evidence items listed below for raw data."
)
FALLBACK_UNCERTAINTY = (
    "The explanation generation failed. Data quality and model availability are uncertain."
)


class GuardrailError(FloodSenseError):
    def __init__(self, reason: str, raw_output: str) -> None:
        super().__init__(reason)
        self.reason = reason
        self.raw_output = raw_output


@dataclass(frozen=True)
class ValidatedOutput:
    """The three generated fields, either validated or the fixed fallback."""

    summary: str
    uncertainty: str
    safety_notice: str
    fallback: bool = False
    reason: Optional[str] = None


def _coerce_string(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def extract_numbers(text: str) -> List[str]:
    return _NUMBER_RE.findall(text)


def find_unsupported_numbers(summary: str, evidence: Sequence[EvidenceItem]) -> List[str]:
    evidence_text = " ".join(e.citation for e in evidence)
    return [
        n for n in extract_numbers(summary)
        if n not in evidence_text and not n.endswith(".00")
    ]


def validate_llm_output(raw_text: str, evidence: Sequence[EvidenceItem]) -> ValidatedOutput:
    try:
        parsed = json.loads(raw_text)
    except (TypeError, ValueError, RecursionError):
        raise GuardrailError("LLM output is not valid JSON", raw_text)

    if not isinstance(parsed, dict):
        raise GuardrailError("LLM output is not a JSON object", raw_text)

    fields = {name: _coerce_string(parsed.get(name)) for name in REQUIRED_FIELDS}
    for name in REQUIRED_FIELDS:
        if not fields[name]:
            raise GuardrailError(f"Missing or empty '{name}' field", raw_text)

    required_fragment = SAFETY_NOTICE[:SAFETY_NOTICE_PREFIX_LEN]
    if required_fragment not in fields["safetyNotice"]:
        raise GuardrailError("safetyNotice field does not contain the required safety text", raw_text)

    fabricated = find_unsupported_numbers(fields["summary"], evidence)
    if fabricated:
        logger.warning("possible_hallucination numbers=%s", ",".join(fabricated))

    return ValidatedOutput(
        summary=fields["summary"],
        uncertainty=fields["uncertainty"],
        safety_notice=fields["safetyNotice"],
    )


def build_fallback_output(error: Exception) -> ValidatedOutput:
    """Fixed, always-safe fields; contains no generated text."""
    reason = getattr(error, "reason", None) or str(error) or type(error).__name__
    logger.error("explanation_fallback reason=%s", reason)
    return ValidatedOutput(
        summary=FALLBACK_SUMMARY,
        uncertainty=FALLBACK_UNCERTAINTY,
        safety_notice=SAFETY_NOTICE,
        fallback=True,
        reason=reason,
    )
