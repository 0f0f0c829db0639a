"""Explanation agent: retrieve -> prompt -> generate -> guardrails -> assemble.

Stateless; every dependency comes in through the constructor. ``explain``
always returns a ``FloodExplanation``. Generation failures and guardrail
rejections both resolve to the fixed fallback fields. Anything else is a
defect and propagates.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Sequence

from .guardrails import GuardrailError, ValidatedOutput, build_fallback_output, validate_llm_output
from .models import EvidenceBundle, EvidenceItem, FloodExplanation, RiskAssessment
from .prompt import SYSTEM_PROMPT, build_user_prompt
from .providers import LLMMessage, LLMProvider


logger = logging.getLogger("flood.agent")

MAX_EVIDENCE = 8
MAX_EXTRA_EVIDENCE = 5


def select_evidence(bundle: EvidenceBundle) -> List[EvidenceItem]:
    """Pin the latest gauge/forecast/assessment, then fill with recent items."""
    pinned: List[EvidenceItem] = []
    pinned_ids = set()
    for item in (bundle.latest_gauge, bundle.latest_forecast, bundle.latest_assessment):
        if item is not None and item.id not in pinned_ids:
            pinned.append(item)
            pinned_ids.add(item.id)

    rest = [e for e in bundle.items if e.id not in pinned_ids][:MAX_EXTRA_EVIDENCE]
    return (pinned + rest)[:MAX_EVIDENCE]


class FloodExplanationAgent:
    def __init__(self, retrieve_evidence: Callable[[str], EvidenceBundle], llm: LLMProvider) -> None:
        self.retrieve_evidence = retrieve_evidence
        self.llm = llm

    def explain(self, assessment: RiskAssessment) -> FloodExplanation:
        bundle = self.retrieve_evidence(assessment.station_id)
        evidence = select_evidence(bundle)
        fields = self._generate(assessment, evidence)

        if fields.fallback:
            logger.info("explanation_done station=%s fallback=true reason=%s", assessment.station_id, fields.reason)
        else:
            logger.info("explanation_done station=%s fallback=false", assessment.station_id)

        return FloodExplanation(
            station_id=assessment.station_id,
            generated_at=assessment.assessed_at,
            risk_score=assessment.risk_score,
            risk_level=assessment.risk_level,
            summary=fields.summary,
            key_signals=assessment.signals,
            evidence=tuple(evidence),
            uncertainty=fields.uncertainty,
            safety_notice=fields.safety_notice,
        )

    def _generate(self, assessment: RiskAssessment, evidence: Sequence[EvidenceItem]) -> ValidatedOutput:
        messages = [
            LLMMessage(role="system", content=SYSTEM_PROMPT),
            LLMMessage(role="user", content=build_user_prompt(assessment, evidence)),
        ]

        try:
            raw_output = self.llm.complete(messages)
        except Exception as e:
            # Generation failures never reach the caller.
            logger.error("llm_call_failed station=%s provider=%s error=%s", assessment.station_id, self.llm.name, e)
            return build_fallback_output(GuardrailError(f"LLM unavailable: {e}", ""))

        try:
            return validate_llm_output(raw_output, evidence)
        except GuardrailError as e:
            return build_fallback_output(e)
