from __future__ import annotations

from typing import Sequence

from .constants import SAFETY_NOTICE
from .models import EvidenceItem, RiskAssessment


SYSTEM_PROMPT = """You are a flood-risk explanation assistant for a decision-support system covering the Mosel River, Germany.

Your task is to produce a clear, structured JSON explanation of the current flood risk for a given monitoring station.

STRICT RULES:
1. Base your explanation ONLY on the evidence items provided in the user message. Do not invent sensor readings, rainfall amounts, or historical context.
2. Every factual claim in your summary must be traceable to at least one provided evidence item.
3. Express uncertainty honestly. If data is limited, say so.
4. Your output MUST be valid JSON matching the schema below. No markdown, no prose outside the JSON.
5. The safetyNotice field must always contain the text provided. Do not modify it.

OUTPUT SCHEMA (JSON):
{
  "summary": "2-4 sentence narrative based strictly on evidence",
  "uncertainty": "1-2 sentences about data limitations, model assumptions, or forecast confidence",
  "safetyNotice": "<required safety text, include verbatim as given>"
}

The keySignals and evidence arrays will be populated by the application, not by you. Focus only on the three fields above."""


def build_user_prompt(assessment: RiskAssessment, evidence: Sequence[EvidenceItem]) -> str:
    signal_lines = "\n".join(
        f"  - [{s.severity.upper()}] {s.label}: {s.description}" for s in assessment.signals
    )
    evidence_lines = "\n".join(
        f"  [{i}] ({e.type}) {e.citation}" for i, e in enumerate(evidence, start=1)
    )

    return f"""Station: {assessment.station_id}
Risk score: {assessment.risk_score}/100
Risk level: {assessment.risk_level}
Assessed at: {assessment.assessed_at}

Key signals:
{signal_lines}

Evidence items (cite by [number]):
{evidence_lines}

Required safety notice to include verbatim in safetyNotice field:
"{SAFETY_NOTICE}"

Respond with only the JSON object. Do not include markdown fences."""
