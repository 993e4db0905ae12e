from typing import Tuple

from .models import ParsedDischargeSummary

# Sentinel for "partial/uncertain": an extractor raised during the parse
PARTIAL_CONFIDENCE = 0.5

CRITICAL_WEIGHT = 1.0
IMPORTANT_WEIGHT = 0.5

CRITICAL_FIELDS: Tuple[str, ...] = (
    "mrn",
    "discharge_date",
    "discharge_diagnosis",
    "medications",
)

IMPORTANT_FIELDS: Tuple[str, ...] = (
    "patient_name",
    "attending_physician",
    "hospital_course",
    "follow_up_appointments",
    "lab_results",
    "vital_signs",
)

MAX_SCORE = len(CRITICAL_FIELDS) * CRITICAL_WEIGHT + len(IMPORTANT_FIELDS) * IMPORTANT_WEIGHT


def score_confidence(summary: ParsedDischargeSummary) -> float:
    """Weighted share of critical/important fields present, in [0, 1]."""
    score = 0.0
    for name in CRITICAL_FIELDS:
        if getattr(summary, name) is not None:
            score += CRITICAL_WEIGHT
    for name in IMPORTANT_FIELDS:
        if getattr(summary, name) is not None:
            score += IMPORTANT_WEIGHT
    return max(0.0, min(score / MAX_SCORE, 1.0))
