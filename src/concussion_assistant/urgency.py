from typing import List

from .catalog import HIGH_URGENCY_PHRASES, MEDIUM_URGENCY_PHRASES, normalize_text
from .contracts import Symptom, UrgencyLevel

URGENCY_RANK = {"low": 0, "medium": 1, "high": 2}

# Two or more high-severity symptoms escalate on their own.
SEVERE_SYMPTOM_THRESHOLD = 2


def classify_urgency(message: str, symptoms: List[Symptom]) -> UrgencyLevel:
    """Triage a message; the first matching rule wins.

    Crisis language and multiple severe symptoms are checked before the
    medium-tier phrases so that a stronger signal is never downgraded.
    """

    lowered = normalize_text(message or "")
    if any(phrase in lowered for phrase in HIGH_URGENCY_PHRASES):
        return "high"
    severe = [symptom for symptom in symptoms if symptom.severity == "high"]
    if len(severe) >= SEVERE_SYMPTOM_THRESHOLD:
        return "high"
    if any(phrase in lowered for phrase in MEDIUM_URGENCY_PHRASES):
        return "medium"
    return "low"


def highest_urgency(*levels: UrgencyLevel) -> UrgencyLevel:
    if not levels:
        raise ValueError("At least one urgency level is required")
    return max(levels, key=lambda level: URGENCY_RANK[level])
