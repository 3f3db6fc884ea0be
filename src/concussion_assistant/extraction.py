from typing import Iterable, List

from .catalog import DEFAULT_SEVERITY, SYMPTOM_CATALOG, SymptomPattern, normalize_text
from .contracts import Symptom


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def _resolve_severity(text: str, pattern: SymptomPattern) -> str:
    for severity, keywords in pattern.severity_tiers:
        if _contains_any(text, keywords):
            return severity
    return DEFAULT_SEVERITY


def extract_symptoms(message: str) -> List[Symptom]:
    """Return one symptom per catalog category mentioned in ``message``.

    Results follow catalog order, not the order of mention. Severity is the
    first tier (high, medium, low) with a keyword anywhere in the message,
    ``medium`` when none match.
    """

    lowered = normalize_text(message or "")
    symptoms: List[Symptom] = []
    for pattern in SYMPTOM_CATALOG:
        if not _contains_any(lowered, pattern.triggers):
            continue
        symptoms.append(
            Symptom(name=pattern.name, severity=_resolve_severity(lowered, pattern), detected=True)
        )
    return symptoms
