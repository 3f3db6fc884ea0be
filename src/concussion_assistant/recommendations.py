from typing import List, Optional

from .catalog import MEDICAL_CARE, MONITORING, SYMPTOM_NAMES, template_for
from .contracts import MedicalRecord, Recommendation, Symptom, UrgencyLevel


def generate_recommendations(
    symptoms: List[Symptom],
    prior_medical_data: Optional[MedicalRecord],
    urgency: UrgencyLevel,
) -> List[Recommendation]:
    """Map detected symptoms and urgency to recommendation records.

    ``prior_medical_data`` is accepted for parity with the hosted path; the
    rule tables do not read it. The Monitoring item is always last.
    """

    ordered = sorted(
        (symptom for symptom in symptoms if symptom.detected),
        key=lambda symptom: SYMPTOM_NAMES.index(symptom.name)
        if symptom.name in SYMPTOM_NAMES
        else len(SYMPTOM_NAMES),
    )

    recommendations: List[Recommendation] = []
    for symptom in ordered:
        template = template_for(symptom.name)
        if template is None:
            continue
        recommendations.append(
            Recommendation(
                category=template.category,
                title=template.title,
                description=template.description,
                severity=symptom.severity,
            )
        )

    if urgency == "high":
        recommendations.append(
            Recommendation(
                category=MEDICAL_CARE.category,
                title=MEDICAL_CARE.title,
                description=MEDICAL_CARE.description,
                severity="high",
            )
        )

    recommendations.append(
        Recommendation(
            category=MONITORING.category,
            title=MONITORING.title,
            description=MONITORING.description,
            severity="low",
        )
    )
    return recommendations
