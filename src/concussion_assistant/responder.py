from datetime import datetime, timezone
from typing import List, Optional

from .contracts import MedicalRecord, Symptom, UrgencyLevel

# Reminder fires once more than this many whole days have passed.
CHECK_IN_INTERVAL_DAYS = 1


def days_since_update(
    prior_medical_data: Optional[MedicalRecord], now: Optional[datetime] = None
) -> Optional[int]:
    if prior_medical_data is None or prior_medical_data.last_updated is None:
        return None
    now = now or datetime.now(timezone.utc)
    last = prior_medical_data.last_updated
    if last.tzinfo is None:
        last = last.replace(tzinfo=timezone.utc)
    return (now - last).days


def compose_response(
    symptoms: List[Symptom],
    urgency: UrgencyLevel,
    prior_medical_data: Optional[MedicalRecord] = None,
    now: Optional[datetime] = None,
) -> str:
    response = (
        "Thank you for sharing your current symptoms with me. Based on your description, "
        "I've identified several areas where we can focus your recovery efforts.\n\n"
    )
    if urgency == "high":
        response += (
            "**Warning:** I notice some concerning symptoms in your description. While I'm here "
            "to support your recovery, I strongly recommend contacting your healthcare provider "
            "soon for a professional evaluation.\n\n"
        )
    response += "Here's my analysis of your current situation:\n\n"
    if symptoms:
        response += "**Current Symptoms Detected:**\n"
        response += "".join(f"- {symptom.name} ({symptom.severity} severity)\n" for symptom in symptoms)
        response += "\n"
    response += (
        "I've prepared personalized treatment recommendations below based on established "
        "recovery protocols and your symptom profile. Remember to pace yourself and avoid "
        "activities that significantly worsen your symptoms.\n\n"
    )

    days = days_since_update(prior_medical_data, now)
    if days is None or days > CHECK_IN_INTERVAL_DAYS:
        elapsed = f"{days} days" if days is not None else "several days"
        response += (
            f"**Daily Check-in Reminder:** It's been {elapsed} since your last assessment. "
            "Regular monitoring helps track your progress and adjust your treatment plan. "
            "Consider completing a daily symptom questionnaire when you're ready.\n\n"
        )

    response += (
        "These recommendations will be reviewed by your medical team to ensure they're "
        "appropriate for your specific situation. Feel free to ask questions or share any concerns!"
    )
    return response
