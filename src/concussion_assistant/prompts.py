"""Prompt construction for the hosted-model path."""

import json
from typing import Any, Dict, List, Mapping, Optional

from .contracts import ConversationEntry, Exemplars, MedicalRecord
from .extraction import extract_symptoms
from .redaction import redact_context

Message = Dict[str, str]

SCALES_CONTEXT = """Assessment Scales Context:
- PCSS: Post-Concussion Symptom Scale (0-132, higher = more symptoms)
- DHI: Dizziness Handicap Inventory (0-100, higher = more disability)
- HIT-6: Headache Impact Test (36-78, >60 = severe impact)
- PHQ-9: Depression screening (0-27, >15 = severe)
- GAD-7: Anxiety screening (0-21, >15 = severe)"""

RESPONSE_SCHEMA = """{
  "recommendations": [
    {
      "category": "exercise|lifestyle|monitoring|medical_attention|rehabilitation",
      "title": "string",
      "description": "string",
      "priority": "low|medium|high|urgent",
      "timeframe": "string",
      "precautions": ["string"]
    }
  ],
  "riskAssessment": {
    "level": "low|medium|high",
    "factors": ["string"]
  },
  "nextSteps": ["string"],
  "doctorReviewRequired": boolean,
  "confidence": number
}"""


def _titles(recommendations) -> str:
    return ", ".join(rec.title for rec in recommendations) or "N/A"


def _names(symptoms) -> str:
    return ", ".join(symptom.name for symptom in symptoms) or "N/A"


def format_exemplars(exemplars: Optional[Exemplars]) -> str:
    successes = exemplars.successes if exemplars else []
    failures = exemplars.failures if exemplars else []

    if successes:
        success_block = "\n\n".join(
            f"Example {i}:\n"
            f"  Symptoms: {_names(example.symptoms)}\n"
            f"  Successful recommendations: {_titles(example.recommendations)}"
            for i, example in enumerate(successes, start=1)
        )
    else:
        success_block = "No successful examples yet - use standard medical protocols."

    if failures:
        failure_block = "\n\n".join(
            f"Failure {i}:\n"
            f"  Original symptoms: {_names(failure.symptoms)}\n"
            f"  Rejected recommendations: {_titles(failure.recommendations)}\n"
            f"  Doctor notes: {failure.doctor_notes or 'No notes'}\n"
            f"  Corrected approach: {_titles(failure.corrected_recommendations)}"
            for i, failure in enumerate(failures, start=1)
        )
    else:
        failure_block = "No failure patterns identified yet."

    return (
        "LEARNING FROM SUCCESSFUL CASES:\n"
        f"{success_block}\n\n"
        "COMMON MISTAKES TO AVOID:\n"
        f"{failure_block}"
    )


def _bullets(values: Mapping[str, Any], empty: str, upper: bool = False) -> str:
    if not values:
        return empty
    return "\n".join(f"- {key.upper() if upper else key}: {value}" for key, value in values.items())


def build_analysis_messages(
    symptom_names: List[str],
    patient_context: Optional[Mapping[str, Any]],
    prior_medical_data: Optional[MedicalRecord],
    exemplars: Optional[Exemplars] = None,
) -> List[Message]:
    system_prompt = (
        "You are a specialized medical AI assistant for concussion recovery analysis "
        "that learns from doctor feedback.\n\n"
        "Your role is to:\n"
        "1. Analyze patient symptoms and assessment scores\n"
        "2. Provide evidence-based recommendations\n"
        "3. Learn from previous doctor approvals/rejections\n"
        "4. Prioritize patient safety above all else\n\n"
        f"{format_exemplars(exemplars)}\n\n"
        "Guidelines:\n"
        "- Always recommend doctor consultation for concerning symptoms\n"
        "- Base recommendations on established concussion rehabilitation protocols\n"
        "- Consider individual patient factors (age, injury timeline, etc.)\n"
        "- Provide specific, actionable advice\n"
        "- Include appropriate precautions and contraindications\n"
        "- Learn from the successful and failure patterns above\n\n"
        f"{SCALES_CONTEXT}\n\n"
        "Respond with structured JSON containing recommendations, risk assessment, and next steps."
    )
    scores = prior_medical_data.assessment_scores() if prior_medical_data else {}
    user_prompt = (
        "Analyze this concussion patient data:\n\n"
        f"Symptoms: {', '.join(symptom_names) or 'None reported'}\n\n"
        "Patient Information:\n"
        f"{_bullets(redact_context(patient_context), 'No additional patient data provided')}\n\n"
        "Assessment Scores:\n"
        f"{_bullets(scores, 'No assessment scores provided', upper=True)}\n\n"
        "Please provide a comprehensive analysis with specific recommendations for this "
        "patient's recovery plan. Use the learning examples above to provide better "
        "recommendations. Return your response as valid JSON with the following structure:\n"
        f"{RESPONSE_SCHEMA}"
    )
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]


def build_response_messages(
    symptom_names: List[str],
    patient_context: Optional[Mapping[str, Any]],
    prior_medical_data: Optional[MedicalRecord],
) -> List[Message]:
    system_prompt = (
        "You are a compassionate AI medical assistant specializing in concussion recovery.\n\n"
        "Your role is to:\n"
        "- Provide supportive, personalized responses to patients\n"
        "- Acknowledge their symptoms with empathy\n"
        "- Offer practical, evidence-based advice\n"
        "- Encourage appropriate medical follow-up when needed\n"
        "- Use clear, non-technical language\n\n"
        "Guidelines:\n"
        "- Avoid making definitive diagnoses\n"
        "- Focus on symptom management and recovery strategies"
    )
    last_assessment = (
        f"Last assessment: {prior_medical_data.last_updated.isoformat()}"
        if prior_medical_data and prior_medical_data.last_updated
        else "No recent assessments"
    )
    user_prompt = (
        f"A concussion patient is reporting these symptoms: {', '.join(symptom_names) or 'none identified'}\n\n"
        "Patient context:\n"
        f"{_bullets(redact_context(patient_context), 'Limited patient information available')}\n\n"
        f"Recent medical data:\n{last_assessment}\n\n"
        "Please provide a compassionate, personalized response that:\n"
        "1. Acknowledges their symptoms with empathy\n"
        "2. Provides 2-3 practical management strategies\n"
        "3. Explains when to seek medical attention\n"
        "4. Encourages continued monitoring and follow-up\n\n"
        "Keep the response conversational, supportive, and under 400 words."
    )
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]


def build_questions_messages(
    prior_medical_data: Optional[MedicalRecord],
    conversations: List[ConversationEntry],
) -> List[Message]:
    history = {
        "medicalData": prior_medical_data.model_dump(mode="json") if prior_medical_data else None,
        "recentSymptoms": [
            {
                "date": entry.timestamp.isoformat(),
                "symptoms": [symptom.model_dump() for symptom in extract_symptoms(entry.message)],
            }
            for entry in conversations
        ],
    }
    system_prompt = (
        "You are a medical AI assistant generating personalized daily check-in questions "
        "for concussion patients.\n\n"
        "Create 5-7 relevant questions based on the patient's symptom history and recovery "
        "progress. Questions should:\n"
        "- Track symptom progression\n"
        "- Monitor recovery milestones\n"
        "- Identify concerning changes\n"
        "- Be easy to understand and answer\n"
        "- Follow evidence-based concussion monitoring practices\n\n"
        "Return ONLY a JSON array of question strings, no additional text or formatting."
    )
    user_prompt = (
        "Based on this patient's recent history, generate today's check-in questions:\n"
        f"{json.dumps(history, indent=2)}"
    )
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_prompt},
    ]
