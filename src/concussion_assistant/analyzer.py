import logging
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import ValidationError

from .contracts import AnalysisResult, Exemplars, MedicalRecord
from .errors import InvalidInput, ProviderError, StoreUnavailable
from .extraction import extract_symptoms
from .prompts import build_analysis_messages, build_response_messages
from .provider import ChatCompletion, call_with_timeout, parse_analysis_response
from .recommendations import generate_recommendations
from .responder import compose_response
from .urgency import classify_urgency, highest_urgency

logger = logging.getLogger(__name__)

RULE_BASED_CONFIDENCE = 0.7
RULE_BASED_NOTE = "Generated using rule-based analysis"
FALLBACK_NOTE = "Generated using rule-based analysis (hosted model unavailable)"

ExemplarProvider = Callable[[], Exemplars]


def coerce_medical_record(
    prior_medical_data: Union[MedicalRecord, Mapping[str, Any], None]
) -> Optional[MedicalRecord]:
    if prior_medical_data is None or isinstance(prior_medical_data, MedicalRecord):
        return prior_medical_data
    return MedicalRecord.model_validate(dict(prior_medical_data))


class Analyzer:
    """Analyse patient messages, preferring the hosted model when configured.

    The rule-based pipeline is always available and is used whenever no chat
    collaborator is given or the hosted call fails or times out. When an
    exemplar provider is given, its few-shot cases are added to the hosted
    prompt.
    """

    def __init__(
        self,
        chat: Optional[ChatCompletion] = None,
        exemplars: Optional[ExemplarProvider] = None,
        timeout: float = 20.0,
    ):
        self.chat = chat
        self.exemplars = exemplars
        self.timeout = timeout

    def analyze(
        self,
        patient_id: str,
        message: str,
        patient_context: Optional[Mapping[str, Any]] = None,
        prior_medical_data: Union[MedicalRecord, Mapping[str, Any], None] = None,
    ) -> AnalysisResult:
        if not patient_id or not str(patient_id).strip():
            raise InvalidInput("Patient ID is required")
        if not message or not message.strip():
            raise InvalidInput("Message text is required")
        medical = coerce_medical_record(prior_medical_data)

        if self.chat is None:
            logger.info("Hosted model not configured, using rule-based analysis")
            return self.rule_based(message, medical, note=RULE_BASED_NOTE)

        try:
            return self.hosted(message, patient_context, medical)
        except ProviderError as exc:
            logger.warning(f"Hosted analysis failed, falling back to rules: {exc}")
            return self.rule_based(message, medical, note=FALLBACK_NOTE)

    def rule_based(
        self, message: str, prior_medical_data: Optional[MedicalRecord], note: str = RULE_BASED_NOTE
    ) -> AnalysisResult:
        symptoms = extract_symptoms(message)
        urgency = classify_urgency(message, symptoms)
        recommendations = generate_recommendations(symptoms, prior_medical_data, urgency)
        logger.debug(
            f"Rule-based analysis: {len(symptoms)} symptoms, urgency={urgency}, "
            f"{len(recommendations)} recommendations"
        )
        return AnalysisResult(
            response=compose_response(symptoms, urgency, prior_medical_data),
            recommendations=recommendations,
            urgency_level=urgency,
            symptoms=symptoms,
            confidence=RULE_BASED_CONFIDENCE,
            analysis_method="rule-based",
            doctor_review_required=True,
            note=note,
        )

    def hosted(
        self,
        message: str,
        patient_context: Optional[Mapping[str, Any]],
        prior_medical_data: Optional[MedicalRecord],
    ) -> AnalysisResult:
        if self.chat is None:
            raise ProviderError("Hosted model is not configured")
        symptoms = extract_symptoms(message)
        names = [symptom.name for symptom in symptoms]
        exemplars = self._load_exemplars()

        raw = call_with_timeout(
            self.chat,
            build_analysis_messages(names, patient_context, prior_medical_data, exemplars),
            self.timeout,
        )
        analysis = parse_analysis_response(raw)
        reply = call_with_timeout(
            self.chat,
            build_response_messages(names, patient_context, prior_medical_data),
            self.timeout,
        )

        # The rules can only raise the model's risk level, never lower it.
        urgency = highest_urgency(analysis.risk_assessment.level, classify_urgency(message, symptoms))
        learned = bool(exemplars and (exemplars.successes or exemplars.failures))
        logger.info(
            f"Hosted analysis completed: urgency={urgency}, "
            f"{len(analysis.recommendations)} recommendations, exemplars={'yes' if learned else 'no'}"
        )
        return AnalysisResult(
            response=reply,
            recommendations=analysis.recommendations,
            urgency_level=urgency,
            symptoms=symptoms,
            confidence=analysis.confidence,
            analysis_method="github-models",
            doctor_review_required=analysis.doctor_review_required,
            note="Generated using hosted model with doctor feedback examples"
            if learned
            else "Generated using hosted model",
        )

    def _load_exemplars(self) -> Optional[Exemplars]:
        if self.exemplars is None:
            return None
        try:
            return self.exemplars()
        except (StoreUnavailable, ValidationError) as exc:
            logger.warning(f"Exemplars unavailable, prompting without them: {exc}")
            return None
