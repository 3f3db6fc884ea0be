import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from .analyzer import Analyzer, coerce_medical_record
from .contracts import (
    AnalysisRecord,
    AnalysisResult,
    AnyRecommendation,
    InsightsReport,
    LearningStats,
    MedicalRecord,
    ModelMetrics,
    RetrainResult,
    TrainingExample,
)
from .learning import FeedbackLearningStore
from .provider import ChatCompletion
from .questions import generate_daily_questions
from .store import KeyValueStore

logger = logging.getLogger(__name__)


class RecoveryAssistant:
    """Caller-facing entry point; collaborators are passed in, never global."""

    def __init__(
        self,
        store: KeyValueStore,
        chat: Optional[ChatCompletion] = None,
        timeout: float = 20.0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.learning = FeedbackLearningStore(store, clock=clock)
        self.chat = chat
        self.timeout = timeout
        self.analyzer = Analyzer(chat=chat, exemplars=self.learning.exemplars, timeout=timeout)

    def analyze_message(
        self,
        patient_id: str,
        message: str,
        patient_context: Optional[Mapping[str, Any]] = None,
        prior_medical_data: Union[MedicalRecord, Mapping[str, Any], None] = None,
    ) -> AnalysisResult:
        result = self.analyzer.analyze(patient_id, message, patient_context, prior_medical_data)
        conversation = self.learning.log_conversation(patient_id, message)
        conversation_id = f"chat_{patient_id}_{uuid.uuid4().hex[:12]}"
        self.learning.save_analysis(
            AnalysisRecord(
                conversation_id=conversation_id,
                patient_id=patient_id,
                message=message,
                ai_response=result.response,
                recommendations=result.recommendations,
                urgency_level=result.urgency_level,
                symptoms=result.symptoms,
                confidence=result.confidence,
                analysis_method=result.analysis_method,
                timestamp=conversation.timestamp,
            )
        )
        logger.info(
            f"Analysis {conversation_id} stored for review ({result.analysis_method}, "
            f"urgency={result.urgency_level})"
        )
        return result.model_copy(update={"analysis_id": conversation_id})

    def record_review(
        self,
        analysis_id: str,
        approved: bool,
        notes: str = "",
        modified_recommendations: Optional[List[AnyRecommendation]] = None,
        reviewer_id: str = "",
    ) -> TrainingExample:
        return self.learning.record_review(
            analysis_id,
            approved,
            doctor_notes=notes,
            modified_recommendations=modified_recommendations,
            doctor_id=reviewer_id,
        )

    def pending_reviews(self) -> List[AnalysisRecord]:
        return self.learning.pending_reviews()

    def get_metrics(self) -> Dict[str, ModelMetrics]:
        return self.learning.get_metrics()

    def get_learning_stats(self) -> LearningStats:
        return self.learning.get_learning_stats()

    def get_insights(self, recent_n: int = 50) -> InsightsReport:
        return self.learning.compute_insights(recent_n)

    def retrain(self) -> RetrainResult:
        return self.learning.retrain()

    def daily_questions(
        self,
        patient_id: str,
        prior_medical_data: Union[MedicalRecord, Mapping[str, Any], None] = None,
    ) -> Tuple[List[str], str]:
        conversations = self.learning.recent_conversations(patient_id, limit=5)
        return generate_daily_questions(
            self.chat,
            coerce_medical_record(prior_medical_data),
            conversations,
            timeout=self.timeout,
        )
