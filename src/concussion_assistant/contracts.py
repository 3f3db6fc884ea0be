from datetime import datetime
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

Severity = Literal["low", "medium", "high"]
UrgencyLevel = Literal["low", "medium", "high"]
Priority = Literal["low", "medium", "high", "urgent"]
AnalysisMethod = Literal["github-models", "rule-based"]

ANALYSIS_METHODS = ("github-models", "rule-based")


class Symptom(BaseModel):
    name: str  # "Headache" | "Dizziness" | ... (see catalog.SYMPTOM_CATALOG)
    severity: Severity
    detected: bool = True


class Recommendation(BaseModel):
    """Rule-based recommendation shape."""

    category: str
    title: str
    description: str
    severity: Severity


class StructuredRecommendation(BaseModel):
    """Recommendation shape requested from the hosted model."""

    category: str  # "exercise" | "lifestyle" | "monitoring" | "medical_attention" | "rehabilitation"
    title: str
    description: str
    priority: Priority
    timeframe: str
    precautions: List[str] = Field(default_factory=list)


AnyRecommendation = Union[StructuredRecommendation, Recommendation]


class MedicalRecord(BaseModel):
    """Prior questionnaire totals for a patient."""

    pcss: Optional[int] = None
    dhi: Optional[int] = None
    hit6: Optional[int] = None
    phq9: Optional[int] = None
    gad7: Optional[int] = None
    last_updated: Optional[datetime] = None

    def assessment_scores(self) -> Dict[str, int]:
        scores = {
            "pcss": self.pcss,
            "dhi": self.dhi,
            "hit6": self.hit6,
            "phq9": self.phq9,
            "gad7": self.gad7,
        }
        return {name: value for name, value in scores.items() if value is not None}


class RiskAssessment(BaseModel):
    level: UrgencyLevel = "medium"
    factors: List[str] = Field(default_factory=list)


class HostedAnalysis(BaseModel):
    recommendations: List[StructuredRecommendation] = Field(default_factory=list)
    risk_assessment: RiskAssessment = Field(default_factory=RiskAssessment, alias="riskAssessment")
    next_steps: List[str] = Field(default_factory=list, alias="nextSteps")
    doctor_review_required: bool = Field(default=True, alias="doctorReviewRequired")
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)

    model_config = {"populate_by_name": True}


class AnalysisResult(BaseModel):
    analysis_id: Optional[str] = None
    response: str
    recommendations: List[AnyRecommendation] = Field(default_factory=list)
    urgency_level: UrgencyLevel
    symptoms: List[Symptom] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    analysis_method: AnalysisMethod
    doctor_review_required: bool = True
    note: str = ""


class AnalysisRecord(BaseModel):
    """An analysed patient message awaiting (or past) clinician review."""

    conversation_id: str
    patient_id: str
    message: str = ""
    ai_response: str
    recommendations: List[AnyRecommendation] = Field(default_factory=list)
    urgency_level: UrgencyLevel
    symptoms: List[Symptom] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    analysis_method: AnalysisMethod
    timestamp: datetime
    doctor_reviewed: bool = False
    doctor_approved: Optional[bool] = None
    doctor_notes: Optional[str] = None
    modified_recommendations: Optional[List[AnyRecommendation]] = None
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None


class ConversationEntry(BaseModel):
    key: str
    patient_id: str
    message: str
    timestamp: datetime


class TrainingExample(BaseModel):
    key: str
    original_symptoms: List[Symptom] = Field(default_factory=list)
    original_recommendations: List[AnyRecommendation] = Field(default_factory=list)
    doctor_approved: bool
    doctor_notes: str = ""
    modified_recommendations: Optional[List[AnyRecommendation]] = None
    patient_id: str
    doctor_id: str
    timestamp: datetime
    analysis_method: AnalysisMethod
    confidence: float


class ModelMetrics(BaseModel):
    total_reviews: int = 0
    approved_count: int = 0
    rejected_count: int = 0
    accuracy_rate: float = 0.0
    last_updated: Optional[datetime] = None

    def record(self, approved: bool, now: datetime) -> None:
        self.total_reviews += 1
        if approved:
            self.approved_count += 1
        else:
            self.rejected_count += 1
        self.accuracy_rate = self.approved_count / self.total_reviews * 100
        self.last_updated = now


class ExemplarPattern(BaseModel):
    key: str
    kind: Literal["success", "failure"]
    symptoms: List[Symptom] = Field(default_factory=list)
    recommendations: List[AnyRecommendation] = Field(default_factory=list)
    corrected_recommendations: List[AnyRecommendation] = Field(default_factory=list)
    doctor_notes: str = ""
    patient_context: Optional[str] = None
    timestamp: datetime
    archived: bool = False


class FewShotBundle(BaseModel):
    examples: List[ExemplarPattern] = Field(default_factory=list)
    last_updated: datetime
    version: str


class Exemplars(BaseModel):
    successes: List[ExemplarPattern] = Field(default_factory=list)
    failures: List[ExemplarPattern] = Field(default_factory=list)


class SymptomCount(BaseModel):
    symptom: str
    count: int


class InsightsReport(BaseModel):
    total_cases_analyzed: int
    approval_rate: float
    top_approved_symptoms: List[SymptomCount] = Field(default_factory=list)
    top_rejected_symptoms: List[SymptomCount] = Field(default_factory=list)
    # Rates over the most recent 7 / 30 records, not calendar days.
    last_7_day_approval_rate: float
    last_30_day_approval_rate: float


class LearningStats(BaseModel):
    methods: Dict[str, ModelMetrics] = Field(default_factory=dict)
    training_data_count: int = 0
    success_patterns_count: int = 0
    failure_patterns_count: int = 0


class RetrainResult(BaseModel):
    archived_count: int
    timestamp: datetime
