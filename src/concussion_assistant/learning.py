"""Doctor feedback capture and the exemplar pools built from it.

Every review appends a training example, updates the per-method accuracy
metrics and, depending on the outcome, appends a success or failure pattern.
The few-shot bundle read by prompt construction is recomputed after each
review instead of being derived from the raw pattern log on every analysis.

The backing store has no multi-key transactions: a failure half-way through a
review can leave earlier writes in place. Locks are per process; deployments
with several writer processes need a store with atomic increments.
"""

import itertools
import logging
import threading
import time
import uuid
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import ValidationError

from .contracts import (
    ANALYSIS_METHODS,
    AnalysisRecord,
    AnyRecommendation,
    ConversationEntry,
    ExemplarPattern,
    Exemplars,
    FewShotBundle,
    InsightsReport,
    LearningStats,
    ModelMetrics,
    RetrainResult,
    SymptomCount,
    TrainingExample,
)
from .errors import InvalidInput, RecordNotFound, StoreUnavailable
from .store import KeyValueStore

logger = logging.getLogger(__name__)

AI_RESPONSE_PREFIX = "ai_response_"
CONVERSATION_PREFIX = "conversation_"
TRAINING_PREFIX = "training_data_"
METRICS_PREFIX = "model_metrics_"
SUCCESS_PREFIX = "success_patterns_"
FAILURE_PREFIX = "failure_patterns_"
FEW_SHOT_KEY = "few_shot_examples"

SUCCESS_EXEMPLAR_LIMIT = 10
FAILURE_EXEMPLAR_LIMIT = 5
TOP_SYMPTOM_LIMIT = 5
ARCHIVE_AFTER = timedelta(days=30)

_sequence = itertools.count()


def sequence_key(prefix: str) -> str:
    """Build a key whose lexical order follows creation order."""

    return f"{prefix}{time.time_ns():020d}_{next(_sequence):08d}_{uuid.uuid4().hex[:6]}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _approval_rate(cases: Sequence[TrainingExample]) -> float:
    if not cases:
        return 0.0
    return sum(1 for case in cases if case.doctor_approved) / len(cases)


def _top_symptoms(cases: Sequence[TrainingExample], limit: int = TOP_SYMPTOM_LIMIT) -> List[SymptomCount]:
    counts: Counter = Counter()
    for case in cases:
        # One count per category per case.
        for name in dict.fromkeys(symptom.name for symptom in case.original_symptoms):
            counts[name] += 1
    return [SymptomCount(symptom=name, count=count) for name, count in counts.most_common(limit)]


class FeedbackLearningStore:
    def __init__(self, store: KeyValueStore, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self._clock = clock or _utc_now
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # -- store access -----------------------------------------------------

    def _now(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(key, threading.Lock())

    def _get(self, key: str):
        try:
            return self.store.get(key)
        except StoreUnavailable:
            raise
        except Exception as exc:
            raise StoreUnavailable(f"Store read failed for {key}: {exc}") from exc

    def _set(self, key: str, value) -> None:
        try:
            self.store.set(key, value)
        except StoreUnavailable:
            raise
        except Exception as exc:
            raise StoreUnavailable(f"Store write failed for {key}: {exc}") from exc

    def _scan(self, prefix: str) -> list:
        try:
            return self.store.get_by_prefix(prefix) or []
        except StoreUnavailable:
            raise
        except Exception as exc:
            raise StoreUnavailable(f"Store scan failed for {prefix}: {exc}") from exc

    def _patterns(self, prefix: str) -> List[ExemplarPattern]:
        patterns = [ExemplarPattern.model_validate(raw) for raw in self._scan(prefix)]
        return sorted(patterns, key=lambda pattern: (pattern.timestamp, pattern.key), reverse=True)

    def _active_patterns(self, prefix: str) -> List[ExemplarPattern]:
        return [pattern for pattern in self._patterns(prefix) if not pattern.archived]

    def _training_examples(self) -> List[TrainingExample]:
        examples = [TrainingExample.model_validate(raw) for raw in self._scan(TRAINING_PREFIX)]
        return sorted(examples, key=lambda example: (example.timestamp, example.key), reverse=True)

    # -- analysis records -------------------------------------------------

    def save_analysis(self, record: AnalysisRecord) -> None:
        self._set(AI_RESPONSE_PREFIX + record.conversation_id, record.model_dump(mode="json"))
        logger.debug(f"Saved analysis {record.conversation_id} for review")

    def get_analysis(self, analysis_id: str) -> AnalysisRecord:
        raw = self._get(AI_RESPONSE_PREFIX + analysis_id)
        if raw is None:
            raise RecordNotFound(analysis_id)
        return AnalysisRecord.model_validate(raw)

    def pending_reviews(self) -> List[AnalysisRecord]:
        records = [AnalysisRecord.model_validate(raw) for raw in self._scan(AI_RESPONSE_PREFIX)]
        pending = [record for record in records if not record.doctor_reviewed]
        return sorted(pending, key=lambda record: record.timestamp, reverse=True)

    def log_conversation(self, patient_id: str, message: str) -> ConversationEntry:
        entry = ConversationEntry(
            key=sequence_key(f"{CONVERSATION_PREFIX}{patient_id}_"),
            patient_id=patient_id,
            message=message,
            timestamp=self._now(),
        )
        self._set(entry.key, entry.model_dump(mode="json"))
        return entry

    def recent_conversations(self, patient_id: str, limit: int = 5) -> List[ConversationEntry]:
        """Return the patient's last ``limit`` messages, oldest first."""

        entries = [
            ConversationEntry.model_validate(raw)
            for raw in self._scan(f"{CONVERSATION_PREFIX}{patient_id}_")
        ]
        # The prefix also matches ids that merely start with this one.
        entries = [entry for entry in entries if entry.patient_id == patient_id]
        entries.sort(key=lambda entry: (entry.timestamp, entry.key))
        return entries[-limit:] if limit > 0 else []

    # -- review transition ------------------------------------------------

    def record_review(
        self,
        analysis_id: str,
        approved: bool,
        doctor_notes: str = "",
        modified_recommendations: Optional[List[AnyRecommendation]] = None,
        doctor_id: str = "",
    ) -> TrainingExample:
        """Move an analysis from pending to reviewed and learn from the outcome."""

        if not analysis_id:
            raise InvalidInput("analysis_id is required")
        if not doctor_id:
            raise InvalidInput("doctor_id is required")

        record_key = AI_RESPONSE_PREFIX + analysis_id
        with self._lock_for(record_key):
            record = self.get_analysis(analysis_id)
            if record.doctor_reviewed:
                raise InvalidInput(f"Analysis {analysis_id} has already been reviewed")

            now = self._now()
            try:
                reviewed = AnalysisRecord.model_validate(
                    {
                        **record.model_dump(),
                        "doctor_reviewed": True,
                        "doctor_approved": approved,
                        "doctor_notes": doctor_notes or "",
                        "modified_recommendations": modified_recommendations,
                        "reviewed_by": doctor_id,
                        "reviewed_at": now,
                    }
                )
            except ValidationError as exc:
                raise InvalidInput(f"Invalid modified recommendations: {exc}") from exc
            self._set(record_key, reviewed.model_dump(mode="json"))

            example = TrainingExample(
                key=sequence_key(TRAINING_PREFIX),
                original_symptoms=reviewed.symptoms,
                original_recommendations=reviewed.recommendations,
                doctor_approved=approved,
                doctor_notes=reviewed.doctor_notes,
                modified_recommendations=reviewed.modified_recommendations,
                patient_id=reviewed.patient_id,
                doctor_id=doctor_id,
                timestamp=now,
                analysis_method=reviewed.analysis_method,
                confidence=reviewed.confidence,
            )
            self._set(example.key, example.model_dump(mode="json"))

        self._update_metrics(example.analysis_method, approved, now)
        self._collect_patterns(example)
        logger.info(
            f"Review recorded for {analysis_id}: {'approved' if approved else 'rejected'} by {doctor_id}"
        )
        return example

    def _update_metrics(self, analysis_method: str, approved: bool, now: datetime) -> ModelMetrics:
        key = METRICS_PREFIX + analysis_method
        with self._lock_for(key):
            raw = self._get(key)
            metrics = ModelMetrics.model_validate(raw) if raw else ModelMetrics()
            metrics.record(approved, now)
            self._set(key, metrics.model_dump(mode="json"))
        logger.info(f"Model metrics updated: {analysis_method} - {metrics.accuracy_rate:.1f}% accuracy")
        return metrics

    def _collect_patterns(self, example: TrainingExample) -> None:
        pattern: Optional[ExemplarPattern] = None
        if example.doctor_approved:
            pattern = ExemplarPattern(
                key=sequence_key(SUCCESS_PREFIX),
                kind="success",
                symptoms=example.original_symptoms,
                recommendations=example.original_recommendations,
                patient_context=example.patient_id,
                timestamp=example.timestamp,
            )
        elif example.modified_recommendations is not None:
            pattern = ExemplarPattern(
                key=sequence_key(FAILURE_PREFIX),
                kind="failure",
                symptoms=example.original_symptoms,
                recommendations=example.original_recommendations,
                corrected_recommendations=example.modified_recommendations,
                doctor_notes=example.doctor_notes,
                timestamp=example.timestamp,
            )
        if pattern is not None:
            self._set(pattern.key, pattern.model_dump(mode="json"))
            logger.debug(f"Stored {pattern.kind} pattern {pattern.key}")
        self.refresh_few_shot_examples()

    # -- exemplars --------------------------------------------------------

    def refresh_few_shot_examples(self) -> FewShotBundle:
        with self._lock_for(FEW_SHOT_KEY):
            successes = self._active_patterns(SUCCESS_PREFIX)[:SUCCESS_EXEMPLAR_LIMIT]
            bundle = FewShotBundle(
                examples=successes,
                last_updated=self._now(),
                version=f"v{time.time_ns()}",
            )
            self._set(FEW_SHOT_KEY, bundle.model_dump(mode="json"))
        logger.info(f"Few-shot examples refreshed with {len(successes)} successful patterns")
        return bundle

    def few_shot_bundle(self) -> Optional[FewShotBundle]:
        raw = self._get(FEW_SHOT_KEY)
        return FewShotBundle.model_validate(raw) if raw else None

    def exemplars(self) -> Exemplars:
        """Exemplars for prompt construction: cached successes, recent failures."""

        bundle = self.few_shot_bundle()
        return Exemplars(
            successes=bundle.examples if bundle else [],
            failures=self._active_patterns(FAILURE_PREFIX)[:FAILURE_EXEMPLAR_LIMIT],
        )

    # -- reporting --------------------------------------------------------

    def get_metrics(self) -> Dict[str, ModelMetrics]:
        metrics: Dict[str, ModelMetrics] = {}
        for method in ANALYSIS_METHODS:
            raw = self._get(METRICS_PREFIX + method)
            metrics[method] = ModelMetrics.model_validate(raw) if raw else ModelMetrics()
        return metrics

    def get_learning_stats(self) -> LearningStats:
        return LearningStats(
            methods=self.get_metrics(),
            training_data_count=len(self._scan(TRAINING_PREFIX)),
            success_patterns_count=len(self._scan(SUCCESS_PREFIX)),
            failure_patterns_count=len(self._scan(FAILURE_PREFIX)),
        )

    def compute_insights(self, recent_n: int = 50) -> InsightsReport:
        """Summarise the ``recent_n`` most recent reviews.

        The 7 and 30 windows count records, not calendar days.
        """

        if recent_n <= 0:
            raise InvalidInput("recent_n must be positive")
        recent = self._training_examples()[:recent_n]
        approved = [case for case in recent if case.doctor_approved]
        rejected = [case for case in recent if not case.doctor_approved]
        return InsightsReport(
            total_cases_analyzed=len(recent),
            approval_rate=_approval_rate(recent),
            top_approved_symptoms=_top_symptoms(approved),
            top_rejected_symptoms=_top_symptoms(rejected),
            last_7_day_approval_rate=_approval_rate(recent[:7]),
            last_30_day_approval_rate=_approval_rate(recent[:30]),
        )

    # -- maintenance ------------------------------------------------------

    def retrain(self) -> RetrainResult:
        """Archive patterns older than 30 days and rebuild the few-shot bundle."""

        now = self._now()
        cutoff = now - ARCHIVE_AFTER
        archived_count = 0
        for prefix in (SUCCESS_PREFIX, FAILURE_PREFIX):
            for pattern in self._patterns(prefix):
                if pattern.archived or pattern.timestamp >= cutoff:
                    continue
                pattern.archived = True
                self._set(pattern.key, pattern.model_dump(mode="json"))
                archived_count += 1
        self.refresh_few_shot_examples()
        logger.info(f"Retraining completed: {archived_count} old patterns archived")
        return RetrainResult(archived_count=archived_count, timestamp=now)
