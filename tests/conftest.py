from datetime import datetime, timedelta, timezone

import pytest

from src.concussion_assistant.contracts import AnalysisRecord, Recommendation, Symptom
from src.concussion_assistant.learning import FeedbackLearningStore
from src.concussion_assistant.store import InMemoryKeyValueStore


class SteppingClock:
    """Returns a strictly increasing time on every call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        self.current += self.step
        return self.current

    def jump(self, delta: timedelta) -> None:
        self.current += delta


@pytest.fixture
def clock():
    return SteppingClock(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def learning(store, clock):
    return FeedbackLearningStore(store, clock=clock)


def make_record(
    learning: FeedbackLearningStore,
    conversation_id: str,
    symptom_names=("Headache",),
    method: str = "rule-based",
) -> AnalysisRecord:
    record = AnalysisRecord(
        conversation_id=conversation_id,
        patient_id="patient-1",
        message="test message",
        ai_response="response",
        recommendations=[
            Recommendation(category="Monitoring", title="Daily Symptom Tracking", description="Track.", severity="low")
        ],
        urgency_level="low",
        symptoms=[Symptom(name=name, severity="medium") for name in symptom_names],
        confidence=0.7,
        analysis_method=method,
        timestamp=learning._now(),
    )
    learning.save_analysis(record)
    return record


@pytest.fixture
def new_record(learning):
    def _make(conversation_id, symptom_names=("Headache",), method="rule-based"):
        return make_record(learning, conversation_id, symptom_names, method)

    return _make
