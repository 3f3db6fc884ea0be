from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from src.concussion_assistant.contracts import StructuredRecommendation
from src.concussion_assistant.errors import InvalidInput, RecordNotFound, StoreUnavailable
from src.concussion_assistant.learning import (
    FAILURE_PREFIX,
    FEW_SHOT_KEY,
    SUCCESS_PREFIX,
    TRAINING_PREFIX,
    FeedbackLearningStore,
)
from src.concussion_assistant.store import InMemoryKeyValueStore

from conftest import make_record

CORRECTED = [
    StructuredRecommendation(
        category="rehabilitation",
        title="Graded Return to Activity",
        description="Light aerobic activity below symptom threshold.",
        priority="medium",
        timeframe="2 weeks",
    )
]


def _counts(store):
    return (
        len(store.get_by_prefix(TRAINING_PREFIX)),
        len(store.get_by_prefix(SUCCESS_PREFIX)),
        len(store.get_by_prefix(FAILURE_PREFIX)),
    )


def test_approved_review_adds_training_example_and_success_pattern(learning, store, new_record):
    new_record("chat_a")
    learning.record_review("chat_a", True, "Looks right", None, "dr-1")
    assert _counts(store) == (1, 1, 0)
    record = learning.get_analysis("chat_a")
    assert record.doctor_reviewed is True
    assert record.doctor_approved is True
    assert record.reviewed_by == "dr-1"
    assert learning.pending_reviews() == []


def test_rejected_review_with_corrections_adds_failure_pattern(learning, store, new_record):
    new_record("chat_b")
    example = learning.record_review("chat_b", False, "Needs graded activity", CORRECTED, "dr-1")
    assert _counts(store) == (1, 0, 1)
    assert example.modified_recommendations[0].title == "Graded Return to Activity"
    failure = learning.exemplars().failures[0]
    assert failure.doctor_notes == "Needs graded activity"
    assert failure.corrected_recommendations[0].title == "Graded Return to Activity"


def test_rejected_review_without_corrections_adds_no_pattern(learning, store, new_record):
    new_record("chat_c")
    learning.record_review("chat_c", False, "Wrong", None, "dr-1")
    assert _counts(store) == (1, 0, 0)


def test_review_fires_once(learning, new_record):
    new_record("chat_d")
    learning.record_review("chat_d", True, "", None, "dr-1")
    with pytest.raises(InvalidInput):
        learning.record_review("chat_d", False, "", None, "dr-2")
    assert learning.get_metrics()["rule-based"].total_reviews == 1


def test_unknown_record_and_missing_reviewer(learning, new_record):
    with pytest.raises(RecordNotFound):
        learning.record_review("nope", True, "", None, "dr-1")
    new_record("chat_e")
    with pytest.raises(InvalidInput):
        learning.record_review("chat_e", True, "", None, "")


def test_metrics_invariant_per_method(learning, new_record):
    outcomes = [True, False, True, True, False]
    for i, approved in enumerate(outcomes):
        new_record(f"rb_{i}")
        learning.record_review(f"rb_{i}", approved, "", None, "dr-1")
    new_record("gh_0", method="github-models")
    learning.record_review("gh_0", False, "", None, "dr-1")

    metrics = learning.get_metrics()
    for bucket in metrics.values():
        assert bucket.total_reviews == bucket.approved_count + bucket.rejected_count
    rule_based = metrics["rule-based"]
    assert rule_based.total_reviews == 5
    assert rule_based.approved_count == 3
    assert rule_based.accuracy_rate == pytest.approx(60.0)
    assert metrics["github-models"].accuracy_rate == 0.0


def test_metrics_default_to_zero(learning):
    metrics = learning.get_metrics()
    assert set(metrics) == {"github-models", "rule-based"}
    assert metrics["rule-based"].total_reviews == 0


def test_concurrent_reviews_do_not_lose_updates(learning, new_record):
    n = 40
    for i in range(n):
        new_record(f"c_{i}")

    def review(i):
        return learning.record_review(f"c_{i}", i % 2 == 0, "", None, "dr-1")

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(review, range(n)))

    metrics = learning.get_metrics()["rule-based"]
    assert metrics.total_reviews == n
    assert metrics.approved_count == n // 2
    assert metrics.rejected_count == n // 2


def test_few_shot_bundle_keeps_ten_most_recent(learning, store, new_record):
    for i in range(12):
        new_record(f"s_{i}")
        learning.record_review(f"s_{i}", True, "", None, "dr-1")

    successes = sorted(
        store.get_by_prefix(SUCCESS_PREFIX), key=lambda p: (p["timestamp"], p["key"]), reverse=True
    )
    bundle = learning.few_shot_bundle()
    assert len(successes) == 12
    assert [example.key for example in bundle.examples] == [p["key"] for p in successes[:10]]
    assert store.get(FEW_SHOT_KEY)["version"].startswith("v")


def test_exemplars_cap_failures_at_five(learning, new_record):
    for i in range(7):
        new_record(f"f_{i}")
        learning.record_review(f"f_{i}", False, f"note {i}", CORRECTED, "dr-1")
    failures = learning.exemplars().failures
    assert [failure.doctor_notes for failure in failures] == [f"note {i}" for i in (6, 5, 4, 3, 2)]


def test_retrain_archives_old_patterns(learning, store, clock, new_record):
    new_record("old_success")
    learning.record_review("old_success", True, "", None, "dr-1")
    new_record("old_failure")
    learning.record_review("old_failure", False, "", CORRECTED, "dr-1")

    clock.jump(timedelta(days=31))
    new_record("new_success")
    learning.record_review("new_success", True, "", None, "dr-1")

    result = learning.retrain()
    assert result.archived_count == 2
    archived = [p for p in store.get_by_prefix(SUCCESS_PREFIX) + store.get_by_prefix(FAILURE_PREFIX) if p["archived"]]
    assert len(archived) == 2
    exemplars = learning.exemplars()
    assert len(exemplars.successes) == 1
    assert exemplars.failures == []
    # Archiving is a flag; history and metrics are untouched.
    assert learning.get_learning_stats().success_patterns_count == 2
    assert learning.get_metrics()["rule-based"].total_reviews == 3
    assert learning.retrain().archived_count == 0


def test_insights_over_recent_reviews(learning, new_record):
    cases = [
        ("i_0", ("Headache", "Dizziness"), True),
        ("i_1", ("Dizziness",), False),
        ("i_2", ("Headache",), True),
        ("i_3", ("Sleep Issues", "Headache"), True),
    ]
    for conversation_id, names, approved in cases:
        new_record(conversation_id, symptom_names=names)
        learning.record_review(conversation_id, approved, "", None, "dr-1")

    insights = learning.compute_insights()
    assert insights.total_cases_analyzed == 4
    assert insights.approval_rate == pytest.approx(0.75)
    # Newest first: i_3 is scanned first, so Sleep Issues precedes Dizziness on the tie.
    assert [(c.symptom, c.count) for c in insights.top_approved_symptoms] == [
        ("Headache", 3),
        ("Sleep Issues", 1),
        ("Dizziness", 1),
    ]
    assert [(c.symptom, c.count) for c in insights.top_rejected_symptoms] == [("Dizziness", 1)]


def test_insights_windows_count_records_not_days(learning, new_record):
    for i in range(10):
        new_record(f"w_{i}")
        learning.record_review(f"w_{i}", i >= 5, "", None, "dr-1")
    insights = learning.compute_insights(recent_n=8)
    assert insights.total_cases_analyzed == 8
    # Most recent 7 records are w_9..w_3: five approved, two rejected.
    assert insights.last_7_day_approval_rate == pytest.approx(5 / 7)
    assert insights.last_30_day_approval_rate == pytest.approx(5 / 8)


def test_insights_on_empty_history(learning):
    insights = learning.compute_insights()
    assert insights.total_cases_analyzed == 0
    assert insights.approval_rate == 0.0
    assert insights.top_approved_symptoms == []


class FailingStore(InMemoryKeyValueStore):
    def __init__(self, fail_prefix):
        super().__init__()
        self.fail_prefix = fail_prefix

    def set(self, key, value):
        if key.startswith(self.fail_prefix):
            raise ConnectionError("store offline")
        super().set(key, value)


def test_store_failure_surfaces_as_store_unavailable(clock):
    store = FailingStore("model_metrics_")
    learning = FeedbackLearningStore(store, clock=clock)
    make_record(learning, "x_1")
    with pytest.raises(StoreUnavailable):
        learning.record_review("x_1", True, "", None, "dr-1")


def test_store_unavailable_on_read():
    class Offline:
        def get(self, key):
            raise TimeoutError("timed out")

        def set(self, key, value):
            raise TimeoutError("timed out")

        def get_by_prefix(self, prefix):
            raise TimeoutError("timed out")

    learning = FeedbackLearningStore(Offline())
    with pytest.raises(StoreUnavailable):
        learning.get_metrics()
    with pytest.raises(StoreUnavailable):
        learning.compute_insights()


class ClientConnectionError(Exception):
    pass


class UnreachableStore:
    def get(self, key):
        raise ClientConnectionError("down")

    def set(self, key, value):
        raise ClientConnectionError("down")

    def get_by_prefix(self, prefix):
        raise ClientConnectionError("down")


def test_client_errors_surface_as_store_unavailable(clock):
    learning = FeedbackLearningStore(UnreachableStore(), clock=clock)
    with pytest.raises(StoreUnavailable) as excinfo:
        learning.get_metrics()
    assert isinstance(excinfo.value.__cause__, ClientConnectionError)
    with pytest.raises(StoreUnavailable):
        learning.record_review("chat_a", True, "", None, "dr-1")
    with pytest.raises(StoreUnavailable):
        learning.compute_insights()
    with pytest.raises(StoreUnavailable):
        learning.exemplars()
