from src.concussion_assistant.extraction import extract_symptoms


def _by_name(symptoms):
    return {symptom.name: symptom.severity for symptom in symptoms}


def test_no_symptoms_returns_empty_list():
    assert extract_symptoms("") == []
    assert extract_symptoms("Everything is fine today, thanks.") == []


def test_extraction_is_deterministic():
    message = "Constant vertigo and trouble focusing, some nausea"
    assert extract_symptoms(message) == extract_symptoms(message)


def test_high_severity_wins_over_low():
    symptoms = extract_symptoms("A mild but also severe headache")
    assert _by_name(symptoms) == {"Headache": "high"}


def test_default_severity_is_medium():
    assert _by_name(extract_symptoms("I have a headache")) == {"Headache": "medium"}


def test_output_follows_catalog_order_not_mention_order():
    symptoms = extract_symptoms("I feel sad, I can't sleep and my head hurts")
    assert [symptom.name for symptom in symptoms] == ["Headache", "Sleep Issues", "Mood Changes"]


def test_one_record_per_category():
    symptoms = extract_symptoms("headache, migraine, head pain, my head hurts")
    assert len(symptoms) == 1
    assert symptoms[0].detected is True


def test_case_insensitive_and_curly_apostrophe():
    symptoms = extract_symptoms("DIZZY and I Can’t See properly")
    assert _by_name(symptoms) == {"Dizziness": "medium", "Vision Problems": "high"}


def test_end_to_end_severe_scenario_symptoms():
    symptoms = _by_name(extract_symptoms("I have a severe headache and feel very dizzy, can't see straight"))
    assert symptoms["Headache"] == "high"
    assert symptoms["Dizziness"] == "high"
    assert symptoms["Vision Problems"] in {"medium", "high"}


def test_end_to_end_mild_scenario_symptoms():
    symptoms = _by_name(extract_symptoms("feeling a bit tired, mild headache"))
    assert symptoms == {"Headache": "low", "Sleep Issues": "medium"}


def test_very_long_input_does_not_fail():
    message = "nothing to report " * 50000 + "slight vertigo"
    assert _by_name(extract_symptoms(message)) == {"Dizziness": "low"}
