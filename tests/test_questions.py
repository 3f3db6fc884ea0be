from src.concussion_assistant.errors import ProviderError
from src.concussion_assistant.questions import FALLBACK_QUESTIONS, generate_daily_questions, parse_questions


def test_parse_json_array():
    reply = 'Sure: ["How is your headache?", "Did you sleep well?"]'
    assert parse_questions(reply) == ["How is your headache?", "Did you sleep well?"]


def test_parse_numbered_lines_and_cap():
    reply = "\n".join(f"{i}. Question {i}?" for i in range(1, 10))
    questions = parse_questions(reply)
    assert len(questions) == 7
    assert questions[0] == "Question 1?"


def test_no_chat_uses_fallback():
    questions, generated_by = generate_daily_questions(None, None, [])
    assert questions == FALLBACK_QUESTIONS
    assert generated_by == "fallback"


def test_provider_failure_uses_fallback():
    def broken(messages):
        raise ProviderError("down")

    questions, generated_by = generate_daily_questions(broken, None, [], timeout=1.0)
    assert generated_by == "fallback"
    assert len(questions) == 7


def test_hosted_questions():
    questions, generated_by = generate_daily_questions(
        lambda messages: '["Any dizziness today?"]', None, [], timeout=1.0
    )
    assert questions == ["Any dizziness today?"]
    assert generated_by == "github-models"
