import json
import logging
import re
from typing import List, Optional, Tuple

from .contracts import ConversationEntry, MedicalRecord
from .errors import ProviderError
from .prompts import build_questions_messages
from .provider import ChatCompletion, call_with_timeout

logger = logging.getLogger(__name__)

MAX_QUESTIONS = 7

FALLBACK_QUESTIONS = [
    "How would you rate your overall symptoms today (0-10)?",
    "Did you experience any headaches today?",
    "How was your sleep quality last night?",
    "Did you feel dizzy or have balance issues today?",
    "How was your concentration and focus today?",
    "Did you engage in any physical activity today?",
    "Are there any new or worsening symptoms to report?",
]

JSON_ARRAY = re.compile(r"\[[\s\S]*\]")
LIST_MARKER = re.compile(r"^(\d+[.)]\s*|[-*]\s*)")


def parse_questions(text: str) -> List[str]:
    """Read a JSON array of questions, else one question per non-empty line."""

    match = JSON_ARRAY.search(text or "")
    if match:
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            data = None
        if isinstance(data, list):
            questions = [str(item).strip() for item in data if str(item).strip()]
            return questions[:MAX_QUESTIONS]
    questions = []
    for line in (text or "").splitlines():
        cleaned = LIST_MARKER.sub("", line.strip()).strip()
        if cleaned:
            questions.append(cleaned)
    return questions[:MAX_QUESTIONS]


def generate_daily_questions(
    chat: Optional[ChatCompletion],
    prior_medical_data: Optional[MedicalRecord],
    conversations: List[ConversationEntry],
    timeout: float = 20.0,
) -> Tuple[List[str], str]:
    """Return ``(questions, generated_by)`` for today's check-in."""

    questions: List[str] = []
    if chat is not None:
        try:
            reply = call_with_timeout(
                chat, build_questions_messages(prior_medical_data, conversations), timeout
            )
            questions = parse_questions(reply)
        except ProviderError as exc:
            logger.warning(f"Daily questions fell back to defaults: {exc}")
    if not questions:
        return list(FALLBACK_QUESTIONS), "fallback"
    return questions, "github-models"
