"""Hosted chat-completion access with timeout and reply parsing."""

import json
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from .config import Settings
from .contracts import HostedAnalysis, RiskAssessment, StructuredRecommendation
from .errors import ParseError, ProviderError

try:
    from crewai import LLM
except Exception:  # pragma: no cover - hosted path disabled without CrewAI
    LLM = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

ChatCompletion = Callable[[List[Dict[str, str]]], str]

# Conservative defaults when the model reply cannot be parsed.
DEFAULT_CONFIDENCE = 0.7
EXCERPT_LIMIT = 500

JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

# Shared pool so blocking provider calls can be abandoned on timeout. A timed-out
# call keeps its worker until the provider returns; with every worker hung, later
# calls wait in the queue and time out into the rule-based fallback.
executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="chat-completion")


def make_chat_completion(settings: Settings) -> Optional[ChatCompletion]:
    """Build the hosted collaborator, or ``None`` when it is unavailable."""

    if settings.offline:
        logger.info("Offline mode: hosted model disabled")
        return None
    if LLM is None:
        logger.info("CrewAI not installed: hosted model disabled")
        return None
    try:
        llm = LLM(model=settings.llm_model, temperature=0.3, max_tokens=1000)
    except Exception as exc:
        logger.warning(f"Could not initialise hosted model {settings.llm_model}: {exc}")
        return None

    def chat(messages: List[Dict[str, str]]) -> str:
        try:
            reply = llm.call(messages)
        except Exception as exc:
            raise ProviderError(f"Hosted model call failed: {exc}") from exc
        if not reply:
            raise ProviderError("Hosted model returned an empty reply")
        return str(reply)

    return chat


def call_with_timeout(chat: ChatCompletion, messages: List[Dict[str, str]], timeout: float) -> str:
    future = executor.submit(chat, messages)
    try:
        return future.result(timeout=timeout)
    except FutureTimeout as exc:
        future.cancel()
        raise ProviderError(f"Hosted model timed out after {timeout:.1f}s") from exc
    except ProviderError:
        raise
    except Exception as exc:
        raise ProviderError(f"Hosted model call failed: {exc}") from exc


def _extract_json_object(text: str) -> dict:
    match = JSON_OBJECT.search(text or "")
    if not match:
        raise ParseError("No JSON object in model reply")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise ParseError(f"Malformed JSON in model reply: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError("Model reply JSON is not an object")
    return data


def default_analysis(raw_text: str) -> HostedAnalysis:
    excerpt = raw_text[:EXCERPT_LIMIT] + ("..." if len(raw_text) > EXCERPT_LIMIT else "")
    return HostedAnalysis(
        recommendations=[
            StructuredRecommendation(
                category="medical_attention",
                title="AI Analysis Available",
                description=excerpt,
                priority="medium",
                timeframe="As recommended by healthcare provider",
                precautions=[
                    "Always consult with healthcare provider before following any recommendations"
                ],
            )
        ],
        risk_assessment=RiskAssessment(
            level="medium", factors=["Requires professional medical evaluation"]
        ),
        next_steps=[
            "Review recommendations with healthcare provider",
            "Continue monitoring symptoms",
            "Follow up as directed",
        ],
        doctor_review_required=True,
        confidence=DEFAULT_CONFIDENCE,
    )


def parse_analysis_response(text: str) -> HostedAnalysis:
    """Parse the model's JSON reply, wrapping unusable replies in a default."""

    try:
        data = _extract_json_object(text)
        try:
            return HostedAnalysis.model_validate(data)
        except ValidationError as exc:
            raise ParseError(f"Model reply does not match the schema: {exc}") from exc
    except ParseError as exc:
        logger.warning(f"Using default analysis structure: {exc}")
        return default_analysis(text or "")
