import re
from typing import Any, Dict, Mapping, Optional

SAFE_HARBOR_PATTERNS = [
    re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)+\b"),
    re.compile(r"\b\d{3}[-.\s]?\d{2}[-.\s]?\d{4}\b"),
    re.compile(r"\b(\+?\d{1,3}[-.\s]?)?(\(?\d{2,4}\)?[-.\s]?){2,}\d{2,4}\b"),
    re.compile(r"\b[\w\.-]+@[\w\.-]+\.\w+\b"),
    re.compile(r"https?://\S+"),
    re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b"),
    re.compile(r"\b\d{1,2}-\d{1,2}-\d{2,4}\b"),
]

# Context fields dropped outright before anything leaves the process.
IDENTIFYING_FIELDS = {"name", "full_name", "email", "phone", "address", "mrn"}


def safe_harbor_redact(text: str) -> str:
    red = text
    for pat in SAFE_HARBOR_PATTERNS:
        red = pat.sub("[REDACTED]", red)
    return red


def redact_context(context: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Flatten patient context to redacted strings, skipping empty values."""

    redacted: Dict[str, str] = {}
    for key, value in (context or {}).items():
        if value is None or str(key).lower() in IDENTIFYING_FIELDS:
            continue
        if isinstance(value, (list, tuple)):
            value = ", ".join(str(item) for item in value)
        redacted[str(key)] = safe_harbor_redact(str(value))
    return redacted
