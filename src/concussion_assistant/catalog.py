"""Static rule tables for the rule-based analysis path.

Loaded once at import and never mutated. Severity tiers are ordered tuples so
that ``high`` is always tested before ``medium`` and ``medium`` before ``low``.
"""

from typing import NamedTuple, Optional, Tuple


class SymptomPattern(NamedTuple):
    name: str
    triggers: Tuple[str, ...]
    # (severity, keywords) pairs in precedence order.
    severity_tiers: Tuple[Tuple[str, Tuple[str, ...]], ...]


class RecommendationTemplate(NamedTuple):
    symptom: str
    category: str
    title: str
    description: str


SYMPTOM_CATALOG: Tuple[SymptomPattern, ...] = (
    SymptomPattern(
        name="Headache",
        triggers=("headache", "head pain", "migraine", "head hurts"),
        severity_tiers=(
            ("high", ("severe", "intense", "excruciating", "unbearable", "worst")),
            ("medium", ("moderate", "noticeable", "bothering", "persistent")),
            ("low", ("mild", "slight", "little", "minor")),
        ),
    ),
    SymptomPattern(
        name="Dizziness",
        triggers=("dizzy", "dizziness", "vertigo", "spinning", "unbalanced", "lightheaded"),
        severity_tiers=(
            ("high", ("severe", "constant", "overwhelming", "can't stand")),
            ("medium", ("moderate", "frequent", "noticeable")),
            ("low", ("mild", "occasional", "slight")),
        ),
    ),
    SymptomPattern(
        name="Nausea",
        triggers=("nausea", "nauseous", "sick", "queasy", "vomiting", "throw up"),
        severity_tiers=(
            ("high", ("severe", "constant", "vomiting", "can't eat")),
            ("medium", ("moderate", "frequent", "bothering")),
            ("low", ("mild", "slight", "occasional")),
        ),
    ),
    SymptomPattern(
        name="Vision Problems",
        triggers=(
            "blurry",
            "double vision",
            "vision",
            "eyes hurt",
            "light sensitive",
            "photophobia",
            "can't see",
        ),
        severity_tiers=(
            ("high", ("severe", "constant", "can't see", "very blurry")),
            ("medium", ("moderate", "noticeable", "bothering")),
            ("low", ("mild", "slight", "sometimes")),
        ),
    ),
    SymptomPattern(
        name="Sleep Issues",
        triggers=("sleep", "tired", "fatigue", "exhausted", "insomnia", "can't sleep"),
        severity_tiers=(
            ("high", ("can't sleep", "no sleep", "exhausted", "severe fatigue")),
            ("medium", ("trouble sleeping", "tired often", "moderate fatigue")),
            ("low", ("slightly tired", "mild fatigue", "little tired")),
        ),
    ),
    SymptomPattern(
        name="Cognitive Issues",
        triggers=("memory", "concentration", "focus", "confused", "foggy", "thinking"),
        severity_tiers=(
            ("high", ("can't remember", "very confused", "severe fog")),
            ("medium", ("trouble focusing", "some memory issues", "moderate fog")),
            ("low", ("slight confusion", "mild fog", "minor memory")),
        ),
    ),
    SymptomPattern(
        name="Mood Changes",
        triggers=("depressed", "anxious", "irritable", "mood", "angry", "sad", "worried"),
        severity_tiers=(
            ("high", ("severe depression", "severe anxiety", "very irritable")),
            ("medium", ("moderate anxiety", "somewhat depressed", "often irritable")),
            ("low", ("mild anxiety", "slightly sad", "minor mood")),
        ),
    ),
)

SYMPTOM_NAMES: Tuple[str, ...] = tuple(pattern.name for pattern in SYMPTOM_CATALOG)

DEFAULT_SEVERITY = "medium"

HIGH_URGENCY_PHRASES: Tuple[str, ...] = (
    "emergency",
    "severe",
    "unbearable",
    "can't function",
    "getting worse",
    "vomiting",
    "can't see",
    "can't walk",
    "confused",
    "lost consciousness",
    "seizure",
    "very dizzy",
    "severe headache",
    "can't sleep at all",
)

MEDIUM_URGENCY_PHRASES: Tuple[str, ...] = (
    "persistent",
    "not improving",
    "worse",
    "bothering",
    "interfering",
)

# Nausea has no dedicated entry; it still counts towards urgency.
RECOMMENDATION_TABLE: Tuple[RecommendationTemplate, ...] = (
    RecommendationTemplate(
        symptom="Headache",
        category="Pain Management",
        title="Headache Relief Protocol",
        description=(
            "Apply ice to temples for 15-20 minutes. Rest in a dark, quiet room. "
            "Consider gentle neck stretches. Avoid screens if they worsen symptoms."
        ),
    ),
    RecommendationTemplate(
        symptom="Dizziness",
        category="Vestibular Training",
        title="Balance and Dizziness Management",
        description=(
            "Practice gaze stabilization exercises. Avoid sudden head movements. "
            "Consider vestibular rehabilitation exercises. Sit down immediately when feeling dizzy."
        ),
    ),
    RecommendationTemplate(
        symptom="Vision Problems",
        category="Visual Therapy",
        title="Vision and Eye Comfort",
        description=(
            "Reduce screen time and take frequent breaks. Use larger fonts and high contrast "
            "settings. Practice focusing exercises. Consider tinted glasses for light sensitivity."
        ),
    ),
    RecommendationTemplate(
        symptom="Sleep Issues",
        category="Sleep Hygiene",
        title="Sleep Quality Improvement",
        description=(
            "Maintain consistent sleep schedule. Create calming bedtime routine. Limit caffeine "
            "and screens before bed. Consider gentle stretching or meditation."
        ),
    ),
    RecommendationTemplate(
        symptom="Cognitive Issues",
        category="Cognitive Training",
        title="Memory and Focus Enhancement",
        description=(
            "Use memory aids and lists. Break tasks into smaller steps. Practice attention "
            "exercises gradually. Take regular breaks during mental activities."
        ),
    ),
    RecommendationTemplate(
        symptom="Mood Changes",
        category="Mental Health",
        title="Emotional Wellness Support",
        description=(
            "Practice mindfulness and relaxation techniques. Maintain social connections. "
            "Consider counseling support. Monitor mood patterns daily."
        ),
    ),
)

MEDICAL_CARE = RecommendationTemplate(
    symptom="",
    category="Medical Care",
    title="Professional Medical Evaluation",
    description=(
        "Contact your healthcare provider for immediate assessment of your symptoms. "
        "These recommendations should supplement, not replace, professional medical care."
    ),
)

MONITORING = RecommendationTemplate(
    symptom="",
    category="Monitoring",
    title="Daily Symptom Tracking",
    description=(
        "Complete daily symptom assessments to track your progress and help your "
        "medical team adjust your treatment plan."
    ),
)


def template_for(symptom_name: str) -> Optional[RecommendationTemplate]:
    for template in RECOMMENDATION_TABLE:
        if template.symptom == symptom_name:
            return template
    return None


def normalize_text(text: str) -> str:
    """Lower-case and fold typographic apostrophes for substring matching."""

    return text.lower().replace("’", "'")
