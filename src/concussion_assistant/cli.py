import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, Literal

from rich import print as rprint

from .config import Settings
from .contracts import MedicalRecord
from .errors import InvalidInput, RecordNotFound, StoreUnavailable
from .provider import make_chat_completion
from .service import RecoveryAssistant
from .store import JsonFileKeyValueStore


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity level."""
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def save_results(
    results: Dict[str, Any],
    output_format: Literal["json", "markdown"],
    output_file: str
) -> None:
    """Save an analysis to a file in the specified format."""
    logger = logging.getLogger(__name__)
    output_path = Path(output_file)

    logger.info(f"Saving results to {output_path} in {output_format} format")

    if output_format == "json":
        with open(output_path, "w") as f:
            json.dump(results, f, indent=2)
    elif output_format == "markdown":
        with open(output_path, "w") as f:
            f.write("# Patient Message Analysis\n\n")
            f.write(f"- Analysis id: `{results['analysis_id']}`\n")
            f.write(f"- Method: {results['analysis_method']}\n")
            f.write(f"- Urgency: **{results['urgency_level']}**\n")
            f.write(f"- Confidence: {results['confidence']:.2f}\n\n")

            f.write("## Symptoms\n")
            for symptom in results["symptoms"]:
                f.write(f"- {symptom['name']} ({symptom['severity']})\n")
            if not results["symptoms"]:
                f.write("- None detected\n")
            f.write("\n")

            f.write("## Recommendations\n")
            for rec in results["recommendations"]:
                level = rec.get("severity") or rec.get("priority")
                f.write(f"### {rec['title']} ({rec['category']}, {level})\n{rec['description']}\n\n")

            f.write("## Response\n")
            f.write(results["response"])
            f.write("\n")

    logger.info(f"Results saved to {output_path}")


def _load_medical_record(path: str) -> MedicalRecord:
    with open(path, "r", encoding="utf-8") as f:
        return MedicalRecord.model_validate(json.load(f))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Concussion recovery assistant.")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--store", help="Path to the JSON key-value store (overrides env)")
    parser.add_argument("--offline", action="store_true", help="Never call the hosted model")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyse a patient message")
    analyze.add_argument("--patient-id", required=True)
    analyze.add_argument("--text", required=True, help="Patient message.")
    analyze.add_argument("--medical-data", help="JSON file with prior questionnaire totals")
    analyze.add_argument(
        "--output-format",
        choices=["json", "markdown"],
        help="Format for saving results (json or markdown)"
    )
    analyze.add_argument("--save-results", help="Path to save the results file")

    sub.add_parser("pending", help="List analyses awaiting review")

    review = sub.add_parser("review", help="Record a clinician review")
    review.add_argument("analysis_id")
    decision = review.add_mutually_exclusive_group(required=True)
    decision.add_argument("--approve", action="store_true")
    decision.add_argument("--reject", action="store_true")
    review.add_argument("--notes", default="")
    review.add_argument("--reviewer", required=True)
    review.add_argument("--modified", help="JSON file with corrected recommendations")

    sub.add_parser("metrics", help="Show accuracy metrics per analysis method")

    insights = sub.add_parser("insights", help="Summarise recent reviews")
    insights.add_argument("--recent", type=int, default=50)

    sub.add_parser("retrain", help="Archive old patterns and rebuild few-shot examples")

    questions = sub.add_parser("questions", help="Generate daily check-in questions")
    questions.add_argument("--patient-id", required=True)
    questions.add_argument("--medical-data", help="JSON file with prior questionnaire totals")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    settings = Settings.from_env()
    if args.offline:
        settings.offline = True
    if args.store:
        settings.store_path = args.store

    logger.debug(f"Using store {settings.store_path}")
    assistant = RecoveryAssistant(
        JsonFileKeyValueStore(settings.store_path),
        chat=make_chat_completion(settings),
        timeout=settings.llm_timeout,
    )

    try:
        if args.command == "analyze":
            medical = _load_medical_record(args.medical_data) if args.medical_data else None
            logger.info("Analysing patient message")
            logger.debug(f"Input text length: {len(args.text)} characters")
            result = assistant.analyze_message(args.patient_id, args.text, prior_medical_data=medical)
            results = result.model_dump(mode="json")
            rprint(results)
            print("\n=== RESPONSE ===\n", result.response)
            if args.output_format and args.save_results:
                save_results(results, args.output_format, args.save_results)
        elif args.command == "pending":
            rprint([record.model_dump(mode="json") for record in assistant.pending_reviews()])
        elif args.command == "review":
            modified = None
            if args.modified:
                with open(args.modified, "r", encoding="utf-8") as f:
                    modified = json.load(f)
            example = assistant.record_review(
                args.analysis_id,
                approved=args.approve,
                notes=args.notes,
                modified_recommendations=modified,
                reviewer_id=args.reviewer,
            )
            rprint(example.model_dump(mode="json"))
        elif args.command == "metrics":
            rprint(assistant.get_learning_stats().model_dump(mode="json"))
        elif args.command == "insights":
            rprint(assistant.get_insights(args.recent).model_dump(mode="json"))
        elif args.command == "retrain":
            rprint(assistant.retrain().model_dump(mode="json"))
        elif args.command == "questions":
            medical = _load_medical_record(args.medical_data) if args.medical_data else None
            questions, generated_by = assistant.daily_questions(args.patient_id, medical)
            rprint({"questions": questions, "generated_by": generated_by})
    except (InvalidInput, RecordNotFound) as exc:
        logger.error(f"Request rejected: {exc}")
        raise SystemExit(2) from exc
    except StoreUnavailable as exc:
        logger.error(f"Store unavailable, retry later: {exc}")
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
