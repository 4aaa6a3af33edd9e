"""Replay the labelled intent dataset through the extractor and report accuracy.

Usage:
    python scripts/run_intent_eval.py [--dataset PATH] [--output PATH]
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import asdict
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fax_engine.evaluation.metrics import (
    IntentCaseResult,
    build_confusion_matrix,
    compute_intent_metrics,
    compute_metrics,
)
from fax_engine.evaluation.runner import run_intent_evaluation
from fax_engine.observability.logger import setup_logging

DEFAULT_DATASET = Path(__file__).parent.parent / "tests" / "fixtures" / "intent_dataset.json"


def print_header(title: str) -> None:
    print(f"\n{'=' * 64}")
    print(f"  {title}")
    print(f"{'=' * 64}")


def print_summary(metrics: dict) -> None:
    print_header("INTENT EVALUATION SUMMARY")
    print(f"  Total cases:          {metrics['total_cases']}")
    print(f"  Valid cases:          {metrics['valid_cases']}")
    print(f"  Errors:               {metrics['error_count']}")
    print(f"  Intent accuracy:      {metrics['intent_accuracy']:.1%}")
    print(f"  Sub-intent accuracy:  {metrics['sub_intent_accuracy']:.1%}")
    print(f"  Avg confidence:       {metrics['avg_confidence']:.4f}")
    print(f"  Avg completeness:     {metrics['avg_parameter_extraction']:.4f}")
    print(f"  Confident errors:     {metrics['confident_error_count']}")


def print_intent_breakdown(by_intent: dict) -> None:
    print_header("PER-INTENT BREAKDOWN")
    print(f"  {'Intent':<22} {'Count':>5} {'Accuracy':>10} {'Confidence':>12} {'Complete':>10}")
    print(f"  {'-' * 61}")
    for intent, m in sorted(by_intent.items()):
        print(
            f"  {intent:<22} {m['count']:>5} "
            f"{m['accuracy']:>9.1%} "
            f"{m['avg_confidence']:>11.4f} "
            f"{m['avg_parameter_extraction']:>9.4f}"
        )


def print_confusion_matrix(matrix: dict) -> None:
    print_header("CONFUSION MATRIX (expected \\ actual, non-empty rows)")
    for expected, row in matrix.items():
        hits = {actual: n for actual, n in row.items() if n}
        if hits:
            print(f"  {expected:>22}: {hits}")


def print_case_details(results: list[IntentCaseResult]) -> None:
    print_header("INDIVIDUAL CASE RESULTS")
    for r in results:
        if r.error:
            status = "ERROR"
        elif r.intent_correct and r.sub_intent_correct is not False:
            status = "PASS"
        else:
            status = "FAIL"

        print(
            f"  [{status:>5}] {r.case_id:<16} | "
            f"expected={r.expected_intent:<20} actual={r.actual_intent:<20} | "
            f"conf={r.confidence:.3f}"
        )
        if r.error:
            print(f"         error: {r.error}")


def save_results(results: list[IntentCaseResult], metrics: dict, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "metrics": metrics,
        "results": [asdict(r) for r in results],
    }
    with open(output_path, "w") as f:
        json.dump(payload, f, indent=2, default=str)
    print(f"\nRaw results saved to {output_path}")


async def main(dataset_path: Path, output_path: Path) -> None:
    print(f"Dataset: {dataset_path}")

    results = await run_intent_evaluation(dataset_path=dataset_path)

    metrics = compute_metrics(results)
    confusion = build_confusion_matrix(results)
    by_intent = compute_intent_metrics(results)

    metrics["confusion_matrix"] = confusion
    metrics["by_intent"] = by_intent

    print_summary(metrics)
    print_intent_breakdown(by_intent)
    print_confusion_matrix(confusion)
    print_case_details(results)

    save_results(results, metrics, output_path)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run the offline intent evaluation")
    parser.add_argument(
        "--dataset",
        default=str(DEFAULT_DATASET),
        help="Path to the labelled dataset (default: tests/fixtures/intent_dataset.json)",
    )
    parser.add_argument(
        "--output",
        default="data/intent_eval_results.json",
        help="Path to save raw results JSON (default: data/intent_eval_results.json)",
    )
    parser.add_argument("--verbose", action="store_true", help="Show extractor log lines")
    args = parser.parse_args()
    setup_logging("DEBUG" if args.verbose else "WARNING", json_output=False)
    asyncio.run(main(Path(args.dataset), Path(args.output)))
