#!/usr/bin/env python3
"""
Coding Review Script

Runs one clinical coding review on a text or PDF document and prints the
stored analysis as JSON.

Usage:
    python scripts/analyze_document.py visit_note.pdf
    python scripts/analyze_document.py note.txt --priority high --patient-id P-1001
    python scripts/analyze_document.py note.txt --backend azure --output result.json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from coding_review.core.orchestrator import create_orchestrator
from coding_review.llm.client import create_client
from coding_review.models.review_result import ANALYSIS_TYPE
from coding_review.utils.exceptions import CodingReviewError
from coding_review.utils.logging import setup_logging, setup_logging_from_settings


async def run(args) -> dict:
    orchestrator = create_orchestrator()
    if args.backend:
        orchestrator.completion_client = create_client(backend=args.backend)

    try:
        result = await orchestrator.analyze(
            args.document,
            analysis_type=args.analysis_type,
            priority=args.priority,
            patient_id=args.patient_id,
            processing_notes=args.notes,
        )
    finally:
        await orchestrator.close()

    return result.to_dict()


def main():
    parser = argparse.ArgumentParser(description="Run a clinical coding review on one document")
    parser.add_argument("document", type=Path, help="Path to a .txt, .md or .pdf document")
    parser.add_argument("--analysis-type", default=ANALYSIS_TYPE, help="Analysis tag recorded on the result")
    parser.add_argument("--priority", default="medium", choices=["low", "medium", "high"])
    parser.add_argument("--patient-id", help="Optional patient identifier")
    parser.add_argument("--notes", help="Optional processing notes")
    parser.add_argument("--backend", choices=["openai", "azure"], help="Override COMPLETION_BACKEND")
    parser.add_argument("--output", "-o", type=Path, help="Write the JSON here instead of stdout")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    if args.verbose:
        setup_logging(level="DEBUG")
    else:
        setup_logging_from_settings()

    if not args.document.is_file():
        print(f"Document not found: {args.document}", file=sys.stderr)
        sys.exit(1)

    try:
        record = asyncio.run(run(args))
    except CodingReviewError as e:
        print(f"Analysis failed: {e}", file=sys.stderr)
        sys.exit(1)

    output = json.dumps(record, indent=2)
    if args.output:
        args.output.write_text(output, encoding="utf-8")
        print(f"Wrote {args.output}")
    else:
        print(output)


if __name__ == "__main__":
    main()
