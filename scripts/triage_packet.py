#!/usr/bin/env python3
"""
Classify the pages of a scanned packet and print the segment plan.

Run: python scripts/triage_packet.py packet.pdf [--pages]

Prints JSON: one entry per segment (label, page range, mean page score) and,
with --pages, the per-page label, score and reasons.

Exit codes:
  0 - Packet segmented
  1 - Packet has no pages or no text layer at all (every page UNKNOWN)
  2 - PDF could not be read
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from orderflow.models.triage import PageLabel
from orderflow.services.monitoring import bind_run_id, setup_logging
from orderflow.services.triage import PdfTextExtractionError, triage_pdf


def main():
    """Triage script entry point"""
    parser = argparse.ArgumentParser(
        description="Classify packet pages and build document segments"
    )
    parser.add_argument("pdf", type=Path, help="Scanned packet PDF")
    parser.add_argument(
        "--pages",
        action="store_true",
        help="Include per-page classification in the output"
    )
    args = parser.parse_args()

    setup_logging()
    bind_run_id()

    try:
        triage, segments = triage_pdf(args.pdf)
    except PdfTextExtractionError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(2)

    report = {
        "file": args.pdf.name,
        "page_count": len(triage),
        "segments": [
            {
                "segment_id": s.segment_id,
                "label": s.label.value,
                "pages": s.page_range,
                "score": round(sum(p.score for p in s.triage) / len(s.triage), 2),
            }
            for s in segments
        ],
    }
    if args.pages:
        report["pages"] = [
            {"page": p.page_index + 1, "label": p.label.value, "score": p.score, "reasons": p.reasons}
            for p in triage
        ]

    print(json.dumps(report, indent=2))

    if not triage or all(p.label == PageLabel.UNKNOWN for p in triage):
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
