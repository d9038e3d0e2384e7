#!/usr/bin/env python3
"""
Compute calibration statistics from a labeled truth table and suggest gates.

Run: python scripts/calibrate.py truth_table.csv [--bins 10] [--max-error 0.02]

Prints a JSON document {"computed": ..., "suggested_gates": ...} to stdout.

Exit codes:
  0 - Gates suggested from a qualifying threshold
  1 - No threshold met the error bound (conservative fallback gates printed)
  2 - Calibration failed (unreadable file, no usable rows or bad --bins)
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from orderflow.config import settings
from orderflow.services.calibration import (
    InsufficientCalibrationDataError,
    compute_calibration,
    load_truth_table_csv,
    suggest_gates,
)
from orderflow.services.calibration.metrics import FALLBACK_AUTO_PROCESS_MIN
from orderflow.services.monitoring import bind_run_id, setup_logging


def main():
    """Calibration script entry point"""
    parser = argparse.ArgumentParser(
        description="Compute confidence calibration and suggest policy gates"
    )
    parser.add_argument("csv", type=Path, help="Truth-table CSV export")
    parser.add_argument(
        "--bins",
        type=int,
        default=settings.calibration_bins,
        help=f"Reliability bins (default: {settings.calibration_bins})"
    )
    parser.add_argument(
        "--max-error",
        type=float,
        default=settings.calibration_max_error,
        help=f"Tolerated error rate in the auto bucket (default: {settings.calibration_max_error})"
    )
    args = parser.parse_args()

    setup_logging()
    bind_run_id()

    try:
        csv_text = args.csv.read_text(encoding="utf-8-sig")
    except OSError as e:
        print(f"ERROR: Cannot read {args.csv}: {e}", file=sys.stderr)
        sys.exit(2)

    try:
        computed = compute_calibration(load_truth_table_csv(csv_text), bins=args.bins)
    except InsufficientCalibrationDataError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(2)
    except ValueError as e:
        print(f"ERROR: Invalid calibration options: {e}", file=sys.stderr)
        sys.exit(2)

    gates = suggest_gates(computed.coverage_by_threshold, max_error=args.max_error)

    print(json.dumps(
        {
            "computed": computed.model_dump(mode="json"),
            "suggested_gates": gates.model_dump(mode="json"),
        },
        indent=2,
    ))

    qualified = any(
        c.auto_rate > 0 and c.expected_error_rate <= args.max_error
        for c in computed.coverage_by_threshold
    )
    if not qualified:
        print(
            f"WARNING: no threshold met max error {args.max_error}; "
            f"fell back to auto_process_min={FALLBACK_AUTO_PROCESS_MIN}",
            file=sys.stderr,
        )
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
