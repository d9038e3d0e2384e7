"""
Calibration Services
Turn labeled truth tables into calibration statistics and suggested gates
"""

from orderflow.services.calibration.truth_table import (
    HEADER_SYNONYMS,
    parse_csv_to_rows,
    coerce_truth_table,
    load_truth_table_csv,
)
from orderflow.services.calibration.metrics import (
    CANDIDATE_THRESHOLDS,
    InsufficientCalibrationDataError,
    compute_calibration,
    suggest_gates,
)

__all__ = [
    "HEADER_SYNONYMS",
    "parse_csv_to_rows",
    "coerce_truth_table",
    "load_truth_table_csv",
    "CANDIDATE_THRESHOLDS",
    "InsufficientCalibrationDataError",
    "compute_calibration",
    "suggest_gates",
]
