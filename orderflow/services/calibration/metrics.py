"""
Calibration Metrics

Computes calibration statistics over a labeled truth table and suggests
policy gates from the coverage-by-threshold curve.

- Scale detection: any predicted value > 1.5 means a 0-100 scale
- Brier score: mean squared error of normalized confidence vs 0/1 outcome
- Reliability bins: equal-width over [0,1], last bin closed at 1.0
- ECE: sum of bin_weight * |avg_pred - empirical_acc|
- Coverage: auto rate and error rate for each candidate auto threshold
"""

from typing import Dict, List, Optional, Sequence

import structlog

from orderflow.models.calibration import (
    AccuracySummary,
    CalibrationComputed,
    CalibrationStats,
    CoverageRow,
    PolicyGateSuggestion,
    ReliabilityBin,
    TruthTableRow,
)

logger = structlog.get_logger(__name__)


CANDIDATE_THRESHOLDS = (0.5, 0.6, 0.7, 0.75, 0.8, 0.85, 0.9, 0.92, 0.95, 0.98)

SCALE_DETECTION_CUTOFF = 1.5

# Fallback when no threshold meets the error budget
FALLBACK_AUTO_PROCESS_MIN = 0.95
REVIEW_BAND_WIDTH = 0.15
REVIEW_MIN_CEILING = 0.85
# Never auto-suggest a block floor above this
BLOCK_BELOW_DEFAULT = 0.50

FIELD_ACCURACY_COLUMNS = {
    "item_number": "item_number_correct",
    "quantity": "quantity_correct",
    "unit_price": "unit_price_correct",
    "ship_to": "ship_to_correct",
}

SIGNAL_COLUMNS = {
    "CREDIT_MEMO": "is_credit_memo",
    "SPECIAL_LAYOUT": "has_special_layout",
    "CUSTOM_LENGTH": "has_custom_length",
    "ZERO_DOLLAR": "is_zero_dollar",
    "THIRD_PARTY_SHIP": "third_party_ship",
}


class InsufficientCalibrationDataError(ValueError):
    """Raised when a calibration run has no usable rows."""

    def __init__(self, n_rows: int = 0, message: Optional[str] = None):
        self.n_rows = n_rows
        if message is None:
            message = (
                "No usable rows found. Required columns: predicted_confidence and correct."
            )
        super().__init__(message)


def _clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


def _binary_mean(rows: Sequence[TruthTableRow], column: str) -> Optional[float]:
    """Mean of 0/1 values in an optional column; None if no row carries one."""
    values = [getattr(r, column) for r in rows]
    values = [v for v in values if v in (0, 1)]
    if not values:
        return None
    return sum(values) / len(values)


def _reliability_bins(p: List[float], y: List[int], bins: int) -> tuple[List[ReliabilityBin], float]:
    n = len(p)
    result = []
    ece = 0.0

    for b in range(bins):
        bin_min = b / bins
        bin_max = (b + 1) / bins
        last = b == bins - 1
        members = [
            i for i, val in enumerate(p)
            if val >= bin_min and (val <= bin_max if last else val < bin_max)
        ]

        count = len(members)
        if count == 0:
            result.append(ReliabilityBin(
                bin_min=bin_min, bin_max=bin_max, avg_pred=0.0, empirical_acc=0.0, count=0
            ))
            continue

        avg_pred = sum(p[i] for i in members) / count
        empirical_acc = sum(y[i] for i in members) / count
        result.append(ReliabilityBin(
            bin_min=bin_min,
            bin_max=bin_max,
            avg_pred=avg_pred,
            empirical_acc=empirical_acc,
            count=count,
        ))
        ece += (count / n) * abs(avg_pred - empirical_acc)

    return result, ece


def _coverage(p: List[float], y: List[int], thresholds: Sequence[float]) -> List[CoverageRow]:
    n = len(p)
    rows = []
    for t in thresholds:
        members = [i for i, val in enumerate(p) if val >= t]
        if not members:
            rows.append(CoverageRow(threshold=t, auto_rate=0.0, expected_error_rate=0.0))
            continue
        empirical_acc = sum(y[i] for i in members) / len(members)
        rows.append(CoverageRow(
            threshold=t,
            auto_rate=len(members) / n,
            expected_error_rate=1 - empirical_acc,
        ))
    return rows


def compute_calibration(rows: Sequence[TruthTableRow], bins: int = 10) -> CalibrationComputed:
    """
    Compute calibration statistics for a truth table.

    Args:
        rows: Coerced truth-table rows
        bins: Number of equal-width reliability bins

    Returns:
        CalibrationComputed summary

    Raises:
        InsufficientCalibrationDataError: If rows is empty
        ValueError: If bins is less than 1
    """
    if not rows:
        raise InsufficientCalibrationDataError(n_rows=0)
    if bins < 1:
        raise ValueError(f"bins must be at least 1, got {bins}")

    n = len(rows)
    max_conf = max(r.predicted_confidence for r in rows)
    scale = "0_100" if max_conf > SCALE_DETECTION_CUTOFF else "0_1"
    divisor = 100.0 if scale == "0_100" else 1.0

    p = [_clamp01(r.predicted_confidence / divisor) for r in rows]
    y = [1 if r.correct >= 0.5 else 0 for r in rows]

    brier = sum((p[i] - y[i]) ** 2 for i in range(n)) / n
    reliability, ece = _reliability_bins(p, y, bins)
    coverage = _coverage(p, y, CANDIDATE_THRESHOLDS)

    field_level: Dict[str, float] = {}
    for name, column in FIELD_ACCURACY_COLUMNS.items():
        mean = _binary_mean(rows, column)
        if mean is not None:
            field_level[name] = mean

    signals: Dict[str, float] = {}
    for code, column in SIGNAL_COLUMNS.items():
        mean = _binary_mean(rows, column)
        if mean is not None:
            signals[code] = mean

    computed = CalibrationComputed(
        n_rows=n,
        confidence_scale_detected=scale,
        accuracy=AccuracySummary(
            line_required_fields_all_correct=sum(y) / n,
            field_level=field_level,
        ),
        calibration=CalibrationStats(
            brier_score=brier,
            ece=ece,
            reliability_bins=reliability,
        ),
        coverage_by_threshold=coverage,
        signals_distribution=signals,
    )

    logger.info(
        "calibration_computed",
        n_rows=n,
        scale=scale,
        accuracy=round(computed.accuracy.line_required_fields_all_correct, 4),
        brier_score=round(brier, 4),
        ece=round(ece, 4),
    )

    return computed


def suggest_gates(coverage: Sequence[CoverageRow], max_error: float = 0.02) -> PolicyGateSuggestion:
    """
    Suggest conservative policy gates from a coverage-by-threshold table.

    Picks the lowest threshold whose auto bucket stays within max_error,
    which maximizes coverage while meeting the error bound.

    Args:
        coverage: CalibrationComputed.coverage_by_threshold
        max_error: Maximum tolerable error rate among auto-processed rows

    Returns:
        PolicyGateSuggestion (values rounded to 2 decimals)
    """
    qualifying = [
        c.threshold for c in coverage
        if c.auto_rate > 0 and c.expected_error_rate <= max_error
    ]
    auto = min(qualifying) if qualifying else FALLBACK_AUTO_PROCESS_MIN
    review = max(0.0, min(auto - REVIEW_BAND_WIDTH, REVIEW_MIN_CEILING))

    suggestion = PolicyGateSuggestion(
        auto_process_min=round(auto, 2),
        review_min=round(review, 2),
        block_below=round(BLOCK_BELOW_DEFAULT, 2),
    )

    if not qualifying:
        logger.warning(
            "gate_suggestion_fallback",
            max_error=max_error,
            auto_process_min=suggestion.auto_process_min,
        )
    else:
        logger.info(
            "gate_suggestion_computed",
            max_error=max_error,
            auto_process_min=suggestion.auto_process_min,
            review_min=suggestion.review_min,
            block_below=suggestion.block_below,
        )

    return suggestion
