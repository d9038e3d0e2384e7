"""
Calibration Models

Labeled truth-table observations and the statistics derived from them.
Everything here is recomputed from scratch on each calibration run.
"""

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class TruthTableRow(BaseModel):
    """One historical labeled observation (immutable once parsed)."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    order_id: Optional[str] = None
    line_id: Optional[str] = None
    predicted_confidence: float = Field(description="0..1 or 0..100, scale auto-detected")
    correct: float = Field(description="Binary outcome, thresholded at 0.5")

    # Optional field-level correctness (0/1)
    item_number_correct: Optional[float] = None
    quantity_correct: Optional[float] = None
    unit_price_correct: Optional[float] = None
    ship_to_correct: Optional[float] = None

    # Optional edge-case signal indicators (0/1)
    is_credit_memo: Optional[float] = None
    has_special_layout: Optional[float] = None
    has_custom_length: Optional[float] = None
    is_zero_dollar: Optional[float] = None
    third_party_ship: Optional[float] = None


class ReliabilityBin(BaseModel):
    """Equal-width confidence bin; empty bins report zeros."""

    bin_min: float
    bin_max: float
    avg_pred: float
    empirical_acc: float
    count: int


class CoverageRow(BaseModel):
    """Auto coverage and error rate if the auto gate were set at `threshold`."""

    threshold: float
    auto_rate: float
    expected_error_rate: float


class AccuracySummary(BaseModel):
    line_required_fields_all_correct: float
    field_level: Dict[str, float] = Field(
        default_factory=dict,
        description="Only fields with at least one 0/1 value are present"
    )


class CalibrationStats(BaseModel):
    brier_score: float
    ece: float
    reliability_bins: List[ReliabilityBin]


class CalibrationComputed(BaseModel):
    """Read-only summary of a truth table."""

    n_rows: int
    confidence_scale_detected: Literal["0_1", "0_100"]
    join_match_rate: Optional[float] = None
    accuracy: AccuracySummary
    calibration: CalibrationStats
    coverage_by_threshold: List[CoverageRow]
    signals_distribution: Dict[str, float] = Field(default_factory=dict)


class PolicyGateSuggestion(BaseModel):
    """Gate values suggested from calibration under an error budget."""

    auto_process_min: float
    review_min: float
    block_below: float


__all__ = [
    "TruthTableRow",
    "ReliabilityBin",
    "CoverageRow",
    "AccuracySummary",
    "CalibrationStats",
    "CalibrationComputed",
    "PolicyGateSuggestion",
]
