"""
Field Confidence Scorer

Per-field confidence from the row's base line confidence minus structural
penalties (missing required fields) and edge-case penalties. Each field is
clamped independently; a penalty on one field never touches another.
"""

from dataclasses import dataclass
from typing import Dict, List

import structlog

from orderflow.models.line_row import POLineRow
from orderflow.services.edge_cases.signals import (
    CUSTOM_DIMENSION,
    RGA_REFERENCE,
    SPECIAL_LAYOUT,
    ZERO_DOLLAR,
)

logger = structlog.get_logger(__name__)

FieldConfidenceMap = Dict[str, float]

DEFAULT_REVIEW_THRESHOLD = 0.85


@dataclass(frozen=True)
class FieldPenaltyWeights:
    """Penalty table; override individual weights for isolation tests."""
    # Structural (missing required field)
    missing_item_no: float = 0.25
    missing_qty: float = 0.25
    missing_unit_price: float = 0.15      # only when pricing is expected
    missing_extended_price: float = 0.10  # only when pricing is expected
    missing_uom: float = 0.10
    missing_description: float = 0.10

    # Edge cases
    special_layout_description: float = 0.15
    custom_dimension_description: float = 0.10
    custom_dimension_item_no: float = 0.05
    rga_description: float = 0.15
    zero_dollar_price: float = 0.20       # both price fields, only when pricing is expected


DEFAULT_FIELD_PENALTIES = FieldPenaltyWeights()


def _clamp01(value: float) -> float:
    if value < 0:
        return 0.0
    if value > 1:
        return 1.0
    return value


def compute_field_confidence(
    row: POLineRow,
    weights: FieldPenaltyWeights = DEFAULT_FIELD_PENALTIES,
) -> FieldConfidenceMap:
    """
    Compute per-field confidence for a line row.

    Keys are POLineRow attribute names: customer_item_no, qty, unit_price,
    extended_price, uom, customer_item_desc_raw.
    """
    base = _clamp01(row.confidence_score or 0.0)
    price_expected = row.price_expected

    penalties = {
        "customer_item_no": 0.0 if row.customer_item_no else weights.missing_item_no,
        "qty": 0.0 if row.qty is not None else weights.missing_qty,
        "unit_price": (
            weights.missing_unit_price
            if price_expected and row.unit_price is None else 0.0
        ),
        "extended_price": (
            weights.missing_extended_price
            if price_expected and row.extended_price is None else 0.0
        ),
        "uom": 0.0 if row.uom else weights.missing_uom,
        "customer_item_desc_raw": 0.0 if row.customer_item_desc_raw else weights.missing_description,
    }

    flags = set(row.edge_case_flags)
    if SPECIAL_LAYOUT in flags:
        penalties["customer_item_desc_raw"] += weights.special_layout_description
    if CUSTOM_DIMENSION in flags:
        penalties["customer_item_desc_raw"] += weights.custom_dimension_description
        penalties["customer_item_no"] += weights.custom_dimension_item_no
    if RGA_REFERENCE in flags:
        penalties["customer_item_desc_raw"] += weights.rga_description
    if ZERO_DOLLAR in flags and price_expected:
        penalties["unit_price"] += weights.zero_dollar_price
        penalties["extended_price"] += weights.zero_dollar_price

    return {name: _clamp01(base - penalty) for name, penalty in penalties.items()}


def fields_needing_review(
    field_confidence: FieldConfidenceMap,
    threshold: float = DEFAULT_REVIEW_THRESHOLD,
) -> List[str]:
    """Fields strictly below threshold, in map order."""
    return [name for name, value in field_confidence.items() if value < threshold]
