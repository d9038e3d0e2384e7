"""
Edge-Case Services
Doc type inference, line-text signal extraction and field confidence scoring
"""

from orderflow.services.edge_cases.doc_type import infer_doc_type
from orderflow.services.edge_cases.signals import (
    EdgeCaseSignals,
    extract_signals_from_line_text,
    classify_zero_dollar,
    derive_item_class,
)
from orderflow.services.edge_cases.field_confidence import (
    FieldPenaltyWeights,
    DEFAULT_FIELD_PENALTIES,
    compute_field_confidence,
    fields_needing_review,
)

__all__ = [
    "infer_doc_type",
    "EdgeCaseSignals",
    "extract_signals_from_line_text",
    "classify_zero_dollar",
    "derive_item_class",
    "FieldPenaltyWeights",
    "DEFAULT_FIELD_PENALTIES",
    "compute_field_confidence",
    "fields_needing_review",
]
