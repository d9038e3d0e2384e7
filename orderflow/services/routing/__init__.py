"""
Policy routing: per-row lanes, exclusion overrides and document decisions.
"""

from orderflow.services.routing.document import (
    derive_reason_codes,
    reconcile_document,
    reconcile_documents,
)
from orderflow.services.routing.exclusions import apply_exclusions, rule_triggered
from orderflow.services.routing.lanes import (
    EMAIL_COVER_REASON,
    ground_row,
    gate_row,
    route_row,
    route_rows,
)

__all__ = [
    "EMAIL_COVER_REASON",
    "apply_exclusions",
    "derive_reason_codes",
    "gate_row",
    "ground_row",
    "reconcile_document",
    "reconcile_documents",
    "route_row",
    "route_rows",
    "rule_triggered",
]
