"""
Truth Table Coercion

Turns hand-exported CSV truth tables into TruthTableRow objects.

Header names are matched case-insensitively against per-field synonym lists,
so no fixed column order is required. Rows without a parseable
predicted_confidence or correct value are dropped: truth tables come out of
Excel/Sheets and partial corruption is expected.
"""

import csv
import io
import math
from typing import Dict, Iterable, List, Mapping, Optional

import structlog

from orderflow.models.calibration import TruthTableRow

logger = structlog.get_logger(__name__)


# Accepted header synonyms per TruthTableRow field (first present wins)
HEADER_SYNONYMS: Dict[str, List[str]] = {
    "predicted_confidence": ["predicted_confidence", "confidence", "p_correct", "prob", "score"],
    "correct": ["correct", "is_correct", "line_correct", "truth"],
    "order_id": ["order_id", "order_number", "po_number", "document_id"],
    "line_id": ["line_id", "row_id", "line_number"],
    "item_number_correct": ["item_number_correct", "item_correct"],
    "quantity_correct": ["quantity_correct", "qty_correct"],
    "unit_price_correct": ["unit_price_correct", "price_correct"],
    "ship_to_correct": ["ship_to_correct", "shipto_correct"],
    "is_credit_memo": ["is_credit_memo", "credit_memo"],
    "has_special_layout": ["has_special_layout", "special_layout"],
    "has_custom_length": ["has_custom_length", "custom_length"],
    "is_zero_dollar": ["is_zero_dollar", "zero_dollar"],
    "third_party_ship": ["third_party_ship", "third_party"],
}

OPTIONAL_NUMERIC_FIELDS = (
    "item_number_correct",
    "quantity_correct",
    "unit_price_correct",
    "ship_to_correct",
    "is_credit_memo",
    "has_special_layout",
    "has_custom_length",
    "is_zero_dollar",
    "third_party_ship",
)


def safe_num(value) -> Optional[float]:
    """Parse a cell as a finite float; blanks and garbage become None."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_csv_to_rows(csv_text: str) -> List[Dict[str, str]]:
    """
    Parse comma-separated text with a header row into dicts.

    Quoted cells and doubled quotes ("") are handled by the csv module.
    Blank lines are skipped; fewer than two non-blank lines yields [].
    """
    lines = [line for line in csv_text.splitlines() if line.strip()]
    if len(lines) < 2:
        return []

    reader = csv.reader(io.StringIO("\n".join(lines)))
    header = [h.strip() for h in next(reader)]

    rows = []
    for cells in reader:
        cells = [c.strip() for c in cells]
        rows.append({h: (cells[i] if i < len(cells) else "") for i, h in enumerate(header)})
    return rows


def _lookup(row: Mapping[str, str], synonyms: Iterable[str]) -> str:
    by_norm = {str(k).strip().lower(): k for k in row.keys()}
    for key in synonyms:
        original = by_norm.get(key.strip().lower())
        if original is not None:
            value = row[original]
            return "" if value is None else str(value)
    return ""


def coerce_truth_table(rows: Iterable[Mapping[str, str]]) -> List[TruthTableRow]:
    """
    Coerce loosely-shaped tabular rows into TruthTableRow objects.

    Never raises for individual malformed rows. The caller must check for an
    empty result before computing statistics (compute_calibration raises on
    zero rows).
    """
    coerced: List[TruthTableRow] = []
    dropped = 0

    for raw in rows:
        predicted = safe_num(_lookup(raw, HEADER_SYNONYMS["predicted_confidence"]))
        correct = safe_num(_lookup(raw, HEADER_SYNONYMS["correct"]))
        if predicted is None or correct is None:
            dropped += 1
            continue

        optional = {
            field: safe_num(_lookup(raw, HEADER_SYNONYMS[field]))
            for field in OPTIONAL_NUMERIC_FIELDS
        }
        coerced.append(TruthTableRow(
            order_id=_lookup(raw, HEADER_SYNONYMS["order_id"]) or None,
            line_id=_lookup(raw, HEADER_SYNONYMS["line_id"]) or None,
            predicted_confidence=predicted,
            correct=correct,
            **optional,
        ))

    logger.debug("truth_table_coerced", kept=len(coerced), dropped=dropped)
    return coerced


def load_truth_table_csv(csv_text: str) -> List[TruthTableRow]:
    """Convenience: parse CSV text and coerce in one step."""
    return coerce_truth_table(parse_csv_to_rows(csv_text))
