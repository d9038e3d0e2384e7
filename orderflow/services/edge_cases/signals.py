"""
Edge-Case Signal Extraction

Regex detectors over line-item free text, zero-dollar detection and the
item-class escalation policy.

Flags are returned in detection order without dedup; callers merge them with
model-provided flags and dedup there.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from orderflow.models.line_row import ItemClass

# Flag names
SPECIAL_LAYOUT = "SPECIAL_LAYOUT"
POWER_TRANSFER = "POWER_TRANSFER"
WIRING_SPEC = "WIRING_SPEC"
CUSTOM_DIMENSION = "CUSTOM_DIMENSION"
RGA_REFERENCE = "RGA_REFERENCE"
INVOICE_REFERENCE = "INVOICE_REFERENCE"
ZERO_DOLLAR = "ZERO_DOLLAR"
CREDIT_MEMO = "CREDIT_MEMO"

# Any of these forces CUSTOM
CUSTOM_TRIGGERS = (SPECIAL_LAYOUT, CUSTOM_DIMENSION, RGA_REFERENCE)
# Absent CUSTOM triggers, any of these forces CONFIGURED
CONFIGURED_TRIGGERS = (WIRING_SPEC, POWER_TRANSFER)

RX_SPECIAL_LAYOUT = re.compile(r"\bspecial\s+layout\b", re.IGNORECASE)
RX_POWER_TRANSFER = re.compile(r"\bpower\s+transfer\b", re.IGNORECASE)
RX_WIRED_FOR = re.compile(r"\bwired\s+for\b", re.IGNORECASE)
RX_WIRING = re.compile(r"\bwiring\b", re.IGNORECASE)
RX_RGA = re.compile(r"\bRGA\s*#?\s*([A-Z0-9\-]{3,})\b", re.IGNORECASE)
RX_INVOICE = re.compile(r"\bINVOICE\s*#?\s*([A-Z0-9\-]{3,})\b", re.IGNORECASE)

# CUT TO 107-1/4", CUT TO 83", CUT TO 83 1/2"
RX_CUT_TO = re.compile(
    r'\bCUT\s*TO\s*([0-9]{1,3})'
    r'(?:\s*-\s*([0-9]{1,2})\s*/\s*([0-9]{1,2})|\s+([0-9]{1,2})\s*/\s*([0-9]{1,2}))?'
    r'\s*"?\b',
    re.IGNORECASE,
)


@dataclass
class EdgeCaseSignals:
    """Signals detected in one line's free text"""
    flags: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    rga_no: Optional[str] = None
    invoice_ref: Optional[str] = None
    cut_to_inches: Optional[float] = None
    has_special_layout: bool = False
    is_zero_dollar: bool = False


def _fraction(numerator: Optional[str], denominator: Optional[str]) -> float:
    """Fraction value; missing or zero denominators contribute 0."""
    num = float(numerator) if numerator else 0.0
    den = float(denominator) if denominator else 0.0
    if not den:
        return 0.0
    return num / den


def extract_signals_from_line_text(text: Optional[str]) -> EdgeCaseSignals:
    """
    Pattern-match line text for edge-case signals.

    Example:
        >>> s = extract_signals_from_line_text('4" CONT HINGE CUT TO 107-1/4"')
        >>> s.cut_to_inches
        107.25
        >>> s.flags
        ['CUSTOM_DIMENSION']
    """
    text = text or ""
    signals = EdgeCaseSignals()

    if RX_SPECIAL_LAYOUT.search(text):
        signals.flags.append(SPECIAL_LAYOUT)
        signals.notes.append("Detected 'Special Layout' language")

    if RX_POWER_TRANSFER.search(text):
        signals.flags.append(POWER_TRANSFER)
    if RX_WIRED_FOR.search(text) or RX_WIRING.search(text):
        signals.flags.append(WIRING_SPEC)

    cut = RX_CUT_TO.search(text)
    if cut:
        whole = float(cut.group(1))
        frac = _fraction(cut.group(2), cut.group(3)) or _fraction(cut.group(4), cut.group(5))
        signals.cut_to_inches = whole + frac
        signals.flags.append(CUSTOM_DIMENSION)
        signals.notes.append(f"Detected CUT TO length: {signals.cut_to_inches:.2f} inches")

    rga = RX_RGA.search(text)
    if rga:
        signals.rga_no = rga.group(1)
        signals.flags.append(RGA_REFERENCE)
        signals.notes.append(f"Detected RGA: {signals.rga_no}")

    invoice = RX_INVOICE.search(text)
    if invoice:
        signals.invoice_ref = invoice.group(1)
        signals.flags.append(INVOICE_REFERENCE)
        signals.notes.append(f"Detected Invoice ref: {signals.invoice_ref}")

    signals.has_special_layout = SPECIAL_LAYOUT in signals.flags
    return signals


def classify_zero_dollar(
    qty: Optional[float],
    unit_price: Optional[float] = None,
    ext_price: Optional[float] = None,
) -> bool:
    """
    True when a non-zero quantity was ordered at a zero price.

    Absent pricing (None) is not zero-dollar: non-priced document types
    legitimately carry no prices.
    """
    if qty is None or qty == 0:
        return False
    return unit_price == 0 or ext_price == 0


def derive_item_class(base: ItemClass, flags: Iterable[str], is_zero_dollar: bool) -> ItemClass:
    """
    Escalate the item class on risk signals.

    Strict two-tier override: CUSTOM triggers always win over CONFIGURED
    triggers, otherwise the base class is kept.
    """
    flag_set = set(flags)
    if is_zero_dollar or flag_set.intersection(CUSTOM_TRIGGERS):
        return ItemClass.CUSTOM
    if flag_set.intersection(CONFIGURED_TRIGGERS):
        return ItemClass.CONFIGURED
    return base
