"""
Page Scoring

Classifies a single page of a scanned packet from its text layer.

Design decisions:
- Rules are an ordered tuple evaluated top to bottom; first match wins
- Priority is explicit: a page mentioning both CREDIT MEMO and PURCHASE ORDER
  is a credit memo because that rule comes first
- An INVOICE header is ignored when the page also says "INVOICE TO"
  (billing label on non-invoice pages). Kept as-is; it also hides real
  invoices whose billing block reads "Invoice To"
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

import structlog

from orderflow.models.triage import PageLabel, PageTriage

logger = structlog.get_logger(__name__)

MIN_TEXT_LENGTH = 20
TOO_SHORT_SCORE = 0.1
NO_MATCH_SCORE = 0.2

_WS_RE = re.compile(r"\s+")


def normalize(text: str) -> str:
    """Collapse whitespace and uppercase."""
    return _WS_RE.sub(" ", text or "").strip().upper()


def _has(pattern: str) -> Callable[[str], bool]:
    rx = re.compile(pattern)
    return lambda text: rx.search(text) is not None


_email_from = _has(r"\bFROM:")
_email_subject = _has(r"\bSUBJECT:")
_credit_memo = _has(r"\bCREDIT\s+MEMO\b")
_purchase_order = _has(r"\bPURCHASE\s+ORDER\b")
_known_customer = _has(r"\bHUNTINGTON\s+HARDWARE\b")
_sales_order = _has(r"\bSALES\s+ORDER\b")
_invoice = _has(r"\bINVOICE\b")
_invoice_to = _has(r"\bINVOICE\s+TO\b")
_picking_sheet = _has(r"\bPICKING\s+SHEET\b")
_totals = _has(r"\b(?:SUBTOTAL|TOTAL|AMOUNT)\b")
_ship_to = _has(r"\bSHIP\s+TO\b")
_bill_to = _has(r"\b(?:BILL|SOLD)\s+TO\b")


@dataclass(frozen=True)
class PageRule:
    """One classification rule; predicate receives normalized page text."""
    name: str
    label: PageLabel
    score: float
    reason: str
    predicate: Callable[[str], bool]


PAGE_RULES: Tuple[PageRule, ...] = (
    PageRule(
        "email", PageLabel.EMAIL_COVER, 0.9, "EMAIL_HEADERS",
        lambda t: _email_from(t) and _email_subject(t),
    ),
    PageRule("credit_memo", PageLabel.CREDIT_MEMO, 0.95, "CREDIT_MEMO_HEADER", _credit_memo),
    PageRule(
        "purchase_order", PageLabel.PURCHASE_ORDER, 0.95, "PURCHASE_ORDER_HEADER",
        lambda t: _purchase_order(t) or _known_customer(t),
    ),
    PageRule("sales_order", PageLabel.SALES_ORDER, 0.9, "SALES_ORDER_HEADER", _sales_order),
    PageRule(
        "invoice", PageLabel.INVOICE, 0.9, "INVOICE_HEADER",
        lambda t: _invoice(t) and not _invoice_to(t),
    ),
    PageRule("picking_sheet", PageLabel.PICKING_SHEET, 0.9, "PICKING_SHEET_HEADER", _picking_sheet),
    # Weak composite: totals language plus an address block
    PageRule(
        "totals_address", PageLabel.INVOICE, 0.6, "TOTALS_PLUS_ADDRESS_BLOCK",
        lambda t: _totals(t) and (_ship_to(t) or _bill_to(t)),
    ),
)


def score_page(
    text: str,
    rules: Sequence[PageRule] = PAGE_RULES,
) -> Tuple[PageLabel, float, List[str]]:
    """
    Classify one page.

    Returns:
        (label, score, reasons)
    """
    normalized = normalize(text)
    if len(normalized) < MIN_TEXT_LENGTH:
        return PageLabel.UNKNOWN, TOO_SHORT_SCORE, ["NO_TEXT_OR_TOO_SHORT"]

    for rule in rules:
        if rule.predicate(normalized):
            return rule.label, rule.score, [rule.reason]

    return PageLabel.UNKNOWN, NO_MATCH_SCORE, ["NO_STRONG_HEADER_MATCH"]


def triage_pages(page_texts: Sequence[str]) -> List[PageTriage]:
    """Score every page independently."""
    results = []
    for index, text in enumerate(page_texts):
        label, score, reasons = score_page(text)
        results.append(PageTriage(
            page_index=index,
            text=text or "",
            label=label,
            score=score,
            reasons=reasons,
        ))
        logger.debug("page_triaged", page=index, label=label.value, score=score)
    return results
