"""
Line Row Models

The POLineRow is the unit that edge-case extraction, field confidence scoring
and policy routing operate on. Each stage returns an updated copy
(model_copy) rather than patching the row in place; identity fields
(doc_id, doc_type, line_no) are never changed after mapping.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class DocType(str, Enum):
    """Logical document types recognised in a packet."""
    PURCHASE_ORDER = "PURCHASE_ORDER"
    CREDIT_MEMO = "CREDIT_MEMO"
    INVOICE = "INVOICE"
    SALES_ORDER = "SALES_ORDER"
    PICKING_SHEET = "PICKING_SHEET"
    EMAIL_COVER = "EMAIL_COVER"
    UNKNOWN = "UNKNOWN"


class ItemClass(str, Enum):
    """Risk classification of a line item"""
    CATALOG = "CATALOG"
    CONFIGURED = "CONFIGURED"
    CUSTOM = "CUSTOM"
    UNKNOWN = "UNKNOWN"


class AutomationLane(str, Enum):
    """Automation disposition of a single line"""
    AUTO = "AUTO"      # Grounded, exportable without a human
    ASSIST = "ASSIST"  # Human confirms suggested values
    REVIEW = "REVIEW"  # Human must review before export
    BLOCK = "BLOCK"    # Quarantined, never exported as-is


# Document types that never carry pricing (no price penalties, no zero-dollar risk)
NON_PRICED_DOC_TYPES = frozenset({DocType.PICKING_SHEET, DocType.EMAIL_COVER})


class POLineRow(BaseModel):
    """One extracted line item, enriched by the routing pipeline."""

    model_config = ConfigDict(from_attributes=True)

    # Document identity
    doc_id: str
    doc_type: DocType = DocType.UNKNOWN

    # Segment evidence (0-based page indexes)
    source_pages: Optional[List[int]] = None
    page_start: Optional[int] = None
    page_end: Optional[int] = None

    # Order header
    customer_name: Optional[str] = None
    customer_order_no: Optional[str] = None
    document_date: Optional[str] = None
    currency: Optional[str] = None
    ship_to_name: Optional[str] = None
    mark_instructions: Optional[str] = None

    # Line identity and commercial fields
    line_no: int
    customer_item_no: Optional[str] = None
    customer_item_desc_raw: Optional[str] = None
    qty: Optional[float] = None
    uom: Optional[str] = None
    unit_price: Optional[float] = None
    extended_price: Optional[float] = None

    # Catalogue grounding
    item_no_candidate: Optional[str] = None
    manufacturer: Optional[str] = None
    finish: Optional[str] = None
    category: Optional[str] = None

    # Classification and detection
    item_class: ItemClass = ItemClass.CATALOG
    edge_case_flags: List[str] = Field(default_factory=list)
    raw_edge_case_notes: Optional[str] = None
    cut_to_inches: Optional[float] = None
    rga_no: Optional[str] = None
    invoice_ref: Optional[str] = None

    # Confidence (0..1)
    confidence_score: Optional[float] = None
    field_confidence: Dict[str, float] = Field(default_factory=dict)
    match_score: Optional[float] = None

    # Routing outputs
    automation_lane: AutomationLane = AutomationLane.ASSIST
    routing_reason: Optional[str] = None
    fields_requiring_review: List[str] = Field(default_factory=list)
    import_ready: bool = False

    # Audit
    policy_version_applied: Optional[str] = None
    policy_rule_ids_applied: List[str] = Field(default_factory=list)

    @property
    def price_expected(self) -> bool:
        """Whether this document type is expected to carry pricing."""
        return self.doc_type not in NON_PRICED_DOC_TYPES

    @property
    def line_text(self) -> str:
        """Item number and description joined, used for grounding and keyword rules."""
        return f"{self.customer_item_no or ''} {self.customer_item_desc_raw or ''}".strip()


__all__ = [
    "DocType",
    "ItemClass",
    "AutomationLane",
    "NON_PRICED_DOC_TYPES",
    "POLineRow",
]
