"""
Document Type Inference

Two tiers: the model-provided label first, then keyword search over the raw
document text when the label is missing or malformed. Both tiers are ordered
rule lists evaluated top-to-bottom, first match wins.
"""

from typing import Callable, List, Optional, Tuple

import structlog

from orderflow.models.line_row import DocType

logger = structlog.get_logger(__name__)


# (keyword contained in upper-cased label, doc type)
LABEL_RULES: List[Tuple[str, DocType]] = [
    ("CREDIT", DocType.CREDIT_MEMO),
    ("INVOICE", DocType.INVOICE),
    ("PURCHASE", DocType.PURCHASE_ORDER),
    ("SALES", DocType.SALES_ORDER),
    ("PICKING", DocType.PICKING_SHEET),
    ("EMAIL", DocType.EMAIL_COVER),
]

# (predicate over lower-cased text, doc type)
TEXT_RULES: List[Tuple[Callable[[str], bool], DocType]] = [
    (lambda t: "credit memo" in t or "credit memorandum" in t, DocType.CREDIT_MEMO),
    (lambda t: "invoice" in t, DocType.INVOICE),
    (lambda t: "purchase order" in t or "p.o." in t, DocType.PURCHASE_ORDER),
    (lambda t: "sales order" in t, DocType.SALES_ORDER),
    (lambda t: "picking sheet" in t, DocType.PICKING_SHEET),
    (lambda t: "from:" in t and "subject:" in t, DocType.EMAIL_COVER),
]


def infer_doc_type(model_label: Optional[str], full_text: Optional[str] = None) -> DocType:
    """
    Infer the document type from the model label, falling back to text.

    Args:
        model_label: document_type string from the extractor (may be None/garbage)
        full_text: Raw text blob of the document for the fallback tier

    Returns:
        DocType, UNKNOWN if nothing matches
    """
    label = (model_label or "").upper()
    for keyword, doc_type in LABEL_RULES:
        if keyword in label:
            return doc_type

    blob = (full_text or "").lower()
    for predicate, doc_type in TEXT_RULES:
        if predicate(blob):
            logger.debug("doc_type_from_text", model_label=model_label, doc_type=doc_type.value)
            return doc_type

    return DocType.UNKNOWN
