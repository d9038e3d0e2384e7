"""
Extraction Mapping and Line Pipeline

Turns the extractor's structured documents into POLineRows and runs the
enrichment stages in their fixed order:

    map -> apply_edge_cases -> apply_field_confidence -> route_row -> reconcile

Design decisions:
- Every stage is Row -> Row and returns a copy; nothing patches rows in place
- Missing extractor values stay None (ungrounded), never "" or 0
- Model-supplied document ids win over generated ones
- Line numbers run sequentially across the whole file, not per document
"""

import hashlib
from typing import List, Optional, Tuple

import structlog

from orderflow.models.extraction_result import ExtractedDocument, ExtractedLineItem, ExtractionResult
from orderflow.models.line_row import DocType, ItemClass, POLineRow
from orderflow.models.policy import ControlSurfacePolicy, DocumentRouting
from orderflow.services.edge_cases.doc_type import infer_doc_type
from orderflow.services.edge_cases.field_confidence import (
    DEFAULT_FIELD_PENALTIES,
    DEFAULT_REVIEW_THRESHOLD,
    FieldPenaltyWeights,
    compute_field_confidence,
    fields_needing_review,
)
from orderflow.services.edge_cases.signals import (
    CREDIT_MEMO,
    CUSTOM_DIMENSION,
    RGA_REFERENCE,
    SPECIAL_LAYOUT,
    ZERO_DOLLAR,
    classify_zero_dollar,
    derive_item_class,
    extract_signals_from_line_text,
)
from orderflow.services.reference.grounding import ReferenceService
from orderflow.services.routing.document import reconcile_documents
from orderflow.services.routing.lanes import route_row

logger = structlog.get_logger(__name__)

DOC_TYPE_TEXT_LIMIT = 5000
MODIFIERS_PREFIX = "Modifiers: "

CREDIT_MEMO_REVIEW_FIELDS = ("doc_type", "extended_price", "unit_price", "customer_item_desc_raw")


def _uniq(items) -> List[str]:
    return list(dict.fromkeys(i for i in items if i))


def make_doc_id(
    source_file_stem: str,
    doc_type: DocType,
    page_start: Optional[int] = None,
    page_end: Optional[int] = None,
    customer_order_no: Optional[str] = None,
) -> str:
    """
    Deterministic document id, stable across re-runs of the same file.

    Example:
        >>> make_doc_id("packet_17", DocType.PURCHASE_ORDER, 0, 1, "4411").startswith("doc_PUR_")
        True
    """
    doc_type = DocType(doc_type)
    key = "|".join([
        source_file_stem,
        doc_type.value,
        "" if page_start is None else str(page_start),
        "" if page_end is None else str(page_end),
        customer_order_no or "",
    ])
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:8]
    return f"doc_{doc_type.value[:3]}_{digest}"


def _modifier_text(item: ExtractedLineItem) -> str:
    return " | ".join(f"{m.type}:{m.value or ''}" for m in item.parsed.modifiers)


def _map_line(
    doc: ExtractedDocument,
    item: ExtractedLineItem,
    doc_id: str,
    doc_type: DocType,
    line_no: int,
) -> POLineRow:
    parsed = item.parsed
    order = doc.order
    header = doc.document

    extended_price = parsed.extended_price
    if extended_price is None and parsed.quantity is not None and parsed.unit_price is not None:
        extended_price = parsed.quantity * parsed.unit_price

    modifiers = _modifier_text(item)
    reason_codes = doc.routing.reason_codes if doc.routing else []
    confidence = item.line_confidence or 0.0

    return POLineRow(
        doc_id=doc_id,
        doc_type=doc_type,
        source_pages=header.source_pages,
        page_start=header.page_start,
        page_end=header.page_end,
        customer_name=doc.customer_name,
        customer_order_no=order.customer_order_no if order else None,
        document_date=order.order_date if order else None,
        currency=(order.currency if order else None) or parsed.currency,
        line_no=line_no,
        customer_item_no=parsed.customer_item_no,
        customer_item_desc_raw=parsed.description,
        qty=parsed.quantity,
        uom=parsed.uom,
        unit_price=parsed.unit_price,
        extended_price=extended_price,
        item_no_candidate=parsed.abh_item_no or parsed.customer_item_no,
        manufacturer=parsed.manufacturer,
        item_class=ItemClass.CATALOG,
        edge_case_flags=_uniq(item.flags),
        raw_edge_case_notes=f"{MODIFIERS_PREFIX}{modifiers}" if modifiers else None,
        confidence_score=confidence,
        match_score=confidence,
        routing_reason=" | ".join(reason_codes) or "Parsed",
    )


def map_extraction_result(result: ExtractionResult, source_file_stem: str) -> List[POLineRow]:
    """
    Map every line item of every document to a base POLineRow.

    Args:
        result: Structured output of the extraction collaborator
        source_file_stem: Upload file name without extension, used in doc ids

    Returns:
        Base rows (lane ASSIST placeholder), in document then line order
    """
    rows: List[POLineRow] = []

    for doc in result.documents:
        header = doc.document
        text_blob = doc.model_dump_json(exclude_none=True)[:DOC_TYPE_TEXT_LIMIT]
        doc_type = infer_doc_type(header.document_type, text_blob)

        model_doc_id = (header.document_id or "").strip()
        doc_id = model_doc_id or make_doc_id(
            source_file_stem,
            doc_type,
            header.page_start,
            header.page_end,
            doc.order.customer_order_no if doc.order else None,
        )

        for item in doc.line_items:
            rows.append(_map_line(doc, item, doc_id, doc_type, line_no=len(rows) + 1))

        logger.debug(
            "document_mapped",
            doc_id=doc_id,
            doc_type=doc_type.value,
            line_items=len(doc.line_items),
        )

    return rows


def apply_edge_cases(row: POLineRow) -> POLineRow:
    """
    Detect edge-case signals and escalate the item class.

    Scans the description plus any modifier text captured at mapping time.
    Model-provided flags are kept and merged with detected ones.
    """
    modifiers = row.raw_edge_case_notes or ""
    signals = extract_signals_from_line_text(f"{row.customer_item_desc_raw or ''} {modifiers}")

    if classify_zero_dollar(row.qty, row.unit_price, row.extended_price):
        signals.flags.append(ZERO_DOLLAR)
        signals.notes.append("Detected zero-dollar line item")
        signals.is_zero_dollar = True

    if row.doc_type == DocType.CREDIT_MEMO:
        signals.flags.append(CREDIT_MEMO)
        signals.notes.append("Document type is CREDIT_MEMO (force review)")

    flags = _uniq(row.edge_case_flags + signals.flags)
    notes = " | ".join(_uniq(signals.notes + [modifiers]))

    return row.model_copy(update={
        "edge_case_flags": flags,
        "raw_edge_case_notes": notes or None,
        "item_class": derive_item_class(row.item_class, flags, signals.is_zero_dollar),
        "cut_to_inches": signals.cut_to_inches if signals.cut_to_inches is not None else row.cut_to_inches,
        "rga_no": signals.rga_no or row.rga_no,
        "invoice_ref": signals.invoice_ref or row.invoice_ref,
    })


def apply_field_confidence(
    row: POLineRow,
    weights: FieldPenaltyWeights = DEFAULT_FIELD_PENALTIES,
    review_threshold: float = DEFAULT_REVIEW_THRESHOLD,
) -> POLineRow:
    """Score each field and list the ones a reviewer must confirm."""
    field_confidence = compute_field_confidence(row, weights)
    review = fields_needing_review(field_confidence, review_threshold)

    flags = set(row.edge_case_flags)
    if row.doc_type == DocType.CREDIT_MEMO:
        review.extend(CREDIT_MEMO_REVIEW_FIELDS)
    if RGA_REFERENCE in flags:
        review.append("raw_edge_case_notes")
    if SPECIAL_LAYOUT in flags or CUSTOM_DIMENSION in flags:
        review.append("customer_item_desc_raw")

    return row.model_copy(update={
        "field_confidence": field_confidence,
        "fields_requiring_review": _uniq(row.fields_requiring_review + review),
    })


def run_line_pipeline(
    result: ExtractionResult,
    source_file_stem: str,
    policy: ControlSurfacePolicy,
    reference: Optional[ReferenceService] = None,
    weights: FieldPenaltyWeights = DEFAULT_FIELD_PENALTIES,
    review_threshold: float = DEFAULT_REVIEW_THRESHOLD,
) -> Tuple[List[POLineRow], List[DocumentRouting]]:
    """
    Map, enrich, route and reconcile one extraction result.

    Returns:
        (routed rows, one DocumentRouting per doc_id in first-seen order)
    """
    log = logger.bind(source=source_file_stem, policy_version=policy.version)

    rows = []
    for row in map_extraction_result(result, source_file_stem):
        row = apply_edge_cases(row)
        row = apply_field_confidence(row, weights, review_threshold)
        row = route_row(row, policy, reference)
        rows.append(row)

    documents = reconcile_documents(rows, policy)

    log.info(
        "line_pipeline_completed",
        rows=len(rows),
        documents=len(documents),
        auto_rows=sum(1 for r in rows if r.import_ready),
        decisions={d.doc_id: d.decision.value for d in documents},
    )
    return rows, documents
