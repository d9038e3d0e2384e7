"""
Regression Signatures

Projects a parse run down to a small comparable shape and diffs it against a
stored baseline for the same file content.

Design decisions:
- Documents are sorted by "type|page_start|page_end|line_count" (missing page
  bounds sort as 9999) so extraction order does not matter; doc_id breaks ties
- Diff compares by sorted position, not by id
- Type and count changes are errors; page range and line count drift are
  warnings (segmentation tweaks legitimately move them)
- An empty doc_id in the current run is an error
"""

import hashlib
from datetime import datetime, timezone
from typing import Iterable, List, Optional

import structlog

from orderflow.models.extraction_result import ExtractedDocument
from orderflow.models.signature import DocSignature, ParseSignature, RegressionDiff

logger = structlog.get_logger(__name__)

MISSING_PAGE_SENTINEL = 9999


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def doc_signature(doc: ExtractedDocument) -> DocSignature:
    header = doc.document
    order = doc.order
    return DocSignature(
        doc_id=header.document_id or "",
        doc_type=header.document_type or "UNKNOWN",
        page_start=header.page_start,
        page_end=header.page_end,
        source_pages_count=len(header.source_pages) if header.source_pages is not None else None,
        line_count=len(doc.line_items),
        customer_order_no=order.customer_order_no if order else None,
    )


def _sort_key(sig: DocSignature):
    start = MISSING_PAGE_SENTINEL if sig.page_start is None else sig.page_start
    end = MISSING_PAGE_SENTINEL if sig.page_end is None else sig.page_end
    return (
        f"{sig.doc_type}|{start}|{end}|{sig.line_count}",
        sig.doc_id,
        sig.customer_order_no or "",
    )


def build_signature(
    filename: str,
    file_hash: str,
    docs: Iterable[ExtractedDocument],
    created_at: Optional[datetime] = None,
) -> ParseSignature:
    """
    Build the signature of one parse run.

    Args:
        filename: Original upload name (informational)
        file_hash: sha256 of the file content, the baseline key
        docs: Structured documents produced for the file
        created_at: Timestamp override, defaults to now (UTC)
    """
    sigs = sorted((doc_signature(d) for d in docs), key=_sort_key)
    return ParseSignature(
        file_hash=file_hash,
        filename=filename,
        created_at=created_at or datetime.now(timezone.utc),
        doc_count=len(sigs),
        docs=sigs,
    )


def describe_doc(sig: Optional[DocSignature]) -> str:
    if sig is None:
        return "(none)"
    start = "?" if sig.page_start is None else sig.page_start
    end = "?" if sig.page_end is None else sig.page_end
    return f"{sig.doc_type} pages={start}-{end} lines={sig.line_count}"


def diff_signatures(baseline: ParseSignature, current: ParseSignature) -> RegressionDiff:
    errors: List[str] = []
    warnings: List[str] = []

    if baseline.doc_count != current.doc_count:
        errors.append(f"Doc count changed: baseline={baseline.doc_count} current={current.doc_count}")

    for i in range(max(len(baseline.docs), len(current.docs))):
        b = baseline.docs[i] if i < len(baseline.docs) else None
        c = current.docs[i] if i < len(current.docs) else None
        if b is None:
            errors.append(f"Extra doc in current: {describe_doc(c)}")
            continue
        if c is None:
            errors.append(f"Missing doc in current: {describe_doc(b)}")
            continue

        if b.doc_type != c.doc_type:
            errors.append(f"Doc[{i}] type changed: baseline={b.doc_type} current={c.doc_type}")

        if b.page_start != c.page_start or b.page_end != c.page_end:
            warnings.append(
                f"Doc[{i}] page range changed: "
                f"baseline={b.page_start}-{b.page_end} current={c.page_start}-{c.page_end}"
            )

        if b.line_count != c.line_count:
            warnings.append(f"Doc[{i}] line count changed: baseline={b.line_count} current={c.line_count}")

        if not c.doc_id:
            errors.append(f"Doc[{i}] missing document_id in current output")

    diff = RegressionDiff(ok=not errors, errors=errors, warnings=warnings)
    logger.info(
        "regression_diffed",
        file_hash=current.file_hash,
        ok=diff.ok,
        errors=len(errors),
        warnings=len(warnings),
    )
    return diff
