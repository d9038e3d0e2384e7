"""
PDF Text Layer Extraction

Reads page text with PyMuPDF and runs triage over it.

Scanned pages without a text layer come back as empty strings and triage
as UNKNOWN; OCR is the caller's concern.
"""

from pathlib import Path
from typing import List, Tuple, Union

import fitz
import structlog

from orderflow.models.triage import DocSegment, PageTriage
from orderflow.services.triage.scoring import triage_pages
from orderflow.services.triage.segments import build_segments

logger = structlog.get_logger(__name__)

PdfSource = Union[str, Path, bytes]


class PdfTextExtractionError(RuntimeError):
    """Raised when a PDF cannot be opened or is password protected."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Cannot extract text from {source}: {reason}")


def _describe(source: PdfSource) -> str:
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} bytes>"
    return str(source)


def extract_pdf_page_text(source: PdfSource) -> List[str]:
    """
    Extract the text layer of every page.

    Args:
        source: File path or raw PDF bytes

    Returns:
        One string per page, in page order; words joined by single spaces

    Raises:
        PdfTextExtractionError: File missing, corrupt, or encrypted
    """
    name = _describe(source)
    log = logger.bind(source=name)

    try:
        if isinstance(source, (bytes, bytearray)):
            doc = fitz.open(stream=bytes(source), filetype="pdf")
        else:
            doc = fitz.open(str(source))
    except (RuntimeError, ValueError, OSError) as e:
        log.error("pdf_open_failed", error=str(e))
        raise PdfTextExtractionError(name, str(e)) from e

    try:
        if doc.needs_pass:
            log.warning("pdf_encrypted")
            raise PdfTextExtractionError(name, "document is encrypted")
        texts = [" ".join(page.get_text("text").split()) for page in doc]
    finally:
        doc.close()

    log.info("pdf_text_extracted", pages=len(texts))
    return texts


def triage_pdf(source: PdfSource) -> Tuple[List[PageTriage], List[DocSegment]]:
    """Extract, triage and segment a packet in one call."""
    triage = triage_pages(extract_pdf_page_text(source))
    segments = build_segments(triage)
    logger.info(
        "packet_segmented",
        source=_describe(source),
        pages=len(triage),
        segments=[s.segment_id for s in segments],
    )
    return triage, segments
