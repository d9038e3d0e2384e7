"""
Packet triage: page classification, segmentation and PDF text extraction.
"""

from orderflow.services.triage.pdf_text import (
    PdfTextExtractionError,
    extract_pdf_page_text,
    triage_pdf,
)
from orderflow.services.triage.scoring import PAGE_RULES, PageRule, normalize, score_page, triage_pages
from orderflow.services.triage.segments import build_segments

__all__ = [
    "PAGE_RULES",
    "PageRule",
    "PdfTextExtractionError",
    "build_segments",
    "extract_pdf_page_text",
    "normalize",
    "score_page",
    "triage_pages",
    "triage_pdf",
]
