"""
Packet Triage Models

Per-page classification results and the contiguous segments built from them.
"""

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict


class PageLabel(str, Enum):
    PURCHASE_ORDER = "PURCHASE_ORDER"
    CREDIT_MEMO = "CREDIT_MEMO"
    INVOICE = "INVOICE"
    SALES_ORDER = "SALES_ORDER"
    PICKING_SHEET = "PICKING_SHEET"
    EMAIL_COVER = "EMAIL_COVER"
    UNKNOWN = "UNKNOWN"


class PageTriage(BaseModel):
    """Classification of one page (0-based index)."""

    model_config = ConfigDict(frozen=True)

    page_index: int
    text: str
    label: PageLabel
    score: float
    reasons: List[str]


class DocSegment(BaseModel):
    """Contiguous run of pages believed to be one logical document."""

    model_config = ConfigDict(frozen=True)

    segment_id: str
    label: PageLabel
    page_start: int  # inclusive
    page_end: int    # inclusive
    pages: List[int]
    triage: List[PageTriage]

    @property
    def page_range(self) -> str:
        return f"{self.page_start + 1}-{self.page_end + 1}"


__all__ = ["PageLabel", "PageTriage", "DocSegment"]
