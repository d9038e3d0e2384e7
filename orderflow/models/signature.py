"""
Regression Signature Models

Content-addressed fingerprint of a parse run, compared against a stored
baseline to detect behavioural drift.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

SIGNATURE_SCHEMA = "regression.signature.v1"


class DocSignature(BaseModel):
    doc_id: str
    doc_type: str
    page_start: Optional[int] = None
    page_end: Optional[int] = None
    source_pages_count: Optional[int] = None
    line_count: int
    customer_order_no: Optional[str] = None


class ParseSignature(BaseModel):
    schema_version: str = SIGNATURE_SCHEMA
    file_hash: str
    filename: str
    created_at: datetime
    doc_count: int
    docs: List[DocSignature] = Field(default_factory=list)

    @field_validator("created_at")
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        """Naive timestamps are taken as UTC so baselines always compare."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class RegressionDiff(BaseModel):
    """Errors fail the check; warnings never do."""

    ok: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


__all__ = ["SIGNATURE_SCHEMA", "DocSignature", "ParseSignature", "RegressionDiff"]
