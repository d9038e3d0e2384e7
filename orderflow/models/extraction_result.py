"""
Extraction Result Models

Data contract for the structured output of the external LLM extraction call.

The model output is loosely shaped: any member may be missing, null, or carry
keys we do not know about. Every field is optional and absence stays None so
downstream scoring treats it as "ungrounded" rather than as zero or "".
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _none_to_list(value: Any) -> Any:
    return [] if value is None else value


class FileInfo(BaseModel):
    """Source file metadata reported by the extractor."""

    model_config = ConfigDict(from_attributes=True)

    filename: Optional[str] = None
    mime_type: Optional[str] = None
    page_count: Optional[int] = None


class DocumentHeader(BaseModel):
    """Identity and page evidence of one logical document."""

    model_config = ConfigDict(from_attributes=True)

    document_id: Optional[str] = None
    document_type: Optional[str] = Field(
        default=None,
        description="Model label, e.g. PURCHASE_ORDER; may be malformed"
    )
    file: Optional[FileInfo] = None
    source_pages: Optional[List[int]] = Field(
        default=None,
        description="0-based page indexes used as evidence"
    )
    page_start: Optional[int] = Field(default=None, description="0-based inclusive")
    page_end: Optional[int] = Field(default=None, description="0-based inclusive")


class Party(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: Optional[str] = None
    account_id: Optional[str] = None


class Parties(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    customer: Optional[Party] = None
    vendor: Optional[Party] = None


class OrderHeader(BaseModel):
    """Order-level header fields."""

    model_config = ConfigDict(from_attributes=True)

    order_type: Optional[str] = None
    customer_order_no: Optional[str] = None
    order_date: Optional[str] = None
    currency: Optional[str] = None
    addresses: Optional[Dict[str, Any]] = None


class Modifier(BaseModel):
    """Line modifier such as CUT_TO_LENGTH or WIRING_SPEC."""

    model_config = ConfigDict(from_attributes=True)

    type: str = "OTHER"
    value: Optional[str] = None


class RawLine(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    raw_text: Optional[str] = None
    page: Optional[int] = None
    line_no: Optional[int] = None


class ParsedLine(BaseModel):
    """Parsed commercial fields of a line item."""

    model_config = ConfigDict(from_attributes=True)

    customer_item_no: Optional[str] = None
    abh_item_no: Optional[str] = None
    manufacturer: Optional[str] = None
    description: Optional[str] = None
    quantity: Optional[float] = None
    uom: Optional[str] = None
    unit_price: Optional[float] = None
    extended_price: Optional[float] = None
    currency: Optional[str] = None
    modifiers: List[Modifier] = Field(default_factory=list)

    @field_validator("modifiers", mode="before")
    @classmethod
    def modifiers_default(cls, value: Any) -> Any:
        return _none_to_list(value)


class LineConfidence(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    line_confidence: Optional[float] = None
    field_confidence: Dict[str, float] = Field(default_factory=dict)


class ExtractedLineItem(BaseModel):
    """One line item as returned by the extractor."""

    model_config = ConfigDict(from_attributes=True)

    line_id: Optional[str] = None
    raw: Optional[RawLine] = None
    parsed: ParsedLine = Field(default_factory=ParsedLine)
    confidence: Optional[LineConfidence] = None
    flags: List[str] = Field(default_factory=list)

    @field_validator("flags", mode="before")
    @classmethod
    def flags_default(cls, value: Any) -> Any:
        return _none_to_list(value)

    @field_validator("parsed", mode="before")
    @classmethod
    def parsed_default(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def line_confidence(self) -> Optional[float]:
        return self.confidence.line_confidence if self.confidence else None


class RoutingHint(BaseModel):
    """Routing block the model may emit; advisory only."""

    model_config = ConfigDict(from_attributes=True)

    decision: Optional[str] = None
    reason_codes: List[str] = Field(default_factory=list)

    @field_validator("reason_codes", mode="before")
    @classmethod
    def reason_codes_default(cls, value: Any) -> Any:
        return _none_to_list(value)


class ExtractedDocument(BaseModel):
    """A single logical document out of a (possibly multi-document) packet."""

    model_config = ConfigDict(from_attributes=True)

    schema_version: Optional[str] = None
    document: DocumentHeader = Field(default_factory=DocumentHeader)
    parties: Optional[Parties] = None
    order: Optional[OrderHeader] = None
    line_items: List[ExtractedLineItem] = Field(default_factory=list)
    routing: Optional[RoutingHint] = None

    @field_validator("line_items", mode="before")
    @classmethod
    def line_items_default(cls, value: Any) -> Any:
        return _none_to_list(value)

    @field_validator("document", mode="before")
    @classmethod
    def document_default(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def customer_name(self) -> Optional[str]:
        if self.parties and self.parties.customer:
            return self.parties.customer.name
        return None


class ExtractionResult(BaseModel):
    """Top-level result of one extraction call."""

    model_config = ConfigDict(from_attributes=True)

    documents: List[ExtractedDocument] = Field(default_factory=list)

    @field_validator("documents", mode="before")
    @classmethod
    def documents_default(cls, value: Any) -> Any:
        return _none_to_list(value)


__all__ = [
    "FileInfo",
    "DocumentHeader",
    "Party",
    "Parties",
    "OrderHeader",
    "Modifier",
    "RawLine",
    "ParsedLine",
    "LineConfidence",
    "ExtractedLineItem",
    "RoutingHint",
    "ExtractedDocument",
    "ExtractionResult",
]
