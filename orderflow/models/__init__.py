"""
Data contracts for the routing core
"""

from orderflow.models.line_row import (
    DocType,
    ItemClass,
    AutomationLane,
    NON_PRICED_DOC_TYPES,
    POLineRow,
)
from orderflow.models.extraction_result import (
    ExtractionResult,
    ExtractedDocument,
    ExtractedLineItem,
    DocumentHeader,
    OrderHeader,
    ParsedLine,
)
from orderflow.models.calibration import (
    TruthTableRow,
    ReliabilityBin,
    CoverageRow,
    CalibrationComputed,
    PolicyGateSuggestion,
)
from orderflow.models.policy import (
    ExclusionAction,
    ExclusionRule,
    PolicyGates,
    ControlSurfacePolicy,
    DEFAULT_EXCLUSIONS,
    RoutingDecision,
    RoutingReasonCode,
    DocumentRouting,
)
from orderflow.models.reference_pack import (
    Manufacturer,
    Finish,
    Category,
    ReferencePack,
    EMPTY_REFERENCE_PACK,
)
from orderflow.models.triage import PageLabel, PageTriage, DocSegment
from orderflow.models.signature import DocSignature, ParseSignature, RegressionDiff

__all__ = [
    "DocType",
    "ItemClass",
    "AutomationLane",
    "NON_PRICED_DOC_TYPES",
    "POLineRow",
    "ExtractionResult",
    "ExtractedDocument",
    "ExtractedLineItem",
    "DocumentHeader",
    "OrderHeader",
    "ParsedLine",
    "TruthTableRow",
    "ReliabilityBin",
    "CoverageRow",
    "CalibrationComputed",
    "PolicyGateSuggestion",
    "ExclusionAction",
    "ExclusionRule",
    "PolicyGates",
    "ControlSurfacePolicy",
    "DEFAULT_EXCLUSIONS",
    "RoutingDecision",
    "RoutingReasonCode",
    "DocumentRouting",
    "Manufacturer",
    "Finish",
    "Category",
    "ReferencePack",
    "EMPTY_REFERENCE_PACK",
    "PageLabel",
    "PageTriage",
    "DocSegment",
    "DocSignature",
    "ParseSignature",
    "RegressionDiff",
]
