"""
Policy Models

Gate thresholds, operator exclusion rules and document-level routing results.

Policy is configuration owned by the caller: the router receives a
ControlSurfacePolicy per invocation and treats it as read-only.
"""

from enum import Enum
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from orderflow.models.line_row import DocType


class ExclusionAction(str, Enum):
    """Operator override action for a reason code"""
    HUMAN_REVIEW = "HUMAN_REVIEW"
    MANUAL_PROCESS = "MANUAL_PROCESS"
    BLOCK = "BLOCK"


class RoutingDecision(str, Enum):
    """Document-level routing decision"""
    AUTO_STAGE = "AUTO_STAGE"
    REVIEW = "REVIEW"
    HUMAN_REQUIRED = "HUMAN_REQUIRED"
    REJECTED = "REJECTED"


class RoutingReasonCode(str, Enum):
    ALL_LINES_HIGH_CONFIDENCE = "ALL_LINES_HIGH_CONFIDENCE"
    LOW_CONFIDENCE_FIELDS_PRESENT = "LOW_CONFIDENCE_FIELDS_PRESENT"
    MISSING_REQUIRED_FIELDS = "MISSING_REQUIRED_FIELDS"
    CREDIT_MEMO_DETECTED = "CREDIT_MEMO_DETECTED"
    SPECIAL_LAYOUT_DETECTED = "SPECIAL_LAYOUT_DETECTED"
    CUSTOM_DIMENSION_DETECTED = "CUSTOM_DIMENSION_DETECTED"
    ZERO_DOLLAR_LINE_DETECTED = "ZERO_DOLLAR_LINE_DETECTED"
    THIRD_PARTY_SHIP_DETECTED = "THIRD_PARTY_SHIP_DETECTED"
    PARSING_ERROR = "PARSING_ERROR"
    POLICY_BLOCK = "POLICY_BLOCK"


class ExclusionRule(BaseModel):
    """Named operator override keyed by reason_code."""

    model_config = ConfigDict(from_attributes=True)

    reason_code: str
    action: ExclusionAction
    description: Optional[str] = None
    keywords: List[str] = Field(default_factory=list, description="Trigger keywords")
    instructions: Optional[str] = Field(default=None, description="Guidance for the reviewer")
    scope_doc_type: List[str] = Field(
        default_factory=list,
        description="Only apply to these doc types; empty means all"
    )

    def applies_to(self, doc_type: DocType) -> bool:
        if not self.scope_doc_type:
            return True
        scoped = {str(s).strip().upper() for s in self.scope_doc_type}
        return DocType(doc_type).value in scoped


class PolicyGates(BaseModel):
    """Confidence gates; auto_process_min doubles as the document auto_stage_min."""

    model_config = ConfigDict(from_attributes=True)

    auto_process_min: float = 0.92
    review_min: float = 0.75
    block_below: float = 0.50

    @model_validator(mode="after")
    def check_ordering(self) -> "PolicyGates":
        if not (self.block_below <= self.review_min <= self.auto_process_min):
            raise ValueError(
                "gates must satisfy block_below <= review_min <= auto_process_min, "
                f"got {self.block_below} / {self.review_min} / {self.auto_process_min}"
            )
        return self


DEFAULT_EXCLUSIONS: List[ExclusionRule] = [
    ExclusionRule(
        reason_code="CREDIT_MEMO",
        action=ExclusionAction.MANUAL_PROCESS,
        description="Document identified as a credit return.",
        instructions="Link to original invoice before processing.",
    ),
    ExclusionRule(
        reason_code="SPECIAL_LAYOUT",
        action=ExclusionAction.HUMAN_REVIEW,
        description="Item description contains 'Special Layout' instructions.",
        instructions="Verify layout dimensions match CAD drawings.",
    ),
    ExclusionRule(
        reason_code="CUSTOM_LENGTH",
        action=ExclusionAction.HUMAN_REVIEW,
        description="Dimensions detected in the item string.",
        instructions="Confirm cut-to-length pricing surcharge.",
    ),
    ExclusionRule(
        reason_code="ZERO_DOLLAR",
        action=ExclusionAction.HUMAN_REVIEW,
        description="Pricing is explicitly listed as $0.00.",
        instructions="Verify if warranty or sample.",
    ),
]


class ControlSurfacePolicy(BaseModel):
    """Gates plus the exclusion-rule mapping handed to the router."""

    model_config = ConfigDict(from_attributes=True)

    version: str = "default-v1"
    gates: PolicyGates = Field(default_factory=PolicyGates)
    exclusions: Dict[str, ExclusionRule] = Field(default_factory=dict)

    @classmethod
    def from_rules(
        cls,
        rules: Iterable[ExclusionRule],
        gates: Optional[PolicyGates] = None,
        version: str = "default-v1",
    ) -> "ControlSurfacePolicy":
        """Build a policy keyed by reason_code; later rules replace earlier ones."""
        return cls(
            version=version,
            gates=gates or PolicyGates(),
            exclusions={rule.reason_code: rule for rule in rules},
        )

    @classmethod
    def from_settings(cls, settings, rules: Optional[Iterable[ExclusionRule]] = None) -> "ControlSurfacePolicy":
        gates = PolicyGates(
            auto_process_min=settings.auto_process_min,
            review_min=settings.review_min,
            block_below=settings.block_below,
        )
        return cls.from_rules(DEFAULT_EXCLUSIONS if rules is None else rules, gates=gates)


class DocumentRouting(BaseModel):
    """Reconciled routing outcome of one logical document."""

    doc_id: str
    doc_type: DocType
    decision: RoutingDecision
    reason_codes: List[RoutingReasonCode]
    overall_confidence: float
    auto_stage_min: float
    review_min: float
    line_count: int
    exclusions_applied: List[str] = Field(default_factory=list)


__all__ = [
    "ExclusionAction",
    "RoutingDecision",
    "RoutingReasonCode",
    "ExclusionRule",
    "PolicyGates",
    "DEFAULT_EXCLUSIONS",
    "ControlSurfacePolicy",
    "DocumentRouting",
]
