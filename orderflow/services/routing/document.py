"""
Document Routing Reconciliation

Rolls routed rows up into one decision per logical document.

Design decisions:
- Rows are grouped by doc_id in first-seen order
- Initial decision comes from the row lanes, then threshold checks and
  exclusion rules may only make it stricter
- The reason-code list is never empty; PARSING_ERROR marks an anomaly
- Rows without a confidence score do not trip threshold checks
"""

from typing import Dict, List

import structlog

from orderflow.models.line_row import AutomationLane, DocType, POLineRow
from orderflow.models.policy import (
    ControlSurfacePolicy,
    DocumentRouting,
    ExclusionRule,
    PolicyGates,
    RoutingDecision,
    RoutingReasonCode,
)
from orderflow.services.routing.exclusions import (
    FLAG_ALIASES,
    applied_exclusion_codes,
    exclusion_decision,
    stricter_decision,
)

logger = structlog.get_logger(__name__)

# Signal behind each *_DETECTED reason code, used to match exclusion rules
DETECTED_SIGNALS: Dict[RoutingReasonCode, str] = {
    RoutingReasonCode.CREDIT_MEMO_DETECTED: "CREDIT_MEMO",
    RoutingReasonCode.SPECIAL_LAYOUT_DETECTED: "SPECIAL_LAYOUT",
    RoutingReasonCode.CUSTOM_DIMENSION_DETECTED: "CUSTOM_DIMENSION",
    RoutingReasonCode.ZERO_DOLLAR_LINE_DETECTED: "ZERO_DOLLAR",
    RoutingReasonCode.THIRD_PARTY_SHIP_DETECTED: "THIRD_PARTY_SHIP",
}


def _confidence(row: POLineRow) -> float:
    return 1.0 if row.confidence_score is None else row.confidence_score


def group_rows_by_doc(rows: List[POLineRow]) -> Dict[str, List[POLineRow]]:
    groups: Dict[str, List[POLineRow]] = {}
    for row in rows:
        groups.setdefault(row.doc_id, []).append(row)
    return groups


def overall_confidence(rows: List[POLineRow]) -> float:
    """Minimum row confidence clamped to [0, 1]; 0 when no row has a score."""
    values = [r.confidence_score for r in rows if r.confidence_score is not None]
    if not values:
        return 0.0
    return max(0.0, min(1.0, min(values)))


def initial_decision(rows: List[POLineRow]) -> RoutingDecision:
    lanes = {r.automation_lane for r in rows}
    if AutomationLane.BLOCK in lanes:
        return RoutingDecision.HUMAN_REQUIRED
    if lanes and lanes == {AutomationLane.AUTO}:
        return RoutingDecision.AUTO_STAGE
    return RoutingDecision.REVIEW


def degrade_for_thresholds(
    decision: RoutingDecision,
    rows: List[POLineRow],
    gates: PolicyGates,
) -> RoutingDecision:
    """Apply threshold checks; the result is never less strict than the input."""
    if any(_confidence(r) < gates.auto_process_min for r in rows):
        decision = stricter_decision(decision, RoutingDecision.REVIEW)
    if any(_confidence(r) < gates.review_min for r in rows):
        decision = stricter_decision(decision, RoutingDecision.HUMAN_REQUIRED)
    return decision


def derive_reason_codes(rows: List[POLineRow], gates: PolicyGates) -> List[RoutingReasonCode]:
    """
    Reason codes explaining a document decision.

    Threshold codes first, then edge-case families found in row flags, then
    POLICY_BLOCK. Falls back to PARSING_ERROR rather than returning nothing.
    """
    codes: List[RoutingReasonCode] = []

    def add(code: RoutingReasonCode) -> None:
        if code not in codes:
            codes.append(code)

    below_auto = any(_confidence(r) < gates.auto_process_min for r in rows)
    below_review = any(_confidence(r) < gates.review_min for r in rows)

    if not below_auto and not below_review:
        add(RoutingReasonCode.ALL_LINES_HIGH_CONFIDENCE)
    if below_auto:
        add(RoutingReasonCode.LOW_CONFIDENCE_FIELDS_PRESENT)

    for row in rows:
        flags = [str(f).upper() for f in row.edge_case_flags]

        if row.doc_type == DocType.CREDIT_MEMO or any("CREDIT" in f for f in flags):
            add(RoutingReasonCode.CREDIT_MEMO_DETECTED)
        if any("SPECIAL" in f for f in flags):
            add(RoutingReasonCode.SPECIAL_LAYOUT_DETECTED)
        if any("CUSTOM" in f or "CUT" in f for f in flags):
            add(RoutingReasonCode.CUSTOM_DIMENSION_DETECTED)
        if any("ZERO" in f or "0.00" in f for f in flags):
            add(RoutingReasonCode.ZERO_DOLLAR_LINE_DETECTED)
        if any("THIRD" in f or "SHIP" in f or "MARK" in f for f in flags):
            add(RoutingReasonCode.THIRD_PARTY_SHIP_DETECTED)

        if row.automation_lane == AutomationLane.BLOCK or "policy" in (row.routing_reason or "").lower():
            add(RoutingReasonCode.POLICY_BLOCK)

    if not codes:
        add(RoutingReasonCode.PARSING_ERROR)
    return codes


def document_exclusions(
    rows: List[POLineRow],
    doc_type: DocType,
    reason_codes: List[RoutingReasonCode],
    policy: ControlSurfacePolicy,
) -> List[ExclusionRule]:
    """Rules already applied to the rows plus rules matching a document reason code."""
    matched: Dict[str, ExclusionRule] = {}

    for row in rows:
        for code in applied_exclusion_codes(row):
            rule = policy.exclusions.get(code)
            if rule is not None:
                matched[code] = rule

    signals = set()
    for code in reason_codes:
        signals.add(code.value)
        if code in DETECTED_SIGNALS:
            signals.add(DETECTED_SIGNALS[code])

    for code, rule in policy.exclusions.items():
        if code in matched or not rule.applies_to(doc_type):
            continue
        key = rule.reason_code.strip().upper()
        if key in signals or FLAG_ALIASES.get(key, set()) & signals:
            matched[code] = rule

    return list(matched.values())


def reconcile_document(doc_id: str, rows: List[POLineRow], policy: ControlSurfacePolicy) -> DocumentRouting:
    """Decide one document from its routed rows."""
    gates = policy.gates
    doc_type = rows[0].doc_type if rows else DocType.UNKNOWN

    decision = degrade_for_thresholds(initial_decision(rows), rows, gates)
    reason_codes = derive_reason_codes(rows, gates)

    rules = document_exclusions(rows, doc_type, reason_codes, policy)
    forced = exclusion_decision(rules)
    if forced is not None:
        decision = stricter_decision(decision, forced)

    log = logger.bind(doc_id=doc_id, doc_type=DocType(doc_type).value)
    log.info(
        "document_routed",
        decision=decision.value,
        reason_codes=[c.value for c in reason_codes],
        line_count=len(rows),
        exclusions=[r.reason_code for r in rules],
    )

    return DocumentRouting(
        doc_id=doc_id,
        doc_type=doc_type,
        decision=decision,
        reason_codes=reason_codes,
        overall_confidence=overall_confidence(rows),
        auto_stage_min=gates.auto_process_min,
        review_min=gates.review_min,
        line_count=len(rows),
        exclusions_applied=[r.reason_code for r in rules],
    )


def reconcile_documents(rows: List[POLineRow], policy: ControlSurfacePolicy) -> List[DocumentRouting]:
    return [
        reconcile_document(doc_id, doc_rows, policy)
        for doc_id, doc_rows in group_rows_by_doc(rows).items()
    ]
