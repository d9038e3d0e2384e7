"""
Exclusion Rules

Operator overrides keyed by reason_code. A matching rule forces a row (and
its document) toward stricter handling independent of computed confidence.
Overrides are layered on top of the computed lane: they can tighten it,
never relax it.
"""

from typing import Dict, List, Optional, Set

import structlog

from orderflow.models.line_row import AutomationLane, POLineRow
from orderflow.models.policy import (
    ControlSurfacePolicy,
    ExclusionAction,
    ExclusionRule,
    RoutingDecision,
)

logger = structlog.get_logger(__name__)

EXCLUSION_RULE_PREFIX = "EXCLUSION:"

LANE_SEVERITY: Dict[AutomationLane, int] = {
    AutomationLane.AUTO: 0,
    AutomationLane.ASSIST: 1,
    AutomationLane.REVIEW: 2,
    AutomationLane.BLOCK: 3,
}

DECISION_SEVERITY: Dict[RoutingDecision, int] = {
    RoutingDecision.AUTO_STAGE: 0,
    RoutingDecision.REVIEW: 1,
    RoutingDecision.HUMAN_REQUIRED: 2,
    RoutingDecision.REJECTED: 3,
}

ACTION_SEVERITY: Dict[ExclusionAction, int] = {
    ExclusionAction.HUMAN_REVIEW: 0,
    ExclusionAction.MANUAL_PROCESS: 1,
    ExclusionAction.BLOCK: 2,
}

ACTION_TO_LANE: Dict[ExclusionAction, AutomationLane] = {
    ExclusionAction.HUMAN_REVIEW: AutomationLane.REVIEW,
    ExclusionAction.MANUAL_PROCESS: AutomationLane.BLOCK,
    ExclusionAction.BLOCK: AutomationLane.BLOCK,
}

ACTION_TO_DECISION: Dict[ExclusionAction, RoutingDecision] = {
    ExclusionAction.HUMAN_REVIEW: RoutingDecision.REVIEW,
    ExclusionAction.MANUAL_PROCESS: RoutingDecision.HUMAN_REQUIRED,
    ExclusionAction.BLOCK: RoutingDecision.REJECTED,
}

# Signal codes used in policy setup vs flags emitted by the detectors
FLAG_ALIASES: Dict[str, Set[str]] = {
    "CUSTOM_LENGTH": {"CUSTOM_DIMENSION"},
    "CUSTOM_DIMENSION": {"CUSTOM_LENGTH"},
}


def stricter_lane(current: AutomationLane, other: AutomationLane) -> AutomationLane:
    return other if LANE_SEVERITY[other] > LANE_SEVERITY[current] else current


def stricter_decision(current: RoutingDecision, other: RoutingDecision) -> RoutingDecision:
    return other if DECISION_SEVERITY[other] > DECISION_SEVERITY[current] else current


def strictest_action(rules: List[ExclusionRule]) -> ExclusionAction:
    return max((r.action for r in rules), key=ACTION_SEVERITY.__getitem__)


def rule_triggered(rule: ExclusionRule, row: POLineRow) -> bool:
    """Reason code (or alias) among the row flags, or a keyword in the row text."""
    if not rule.applies_to(row.doc_type):
        return False

    code = rule.reason_code.strip().upper()
    flags = {f.upper() for f in row.edge_case_flags}
    if code in flags or FLAG_ALIASES.get(code, set()) & flags:
        return True

    haystack = f"{row.line_text} {row.raw_edge_case_notes or ''}".lower()
    return any(k.strip() and k.strip().lower() in haystack for k in rule.keywords)


def matching_rules(row: POLineRow, policy: ControlSurfacePolicy) -> List[ExclusionRule]:
    return [rule for rule in policy.exclusions.values() if rule_triggered(rule, row)]


def apply_exclusions(row: POLineRow, policy: ControlSurfacePolicy) -> POLineRow:
    """Return a copy of the row with matching exclusion rules applied."""
    rules = matching_rules(row, policy)
    if not rules:
        return row

    action = strictest_action(rules)
    lane = stricter_lane(row.automation_lane, ACTION_TO_LANE[action])
    codes = ", ".join(r.reason_code for r in rules)
    reason = f"Policy exclusion {codes} ({action.value})"
    if row.routing_reason:
        reason = f"{row.routing_reason}; {reason}"

    rule_ids = list(row.policy_rule_ids_applied)
    for r in rules:
        rule_id = f"{EXCLUSION_RULE_PREFIX}{r.reason_code}"
        if rule_id not in rule_ids:
            rule_ids.append(rule_id)

    logger.info(
        "exclusion_applied",
        doc_id=row.doc_id,
        line_no=row.line_no,
        reason_codes=[r.reason_code for r in rules],
        action=action.value,
        lane_before=row.automation_lane.value,
        lane_after=lane.value,
    )

    return row.model_copy(update={
        "automation_lane": lane,
        "import_ready": row.import_ready and lane == AutomationLane.AUTO,
        "routing_reason": reason,
        "policy_rule_ids_applied": rule_ids,
    })


def applied_exclusion_codes(row: POLineRow) -> List[str]:
    return [
        rule_id[len(EXCLUSION_RULE_PREFIX):]
        for rule_id in row.policy_rule_ids_applied
        if rule_id.startswith(EXCLUSION_RULE_PREFIX)
    ]


def exclusion_decision(rules: List[ExclusionRule]) -> Optional[RoutingDecision]:
    """Document decision forced by a set of matched rules, if any."""
    if not rules:
        return None
    return ACTION_TO_DECISION[strictest_action(rules)]
