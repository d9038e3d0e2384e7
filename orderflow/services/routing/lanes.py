"""
Lane Decision (per row)

Routes one enriched row to AUTO / ASSIST / REVIEW / BLOCK.

Order of evaluation:
1. EMAIL_COVER hard guard: always BLOCK, before any scoring
2. Grounding pass against the reference catalogue (when one is loaded),
   otherwise confidence gates from the policy
3. Exclusion rules layered on top (stricter only)
"""

from typing import List, Optional

import structlog

from orderflow.models.line_row import AutomationLane, DocType, POLineRow
from orderflow.models.policy import ControlSurfacePolicy, PolicyGates
from orderflow.services.reference.grounding import ReferenceService
from orderflow.services.routing.exclusions import apply_exclusions

logger = structlog.get_logger(__name__)

EMAIL_COVER_REASON = "EMAIL_COVER should not generate exportable line items (quarantined)"

# Grounding weights
MANUFACTURER_WEIGHT = 0.4
FINISH_WEIGHT = 0.2
CATEGORY_WEIGHT = 0.2
# Baseline trust in the extraction itself, independent of grounding
EXTRACTION_BASELINE = 0.2

READY_MIN_CONFIDENCE = 0.8
MAX_ASSIST_VIOLATIONS = 2

NO_MFR_MATCH = "No Mfr Match"
NO_FINISH_MATCH = "No Finish Match"
NO_CATEGORY_MATCH = "No Category Match"

GROUNDING_RULE_ID = "REF_GROUNDING_V4"
GATES_RULE_ID = "CONFIDENCE_GATES"
EMAIL_GUARD_RULE_ID = "DOC_GUARD:EMAIL_COVER"


def _uniq(items: List[str]) -> List[str]:
    seen = set()
    out = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            out.append(item)
    return out


def _doc_hint(row: POLineRow) -> str:
    return " (NO_PRICING_EXPECTED)" if row.doc_type == DocType.PICKING_SHEET else ""


def _base_rule_ids(row: POLineRow, reference: Optional[ReferenceService]) -> List[str]:
    rule_ids = list(row.policy_rule_ids_applied)
    if reference is not None:
        rule_ids.append(f"REFPACK:{reference.version}")
    return rule_ids


def lane_for_grounding(violations: List[str], confidence: float) -> AutomationLane:
    """Ready rows go AUTO; otherwise the violation count picks ASSIST or BLOCK."""
    if not violations and confidence >= READY_MIN_CONFIDENCE:
        return AutomationLane.AUTO
    if len(violations) > MAX_ASSIST_VIOLATIONS:
        return AutomationLane.BLOCK
    return AutomationLane.ASSIST


def lane_for_gates(confidence: float, gates: PolicyGates) -> AutomationLane:
    if confidence >= gates.auto_process_min:
        return AutomationLane.AUTO
    if confidence >= gates.review_min:
        return AutomationLane.ASSIST
    if confidence >= gates.block_below:
        return AutomationLane.REVIEW
    return AutomationLane.BLOCK


def ground_row(row: POLineRow, reference: ReferenceService) -> POLineRow:
    """Score a row against the catalogue and assign its lane."""
    text = row.line_text
    violations: List[str] = []
    score = 0.0

    mfr = reference.normalize_manufacturer(text)
    if mfr is None and row.manufacturer:
        mfr = reference.normalize_manufacturer(row.manufacturer)
    if mfr is not None:
        score += MANUFACTURER_WEIGHT
    else:
        violations.append(NO_MFR_MATCH)

    finish = reference.normalize_finish(text)
    if finish is not None:
        score += FINISH_WEIGHT
    else:
        violations.append(NO_FINISH_MATCH)

    category = reference.detect_category(text)
    if category is not None:
        score += CATEGORY_WEIGHT
    else:
        violations.append(NO_CATEGORY_MATCH)

    confidence = min(round(score + EXTRACTION_BASELINE, 4), 1.0)
    lane = lane_for_grounding(violations, confidence)
    ready = lane == AutomationLane.AUTO
    hint = _doc_hint(row)

    update = {
        "confidence_score": confidence,
        "match_score": confidence,
        "automation_lane": lane,
        "import_ready": ready,
        "routing_reason": f"Grounded Match{hint}" if ready else f"Issues: {', '.join(violations)}{hint}",
        "fields_requiring_review": [] if ready else _uniq(row.fields_requiring_review + violations),
        "policy_rule_ids_applied": _uniq(_base_rule_ids(row, reference) + [GROUNDING_RULE_ID]),
    }
    if mfr is not None:
        update["manufacturer"] = mfr.name
        if row.customer_item_no:
            update["item_no_candidate"] = f"{mfr.abbr}-{row.customer_item_no}"
    if finish is not None:
        update["finish"] = finish.us_code
    if category is not None:
        update["category"] = category.category

    logger.debug(
        "row_grounded",
        doc_id=row.doc_id,
        line_no=row.line_no,
        confidence=confidence,
        violations=violations,
        lane=lane.value,
    )
    return row.model_copy(update=update)


def gate_row(row: POLineRow, gates: PolicyGates) -> POLineRow:
    """Assign a lane from confidence gates when no catalogue is loaded."""
    confidence = row.confidence_score or 0.0
    lane = lane_for_gates(confidence, gates)

    if lane == AutomationLane.AUTO:
        reason = f"Confidence {confidence:.2f} >= {gates.auto_process_min:.2f} (auto gate)"
    elif lane == AutomationLane.BLOCK:
        reason = f"Confidence {confidence:.2f} < {gates.block_below:.2f} (block floor)"
    else:
        reason = f"Confidence {confidence:.2f} below auto gate {gates.auto_process_min:.2f}"

    return row.model_copy(update={
        "automation_lane": lane,
        "import_ready": lane == AutomationLane.AUTO,
        "routing_reason": f"{reason}{_doc_hint(row)}",
        "policy_rule_ids_applied": _uniq(row.policy_rule_ids_applied + [GATES_RULE_ID]),
    })


def route_row(
    row: POLineRow,
    policy: ControlSurfacePolicy,
    reference: Optional[ReferenceService] = None,
) -> POLineRow:
    """
    Route one row to its automation lane.

    Args:
        row: Row after edge-case extraction and field confidence
        policy: Gates and exclusion rules for this invocation
        reference: Grounding service; None or an empty catalogue uses gates

    Returns:
        Routed copy of the row; the input is not modified
    """
    if row.doc_type == DocType.EMAIL_COVER:
        logger.warning("email_cover_line_quarantined", doc_id=row.doc_id, line_no=row.line_no)
        return row.model_copy(update={
            "automation_lane": AutomationLane.BLOCK,
            "import_ready": False,
            "routing_reason": EMAIL_COVER_REASON,
            "fields_requiring_review": ["doc_type"],
            "policy_version_applied": policy.version,
            "policy_rule_ids_applied": _uniq(_base_rule_ids(row, reference) + [EMAIL_GUARD_RULE_ID]),
        })

    if reference is not None and not reference.pack.is_empty:
        routed = ground_row(row, reference)
    else:
        routed = gate_row(row, policy.gates)

    routed = apply_exclusions(routed, policy)
    return routed.model_copy(update={"policy_version_applied": policy.version})


def route_rows(
    rows: List[POLineRow],
    policy: ControlSurfacePolicy,
    reference: Optional[ReferenceService] = None,
) -> List[POLineRow]:
    return [route_row(row, policy, reference) for row in rows]
