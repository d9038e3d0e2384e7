"""Tests for per-row lane decisions and exclusion overrides."""

import pytest

from orderflow.models.line_row import AutomationLane, DocType, POLineRow
from orderflow.models.policy import (
    DEFAULT_EXCLUSIONS,
    ControlSurfacePolicy,
    ExclusionAction,
    ExclusionRule,
    PolicyGates,
)
from orderflow.models.reference_pack import Category, Finish, Manufacturer, ReferencePack
from orderflow.services.reference import ReferenceService
from orderflow.services.routing import EMAIL_COVER_REASON, apply_exclusions, route_row, rule_triggered


def make_row(**overrides):
    values = dict(
        doc_id="doc_PUR_0001",
        doc_type=DocType.PURCHASE_ORDER,
        line_no=1,
        customer_item_no="ND50PD RHO 626",
        customer_item_desc_raw="SCHLAGE LEVER LOCKSET",
        qty=4,
        uom="EA",
        unit_price=210.0,
        extended_price=840.0,
        confidence_score=0.95,
    )
    values.update(overrides)
    return POLineRow(**values)


@pytest.fixture
def reference():
    return ReferenceService(ReferencePack(
        version="2.1.0",
        manufacturers=[Manufacturer(abbr="SCH", name="Schlage", aliases=["Schlage Lock"])],
        finishes=[Finish(us_code="US26D", bhma_code="626", name="Satin Chrome")],
        categories=[Category(gordon_symbol="LS", category="Lockset", subcategory="Lever")],
    ))


@pytest.fixture
def policy():
    """Gates only, no exclusion rules."""
    return ControlSurfacePolicy(version="test-v1")


@pytest.fixture
def default_policy():
    return ControlSurfacePolicy.from_rules(DEFAULT_EXCLUSIONS, version="test-v2")


class TestEmailCoverGuard:
    """EMAIL_COVER rows are always quarantined."""

    def test_blocks_despite_perfect_grounding(self, reference, policy):
        routed = route_row(make_row(doc_type=DocType.EMAIL_COVER, confidence_score=1.0), policy, reference)
        assert routed.automation_lane == AutomationLane.BLOCK
        assert routed.import_ready is False
        assert routed.routing_reason == EMAIL_COVER_REASON
        assert routed.fields_requiring_review == ["doc_type"]
        assert "DOC_GUARD:EMAIL_COVER" in routed.policy_rule_ids_applied
        assert "REFPACK:2.1.0" in routed.policy_rule_ids_applied

    def test_blocks_without_reference(self, policy):
        routed = route_row(make_row(doc_type=DocType.EMAIL_COVER, confidence_score=0.99), policy)
        assert routed.automation_lane == AutomationLane.BLOCK

    def test_input_not_mutated(self, policy):
        row = make_row(doc_type=DocType.EMAIL_COVER)
        route_row(row, policy)
        assert row.automation_lane == AutomationLane.ASSIST


class TestGroundingPass:
    """Lane decisions against a loaded reference catalogue."""

    def test_fully_grounded_row_is_auto(self, reference, policy):
        routed = route_row(make_row(), policy, reference)
        assert routed.confidence_score == pytest.approx(1.0)
        assert routed.automation_lane == AutomationLane.AUTO
        assert routed.import_ready is True
        assert routed.routing_reason == "Grounded Match"
        assert routed.manufacturer == "Schlage"
        assert routed.finish == "US26D"
        assert routed.category == "Lockset"
        assert routed.item_no_candidate == "SCH-ND50PD RHO 626"
        assert "REF_GROUNDING_V4" in routed.policy_rule_ids_applied
        assert routed.policy_version_applied == "test-v1"

    def test_two_violations_is_assist(self, reference, policy):
        routed = route_row(
            make_row(customer_item_no="X-1", customer_item_desc_raw="SCHLAGE THING"),
            policy, reference,
        )
        assert routed.confidence_score == pytest.approx(0.6)
        assert routed.automation_lane == AutomationLane.ASSIST
        assert routed.routing_reason == "Issues: No Finish Match, No Category Match"
        assert "No Finish Match" in routed.fields_requiring_review

    def test_three_violations_is_block(self, reference, policy):
        routed = route_row(
            make_row(customer_item_no="W-9000", customer_item_desc_raw="WIDGET"),
            policy, reference,
        )
        assert routed.confidence_score == pytest.approx(0.2)
        assert routed.automation_lane == AutomationLane.BLOCK
        assert routed.import_ready is False

    def test_grounding_ignores_incoming_confidence(self, reference, policy):
        """Grounded rows are AUTO even if the extractor was unsure"""
        routed = route_row(make_row(confidence_score=0.1), policy, reference)
        assert routed.automation_lane == AutomationLane.AUTO

    def test_fuzzy_manufacturer(self, reference, policy):
        """OCR-mangled manufacturer names still ground"""
        routed = route_row(
            make_row(customer_item_no=None, customer_item_desc_raw="SCHLAGEE LOCKSET US26D"),
            policy, reference,
        )
        assert routed.manufacturer == "Schlage"
        assert routed.automation_lane == AutomationLane.AUTO

    def test_generic_word_not_grounded(self, reference, policy):
        """A word from inside an alias does not ground a manufacturer"""
        routed = route_row(
            make_row(customer_item_no=None, customer_item_desc_raw="LOCK"),
            policy, reference,
        )
        assert routed.manufacturer is None
        assert "No Mfr Match" in routed.fields_requiring_review
        assert routed.automation_lane != AutomationLane.AUTO

    def test_manufacturer_field_fallback(self, reference, policy):
        """The extracted manufacturer field is used when the text has none"""
        routed = route_row(
            make_row(customer_item_desc_raw="LEVER LOCKSET", manufacturer="SCH"),
            policy, reference,
        )
        assert routed.manufacturer == "Schlage"

    def test_picking_sheet_hint(self, reference, policy):
        """Doc-type hint is appended to the reason without changing the lane"""
        routed = route_row(make_row(doc_type=DocType.PICKING_SHEET), policy, reference)
        assert routed.automation_lane == AutomationLane.AUTO
        assert routed.routing_reason == "Grounded Match (NO_PRICING_EXPECTED)"

    def test_empty_catalogue_uses_gates(self, policy):
        """A catalogue without manufacturers falls back to gates"""
        routed = route_row(make_row(confidence_score=0.6), policy, ReferenceService(ReferencePack()))
        assert routed.automation_lane == AutomationLane.REVIEW


class TestConfidenceGates:
    """Lane decisions without a catalogue."""

    @pytest.mark.parametrize("confidence,lane", [
        (0.95, AutomationLane.AUTO),
        (0.92, AutomationLane.AUTO),
        (0.80, AutomationLane.ASSIST),
        (0.60, AutomationLane.REVIEW),
        (0.30, AutomationLane.BLOCK),
        (None, AutomationLane.BLOCK),
    ])
    def test_default_gates(self, policy, confidence, lane):
        routed = route_row(make_row(confidence_score=confidence), policy)
        assert routed.automation_lane == lane
        assert routed.import_ready is (lane == AutomationLane.AUTO)

    def test_custom_gates(self):
        policy = ControlSurfacePolicy(gates=PolicyGates(auto_process_min=0.7, review_min=0.5, block_below=0.2))
        assert route_row(make_row(confidence_score=0.75), policy).automation_lane == AutomationLane.AUTO

    def test_equal_gates_allowed(self):
        gates = PolicyGates(auto_process_min=0.8, review_min=0.8, block_below=0.8)
        assert gates.review_min == 0.8

    @pytest.mark.parametrize("values", [
        dict(auto_process_min=0.5, review_min=0.9),
        dict(auto_process_min=0.9, review_min=0.4, block_below=0.5),
    ])
    def test_misordered_gates_rejected(self, values):
        """block_below <= review_min <= auto_process_min is enforced"""
        with pytest.raises(ValueError):
            PolicyGates(**values)


class TestExclusionRules:
    """Operator overrides layered on the computed lane."""

    def test_custom_length_matches_custom_dimension_flag(self, default_policy):
        routed = route_row(make_row(edge_case_flags=["CUSTOM_DIMENSION"]), default_policy)
        assert routed.automation_lane == AutomationLane.REVIEW
        assert routed.import_ready is False
        assert "Policy exclusion CUSTOM_LENGTH (HUMAN_REVIEW)" in routed.routing_reason
        assert "EXCLUSION:CUSTOM_LENGTH" in routed.policy_rule_ids_applied

    def test_manual_process_blocks(self, default_policy):
        routed = route_row(make_row(doc_type=DocType.CREDIT_MEMO, edge_case_flags=["CREDIT_MEMO"]), default_policy)
        assert routed.automation_lane == AutomationLane.BLOCK

    def test_never_relaxes(self, default_policy):
        """A HUMAN_REVIEW rule does not lift a BLOCK row to REVIEW"""
        routed = route_row(make_row(confidence_score=0.1, edge_case_flags=["ZERO_DOLLAR"]), default_policy)
        assert routed.automation_lane == AutomationLane.BLOCK

    def test_strictest_action_wins(self, default_policy):
        row = make_row(edge_case_flags=["SPECIAL_LAYOUT", "CREDIT_MEMO"])
        assert route_row(row, default_policy).automation_lane == AutomationLane.BLOCK

    def test_keyword_trigger(self):
        rule = ExclusionRule(reason_code="THIRD_PARTY_SHIP", action=ExclusionAction.BLOCK, keywords=["drop ship"])
        policy = ControlSurfacePolicy.from_rules([rule])
        routed = route_row(make_row(customer_item_desc_raw="LOCKSET - DROP SHIP TO JOBSITE"), policy)
        assert routed.automation_lane == AutomationLane.BLOCK

    def test_scope_doc_type(self):
        rule = ExclusionRule(
            reason_code="SPECIAL_LAYOUT",
            action=ExclusionAction.BLOCK,
            scope_doc_type=["INVOICE"],
        )
        row = make_row(edge_case_flags=["SPECIAL_LAYOUT"])
        assert rule_triggered(rule, row) is False
        assert rule_triggered(rule, row.model_copy(update={"doc_type": DocType.INVOICE})) is True

    def test_no_match_returns_same_row(self, default_policy):
        row = make_row()
        assert apply_exclusions(row, default_policy) is row

    def test_email_guard_precedes_exclusions(self, default_policy):
        routed = route_row(
            make_row(doc_type=DocType.EMAIL_COVER, edge_case_flags=["CUSTOM_DIMENSION"]),
            default_policy,
        )
        assert routed.routing_reason == EMAIL_COVER_REASON
