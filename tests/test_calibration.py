"""Tests for truth-table coercion, calibration statistics and gate suggestion."""

import pytest

from orderflow.models.calibration import CoverageRow, TruthTableRow
from orderflow.services.calibration import (
    CANDIDATE_THRESHOLDS,
    InsufficientCalibrationDataError,
    coerce_truth_table,
    compute_calibration,
    load_truth_table_csv,
    parse_csv_to_rows,
    suggest_gates,
)
from orderflow.services.calibration.truth_table import safe_num


def make_rows(spec):
    """Build TruthTableRows from (confidence, correct, count) triples."""
    rows = []
    for confidence, correct, count in spec:
        rows.extend(
            TruthTableRow(predicted_confidence=confidence, correct=correct)
            for _ in range(count)
        )
    return rows


@pytest.fixture
def scenario_rows():
    """90 confident correct rows, 10 rows at 0.6 with half correct."""
    return make_rows([(0.95, 1, 90), (0.6, 1, 5), (0.6, 0, 5)])


class TestParseCsv:
    """Tests for parse_csv_to_rows."""

    def test_header_and_rows(self):
        """Header row becomes dict keys"""
        rows = parse_csv_to_rows("confidence,correct\n0.9,1\n0.4,0\n")
        assert rows == [
            {"confidence": "0.9", "correct": "1"},
            {"confidence": "0.4", "correct": "0"},
        ]

    def test_quoted_cells(self):
        """Quoted cells may contain commas and doubled quotes"""
        rows = parse_csv_to_rows('order_id,confidence,correct\n"PO, ""A""",0.8,1\n')
        assert rows[0]["order_id"] == 'PO, "A"'

    def test_blank_lines_skipped(self):
        """Blank lines do not produce rows"""
        rows = parse_csv_to_rows("confidence,correct\n\n0.9,1\n   \n")
        assert len(rows) == 1

    def test_header_only_is_empty(self):
        """A header without data rows yields nothing"""
        assert parse_csv_to_rows("confidence,correct\n") == []

    def test_short_rows_padded(self):
        """Missing trailing cells become empty strings"""
        rows = parse_csv_to_rows("confidence,correct,order_id\n0.9,1\n")
        assert rows[0]["order_id"] == ""


class TestCoerceTruthTable:
    """Tests for coerce_truth_table."""

    def test_synonyms_case_insensitive(self):
        """IS_CORRECT and P_CORRECT headers are recognised"""
        rows = coerce_truth_table([{"P_CORRECT": "0.7", "IS_CORRECT": "1", "PO_Number": "4411"}])
        assert len(rows) == 1
        assert rows[0].predicted_confidence == 0.7
        assert rows[0].correct == 1
        assert rows[0].order_id == "4411"

    def test_malformed_rows_dropped(self):
        """Rows without parseable confidence or correctness are filtered"""
        rows = coerce_truth_table([
            {"confidence": "0.9", "correct": "1"},
            {"confidence": "abc", "correct": "1"},
            {"confidence": "0.8", "correct": ""},
            {"confidence": "", "truth": "0"},
        ])
        assert len(rows) == 1

    def test_optional_columns(self):
        """Optional indicator columns are parsed when present"""
        rows = coerce_truth_table([
            {"confidence": "0.9", "correct": "1", "qty_correct": "0", "credit_memo": "1"},
        ])
        assert rows[0].quantity_correct == 0
        assert rows[0].is_credit_memo == 1
        assert rows[0].unit_price_correct is None

    def test_safe_num_rejects_non_finite(self):
        """NaN and infinity are not usable numbers"""
        assert safe_num("nan") is None
        assert safe_num("inf") is None
        assert safe_num(" 0.5 ") == 0.5

    def test_load_csv_end_to_end(self):
        """CSV text to rows in one step"""
        rows = load_truth_table_csv("line_id,score,truth\nL1,88,1\nL2,40,0\n")
        assert [r.line_id for r in rows] == ["L1", "L2"]


class TestComputeCalibration:
    """Tests for compute_calibration."""

    def test_empty_rows_raise(self):
        """Zero rows is insufficient data"""
        with pytest.raises(InsufficientCalibrationDataError) as exc:
            compute_calibration([])
        assert exc.value.n_rows == 0

    def test_insufficient_data_is_value_error(self):
        """Callers may catch it as ValueError"""
        with pytest.raises(ValueError):
            compute_calibration([])

    def test_scale_0_1(self):
        """Values up to 1.5 keep the 0..1 scale"""
        computed = compute_calibration(make_rows([(0.2, 0, 1), (1.5, 1, 1)]))
        assert computed.confidence_scale_detected == "0_1"

    def test_scale_0_100_normalized(self):
        """Any value above 1.5 switches to 0..100 and divides by 100"""
        computed = compute_calibration(make_rows([(90, 1, 1), (1.2, 0, 1)]))
        assert computed.confidence_scale_detected == "0_100"
        # 0.9 -> bin 9, 0.012 -> bin 0
        counts = [b.count for b in computed.calibration.reliability_bins]
        assert counts[9] == 1
        assert counts[0] == 1

    def test_values_clamped(self):
        """Normalized values above 1 are clamped into the last bin"""
        computed = compute_calibration(make_rows([(120, 1, 1), (50, 1, 1)]))
        last = computed.calibration.reliability_bins[-1]
        assert last.count == 1
        assert last.avg_pred == 1.0

    def test_one_lands_in_last_bin(self):
        """1.0 belongs to the last (closed) bin"""
        computed = compute_calibration(make_rows([(1.0, 1, 3)]))
        assert computed.calibration.reliability_bins[-1].count == 3

    def test_bin_counts_sum_to_n(self, scenario_rows):
        """Reliability bin counts add up to n_rows"""
        computed = compute_calibration(scenario_rows, bins=7)
        assert len(computed.calibration.reliability_bins) == 7
        assert sum(b.count for b in computed.calibration.reliability_bins) == computed.n_rows

    @pytest.mark.parametrize("bins", [0, -3])
    def test_non_positive_bins_raise(self, scenario_rows, bins):
        """Without bins the counts could not sum to n_rows"""
        with pytest.raises(ValueError, match="bins"):
            compute_calibration(scenario_rows, bins=bins)

    def test_single_bin_holds_every_row(self, scenario_rows):
        computed = compute_calibration(scenario_rows, bins=1)
        assert [b.count for b in computed.calibration.reliability_bins] == [computed.n_rows]

    def test_ece_bounded(self, scenario_rows):
        """0 <= ECE <= 1"""
        computed = compute_calibration(scenario_rows)
        assert 0.0 <= computed.calibration.ece <= 1.0

    def test_perfect_calibration_zero_brier(self):
        """Confident and always right means zero Brier score and ECE"""
        computed = compute_calibration(make_rows([(1.0, 1, 4), (0.0, 0, 4)]))
        assert computed.calibration.brier_score == pytest.approx(0.0)
        assert computed.calibration.ece == pytest.approx(0.0)

    def test_correct_thresholded_at_half(self):
        """correct >= 0.5 counts as right"""
        computed = compute_calibration(make_rows([(0.9, 0.5, 1), (0.9, 0.49, 1)]))
        assert computed.accuracy.line_required_fields_all_correct == pytest.approx(0.5)

    def test_field_level_only_when_present(self):
        """Per-field accuracy is omitted for columns no row carries"""
        rows = [
            TruthTableRow(predicted_confidence=0.9, correct=1, item_number_correct=1),
            TruthTableRow(predicted_confidence=0.9, correct=1, item_number_correct=0),
            TruthTableRow(predicted_confidence=0.9, correct=1),
        ]
        computed = compute_calibration(rows)
        assert computed.accuracy.field_level == {"item_number": pytest.approx(0.5)}

    def test_signals_distribution(self):
        """Signal rates are means over rows that provide the column"""
        rows = [
            TruthTableRow(predicted_confidence=0.9, correct=1, is_zero_dollar=1),
            TruthTableRow(predicted_confidence=0.9, correct=1, is_zero_dollar=0),
            TruthTableRow(predicted_confidence=0.9, correct=1, is_zero_dollar=0),
            TruthTableRow(predicted_confidence=0.9, correct=1, is_zero_dollar=1),
        ]
        computed = compute_calibration(rows)
        assert computed.signals_distribution == {"ZERO_DOLLAR": pytest.approx(0.5)}

    def test_coverage_thresholds_fixed(self, scenario_rows):
        """Coverage is reported for the fixed candidate list"""
        computed = compute_calibration(scenario_rows)
        assert [c.threshold for c in computed.coverage_by_threshold] == list(CANDIDATE_THRESHOLDS)

    def test_coverage_monotonic(self):
        """auto_rate never increases with the threshold"""
        rows = make_rows([(0.55, 1, 3), (0.72, 0, 2), (0.81, 1, 4), (0.93, 1, 5), (0.99, 0, 1)])
        rates = [c.auto_rate for c in compute_calibration(rows).coverage_by_threshold]
        assert all(a >= b for a, b in zip(rates, rates[1:]))

    def test_empty_coverage_bucket_reports_zero(self):
        """Thresholds above every confidence report zero rate and error"""
        computed = compute_calibration(make_rows([(0.55, 0, 2)]))
        top = computed.coverage_by_threshold[-1]
        assert top.auto_rate == 0.0
        assert top.expected_error_rate == 0.0


class TestSuggestGates:
    """Tests for suggest_gates."""

    def test_lowest_qualifying_threshold(self):
        """0.9 and 0.95 both qualify: pick 0.9"""
        coverage = [
            CoverageRow(threshold=0.85, auto_rate=0.95, expected_error_rate=0.05),
            CoverageRow(threshold=0.9, auto_rate=0.9, expected_error_rate=0.02),
            CoverageRow(threshold=0.95, auto_rate=0.6, expected_error_rate=0.0),
        ]
        gates = suggest_gates(coverage, max_error=0.02)
        assert gates.auto_process_min == 0.9
        assert gates.review_min == 0.75
        assert gates.block_below == 0.5

    def test_zero_coverage_does_not_qualify(self):
        """A threshold with no rows above it is not a candidate"""
        coverage = [
            CoverageRow(threshold=0.98, auto_rate=0.0, expected_error_rate=0.0),
        ]
        assert suggest_gates(coverage).auto_process_min == 0.95

    def test_fallback_when_nothing_qualifies(self):
        """Falls back to 0.95 / 0.80 / 0.50"""
        coverage = [CoverageRow(threshold=0.9, auto_rate=0.5, expected_error_rate=0.1)]
        gates = suggest_gates(coverage)
        assert gates.auto_process_min == 0.95
        assert gates.review_min == 0.8
        assert gates.block_below == 0.5

    def test_review_min_ceiling(self):
        """review_min never exceeds 0.85"""
        coverage = [CoverageRow(threshold=1.0, auto_rate=0.2, expected_error_rate=0.0)]
        assert suggest_gates(coverage).review_min == 0.85

    def test_review_min_floored_at_zero(self):
        """Low thresholds do not produce a negative review gate"""
        coverage = [CoverageRow(threshold=0.1, auto_rate=1.0, expected_error_rate=0.0)]
        assert suggest_gates(coverage).review_min == 0.0

    def test_default_ordering(self):
        """block < review < auto whenever auto >= 0.65"""
        for t in (0.7, 0.8, 0.9, 0.95):
            gates = suggest_gates([CoverageRow(threshold=t, auto_rate=0.5, expected_error_rate=0.0)])
            assert gates.block_below < gates.review_min < gates.auto_process_min


class TestCalibrationScenario:
    """End-to-end: 100 rows, 90 confident correct, 10 at 0.6 with 5 correct."""

    def test_aggregate_accuracy(self, scenario_rows):
        computed = compute_calibration(scenario_rows)
        assert computed.n_rows == 100
        assert computed.accuracy.line_required_fields_all_correct == pytest.approx(0.95)

    def test_coverage_at_point_nine(self, scenario_rows):
        computed = compute_calibration(scenario_rows)
        row = next(c for c in computed.coverage_by_threshold if c.threshold == 0.9)
        assert row.auto_rate == pytest.approx(0.90)
        assert row.expected_error_rate == pytest.approx(0.0)

    def test_gates_pick_lowest_safe_threshold(self, scenario_rows):
        """Every threshold from 0.7 up excludes the 0.6 rows, so 0.7 is the lowest safe gate"""
        computed = compute_calibration(scenario_rows)
        gates = suggest_gates(computed.coverage_by_threshold, max_error=0.02)
        assert gates.auto_process_min == 0.7
        assert gates.review_min == 0.55

    def test_gates_select_point_nine(self):
        """Uncertain rows just under 0.9 push the gate up to 0.9"""
        rows = make_rows([(0.95, 1, 90), (0.88, 1, 5), (0.88, 0, 5)])
        computed = compute_calibration(rows)
        gates = suggest_gates(computed.coverage_by_threshold, max_error=0.02)
        assert gates.auto_process_min == 0.9
        assert gates.review_min == 0.75
        assert gates.block_below == 0.5
