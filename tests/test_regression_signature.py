"""Tests for regression signatures, diffs and baselines."""

from datetime import datetime, timedelta, timezone

import pytest

from orderflow.models.extraction_result import ExtractedDocument
from orderflow.services.regression import (
    RegressionBaselines,
    build_signature,
    describe_doc,
    diff_signatures,
    sha256_hex,
)

CREATED = datetime(2026, 3, 2, tzinfo=timezone.utc)


def make_doc(doc_id, doc_type, page_start=None, page_end=None, lines=1, order_no=None):
    return ExtractedDocument.model_validate({
        "document": {
            "document_id": doc_id,
            "document_type": doc_type,
            "page_start": page_start,
            "page_end": page_end,
            "source_pages": None if page_start is None else list(range(page_start, (page_end or page_start) + 1)),
        },
        "order": {"customer_order_no": order_no},
        "line_items": [{"parsed": {"description": f"line {i}"}} for i in range(lines)],
    })


@pytest.fixture
def docs():
    return [
        make_doc("d1", "PURCHASE_ORDER", 1, 2, lines=3, order_no="4411"),
        make_doc("d2", "EMAIL_COVER", 0, 0, lines=0),
        make_doc("d3", "CREDIT_MEMO", 3, 3, lines=1),
    ]


def sign(docs, file_hash="abc"):
    return build_signature("packet.pdf", file_hash, docs, created_at=CREATED)


class TestBuildSignature:
    """Tests for build_signature."""

    def test_projection(self, docs):
        sig = sign(docs)
        assert sig.schema_version == "regression.signature.v1"
        assert sig.doc_count == 3
        po = next(d for d in sig.docs if d.doc_id == "d1")
        assert po.line_count == 3
        assert po.source_pages_count == 2
        assert po.customer_order_no == "4411"

    def test_sorted_by_composite_key(self, docs):
        assert [d.doc_type for d in sign(docs).docs] == ["CREDIT_MEMO", "EMAIL_COVER", "PURCHASE_ORDER"]

    def test_order_independent(self, docs):
        """Same documents in a different order give identical signatures"""
        assert sign(docs).docs == sign(list(reversed(docs))).docs

    def test_ties_broken_deterministically(self):
        a = make_doc("a", "INVOICE")
        b = make_doc("b", "INVOICE")
        assert sign([a, b]).docs == sign([b, a]).docs

    def test_missing_pages_sort_last(self):
        sig = sign([make_doc("x", "INVOICE"), make_doc("y", "INVOICE", 5, 6)])
        assert [d.doc_id for d in sig.docs] == ["y", "x"]

    def test_missing_fields(self):
        sig = sign([ExtractedDocument()])
        assert sig.docs[0].doc_id == ""
        assert sig.docs[0].doc_type == "UNKNOWN"
        assert sig.docs[0].source_pages_count is None

    def test_sha256_hex(self):
        assert sha256_hex(b"abc") == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


class TestDiffSignatures:
    """Tests for diff_signatures."""

    def test_identical(self, docs):
        diff = diff_signatures(sign(docs), sign(docs))
        assert diff.ok is True
        assert diff.errors == []
        assert diff.warnings == []

    def test_page_range_is_warning(self, docs):
        """Only page bounds differ: warnings, no errors, ok"""
        moved = [
            make_doc("d1", "PURCHASE_ORDER", 1, 3, lines=3, order_no="4411"),
            docs[1],
            docs[2],
        ]
        diff = diff_signatures(sign(docs), sign(moved))
        assert diff.ok is True
        assert diff.errors == []
        assert len(diff.warnings) >= 1
        assert "page range changed" in diff.warnings[0]

    def test_line_count_is_warning(self, docs):
        changed = [make_doc("d1", "PURCHASE_ORDER", 1, 2, lines=4, order_no="4411"), docs[1], docs[2]]
        diff = diff_signatures(sign(docs), sign(changed))
        assert diff.ok is True
        assert any("line count changed" in w for w in diff.warnings)

    def test_type_change_is_error(self):
        base = sign([make_doc("d1", "INVOICE", 0, 0)])
        current = sign([make_doc("d1", "SALES_ORDER", 0, 0)])
        diff = diff_signatures(base, current)
        assert diff.ok is False
        assert "type changed" in diff.errors[0]

    def test_missing_doc(self, docs):
        diff = diff_signatures(sign(docs), sign(docs[:2]))
        assert diff.ok is False
        assert any(e.startswith("Doc count changed") for e in diff.errors)
        assert any(e.startswith("Missing doc in current") for e in diff.errors)

    def test_extra_doc(self, docs):
        diff = diff_signatures(sign(docs[:2]), sign(docs))
        assert any(e.startswith("Extra doc in current") for e in diff.errors)

    def test_empty_doc_id_is_error(self):
        base = sign([make_doc("d1", "INVOICE", 0, 0)])
        current = sign([make_doc("", "INVOICE", 0, 0)])
        diff = diff_signatures(base, current)
        assert diff.ok is False
        assert diff.errors == ["Doc[0] missing document_id in current output"]

    def test_describe_doc(self, docs):
        sig = sign(docs)
        assert describe_doc(None) == "(none)"
        assert describe_doc(sig.docs[0]) == "CREDIT_MEMO pages=3-3 lines=1"


class TestRegressionBaselines:
    """Tests for RegressionBaselines."""

    def test_save_get_delete(self, docs):
        baselines = RegressionBaselines()
        sig = sign(docs, file_hash="h1")
        baselines.save(sig)
        assert baselines.get("h1") == sig
        baselines.delete("h1")
        assert baselines.get("h1") is None
        baselines.delete("h1")

    def test_list_newest_first(self, docs):
        store = {}
        baselines = RegressionBaselines(store)
        old = build_signature("a.pdf", "h1", docs, created_at=CREATED)
        new = build_signature("b.pdf", "h2", docs, created_at=CREATED + timedelta(days=1))
        baselines.save(old)
        baselines.save(new)
        assert [s.file_hash for s in baselines.list()] == ["h2", "h1"]
        assert set(store) == {"h1", "h2"}
        assert len(baselines) == 2

    def test_list_mixes_naive_and_aware_timestamps(self, docs):
        """Naive created_at is stored as UTC and sorts with aware ones"""
        baselines = RegressionBaselines()
        naive = build_signature("a.pdf", "h1", docs, created_at=datetime(2026, 3, 1, 12, 0))
        aware = build_signature("b.pdf", "h2", docs)
        baselines.save(naive)
        baselines.save(aware)
        assert naive.created_at == datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert [s.file_hash for s in baselines.list()] == ["h2", "h1"]

    def test_offset_timestamp_converted_to_utc(self, docs):
        plus_two = timezone(timedelta(hours=2))
        sig = build_signature("a.pdf", "h1", docs, created_at=datetime(2026, 3, 1, 14, 0, tzinfo=plus_two))
        assert sig.created_at.utcoffset() == timedelta(0)
        assert sig.created_at.hour == 12
