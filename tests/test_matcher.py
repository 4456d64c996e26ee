"""Tests for the greedy matching engine."""

from quoterecon.reconcile.engine import build_report, match
from quoterecon.schemas.common import ExtractedItem, MatchStatus, RequestedItem, SupplierInfo
from quoterecon.schemas.extraction import QuoteExtraction


def _make_requested(
    id: str = "r1",
    item_name: str = "Sofa",
    quantity: int = 2,
    sku: str | None = None,
    brand: str | None = None,
    target_unit_price: float | None = None,
) -> RequestedItem:
    """Helper to create a RequestedItem."""
    return RequestedItem(
        id=id,
        item_name=item_name,
        quantity=quantity,
        sku=sku,
        brand=brand,
        target_unit_price=target_unit_price,
    )


def _make_extracted(
    product_name: str = "Sofa",
    sku: str | None = None,
    quantity: int | None = 2,
    unit_price: float | None = 500.0,
    brand: str | None = None,
) -> ExtractedItem:
    """Helper to create an ExtractedItem."""
    return ExtractedItem(
        product_name=product_name,
        sku=sku,
        quantity=quantity,
        unit_price=unit_price,
        brand=brand,
    )


class TestMatchScenarios:
    def test_exact_sku_match(self):
        results = match(
            [_make_requested(sku="ABC123")],
            [_make_extracted(sku="abc-123")],
        )
        assert len(results) == 1
        result = results[0]
        assert result.status == MatchStatus.MATCHED
        # 50 (SKU) + 35 (name)
        assert result.confidence == 85
        assert result.discrepancies == []
        assert result.requested_item.id == "r1"
        assert result.result_id == "x0"

    def test_quantity_mismatch(self):
        results = match(
            [_make_requested(sku="ABC123")],
            [_make_extracted(sku="abc-123", quantity=3)],
        )
        assert results[0].status == MatchStatus.MATCHED
        assert results[0].discrepancies == ["Quantity: requested 2, quoted 3"]

    def test_no_match_gives_extra_and_missing(self):
        results = match(
            [_make_requested(item_name="Chair")],
            [_make_extracted(product_name="Lamp", unit_price=50.0)],
        )
        assert [r.status for r in results] == [MatchStatus.EXTRA, MatchStatus.MISSING]
        extra, missing = results
        assert extra.extracted_item.product_name == "Lamp"
        assert extra.requested_item is None
        assert extra.confidence == 0
        assert missing.requested_item.item_name == "Chair"
        assert missing.extracted_item is None
        assert missing.result_id == "r:r1"

    def test_name_only_is_partial(self):
        results = match([_make_requested()], [_make_extracted()])
        assert results[0].status == MatchStatus.PARTIAL
        assert results[0].confidence == 35

    def test_brand_and_name_is_matched(self):
        results = match(
            [_make_requested(brand="Acme")],
            [_make_extracted(brand="ACME")],
        )
        assert results[0].status == MatchStatus.MATCHED
        assert results[0].confidence == 50

    def test_below_threshold_is_extra(self):
        """Brand alone (15) does not reach the acceptance threshold."""
        results = match(
            [_make_requested(item_name="Chair", brand="Acme")],
            [_make_extracted(product_name="Lamp", brand="Acme")],
        )
        assert results[0].status == MatchStatus.EXTRA

    def test_price_discrepancy_on_match(self):
        results = match(
            [_make_requested(sku="ABC123", target_unit_price=100.0)],
            [_make_extracted(sku="ABC123", unit_price=115.0)],
        )
        assert results[0].discrepancies == [
            "Price 15% above target ($100.00 target vs $115.00 quoted)"
        ]


class TestMatchEdgeCases:
    def test_both_empty(self):
        assert match([], []) == []

    def test_no_requested_items(self):
        results = match([], [_make_extracted(), _make_extracted("Lamp")])
        assert [r.status for r in results] == [MatchStatus.EXTRA, MatchStatus.EXTRA]
        assert all(r.suggested_matches == [] for r in results)

    def test_no_extracted_items(self):
        requested = [_make_requested("r1"), _make_requested("r2", "Chair")]
        results = match(requested, [])
        assert [r.status for r in results] == [MatchStatus.MISSING, MatchStatus.MISSING]
        assert [r.requested_item.id for r in results] == ["r1", "r2"]

    def test_output_order(self):
        """Extracted-side results in extracted order, then missing in requested order."""
        requested = [
            _make_requested("r1", "Walnut Bookcase"),
            _make_requested("r2", "Oak Dining Table"),
            _make_requested("r3", "Linen Curtain"),
        ]
        extracted = [
            _make_extracted("Oak Dining Table"),
            _make_extracted("Garden Hose"),
        ]
        results = match(requested, extracted)
        assert [r.result_id for r in results] == ["x0", "x1", "r:r1", "r:r3"]
        assert [r.status for r in results] == [
            MatchStatus.PARTIAL,
            MatchStatus.EXTRA,
            MatchStatus.MISSING,
            MatchStatus.MISSING,
        ]


class TestMatchInvariants:
    def _scenario(self):
        requested = [
            _make_requested("r1", "Oak Dining Chair", sku="CH-100"),
            _make_requested("r2", "Velvet Accent Chair"),
            _make_requested("r3", "Brass Floor Lamp", brand="Lumen"),
        ]
        extracted = [
            _make_extracted("Brass Floor Lamp", brand="Lumen Lighting"),
            _make_extracted("Oak Chair", sku="ch100"),
            _make_extracted("Delivery Fee", quantity=1),
        ]
        return requested, extracted

    def test_completeness(self):
        requested, extracted = self._scenario()
        results = match(requested, extracted)

        extracted_side = [r for r in results if r.extracted_item is not None]
        assert len(extracted_side) == len(extracted)

        requested_ids = [r.requested_item.id for r in results if r.requested_item is not None]
        assert sorted(requested_ids) == ["r1", "r2", "r3"]

    def test_no_requested_item_consumed_twice(self):
        requested, extracted = self._scenario()
        results = match(requested, extracted)
        paired = [
            r.requested_item.id
            for r in results
            if r.status in (MatchStatus.MATCHED, MatchStatus.PARTIAL)
        ]
        assert len(paired) == len(set(paired))

    def test_confidence_bounds(self):
        requested, extracted = self._scenario()
        for result in match(requested, extracted):
            assert 0 <= result.confidence <= 100
            if result.status in (MatchStatus.MISSING, MatchStatus.EXTRA):
                assert result.confidence == 0

    def test_deterministic(self):
        requested, extracted = self._scenario()
        first = [r.model_dump() for r in match(requested, extracted)]
        second = [r.model_dump() for r in match(requested, extracted)]
        assert first == second

    def test_inputs_not_modified(self):
        requested, extracted = self._scenario()
        before = [r.model_dump() for r in requested], [e.model_dump() for e in extracted]
        match(requested, extracted)
        after = [r.model_dump() for r in requested], [e.model_dump() for e in extracted]
        assert before == after


class TestGreedyBehaviour:
    def test_early_line_takes_item_a_later_line_matches_better(self):
        """Known limitation: first-come-first-served, not an optimal assignment."""
        requested = [_make_requested("r1", "Walnut Side Table", sku="WST-1")]
        extracted = [
            _make_extracted("Walnut Side Table"),
            _make_extracted("Walnut Side Table", sku="WST-1"),
        ]
        results = match(requested, extracted)
        assert results[0].status == MatchStatus.PARTIAL
        assert results[0].requested_item.id == "r1"
        assert results[1].status == MatchStatus.EXTRA

    def test_tie_goes_to_earlier_requested_item(self):
        requested = [_make_requested("r1", "Desk Lamp"), _make_requested("r2", "Desk Lamp")]
        extracted = [_make_extracted("Desk Lamp"), _make_extracted("Desk Lamp")]
        results = match(requested, extracted)
        assert [r.requested_item.id for r in results] == ["r1", "r2"]


class TestSuggestions:
    def test_extra_gets_suggestions_from_unconsumed_items(self):
        results = match(
            [_make_requested("r1", "Velvet Accent Chair")],
            [_make_extracted("Velvet Cushion")],
        )
        extra = results[0]
        assert extra.status == MatchStatus.EXTRA
        assert len(extra.suggested_matches) == 1
        assert extra.suggested_matches[0].id == "r1"
        assert extra.suggested_matches[0].confidence == 20

    def test_at_most_three_in_requested_order_on_ties(self):
        requested = [
            _make_requested("r1", "Dining Chair Oak"),
            _make_requested("r2", "Dining Chair Ash"),
            _make_requested("r3", "Dining Chair Elm"),
            _make_requested("r4", "Dining Chair Fir"),
        ]
        results = match(requested, [_make_extracted("Chair Cover")])
        suggestions = results[0].suggested_matches
        assert [s.id for s in suggestions] == ["r1", "r2", "r3"]

    def test_suggestion_confidence_capped(self):
        results = match(
            [_make_requested("r1", "Brass Floor Lamp Shade")],
            [_make_extracted("Brass Floor Lamp Shade Large")],
        )
        assert results[0].status == MatchStatus.EXTRA
        assert results[0].suggested_matches[0].confidence == 60

    def test_unrelated_items_not_suggested(self):
        results = match(
            [_make_requested("r1", "Chair")],
            [_make_extracted("Lamp")],
        )
        assert results[0].suggested_matches == []


class TestBuildReport:
    def test_report_includes_summary_and_totals(self):
        extraction = QuoteExtraction(
            supplier_info=SupplierInfo(company_name="Maison Bois", total=1180.0, taxes=180.0),
            extracted_items=[
                _make_extracted(sku="ABC123", quantity=2, unit_price=500.0),
                _make_extracted("Delivery", quantity=1, unit_price=0.0),
            ],
        )
        report = build_report(
            [_make_requested(sku="ABC123"), _make_requested("r2", "Ottoman")],
            extraction,
        )
        assert report.summary.matched == 1
        assert report.summary.extra == 1
        assert report.summary.missing == 1
        assert report.summary.total_requested == 2
        assert report.totals.calculated_total == 1000.0
        assert report.totals.total_discrepancy is True
        assert report.totals.has_taxes is True
        assert report.supplier_info.company_name == "Maison Bois"
