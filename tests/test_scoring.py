"""Tests for the per-rule pair scoring."""

import pytest

from quoterecon.reconcile.scoring import (
    BRAND_POINTS,
    NAME_OVERLAP_POINTS,
    SKU_EXACT_POINTS,
    SKU_PARTIAL_POINTS,
    SUGGESTION_CAP,
    brand_points,
    clamp_confidence,
    name_points,
    score_pair,
    sku_points,
    suggestion_score,
)
from quoterecon.schemas.common import ExtractedItem, RequestedItem


def _make_requested(
    item_name: str = "Sofa",
    sku: str | None = None,
    brand: str | None = None,
    model_number: str | None = None,
) -> RequestedItem:
    return RequestedItem(
        id="r1",
        item_name=item_name,
        quantity=1,
        sku=sku,
        brand=brand,
        model_number=model_number,
    )


def _make_extracted(
    product_name: str = "Sofa",
    sku: str | None = None,
    brand: str | None = None,
) -> ExtractedItem:
    return ExtractedItem(product_name=product_name, sku=sku, brand=brand)


class TestSkuRule:
    def test_exact(self):
        assert sku_points(_make_requested(sku="ABC123"), _make_extracted(sku="abc-123")) == SKU_EXACT_POINTS

    def test_substring(self):
        assert sku_points(_make_requested(sku="ABC123"), _make_extracted(sku="ABC123-BLK")) == SKU_PARTIAL_POINTS

    def test_model_number_counts_as_sku(self):
        req = _make_requested(model_number="MN-77")
        assert sku_points(req, _make_extracted(sku="mn77")) == SKU_EXACT_POINTS

    def test_best_key_wins_not_summed(self):
        req = _make_requested(sku="ABC123", model_number="ABC123X")
        assert sku_points(req, _make_extracted(sku="ABC123")) == SKU_EXACT_POINTS

    def test_missing_sku_scores_nothing(self):
        assert sku_points(_make_requested(sku="ABC123"), _make_extracted()) == 0.0
        assert sku_points(_make_requested(), _make_extracted(sku="ABC123")) == 0.0


class TestBrandRule:
    def test_containment(self):
        req = _make_requested(brand="Acme")
        assert brand_points(req, _make_extracted(brand="ACME Furniture Co.")) == BRAND_POINTS

    def test_different_brand(self):
        req = _make_requested(brand="Acme")
        assert brand_points(req, _make_extracted(brand="Globex")) == 0.0


class TestNameRule:
    def test_full_overlap(self):
        points, matching = name_points(_make_requested("Oak Dining Chair"), _make_extracted("oak dining chair"))
        assert points == NAME_OVERLAP_POINTS
        assert matching == 3

    def test_ratio_uses_longer_list(self):
        # 2 matching tokens out of max(2, 3)
        points, matching = name_points(_make_requested("Oak Dining Chair"), _make_extracted("Oak Chair"))
        assert matching == 2
        assert points == pytest.approx(2 / 3 * NAME_OVERLAP_POINTS)

    def test_short_words_ignored(self):
        points, matching = name_points(_make_requested("TV"), _make_extracted("TV"))
        assert points == 0.0
        assert matching == 0


class TestScorePair:
    def test_exact_sku_and_name(self):
        score = score_pair(_make_requested(sku="ABC123"), _make_extracted(sku="abc-123"))
        assert score.sku == 50.0
        assert score.name == 35.0
        assert score.raw == 85.0
        assert score.confidence == 85

    def test_all_rules_reach_100(self):
        score = score_pair(
            _make_requested(sku="ABC123", brand="Acme"),
            _make_extracted(sku="ABC123", brand="Acme"),
        )
        assert score.raw == 100.0
        assert score.confidence == 100

    def test_nothing_in_common(self):
        score = score_pair(_make_requested("Chair"), _make_extracted("Lamp"))
        assert score.raw == 0.0
        assert score.confidence == 0

    def test_confidence_rounds_half_up(self):
        assert clamp_confidence(52.5) == 53
        assert clamp_confidence(23.3333) == 23

    def test_confidence_clamped(self):
        assert clamp_confidence(130.0) == 100
        assert clamp_confidence(-5.0) == 0


class TestSuggestionScore:
    def test_twenty_points_per_token(self):
        score = suggestion_score(_make_requested("Velvet Accent Chair"), _make_extracted("Velvet Cushion"))
        assert score == 20

    def test_capped(self):
        score = suggestion_score(
            _make_requested("Brass Floor Lamp Shade"),
            _make_extracted("Brass Floor Lamp Shade Large"),
        )
        assert score == SUGGESTION_CAP
