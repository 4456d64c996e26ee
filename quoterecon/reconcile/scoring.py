"""Pair scoring — weighted rules comparing a requested item with a quoted line.

Weights and thresholds are data so they can be tuned without touching the
matching loop. The rules add up to at most 50 + 15 + 35 = 100; reported
confidence is clamped to 100.
"""

from __future__ import annotations

import math

from quoterecon.reconcile.normalizer import keys_equal, keys_overlap, tokenize, tokens_match
from quoterecon.schemas.common import ExtractedItem, RequestedItem, ScoreBreakdown

SKU_EXACT_POINTS = 50.0
SKU_PARTIAL_POINTS = 30.0
BRAND_POINTS = 15.0
NAME_OVERLAP_POINTS = 35.0

# Raw score needed to accept a pairing at all, and to call it "matched"
ACCEPT_THRESHOLD = 30.0
MATCHED_THRESHOLD = 50.0

SUGGESTION_POINTS_PER_TOKEN = 20
SUGGESTION_CAP = 60
MAX_SUGGESTIONS = 3


def clamp_confidence(raw: float) -> int:
    """Round half-up and clamp to 0..100."""
    return max(0, min(100, math.floor(raw + 0.5)))


def sku_points(requested: RequestedItem, extracted: ExtractedItem) -> float:
    """Best SKU contribution against the requested SKU or model number."""
    best = 0.0
    for key in (requested.sku, requested.model_number):
        if keys_equal(extracted.sku, key):
            best = max(best, SKU_EXACT_POINTS)
        elif keys_overlap(extracted.sku, key):
            best = max(best, SKU_PARTIAL_POINTS)
    return best


def brand_points(requested: RequestedItem, extracted: ExtractedItem) -> float:
    return BRAND_POINTS if keys_overlap(extracted.brand, requested.brand) else 0.0


def count_matching_tokens(extracted_tokens: list[str], requested_tokens: list[str]) -> int:
    """Number of extracted tokens found among the requested tokens."""
    count = 0
    for ew in extracted_tokens:
        if any(tokens_match(ew, rw) for rw in requested_tokens):
            count += 1
    return count


def name_points(requested: RequestedItem, extracted: ExtractedItem) -> tuple[float, int]:
    """Token-overlap contribution and the number of matching tokens."""
    extracted_tokens = tokenize(extracted.product_name)
    requested_tokens = tokenize(requested.item_name)
    if not extracted_tokens or not requested_tokens:
        return 0.0, 0
    matching = count_matching_tokens(extracted_tokens, requested_tokens)
    denominator = max(len(extracted_tokens), len(requested_tokens))
    return (matching / denominator) * NAME_OVERLAP_POINTS, matching


def score_pair(requested: RequestedItem, extracted: ExtractedItem) -> ScoreBreakdown:
    """Score one requested/extracted pairing rule by rule."""
    sku = sku_points(requested, extracted)
    brand = brand_points(requested, extracted)
    name, matching = name_points(requested, extracted)
    raw = sku + brand + name
    return ScoreBreakdown(
        sku=sku,
        brand=brand,
        name=round(name, 4),
        matching_tokens=matching,
        raw=round(raw, 4),
        confidence=clamp_confidence(raw),
    )


def suggestion_score(requested: RequestedItem, extracted: ExtractedItem) -> int:
    """Loose name similarity used to suggest candidates for an extra line."""
    score = 0
    for ew in tokenize(extracted.product_name):
        for rw in tokenize(requested.item_name):
            if tokens_match(ew, rw):
                score += SUGGESTION_POINTS_PER_TOKEN
    return min(score, SUGGESTION_CAP)
