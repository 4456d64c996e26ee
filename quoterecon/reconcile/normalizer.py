"""Key normalizer for comparing SKUs, brands and product-name words."""

from __future__ import annotations

import re

MIN_TOKEN_LENGTH = 3


def normalize_key(raw: str | None) -> str | None:
    """Normalize a SKU/brand/word: lowercase, drop every non-alphanumeric character.

    Returns None if the input is None or empty after normalization.
    """
    if not raw:
        return None
    cleaned = re.sub(r"[^a-z0-9]", "", str(raw).lower())
    return cleaned if cleaned else None


def keys_equal(a: str | None, b: str | None) -> bool:
    """Exact equality after normalization. Empty keys never match."""
    norm_a = normalize_key(a)
    norm_b = normalize_key(b)
    if norm_a is None or norm_b is None:
        return False
    return norm_a == norm_b


def keys_overlap(a: str | None, b: str | None) -> bool:
    """Either normalized key contains the other. Empty keys never match."""
    norm_a = normalize_key(a)
    norm_b = normalize_key(b)
    if norm_a is None or norm_b is None:
        return False
    return norm_a in norm_b or norm_b in norm_a


def tokenize(name: str | None) -> list[str]:
    """Split a product name on whitespace, keeping lowercase tokens longer than 2 chars."""
    if not name:
        return []
    return [w for w in name.lower().split() if len(w) >= MIN_TOKEN_LENGTH]


def tokens_match(a: str, b: str) -> bool:
    """Fuzzy word match: equal or containing each other once normalized.

    Tokens that shrink below 3 characters after normalization (e.g. "5'-0")
    never match.
    """
    norm_a = normalize_key(a)
    norm_b = normalize_key(b)
    if not norm_a or not norm_b:
        return False
    if len(norm_a) < MIN_TOKEN_LENGTH or len(norm_b) < MIN_TOKEN_LENGTH:
        return False
    return norm_a == norm_b or norm_a in norm_b or norm_b in norm_a
