#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Similarity scoring for metadata records.

string_similarity:
    exact (case-insensitive, trimmed)      -> 1.0
    one string contains the other          -> CONTAINMENT_SCORE (0.8)
    otherwise shared words / larger word count

record_similarity weighs artist (0.4), album (0.3), title (0.2) and exact
year (0.1), skipping fields that are blank on either side and renormalizing
over the fields that were compared.
"""

from typing import Dict, Optional, Tuple

from media.records import MediaRecord


CONTAINMENT_SCORE = 0.8

FIELD_WEIGHTS = (
    ('artist', 0.4),
    ('album', 0.3),
    ('title', 0.2),
    ('year', 0.1),
)


def _normalize(value: Optional[str]) -> str:
    return value.strip().lower() if value else ""


def string_similarity(a: Optional[str], b: Optional[str],
                      containment_score: float = CONTAINMENT_SCORE) -> float:
    """
    Normalized likeness of two strings in [0, 1].

    The word overlap divides by the larger word count rather than the union,
    so strings with many unmatched extra words score lower.
    """
    a = _normalize(a)
    b = _normalize(b)

    if not a or not b:
        return 0.0

    if a == b:
        return 1.0

    if a in b or b in a:
        return containment_score

    tokens_a = set(a.split())
    tokens_b = set(b.split())
    if not tokens_a or not tokens_b:
        return 0.0

    return len(tokens_a & tokens_b) / max(len(tokens_a), len(tokens_b))


def _field_value(record: MediaRecord, field: str):
    if field == 'artist':
        return record.display_artist
    return record.get(field)


def score_breakdown(target: MediaRecord, candidate: MediaRecord,
                    containment_score: float = CONTAINMENT_SCORE) -> Dict[str, float]:
    """
    Per-field scores for the fields that could be compared.

    Returns:
        Dictionary of field name -> score; blank/zero fields are absent
    """
    breakdown: Dict[str, float] = {}

    for field, _ in FIELD_WEIGHTS:
        left = _field_value(target, field)
        right = _field_value(candidate, field)
        if not left or not right:
            continue

        if field == 'year':
            breakdown[field] = 1.0 if left == right else 0.0
        else:
            breakdown[field] = string_similarity(left, right, containment_score)

    return breakdown


def weighted_score(breakdown: Dict[str, float]) -> float:
    """Combine a breakdown with FIELD_WEIGHTS, renormalized over present fields"""
    total_weight = 0.0
    total = 0.0
    for field, weight in FIELD_WEIGHTS:
        if field in breakdown:
            total += breakdown[field] * weight
            total_weight += weight

    if total_weight == 0:
        return 0.0
    return total / total_weight


def record_similarity(target: MediaRecord, candidate: MediaRecord,
                      containment_score: float = CONTAINMENT_SCORE) -> float:
    """Weighted likeness of two records in [0, 1]"""
    return weighted_score(score_breakdown(target, candidate, containment_score))


def score_with_rationale(target: MediaRecord, candidate: MediaRecord,
                         containment_score: float = CONTAINMENT_SCORE) -> Tuple[float, Dict[str, float]]:
    """Score plus the per-field breakdown that produced it"""
    breakdown = score_breakdown(target, candidate, containment_score)
    return weighted_score(breakdown), breakdown
