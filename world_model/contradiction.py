"""Lexical contradiction detection for beliefs."""

from __future__ import annotations

import re


def normalize_claim(claim: str) -> str:
    return re.sub(r"\s+", " ", claim.strip().lower())


def is_contradiction(claim_a: str, claim_b: str) -> bool:
    """Return True when one claim is the negated form of the other.

    The check is lexical: ``"not " + X`` appearing inside the other claim,
    compared case-insensitively in either direction.
    """
    norm_a = normalize_claim(claim_a)
    norm_b = normalize_claim(claim_b)
    if not norm_a or not norm_b or norm_a == norm_b:
        return False
    return f"not {norm_a}" in norm_b or f"not {norm_b}" in norm_a
