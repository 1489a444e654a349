"""
Phone number normalization and matching.

Numbers captured from different stores rarely share a format: the
message store may hold ``+1 (555) 123-4567`` while the contact directory
holds ``5551234567``. The helpers here reduce numbers to a canonical
form and compare them loosely enough that such pairs are treated as the
same party.

Matching is deliberately fuzzy. Two numbers whose last eight digits
agree are considered equal even when their area or country codes
differ, which can pair up unrelated short local numbers. This is a
known-imprecise policy, not a bug.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from msgvault.constants import (
    PHONE_COUNTRY_CODES,
    PHONE_LOCAL_PREFIX_MIN_LENGTH,
    PHONE_TAIL_MATCH_DIGITS,
)

logger = logging.getLogger(__name__)

_NON_DIGIT = re.compile(r"\D")


def normalize(raw: Optional[str]) -> str:
    """
    Reduce a phone number to its digits, keeping a leading ``+``.

    Args:
        raw: Number as stored, in any format.

    Returns:
        Canonical number, or an empty string for None/blank input.
    """
    if not raw or not raw.strip():
        return ""

    value = raw.strip()
    prefix = "+" if value.startswith("+") else ""
    digits = _NON_DIGIT.sub("", value)
    if not digits:
        return ""
    return prefix + digits


def variants(raw: Optional[str]) -> list[str]:
    """
    Get the forms a number might be stored under elsewhere.

    The first entry is always the normalized number, followed by the
    number without its ``+``, without a known country code, and without
    a trunk ``0`` for long numbers.

    Args:
        raw: Number as stored.

    Returns:
        Distinct variants in lookup order; empty for blank input.
    """
    normalized = normalize(raw)
    if not normalized:
        return []

    candidates = [normalized]

    if normalized.startswith("+"):
        candidates.append(normalized[1:])

    for code in PHONE_COUNTRY_CODES:
        if normalized.startswith(code):
            candidates.append(normalized[len(code):])
            break

    if len(normalized) > PHONE_LOCAL_PREFIX_MIN_LENGTH and normalized.startswith("0"):
        candidates.append(normalized[1:])

    result: list[str] = []
    for candidate in candidates:
        if candidate and candidate not in result:
            result.append(candidate)

    logger.debug(f"Number variants for {raw}: {result}")
    return result


def matches(a: Optional[str], b: Optional[str]) -> bool:
    """
    Check whether two numbers refer to the same party.

    True when the normalized forms are equal, when one is a suffix of the
    other, or when both have at least eight digits and share their last
    eight. Blank input never matches. The relation is symmetric.
    """
    first = normalize(a)
    second = normalize(b)
    if not first or not second:
        return False

    if first == second:
        return True

    if first.endswith(second) or second.endswith(first):
        return True

    first_digits = first.lstrip("+")
    second_digits = second.lstrip("+")
    tail = PHONE_TAIL_MATCH_DIGITS
    if len(first_digits) >= tail and len(second_digits) >= tail:
        return first_digits[-tail:] == second_digits[-tail:]

    return False
