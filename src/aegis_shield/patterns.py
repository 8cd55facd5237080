"""Structural PII detection: regex patterns plus per-type validators.

These are deterministic and near-zero cost.  They catch the fixed-format
stuff: emails, phones, SSNs, card numbers, zips, IPs and dates.
Categories are scanned independently, so results may overlap across
types; see ``merge.resolve_overlaps``.
"""

from __future__ import annotations
import re
from typing import Callable

from .sanitizer import sanitize
from .types import PIIMatch

# ASCII semantics for \d, \s and \b so full-width digits etc. stay untouched
_FLAGS = re.ASCII


def luhn_valid(digits: str) -> bool:
    """Luhn checksum over a string of digits."""
    if not digits.isdigit():
        return False
    total = 0
    for i, ch in enumerate(reversed(digits)):
        d = int(ch)
        if i % 2 == 1:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return total % 10 == 0


def is_valid_card(value: str) -> bool:
    digits = re.sub(r"[-\s]", "", value)
    if not 13 <= len(digits) <= 19:
        return False
    return luhn_valid(digits)


def is_valid_ipv4(value: str) -> bool:
    parts = value.split(".")
    if len(parts) != 4:
        return False
    return all(p.isdigit() and 0 <= int(p) <= 255 for p in parts)


# Each pattern: (type, compiled_regex, validator or None)
_PATTERNS: list[tuple[str, re.Pattern, Callable[[str], bool] | None]] = [
    # Email
    ("email", re.compile(
        r"\b[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}\b", _FLAGS
    ), None),

    # US phone, optional +1 prefix
    ("phone", re.compile(
        r"(?:\+1[\-.]?)?\(?\d{3}\)?[\-.\s]?\d{3}[\-.\s]?\d{4}\b", _FLAGS
    ), None),

    # SSN (US)
    ("ssn", re.compile(
        r"\b\d{3}-\d{2}-\d{4}\b", _FLAGS
    ), None),

    # Credit card: 4-4-4-4 with optional separators, or a bare 13–19 digit run
    ("creditCard", re.compile(
        r"\b(?:\d{4}[\-\s]?){3}\d{4}\b|\b\d{13,19}\b", _FLAGS
    ), is_valid_card),

    # US zip, optional +4
    ("zipCode", re.compile(
        r"\b\d{5}(?:-\d{4})?\b", _FLAGS
    ), None),

    # IPv4, octet range checked by the validator
    ("ipAddress", re.compile(
        r"\b(?:\d{1,3}\.){3}\d{1,3}\b", _FLAGS
    ), is_valid_ipv4),

    # Dates (MM/DD/YYYY, DD-MM-YY, ...)
    ("date", re.compile(
        r"\b\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}\b", _FLAGS
    ), None),
]

PATTERN_TYPES: tuple[str, ...] = tuple(t for t, _, _ in _PATTERNS)


def detect(text: str) -> list[PIIMatch]:
    """Run every pattern against text.

    Matches are appended in category order, then scan order.  No global
    sort and no cross-category overlap removal happens here.
    """
    matches: list[PIIMatch] = []
    if not text:
        return matches
    for pii_type, pattern, validator in _PATTERNS:
        for m in pattern.finditer(text):
            value = m.group()
            if validator is not None and not validator(value):
                continue
            matches.append(PIIMatch(
                type=pii_type,
                value=value,
                start_index=m.start(),
                end_index=m.end(),
            ))
    return matches


def has_pii(text: str) -> bool:
    """True if any structural pattern matches the sanitized text."""
    return bool(detect(sanitize(text)))
