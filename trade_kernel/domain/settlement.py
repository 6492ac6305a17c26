"""
Settlement instruction content rules.

Pure checks with no I/O.  Instruction text is an allow-list: letters,
digits, whitespace and the punctuation ``. , : - / ( ) # $ & % * + '``,
10 to 500 characters.  ``<``, ``>`` and ``;`` are deliberately absent.
Search terms are sanitised more strictly before they reach a LIKE clause.
"""

from __future__ import annotations

import re

from trade_kernel.exceptions import InvalidSettlementInstructionsError

SETTLEMENT_INSTRUCTIONS_PATTERN = r"^[a-zA-Z0-9\s.,:\-/()#$&%*+']{10,500}$"
SEARCH_STRIP_PATTERN = r"[^a-zA-Z0-9\s.,-]"
SEARCH_MAX_LENGTH = 200


def validate_settlement_instructions(
    instructions: str | None,
    pattern: str = SETTLEMENT_INSTRUCTIONS_PATTERN,
) -> str:
    """
    Return ``instructions`` unchanged if it passes the allow-list.

    Raises:
        InvalidSettlementInstructionsError: None, too short, too long, or
            containing a character outside the allow-list.
    """
    if instructions is None or not re.fullmatch(pattern, instructions, re.ASCII):
        raise InvalidSettlementInstructionsError(
            len(instructions) if instructions is not None else 0
        )
    return instructions


def sanitize_search_text(
    text: str | None,
    max_length: int = SEARCH_MAX_LENGTH,
    strip_pattern: str = SEARCH_STRIP_PATTERN,
) -> str | None:
    """
    Search term safe for a substring match, or None if nothing remains.

    Truncates to ``max_length`` first, then removes every character
    matched by ``strip_pattern``.
    """
    if text is None or not text.strip():
        return None
    truncated = text[:max_length]
    cleaned = re.sub(strip_pattern, "", truncated, flags=re.ASCII)
    if not cleaned.strip():
        return None
    return cleaned


def was_truncated(text: str | None, max_length: int = SEARCH_MAX_LENGTH) -> bool:
    return text is not None and len(text) > max_length
