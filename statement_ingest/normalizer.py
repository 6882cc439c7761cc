"""
Value Normalization Layer.

Turns raw statement cells into comparable values.  All parsing is strict:
anything that does not fit the expected shape is rejected with ``None``
rather than guessed at.

Transformations
---------------
* Dates: ``M/D/YYYY`` only, and the calendar date must exist.
* Amounts: currency symbols and thousands separators stripped,
  ``(123.45)`` read as negative, parsed to ``Decimal``.
* Descriptions: trimmed, lowercased, whitespace runs collapsed
  (fingerprint input only; the display description keeps its case).
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from statement_ingest.logging_setup import get_logger

logger = get_logger("normalizer")


class ValueNormalizer:
    """Stateless cell normaliser.  All methods are pure functions.

    Parameters
    ----------
    currency_symbols:
        Characters removed from amount cells before parsing.
    non_transaction_patterns:
        Regexes that mark a description as a balance line, not a transaction.
    """

    _DATE_RE = re.compile(r"^([0-9]{1,2})/([0-9]{1,2})/([0-9]{4})$")

    # Parenthetical negative: ``(1234)`` → ``-1234``
    _PAREN_NEG_RE = re.compile(r"^\((.*)\)$")

    # ASCII digits with an optional sign and decimal point
    _AMOUNT_RE = re.compile(r"^[+-]?([0-9]+(\.[0-9]*)?|\.[0-9]+)$")

    _MULTI_SPACE_RE = re.compile(r"\s+")

    def __init__(
        self,
        currency_symbols: str = "$€£¥₹",
        non_transaction_patterns: Iterable[str] = (r"beginning\s+balance\b",),
    ) -> None:
        self._strip_re = re.compile(
            "[" + re.escape(currency_symbols) + ",]"
        )
        self._non_transaction = [
            re.compile(p, re.IGNORECASE) for p in non_transaction_patterns
        ]

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def parse_date(self, raw: str) -> Optional[str]:
        """Return the ISO ``YYYY-MM-DD`` form of a ``M/D/YYYY`` cell.

        ``None`` when the cell is malformed or names a day that does not
        exist (``02/30/2026``).
        """
        m = self._DATE_RE.match(raw.strip())
        if not m:
            return None

        month, day, year = (int(g) for g in m.groups())
        try:
            parsed = date(year, month, day)
        except ValueError:
            logger.debug("parse_date: %r is not a calendar date", raw)
            return None
        return parsed.isoformat()

    def parse_amount(self, raw: str) -> Optional[Decimal]:
        """Parse a signed amount.

        Handles:
        * Currency prefixes: ``"$1,200.00"``
        * Thousands separators: ``"1,234.56"``
        * Parenthetical negatives: ``"(5.75)"``

        Returns
        -------
        Decimal | None
            ``None`` for empty input or anything that is not a plain
            decimal number (exponents, digit separators other than commas,
            internal spaces, NaN, Infinity).
        """
        text = raw.strip()
        if not text:
            return None

        negative = False
        m = self._PAREN_NEG_RE.match(text)
        if m:
            negative = True
            text = m.group(1)

        text = self._strip_re.sub("", text).strip()
        if not self._AMOUNT_RE.match(text):
            logger.debug("parse_amount: cannot parse %r", raw)
            return None

        value = Decimal(text)
        return -value if negative else value

    def normalize_description(self, raw: str) -> str:
        """Lowercase and collapse whitespace; used only for fingerprints."""
        return self._MULTI_SPACE_RE.sub(" ", raw.strip().lower())

    def is_non_transaction(self, description: str) -> bool:
        """True for balance marker lines such as "Beginning balance as of ..."."""
        text = description.strip()
        return any(p.match(text) for p in self._non_transaction)


def canonical_amount(value: Decimal) -> str:
    """Stable decimal text: ``-5.750`` and ``-5.75`` both give ``"-5.75"``."""
    if value == 0:
        return "0"
    # Trimmed as text: normalize() rounds to the context precision
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
