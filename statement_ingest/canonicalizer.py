"""
Row Canonicalisation Layer.

Converts padded data rows into ``CanonicalTransaction`` objects using a
validated column mapping and the statement's account context.

Rows are either emitted whole or skipped whole; there are no partial
transactions.  Skipped rows are counted in ``skipped_invalid_count`` with no
per-row reason in the result (the reason is logged at DEBUG).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence

from statement_ingest.config import CanonicalizationConfig, FingerprintConfig
from statement_ingest.fingerprint import FingerprintInput, fingerprint_many
from statement_ingest.header_detector import normalize_cell
from statement_ingest.logging_setup import get_logger
from statement_ingest.normalizer import ValueNormalizer
from statement_ingest.schema import (
    AccountContext,
    AccountType,
    CanonicalizationResult,
    CanonicalTransaction,
    ColumnMapping,
)

logger = get_logger("canonicalizer")


@dataclass(frozen=True)
class _ParsedRow:
    posted_date: str
    amount: Decimal
    description: str
    normalized_description: str
    bank_category: Optional[str]
    source_ref: Optional[str]


class RowCanonicalizer:
    """Turns raw rows into canonical, fingerprinted transactions.

    Parameters
    ----------
    config:
        Non-transaction patterns, currency symbols, reference column name.
    fingerprint_config:
        Thread-pool size for hashing.
    normalizer:
        Shared value parser; built from *config* when omitted.
    """

    def __init__(
        self,
        config: CanonicalizationConfig,
        fingerprint_config: Optional[FingerprintConfig] = None,
        normalizer: Optional[ValueNormalizer] = None,
    ) -> None:
        self._config = config
        self._fingerprint_config = fingerprint_config or FingerprintConfig()
        self._normalizer = normalizer or ValueNormalizer(
            currency_symbols=config.currency_symbols,
            non_transaction_patterns=config.non_transaction_patterns,
        )

    def canonicalize(
        self,
        rows: Sequence[Sequence[str]],
        headers: Sequence[str],
        mapping: ColumnMapping,
        account: AccountContext,
        user_id: str,
    ) -> CanonicalizationResult:
        """Canonicalise every row.

        *mapping* must already have passed ``ColumnMapper.validate``.
        """
        header_list = list(headers)
        date_idx = header_list.index(mapping.date)
        amount_idx = header_list.index(mapping.amount)
        desc_idx = header_list.index(mapping.description)
        category_idx = (
            header_list.index(mapping.bank_category) if mapping.bank_category else None
        )
        ref_idx = self._reference_index(header_list, account)

        parsed: List[_ParsedRow] = []
        skipped = 0
        for row_number, row in enumerate(rows, start=1):
            result = self._parse_row(
                row, row_number, date_idx, amount_idx, desc_idx, category_idx, ref_idx
            )
            if result is None:
                skipped += 1
            else:
                parsed.append(result)

        fingerprints = fingerprint_many(
            [
                FingerprintInput(
                    user_id=user_id,
                    account_id=account.account_id,
                    posted_date=p.posted_date,
                    amount=p.amount,
                    normalized_description=p.normalized_description,
                )
                for p in parsed
            ],
            workers=self._fingerprint_config.workers,
        )

        canonical = [
            CanonicalTransaction(
                user_id=user_id,
                account_id=account.account_id,
                institution=account.institution,
                account_type=account.account_type,
                posted_date=p.posted_date,
                amount=p.amount,
                description=p.description,
                fingerprint=fp,
                bank_category=p.bank_category,
                source_ref=p.source_ref,
            )
            for p, fp in zip(parsed, fingerprints)
        ]

        logger.info(
            "Canonicalised %d row(s) for %s: emitted=%d, skipped_invalid=%d",
            len(rows),
            account.account_id,
            len(canonical),
            skipped,
        )
        return CanonicalizationResult(canonical=canonical, skipped_invalid_count=skipped)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _reference_index(
        self, headers: List[str], account: AccountContext
    ) -> Optional[int]:
        if account.account_type is not AccountType.CREDIT_CARD:
            return None
        for index, header in enumerate(headers):
            if normalize_cell(header) == self._config.reference_column:
                return index
        return None

    def _parse_row(
        self,
        row: Sequence[str],
        row_number: int,
        date_idx: int,
        amount_idx: int,
        desc_idx: int,
        category_idx: Optional[int],
        ref_idx: Optional[int],
    ) -> Optional[_ParsedRow]:
        raw_amount = _cell(row, amount_idx)
        raw_description = _cell(row, desc_idx)

        if not raw_amount.strip():
            logger.debug("Row %d skipped: empty amount", row_number)
            return None
        if self._normalizer.is_non_transaction(raw_description):
            logger.debug("Row %d skipped: non-transaction marker %r", row_number, raw_description)
            return None

        posted_date = self._normalizer.parse_date(_cell(row, date_idx))
        if posted_date is None:
            logger.debug("Row %d skipped: invalid date %r", row_number, _cell(row, date_idx))
            return None

        amount = self._normalizer.parse_amount(raw_amount)
        if amount is None:
            logger.debug("Row %d skipped: invalid amount %r", row_number, raw_amount)
            return None

        description = raw_description.strip()
        if not description:
            logger.debug("Row %d skipped: empty description", row_number)
            return None

        return _ParsedRow(
            posted_date=posted_date,
            amount=amount,
            description=description,
            normalized_description=self._normalizer.normalize_description(description),
            bank_category=_optional_cell(row, category_idx),
            source_ref=_optional_cell(row, ref_idx),
        )


def _cell(row: Sequence[str], index: int) -> str:
    return row[index] if index < len(row) else ""


def _optional_cell(row: Sequence[str], index: Optional[int]) -> Optional[str]:
    if index is None:
        return None
    value = _cell(row, index).strip()
    return value or None
