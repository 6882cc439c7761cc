"""
Column Mapping Layer.

Binds canonical fields (date, amount, description, optional bank category)
to concrete header names.

Guessing
--------
1. **Substring pass**: for each field, the first header whose normalised
   text contains one of the field's candidate substrings.
2. **Fuzzy pass** (opt-in): fields still unbound are scored against the
   remaining headers with ``rapidfuzz``.  Matches below
   ``fuzzy_threshold`` are rejected outright.

Validation
----------
A mapping may only progress to canonicalisation when every required field
is bound, every bound name is a real header, and no header is used twice.
Violations are reported, not raised; the caller decides whether to
re-prompt.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence

from rapidfuzz import fuzz

from statement_ingest.config import MappingConfig
from statement_ingest.header_detector import normalize_cell
from statement_ingest.logging_setup import get_logger
from statement_ingest.normalizer import ValueNormalizer
from statement_ingest.schema import (
    REQUIRED_FIELDS,
    ColumnMapping,
    MappingField,
    MappingReport,
    PreviewValidation,
)

logger = get_logger("column_mapper")


class ColumnMapper:
    """Guesses and validates field → column bindings.

    Parameters
    ----------
    config:
        Candidate substrings and fuzzy fallback settings.
    normalizer:
        Used by ``validate_preview`` to apply the same strict parsing the
        canonicaliser will.
    """

    def __init__(
        self,
        config: MappingConfig,
        normalizer: Optional[ValueNormalizer] = None,
    ) -> None:
        self._config = config
        self._normalizer = normalizer or ValueNormalizer()

    # ------------------------------------------------------------------ #
    # Guessing
    # ------------------------------------------------------------------ #

    def guess(self, headers: Sequence[str]) -> ColumnMapping:
        """Return the heuristic mapping for *headers*."""
        guesses: Dict[MappingField, str] = {}
        for mapping_field in MappingField:
            candidates = self._config.candidates.get(mapping_field.value, ())
            guesses[mapping_field] = guess_column(headers, candidates)

        if self._config.enable_fuzzy_fallback:
            self._fuzzy_fill(headers, guesses)

        mapping = ColumnMapping(
            date=guesses[MappingField.DATE],
            amount=guesses[MappingField.AMOUNT],
            description=guesses[MappingField.DESCRIPTION],
            bank_category=guesses[MappingField.BANK_CATEGORY],
        )
        logger.debug("Guessed mapping %s for headers %r", mapping.to_dict(), list(headers))
        return mapping

    def _fuzzy_fill(
        self, headers: Sequence[str], guesses: Dict[MappingField, str]
    ) -> None:
        taken = {v for v in guesses.values() if v}
        for mapping_field, current in guesses.items():
            if current:
                continue

            candidates = self._config.candidates.get(mapping_field.value, ())
            best_header = ""
            best_score = 0.0
            for header in headers:
                if header in taken:
                    continue
                norm = normalize_cell(header)
                for candidate in candidates:
                    score = fuzz.partial_ratio(candidate, norm)
                    if score > best_score:
                        best_header, best_score = header, score

            if best_header and best_score >= self._config.fuzzy_threshold:
                logger.warning(
                    "Fuzzy column guess: %s → %r (score=%.1f)",
                    mapping_field.value,
                    best_header,
                    best_score,
                )
                guesses[mapping_field] = best_header
                taken.add(best_header)
            else:
                logger.info(
                    "No column for %s (best fuzzy score %.1f below %.1f)",
                    mapping_field.value,
                    best_score,
                    self._config.fuzzy_threshold,
                )

    # ------------------------------------------------------------------ #
    # Validation
    # ------------------------------------------------------------------ #

    @staticmethod
    def validate(mapping: ColumnMapping, headers: Sequence[str]) -> MappingReport:
        """Run the mapping gate and return a ``MappingReport``."""
        report = MappingReport()

        for required in REQUIRED_FIELDS:
            if not mapping.get(required):
                report.errors.append(f"Required field not mapped: '{required.value}'")

        seen: Dict[str, str] = {}  # column → first field bound to it
        header_set = set(headers)
        for mapping_field in MappingField:
            column = mapping.get(mapping_field)
            if not column:
                continue
            if column not in header_set:
                report.errors.append(
                    f"Field '{mapping_field.value}' mapped to unknown column '{column}'"
                )
            if column in seen:
                report.errors.append(
                    f"Column '{column}' assigned to both '{seen[column]}' "
                    f"and '{mapping_field.value}'"
                )
            else:
                seen[column] = mapping_field.value

        for err in report.errors:
            logger.info("Mapping rejected: %s", err)
        return report

    def validate_preview(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        mapping: ColumnMapping,
    ) -> PreviewValidation:
        """List 1-indexed rows whose date or amount cell would be rejected."""
        result = PreviewValidation()
        if not mapping.date or not mapping.amount:
            return result
        if mapping.date not in headers or mapping.amount not in headers:
            return result

        date_idx = list(headers).index(mapping.date)
        amount_idx = list(headers).index(mapping.amount)

        for row_number, row in enumerate(rows, start=1):
            date_cell = row[date_idx] if date_idx < len(row) else ""
            amount_cell = row[amount_idx] if amount_idx < len(row) else ""
            if self._normalizer.parse_date(date_cell) is None:
                result.invalid_date_rows.append(row_number)
            if self._normalizer.parse_amount(amount_cell) is None:
                result.invalid_amount_rows.append(row_number)
        return result


def guess_column(headers: Sequence[str], candidates: Sequence[str]) -> str:
    """First header containing any candidate substring, else ``""``."""
    for header in headers:
        norm = normalize_cell(header)
        if any(candidate in norm for candidate in candidates):
            return header
    return ""

