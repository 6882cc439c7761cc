"""
Pipeline Orchestrator.

The central entry point that wires together every layer:

    Raw CSV  →  Tokenizer  →  Header Detector  →  Account Classifier
             →  Column Mapper  →  Row Canonicaliser (+ fingerprints)
             →  Dedup Engine  →  (optional) Transaction Store

Usage
-----
>>> from statement_ingest.pipeline import StatementImportPipeline
>>> from statement_ingest.persistence import InMemoryTransactionStore
>>>
>>> pipe = StatementImportPipeline()
>>> preview = pipe.preview(csv_text, "boa-checking.csv")
>>> result = pipe.import_statement(csv_text, "boa-checking.csv", "user-1",
...                                InMemoryTransactionStore())
>>> print(result.to_dict())
"""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

from statement_ingest.canonicalizer import RowCanonicalizer
from statement_ingest.classifier import AccountClassifier
from statement_ingest.column_mapper import ColumnMapper
from statement_ingest.config import PipelineConfig
from statement_ingest.dedup import Dedupable, dedupe_transactions
from statement_ingest.errors import ColumnMappingError
from statement_ingest.header_detector import HeaderDetector
from statement_ingest.logging_setup import configure_logging, get_logger
from statement_ingest.normalizer import ValueNormalizer
from statement_ingest.persistence import TransactionStore
from statement_ingest.schema import (
    AccountContext,
    CanonicalizationResult,
    CanonicalTransaction,
    ColumnMapping,
    DedupResult,
    ImportResult,
    MappingReport,
    ParsedStatement,
    PreviewResult,
    PreviewValidation,
)

logger = get_logger("pipeline")


class StatementImportPipeline:
    """Orchestrates preview, canonicalisation, and dedup for CSV statements.

    Parameters
    ----------
    config:
        All tuneable knobs.  Defaults match the supported bank exports.
    """

    def __init__(self, config: Optional[PipelineConfig] = None) -> None:
        self._config = config or PipelineConfig()

        # Bootstrap logging before anything else
        configure_logging(
            level=self._config.log_level, log_file=self._config.log_file
        )

        canon_cfg = self._config.canonicalization
        self._normalizer = ValueNormalizer(
            currency_symbols=canon_cfg.currency_symbols,
            non_transaction_patterns=canon_cfg.non_transaction_patterns,
        )
        self._detector = HeaderDetector(config=self._config.detection)
        self._classifier = AccountClassifier(config=self._config.detection)
        self._mapper = ColumnMapper(
            config=self._config.mapping, normalizer=self._normalizer
        )
        self._canonicalizer = RowCanonicalizer(
            config=canon_cfg,
            fingerprint_config=self._config.fingerprint,
            normalizer=self._normalizer,
        )

        logger.info(
            "Pipeline initialised: vocabularies=%d, preview_limit=%d, "
            "fuzzy_columns=%s, fingerprint_workers=%d",
            len(self._config.detection.header_vocabularies),
            self._config.detection.preview_row_limit,
            self._config.mapping.enable_fuzzy_fallback,
            self._config.fingerprint.workers,
        )

    # ------------------------------------------------------------------ #
    # Upload / preview
    # ------------------------------------------------------------------ #

    def parse(
        self,
        raw_text: str,
        filename: str,
        account_override: Optional[AccountContext] = None,
    ) -> ParsedStatement:
        """Detect headers, metadata, and account context over every row."""
        table = self._detector.detect(raw_text)
        detection = account_override or self._classifier.classify(
            raw_text, filename, table.headers, table.metadata
        )
        return ParsedStatement(
            headers=table.headers,
            rows=table.rows,
            metadata=table.metadata,
            header_index=table.header_index,
            detection=detection,
        )

    def preview(
        self,
        raw_text: str,
        filename: str,
        account_override: Optional[AccountContext] = None,
    ) -> PreviewResult:
        """Parse and return the first rows for display.

        Raises
        ------
        StatementParseError
            Empty input, unterminated quote, or no recognisable header.
        """
        parsed = self.parse(raw_text, filename, account_override)
        limit = self._config.detection.preview_row_limit
        return PreviewResult(
            headers=parsed.headers,
            rows=parsed.rows[:limit],
            detection=parsed.detection,
            total_row_count=len(parsed.rows),
            metadata=parsed.metadata,
            header_index=parsed.header_index,
        )

    # ------------------------------------------------------------------ #
    # Mapping
    # ------------------------------------------------------------------ #

    def suggest_mapping(self, headers: Sequence[str]) -> ColumnMapping:
        return self._mapper.guess(headers)

    def validate_mapping(
        self, mapping: ColumnMapping, headers: Sequence[str]
    ) -> MappingReport:
        return self._mapper.validate(mapping, headers)

    def validate_preview(
        self, preview: PreviewResult, mapping: ColumnMapping
    ) -> PreviewValidation:
        return self._mapper.validate_preview(preview.headers, preview.rows, mapping)

    # ------------------------------------------------------------------ #
    # Canonicalisation / dedup
    # ------------------------------------------------------------------ #

    def canonicalize(
        self,
        rows: Sequence[Sequence[str]],
        headers: Sequence[str],
        mapping: ColumnMapping,
        account_context: AccountContext,
        user_id: str,
    ) -> CanonicalizationResult:
        """Canonicalise *rows* after checking the mapping gate.

        Raises
        ------
        ColumnMappingError
            The mapping is incomplete, names unknown columns, or reuses one.
        """
        report = self._mapper.validate(mapping, headers)
        if not report.is_valid:
            raise ColumnMappingError(report.errors)
        return self._canonicalizer.canonicalize(
            rows, headers, mapping, account_context, user_id
        )

    @staticmethod
    def dedupe(
        incoming: Sequence[CanonicalTransaction],
        persisted: Iterable[Dedupable],
    ) -> DedupResult:
        return dedupe_transactions(incoming, persisted)

    # ------------------------------------------------------------------ #
    # Full import
    # ------------------------------------------------------------------ #

    def import_statement(
        self,
        raw_text: str,
        filename: str,
        user_id: str,
        store: TransactionStore,
        mapping: Optional[ColumnMapping] = None,
        account_override: Optional[AccountContext] = None,
    ) -> ImportResult:
        """Parse, canonicalise, dedup, and store one statement.

        When *mapping* is omitted the heuristic guess is used.  The persisted
        snapshot and the insert happen under the store's per-account lock, so
        the batch is stored entirely or not at all.
        """
        parsed = self.parse(raw_text, filename, account_override)
        if mapping is None:
            mapping = self.suggest_mapping(parsed.headers)

        canon = self.canonicalize(
            parsed.rows, parsed.headers, mapping, parsed.detection, user_id
        )

        account_id = parsed.detection.account_id
        with store.account_lock(user_id, account_id):
            persisted = store.persisted_keys(user_id, account_id)
            dedup = self.dedupe(canon.canonical, persisted)
            if dedup.imported:
                store.insert_many(dedup.imported)

        logger.info(
            "Import of %r for %s/%s complete: imported=%d, duplicates=%d, invalid=%d",
            filename,
            user_id,
            account_id,
            dedup.imported_count,
            dedup.skipped_duplicates_count,
            canon.skipped_invalid_count,
        )
        return ImportResult(
            detection=parsed.detection,
            dedup=dedup,
            skipped_invalid_count=canon.skipped_invalid_count,
        )
