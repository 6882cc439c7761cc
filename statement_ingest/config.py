"""
Configuration module for Statement Ingest.

All tuneable parameters (header vocabularies, candidate lists, patterns,
feature flags) live here.  Nothing is hard-coded in business logic modules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class DetectionConfig:
    """Controls header detection and account classification."""

    # A line is the header when its normalised cells contain every entry of
    # at least one vocabulary.
    header_vocabularies: Tuple[Tuple[str, ...], ...] = (
        ("date", "description", "amount"),
        ("posted date", "payee", "amount"),
    )

    # Data rows returned with a preview.
    preview_row_limit: int = 20

    # Ordered (institution, tokens) rules; the first rule with a token found
    # in the combined search text wins.
    institution_rules: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
        ("chase", ("chase",)),
    )

    default_institution: str = "boa"

    # Metadata keys probed for the account/card number, highest priority first.
    account_number_keys: Tuple[str, ...] = (
        "account number",
        "account #",
        "card number",
        "account",
    )


@dataclass(frozen=True)
class MappingConfig:
    """Controls the column mapper's guesses."""

    # Field → substrings looked for in normalised header text.
    candidates: Dict[str, Tuple[str, ...]] = field(
        default_factory=lambda: {
            "date": ("date", "posted"),
            "amount": ("amount", "amt", "debit", "credit"),
            "description": ("description", "payee", "memo", "merchant"),
            "bankCategory": ("category", "bankcategory", "type"),
        }
    )

    # Fuzzy fallback for fields the substring pass left unbound.
    enable_fuzzy_fallback: bool = False

    # Minimum rapidfuzz partial_ratio (0–100) for a fuzzy guess.
    fuzzy_threshold: float = 85.0


@dataclass(frozen=True)
class CanonicalizationConfig:
    """Controls row canonicalisation."""

    # Regexes (case-insensitive, matched at the start of the trimmed
    # description) that mark a row as a non-transaction.
    non_transaction_patterns: Tuple[str, ...] = (
        r"beginning\s+balance\b",
    )

    currency_symbols: str = "$€£¥₹"

    # Header name (normalised) that carries the institution's stable id.
    reference_column: str = "reference number"


@dataclass(frozen=True)
class FingerprintConfig:
    """Controls fingerprint computation."""

    # Values above 1 hash rows on a thread pool; output order is preserved.
    workers: int = 1


@dataclass(frozen=True)
class PipelineConfig:
    """Top-level configuration aggregating all sub-configs."""

    detection: DetectionConfig = field(default_factory=DetectionConfig)
    mapping: MappingConfig = field(default_factory=MappingConfig)
    canonicalization: CanonicalizationConfig = field(
        default_factory=CanonicalizationConfig
    )
    fingerprint: FingerprintConfig = field(default_factory=FingerprintConfig)

    # Logging level for the import audit trail
    log_level: int = logging.INFO

    # Extra file sink for the audit trail; console only when None.
    log_file: Optional[str] = None
