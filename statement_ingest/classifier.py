"""
Institution & Account Classification Layer.

Infers where a statement came from using the header shape, the metadata
block, the filename, and the raw file text.

Institution detection is an ordered rule list where the first match wins.
This is a heuristic: a file that mentions several institutions is
attributed to whichever rule comes first.
"""

from __future__ import annotations

import re
from typing import List, Mapping, Sequence

from statement_ingest.config import DetectionConfig
from statement_ingest.header_detector import normalize_cell
from statement_ingest.logging_setup import get_logger
from statement_ingest.schema import (
    ACCOUNT_TYPE_LABELS,
    AccountContext,
    AccountType,
    Institution,
)

logger = get_logger("classifier")

_NON_DIGIT_RE = re.compile(r"\D")


class AccountClassifier:
    """Derives an ``AccountContext`` for one statement file.

    Parameters
    ----------
    config:
        Institution rules and metadata key priorities.
    """

    def __init__(self, config: DetectionConfig) -> None:
        self._config = config
        self._rules: List[tuple[Institution, tuple[str, ...]]] = [
            (Institution(name), tuple(t.lower() for t in tokens))
            for name, tokens in config.institution_rules
        ]
        self._default = Institution(config.default_institution)

    def classify(
        self,
        raw_text: str,
        filename: str,
        headers: Sequence[str],
        metadata: Mapping[str, str],
    ) -> AccountContext:
        institution = self.detect_institution(raw_text, filename, metadata)
        account_type = self.detect_account_type(headers, metadata)
        account_number = self.detect_account_number(metadata)

        context = AccountContext(
            institution=institution,
            account_type=account_type,
            account_id=build_account_id(institution, account_type, account_number),
            account_name=self.detect_account_name(metadata, account_type),
        )
        logger.info(
            "Classified %r as %s/%s (account_id=%s)",
            filename,
            institution.value,
            account_type.value,
            context.account_id,
        )
        return context

    # ------------------------------------------------------------------ #
    # Individual detectors
    # ------------------------------------------------------------------ #

    def detect_institution(
        self, raw_text: str, filename: str, metadata: Mapping[str, str]
    ) -> Institution:
        metadata_text = " ".join(f"{k} {v}" for k, v in metadata.items())
        combined = f"{raw_text} {filename} {metadata_text}".lower()

        for institution, tokens in self._rules:
            if any(token in combined for token in tokens):
                return institution
        return self._default

    @staticmethod
    def detect_account_type(
        headers: Sequence[str], metadata: Mapping[str, str]
    ) -> AccountType:
        normalized_headers = {normalize_cell(h) for h in headers}
        if "reference number" in normalized_headers or "card number" in metadata:
            return AccountType.CREDIT_CARD

        label = metadata.get("account type")
        if label is None:
            label = metadata.get("account", "")
        if "saving" in normalize_cell(label):
            return AccountType.SAVINGS

        return AccountType.CHECKING

    def detect_account_number(self, metadata: Mapping[str, str]) -> str:
        for key in self._config.account_number_keys:
            if key in metadata:
                return metadata[key].strip()
        return ""

    @staticmethod
    def detect_account_name(
        metadata: Mapping[str, str], account_type: AccountType
    ) -> str:
        explicit = metadata.get("account name")
        if explicit is None:
            explicit = metadata.get("account", "")
        explicit = explicit.strip()
        return explicit or ACCOUNT_TYPE_LABELS[account_type]


def build_account_id(
    institution: Institution, account_type: AccountType, account_number: str
) -> str:
    """``institution-type`` plus the last four digits of the number, if any."""
    digits = _NON_DIGIT_RE.sub("", account_number)
    base = f"{institution.value}-{account_type.value}"
    if digits:
        return f"{base}-{digits[-4:]}"
    return base

