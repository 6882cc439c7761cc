"""
Canonical transaction schema and data models.

Defines the target shape that every statement row is mapped into and the
typed data structures carried through the import pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Vocabularies
# ---------------------------------------------------------------------------

class Institution(str, Enum):
    """Issuing institutions the classifier can recognise."""

    BOA = "boa"
    CHASE = "chase"


class AccountType(str, Enum):
    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT_CARD = "credit_card"


ACCOUNT_TYPE_LABELS: Dict[AccountType, str] = {
    AccountType.CHECKING: "Checking",
    AccountType.SAVINGS: "Savings",
    AccountType.CREDIT_CARD: "Credit card",
}


class MappingField(str, Enum):
    """
    Canonical fields a CSV column can be bound to.

    The ``.value`` is the external field name used in mapping payloads.
    """

    DATE = "date"
    AMOUNT = "amount"
    DESCRIPTION = "description"
    BANK_CATEGORY = "bankCategory"


REQUIRED_FIELDS: tuple[MappingField, ...] = (
    MappingField.DATE,
    MappingField.AMOUNT,
    MappingField.DESCRIPTION,
)

SOURCE_CSV = "csv"


# ---------------------------------------------------------------------------
# Account context
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AccountContext:
    """Where a statement came from.  Derived once per file."""

    institution: Institution
    account_type: AccountType
    account_id: str
    account_name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "institution": self.institution.value,
            "accountType": self.account_type.value,
            "accountId": self.account_id,
            "accountName": self.account_name,
        }


# ---------------------------------------------------------------------------
# Column mapping
# ---------------------------------------------------------------------------

@dataclass
class ColumnMapping:
    """Canonical field → source column name.  Empty string means unbound."""

    date: str = ""
    amount: str = ""
    description: str = ""
    bank_category: str = ""

    def get(self, mapping_field: MappingField) -> str:
        return {
            MappingField.DATE: self.date,
            MappingField.AMOUNT: self.amount,
            MappingField.DESCRIPTION: self.description,
            MappingField.BANK_CATEGORY: self.bank_category,
        }[mapping_field]

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ColumnMapping":
        """Build from a flat ``{date, amount, ...}`` payload or the nested
        ``{"required": {...}, "optional": {...}}`` shape the upload page posts.
        """
        if "required" in payload or "optional" in payload:
            required = payload.get("required") or {}
            optional = payload.get("optional") or {}
            return cls(
                date=str(required.get("Date") or "").strip(),
                amount=str(required.get("Amount") or "").strip(),
                description=str(required.get("Description") or "").strip(),
                bank_category=str(optional.get("BankCategory") or "").strip(),
            )

        return cls(
            date=str(payload.get("date") or "").strip(),
            amount=str(payload.get("amount") or "").strip(),
            description=str(payload.get("description") or "").strip(),
            bank_category=str(
                payload.get("bankCategory") or payload.get("bank_category") or ""
            ).strip(),
        )

    def to_dict(self) -> dict[str, str]:
        return {f.value: self.get(f) for f in MappingField}


@dataclass
class MappingReport:
    """Outcome of the mapping gate."""

    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0


@dataclass
class PreviewValidation:
    """1-indexed preview rows whose date or amount would be rejected."""

    invalid_date_rows: list[int] = field(default_factory=list)
    invalid_amount_rows: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, list[int]]:
        return {
            "invalidDateRows": self.invalid_date_rows,
            "invalidAmountRows": self.invalid_amount_rows,
        }


# ---------------------------------------------------------------------------
# Parsed statement / preview
# ---------------------------------------------------------------------------

@dataclass
class ParsedStatement:
    """Full detection output: every data row, padded to the header width."""

    headers: list[str]
    rows: list[list[str]]
    metadata: Dict[str, str]
    header_index: int
    detection: AccountContext


@dataclass
class PreviewResult:
    """What the upload step shows the user before mapping."""

    headers: list[str]
    rows: list[list[str]]
    detection: AccountContext
    total_row_count: int
    metadata: Dict[str, str] = field(default_factory=dict)
    header_index: int = 0

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def to_dict(self) -> dict[str, Any]:
        return {
            "headers": self.headers,
            "rows": self.rows,
            "rowCount": self.row_count,
            "totalRowCount": self.total_row_count,
            "detection": self.detection.to_dict(),
            "metadata": self.metadata,
        }


# ---------------------------------------------------------------------------
# Canonical transactions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CanonicalTransaction:
    """One imported financial movement in institution-agnostic form."""

    user_id: str
    account_id: str
    institution: Institution
    account_type: AccountType
    posted_date: str  # YYYY-MM-DD
    amount: Decimal
    description: str
    fingerprint: str
    bank_category: Optional[str] = None
    source_ref: Optional[str] = None
    source: str = SOURCE_CSV

    def to_dict(self) -> dict[str, Any]:
        return {
            "institution": self.institution.value,
            "source": self.source,
            "accountType": self.account_type.value,
            "postedDateISO": self.posted_date,
            "amountNumber": float(self.amount),
            "description": self.description,
            "bankCategory": self.bank_category,
            "source_ref": self.source_ref,
            "fingerprint": self.fingerprint,
            "userId": self.user_id,
            "accountId": self.account_id,
        }


@dataclass(frozen=True)
class PersistedKey:
    """The identifying columns of a stored transaction.

    This is all the dedup engine needs from the persistence layer.
    """

    user_id: str
    account_id: str
    institution: Institution
    fingerprint: str
    source_ref: Optional[str] = None
    source: str = SOURCE_CSV

    @classmethod
    def of(cls, tx: CanonicalTransaction) -> "PersistedKey":
        return cls(
            user_id=tx.user_id,
            account_id=tx.account_id,
            institution=tx.institution,
            fingerprint=tx.fingerprint,
            source_ref=tx.source_ref,
            source=tx.source,
        )


@dataclass
class CanonicalizationResult:
    canonical: list[CanonicalTransaction] = field(default_factory=list)
    skipped_invalid_count: int = 0


@dataclass
class DedupResult:
    """Partition of an incoming batch into new and duplicate transactions."""

    imported: list[CanonicalTransaction] = field(default_factory=list)
    skipped_duplicates: list[CanonicalTransaction] = field(default_factory=list)

    @property
    def imported_count(self) -> int:
        return len(self.imported)

    @property
    def skipped_duplicates_count(self) -> int:
        return len(self.skipped_duplicates)

    def to_dict(self) -> dict[str, Any]:
        return {
            "imported": [tx.to_dict() for tx in self.imported],
            "skippedDuplicates": [tx.to_dict() for tx in self.skipped_duplicates],
            "imported_count": self.imported_count,
            "skipped_duplicates_count": self.skipped_duplicates_count,
        }


@dataclass
class ImportResult:
    """Aggregate result of a full import run."""

    detection: AccountContext
    dedup: DedupResult
    skipped_invalid_count: int = 0

    @property
    def imported_count(self) -> int:
        return self.dedup.imported_count

    @property
    def skipped_duplicates_count(self) -> int:
        return self.dedup.skipped_duplicates_count

    def to_dict(self) -> dict[str, Any]:
        payload = self.dedup.to_dict()
        payload["skipped_invalid_count"] = self.skipped_invalid_count
        payload["detection"] = self.detection.to_dict()
        return payload
