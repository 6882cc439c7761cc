"""
Unit tests for the dedup engine.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from statement_ingest.dedup import dedupe_transactions
from statement_ingest.schema import (
    AccountType,
    CanonicalTransaction,
    Institution,
    PersistedKey,
)


def _tx(
    fingerprint: str,
    source_ref: Optional[str] = None,
    user_id: str = "user-1",
    account_id: str = "boa-credit_card-1234",
    description: str = "X",
) -> CanonicalTransaction:
    return CanonicalTransaction(
        user_id=user_id,
        account_id=account_id,
        institution=Institution.BOA,
        account_type=AccountType.CREDIT_CARD,
        posted_date="2026-01-02",
        amount=Decimal("-5.75"),
        description=description,
        fingerprint=fingerprint,
        source_ref=source_ref,
    )


# ======================================================================
# Batch-internal duplicates
# ======================================================================

class TestWithinBatch:
    def test_identical_rows_first_wins(self) -> None:
        first, second = _tx("fp-a", description="first"), _tx("fp-a", description="second")
        result = dedupe_transactions([first, second], [])
        assert result.imported == [first]
        assert result.skipped_duplicates == [second]
        assert result.imported_count == 1
        assert result.skipped_duplicates_count == 1

    def test_distinct_rows_all_imported(self) -> None:
        batch = [_tx("fp-a"), _tx("fp-b"), _tx("fp-c")]
        result = dedupe_transactions(batch, [])
        assert result.imported == batch
        assert result.skipped_duplicates_count == 0

    def test_order_preserved(self) -> None:
        batch = [_tx("fp-c"), _tx("fp-a"), _tx("fp-c"), _tx("fp-b"), _tx("fp-a")]
        result = dedupe_transactions(batch, [])
        assert [t.fingerprint for t in result.imported] == ["fp-c", "fp-a", "fp-b"]
        assert [t.fingerprint for t in result.skipped_duplicates] == ["fp-c", "fp-a"]


# ======================================================================
# Against persisted records
# ======================================================================

class TestAgainstPersisted:
    def test_idempotent_reimport(self) -> None:
        batch = [_tx(f"fp-{i}", source_ref=f"REF{i}" if i % 2 else None) for i in range(6)]
        first = dedupe_transactions(batch, [])
        assert first.imported_count == 6
        assert first.skipped_duplicates_count == 0

        second = dedupe_transactions(batch, first.imported)
        assert second.imported_count == 0
        assert second.skipped_duplicates_count == 6

    def test_persisted_keys_accepted(self) -> None:
        persisted = [
            PersistedKey(
                user_id="user-1",
                account_id="boa-credit_card-1234",
                institution=Institution.BOA,
                fingerprint="fp-a",
            )
        ]
        result = dedupe_transactions([_tx("fp-a"), _tx("fp-b")], persisted)
        assert [t.fingerprint for t in result.imported] == ["fp-b"]

    def test_scope_is_per_user_and_account(self) -> None:
        persisted = [_tx("fp-a", user_id="user-2"), _tx("fp-a", account_id="other")]
        result = dedupe_transactions([_tx("fp-a")], persisted)
        assert result.imported_count == 1


# ======================================================================
# Source-ref tier
# ======================================================================

class TestSourceRef:
    def test_same_ref_different_fingerprint_is_duplicate(self) -> None:
        persisted = [_tx("fp-original", source_ref="ABC123")]
        corrected = _tx("fp-corrected", source_ref="ABC123", description="corrected")
        result = dedupe_transactions([corrected], persisted)
        assert result.skipped_duplicates == [corrected]

    def test_ref_is_trimmed(self) -> None:
        result = dedupe_transactions(
            [_tx("fp-1", source_ref="ABC123"), _tx("fp-2", source_ref="  ABC123 ")], []
        )
        assert result.imported_count == 1
        assert result.skipped_duplicates_count == 1

    def test_blank_ref_falls_back_to_fingerprint(self) -> None:
        result = dedupe_transactions(
            [_tx("fp-1", source_ref="  "), _tx("fp-2", source_ref="  ")], []
        )
        assert result.imported_count == 2

    def test_different_ref_same_fingerprint_is_duplicate(self) -> None:
        result = dedupe_transactions(
            [_tx("fp-1", source_ref="A"), _tx("fp-1", source_ref="B")], []
        )
        assert result.imported_count == 1
        assert result.skipped_duplicates_count == 1


class TestSerialisation:
    def test_to_dict_counts(self) -> None:
        d = dedupe_transactions([_tx("fp-a"), _tx("fp-a")], []).to_dict()
        assert d["imported_count"] == 1
        assert d["skipped_duplicates_count"] == 1
        assert d["imported"][0]["amountNumber"] == -5.75
        assert d["imported"][0]["postedDateISO"] == "2026-01-02"
        assert d["imported"][0]["source_ref"] is None
