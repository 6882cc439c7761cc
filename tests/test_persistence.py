"""
Unit tests for the in-memory transaction store.
"""

from __future__ import annotations

import threading
from decimal import Decimal
from typing import Optional

import pytest

from statement_ingest.errors import DuplicateTransactionError
from statement_ingest.persistence import InMemoryTransactionStore
from statement_ingest.schema import (
    AccountType,
    CanonicalTransaction,
    Institution,
    PersistedKey,
)


def _tx(fingerprint: str, source_ref: Optional[str] = None) -> CanonicalTransaction:
    return CanonicalTransaction(
        user_id="user-1",
        account_id="chase-credit_card-1234",
        institution=Institution.CHASE,
        account_type=AccountType.CREDIT_CARD,
        posted_date="2026-02-01",
        amount=Decimal("-89.21"),
        description="UTILITY BILL",
        fingerprint=fingerprint,
        source_ref=source_ref,
    )


@pytest.fixture
def store() -> InMemoryTransactionStore:
    return InMemoryTransactionStore()


# ======================================================================
# Inserts and constraints
# ======================================================================

class TestInsert:
    def test_insert_and_keys(self, store: InMemoryTransactionStore) -> None:
        store.insert_many([_tx("fp-1", "REF1"), _tx("fp-2")])
        keys = store.persisted_keys("user-1", "chase-credit_card-1234")
        assert keys == [
            PersistedKey("user-1", "chase-credit_card-1234", Institution.CHASE, "fp-1", "REF1"),
            PersistedKey("user-1", "chase-credit_card-1234", Institution.CHASE, "fp-2", None),
        ]

    def test_fingerprint_constraint(self, store: InMemoryTransactionStore) -> None:
        store.insert_many([_tx("fp-1")])
        with pytest.raises(DuplicateTransactionError) as excinfo:
            store.insert_many([_tx("fp-1")])
        assert excinfo.value.http_status == 409

    def test_source_ref_constraint(self, store: InMemoryTransactionStore) -> None:
        store.insert_many([_tx("fp-1", "REF1")])
        with pytest.raises(DuplicateTransactionError):
            store.insert_many([_tx("fp-2", "REF1")])

    def test_null_source_refs_do_not_collide(self, store: InMemoryTransactionStore) -> None:
        store.insert_many([_tx("fp-1"), _tx("fp-2")])
        assert len(store.transactions("user-1", "chase-credit_card-1234")) == 2

    def test_batch_is_atomic(self, store: InMemoryTransactionStore) -> None:
        store.insert_many([_tx("fp-1")])
        with pytest.raises(DuplicateTransactionError):
            store.insert_many([_tx("fp-2"), _tx("fp-3"), _tx("fp-1")])
        stored = store.transactions("user-1", "chase-credit_card-1234")
        assert [t.fingerprint for t in stored] == ["fp-1"]

    def test_duplicate_within_batch_rejected(self, store: InMemoryTransactionStore) -> None:
        with pytest.raises(DuplicateTransactionError):
            store.insert_many([_tx("fp-1"), _tx("fp-1")])
        assert store.transactions("user-1", "chase-credit_card-1234") == []

    def test_clear(self, store: InMemoryTransactionStore) -> None:
        store.insert_many([_tx("fp-1")])
        store.clear()
        assert store.persisted_keys("user-1", "chase-credit_card-1234") == []
        store.insert_many([_tx("fp-1")])


# ======================================================================
# Account locks
# ======================================================================

class TestAccountLock:
    def test_same_account_serialised(self, store: InMemoryTransactionStore) -> None:
        entered = threading.Event()
        release = threading.Event()
        order: list[str] = []

        def holder() -> None:
            with store.account_lock("user-1", "acct"):
                order.append("holder-in")
                entered.set()
                release.wait(timeout=5)
                order.append("holder-out")

        def waiter() -> None:
            entered.wait(timeout=5)
            with store.account_lock("user-1", "acct"):
                order.append("waiter-in")

        t1 = threading.Thread(target=holder)
        t2 = threading.Thread(target=waiter)
        t1.start()
        t2.start()
        entered.wait(timeout=5)
        release.set()
        t1.join(timeout=5)
        t2.join(timeout=5)

        assert order == ["holder-in", "holder-out", "waiter-in"]

    def test_other_accounts_not_blocked(self, store: InMemoryTransactionStore) -> None:
        with store.account_lock("user-1", "acct-a"):
            acquired = threading.Event()

            def other() -> None:
                with store.account_lock("user-1", "acct-b"):
                    acquired.set()

            t = threading.Thread(target=other)
            t.start()
            assert acquired.wait(timeout=5)
            t.join(timeout=5)
