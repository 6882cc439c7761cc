"""
Persistence contract for imported transactions.

The import pipeline only needs three things from storage:

* the identifying keys of everything already stored for an account,
* an atomic batch insert that enforces both uniqueness constraints,
* a per-account lock so two imports for the same account cannot both see
  the same snapshot.

``InMemoryTransactionStore`` implements that contract for the API server
and tests.  A database-backed store should map the two constraints to
unique indexes: ``(user_id, account_id, institution, source, source_ref)``
where ``source_ref`` is not null, and ``(user_id, account_id, fingerprint)``.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import ContextManager, Dict, Iterator, List, Protocol, Sequence, Tuple

from statement_ingest.dedup import fingerprint_key, source_ref_key
from statement_ingest.errors import DuplicateTransactionError
from statement_ingest.logging_setup import get_logger
from statement_ingest.schema import CanonicalTransaction, PersistedKey

logger = get_logger("persistence")


class TransactionStore(Protocol):
    def persisted_keys(self, user_id: str, account_id: str) -> List[PersistedKey]:
        ...

    def insert_many(self, transactions: Sequence[CanonicalTransaction]) -> None:
        ...

    def account_lock(self, user_id: str, account_id: str) -> ContextManager[None]:
        ...


class InMemoryTransactionStore:
    """Thread-safe, process-local ``TransactionStore``."""

    def __init__(self) -> None:
        self._rows: Dict[Tuple[str, str], List[CanonicalTransaction]] = {}
        self._refs: set = set()
        self._fps: set = set()
        self._write_lock = threading.Lock()
        self._registry_lock = threading.Lock()
        self._account_locks: Dict[Tuple[str, str], threading.Lock] = {}

    # ------------------------------------------------------------------ #
    # TransactionStore
    # ------------------------------------------------------------------ #

    def persisted_keys(self, user_id: str, account_id: str) -> List[PersistedKey]:
        with self._write_lock:
            rows = list(self._rows.get((user_id, account_id), []))
        return [PersistedKey.of(tx) for tx in rows]

    def insert_many(self, transactions: Sequence[CanonicalTransaction]) -> None:
        """Insert all of *transactions* or none of them.

        Raises
        ------
        DuplicateTransactionError
            If any row collides with a stored row or with another row of the
            same batch.
        """
        with self._write_lock:
            batch_refs: set = set()
            batch_fps: set = set()
            for tx in transactions:
                ref_key = source_ref_key(tx)
                fp_key = fingerprint_key(tx)
                if ref_key is not None and (ref_key in self._refs or ref_key in batch_refs):
                    raise DuplicateTransactionError(
                        f"Duplicate source_ref {tx.source_ref!r} for account {tx.account_id}",
                        details={"source_ref": tx.source_ref},
                    )
                if fp_key in self._fps or fp_key in batch_fps:
                    raise DuplicateTransactionError(
                        f"Duplicate fingerprint for account {tx.account_id}",
                        details={"fingerprint": tx.fingerprint},
                    )
                if ref_key is not None:
                    batch_refs.add(ref_key)
                batch_fps.add(fp_key)

            for tx in transactions:
                self._rows.setdefault((tx.user_id, tx.account_id), []).append(tx)
            self._refs |= batch_refs
            self._fps |= batch_fps

        logger.info("Stored %d transaction(s)", len(transactions))

    @contextmanager
    def account_lock(self, user_id: str, account_id: str) -> Iterator[None]:
        with self._registry_lock:
            lock = self._account_locks.setdefault((user_id, account_id), threading.Lock())
        with lock:
            yield

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def transactions(self, user_id: str, account_id: str) -> List[CanonicalTransaction]:
        with self._write_lock:
            return list(self._rows.get((user_id, account_id), []))

    def clear(self) -> None:
        with self._write_lock:
            self._rows.clear()
            self._refs.clear()
            self._fps.clear()
