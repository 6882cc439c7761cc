"""
Deduplication Engine.

Decides, for each incoming canonical transaction, whether it is new or a
duplicate of something already persisted or already seen earlier in the
same batch.

Two uniqueness tiers are checked; either one marks a duplicate:

(a) source-ref key ``(user_id, account_id, institution, source, source_ref)``,
    used only when ``source_ref`` is non-empty after trimming;
(b) fingerprint key ``(user_id, account_id, fingerprint)``, always used.

The batch is scanned once in its original order and the first occurrence
wins.
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence, Set, Tuple

from statement_ingest.logging_setup import get_logger
from statement_ingest.schema import CanonicalTransaction, DedupResult

logger = get_logger("dedup")


class Dedupable(Protocol):
    """Anything carrying the identifying columns of a transaction."""

    user_id: str
    account_id: str
    institution: str
    source: str
    source_ref: Optional[str]
    fingerprint: str


SourceRefKey = Tuple[str, str, str, str, str]
FingerprintKey = Tuple[str, str, str]


def source_ref_key(tx: Dedupable) -> Optional[SourceRefKey]:
    ref = (tx.source_ref or "").strip()
    if not ref:
        return None
    institution = getattr(tx.institution, "value", tx.institution)
    return (tx.user_id, tx.account_id, institution, tx.source, ref)


def fingerprint_key(tx: Dedupable) -> FingerprintKey:
    return (tx.user_id, tx.account_id, tx.fingerprint)


def dedupe_transactions(
    incoming: Sequence[CanonicalTransaction],
    persisted: Iterable[Dedupable],
) -> DedupResult:
    """Partition *incoming* into imported and skipped duplicates.

    *persisted* may hold full transactions or ``PersistedKey`` records; only
    their identifying columns are read.
    """
    seen_refs: Set[SourceRefKey] = set()
    seen_fps: Set[FingerprintKey] = set()

    for tx in persisted:
        ref_key = source_ref_key(tx)
        if ref_key is not None:
            seen_refs.add(ref_key)
        seen_fps.add(fingerprint_key(tx))

    result = DedupResult()
    for tx in incoming:
        ref_key = source_ref_key(tx)
        fp_key = fingerprint_key(tx)

        dup_by_ref = ref_key is not None and ref_key in seen_refs
        dup_by_fp = fp_key in seen_fps
        if dup_by_ref or dup_by_fp:
            logger.debug(
                "Duplicate %s %s %s (by_ref=%s, by_fingerprint=%s)",
                tx.posted_date,
                tx.amount,
                tx.description,
                dup_by_ref,
                dup_by_fp,
            )
            result.skipped_duplicates.append(tx)
            continue

        result.imported.append(tx)
        if ref_key is not None:
            seen_refs.add(ref_key)
        seen_fps.add(fp_key)

    logger.info(
        "Dedup complete: imported=%d, skipped_duplicates=%d",
        result.imported_count,
        result.skipped_duplicates_count,
    )
    return result
