"""
Transaction fingerprinting for deduplication.

A fingerprint is the SHA-256 hex digest of a compact JSON array holding
``[user_id, account_id, posted_date, amount, normalized_description]``.
JSON keeps the fields distinguishable no matter what characters they hold,
and the digest depends on nothing but those five values.
"""

from __future__ import annotations

import hashlib
import json
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Sequence

from statement_ingest.normalizer import canonical_amount


@dataclass(frozen=True)
class FingerprintInput:
    user_id: str
    account_id: str
    posted_date: str
    amount: Decimal
    normalized_description: str


def compute_fingerprint(
    user_id: str,
    account_id: str,
    posted_date: str,
    amount: Decimal,
    normalized_description: str,
) -> str:
    """Return the 64-character lowercase hex fingerprint of one transaction."""
    payload = [
        user_id,
        account_id,
        posted_date,
        canonical_amount(amount),
        normalized_description,
    ]
    data = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def _fingerprint_one(item: FingerprintInput) -> str:
    return compute_fingerprint(
        item.user_id,
        item.account_id,
        item.posted_date,
        item.amount,
        item.normalized_description,
    )


def fingerprint_many(items: Sequence[FingerprintInput], workers: int = 1) -> List[str]:
    """Fingerprint every item, optionally on a thread pool.

    The result is in input order whatever ``workers`` is.
    """
    if workers < 1:
        raise ValueError("workers must be a positive integer")

    if workers == 1 or len(items) < 2:
        return [_fingerprint_one(item) for item in items]

    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(_fingerprint_one, items))
