"""
Statement Ingest: CSV bank statement canonicalisation and dedup engine.

Reads bank and credit-card CSV exports of loosely structured layout,
detects the header and account they belong to, maps their columns to a
canonical transaction shape, and drops anything already imported.

Re-importing overlapping statements never produces duplicate records:
every transaction carries a content fingerprint and, where the bank
provides one, a stable source reference.
"""

__version__ = "1.0.0"
__author__ = "Statement Ingest Team"

from statement_ingest.pipeline import StatementImportPipeline  # noqa: F401
