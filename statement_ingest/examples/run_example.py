#!/usr/bin/env python3
"""
Example: Statement Import Pipeline Demo.

Walks a checking export and a credit-card export through preview,
mapping, canonicalisation, and dedup, then re-imports the checking
export to show that nothing is stored twice.

Run from the project root:
    python -m statement_ingest.examples.run_example
"""

from __future__ import annotations

import json
import logging

from statement_ingest.config import PipelineConfig
from statement_ingest.persistence import InMemoryTransactionStore
from statement_ingest.pipeline import StatementImportPipeline


BOA_CHECKING_CSV = "\n".join([
    "Description,,Summary Amt.",
    "Account Number,123456789",
    "Statement Period,01/01/2026 - 01/31/2026",
    "",
    "Date,Description,Amount,Running Bal.",
    "01/01/2026,Beginning balance as of 01/01/2026,,1000.00",
    "01/02/2026,COFFEE SHOP,-5.75,994.25",
    '01/03/2026,"PAYROLL, ACME INC","1,200.00",2194.25',
    "01/03/2026,COFFEE  SHOP,-5.75,2188.50",
    "02/30/2026,BAD DATE ROW,-1.00,2187.50",
])

CHASE_CREDIT_CSV = "\n".join([
    "Card Number,****1234",
    "Posted Date,Payee,Amount,Reference Number,Category",
    "02/01/2026,UTILITY BILL,(89.21),REF001,Utilities",
    "02/03/2026,GROCERY MART,$54.10,REF002,Groceries",
    "02/03/2026,GROCERY MART (corrected),$54.10,REF002,Groceries",
])


# ======================================================================
# Helper
# ======================================================================

def print_section(title: str) -> None:
    width = 72
    print("\n" + "=" * width)
    print(f"  {title}")
    print("=" * width)


def print_result(result) -> None:  # noqa: ANN001
    """Pretty-print an ImportResult."""
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    print(f"\n  Imported            : {result.imported_count}")
    print(f"  Skipped duplicates  : {result.skipped_duplicates_count}")
    print(f"  Skipped invalid     : {result.skipped_invalid_count}")


# ======================================================================
# Demos
# ======================================================================

def demo_preview(pipeline: StatementImportPipeline) -> None:
    print_section("DEMO 1: Preview and mapping guess")

    preview = pipeline.preview(BOA_CHECKING_CSV, "statement.csv")
    mapping = pipeline.suggest_mapping(preview.headers)
    print(json.dumps(preview.to_dict(), indent=2))
    print("\n  Suggested mapping:", mapping.to_dict())
    print("  Preview validation:", pipeline.validate_preview(preview, mapping).to_dict())


def demo_import(pipeline: StatementImportPipeline, store: InMemoryTransactionStore) -> None:
    print_section("DEMO 2: Import checking export")
    print_result(pipeline.import_statement(BOA_CHECKING_CSV, "statement.csv", "demo-user", store))

    print_section("DEMO 3: Import credit-card export (source_ref dedup)")
    print_result(pipeline.import_statement(CHASE_CREDIT_CSV, "chase-card.csv", "demo-user", store))


def demo_reimport(pipeline: StatementImportPipeline, store: InMemoryTransactionStore) -> None:
    print_section("DEMO 4: Re-import checking export")
    print_result(pipeline.import_statement(BOA_CHECKING_CSV, "statement.csv", "demo-user", store))


# ======================================================================
# Main
# ======================================================================

def main() -> None:
    pipeline = StatementImportPipeline(
        PipelineConfig(log_level=logging.WARNING)  # Quieter for demo output
    )
    store = InMemoryTransactionStore()

    demo_preview(pipeline)
    demo_import(pipeline, store)
    demo_reimport(pipeline, store)

    print("\n" + "=" * 72)
    print("  All demos complete.")
    print("=" * 72)


if __name__ == "__main__":
    main()
