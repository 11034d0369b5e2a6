#!/usr/bin/env python3
"""
Bank statement import CLI

Imports transactions from statement text (the output of a PDF-to-text step).
"""
import argparse
import sys
from pathlib import Path

from finance_ingest.cli.common import (
    build_categorizer,
    build_rate_limiter,
    build_store,
    connect,
    load_pool,
    print_result,
    setup_logging,
)
from finance_ingest.config import Settings
from finance_ingest.core.import_orchestrator import ImportOrchestrator
from finance_ingest.exceptions import RateLimitExceeded


def main():
    parser = argparse.ArgumentParser(description='Import transactions from bank statement text')
    parser.add_argument('text_file', help='Path to extracted statement text')
    parser.add_argument('--no-ai', action='store_true', help='Skip AI categorization of uncertain rows')
    parser.add_argument('--dry-run', action='store_true', help='Parse and categorize but do not write to the database')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args()
    setup_logging(args.verbose)

    text_path = Path(args.text_file)
    if not text_path.exists():
        print(f"❌ File not found: {text_path}")
        sys.exit(1)

    print("=" * 80)
    print("🏦 STATEMENT IMPORT")
    print("=" * 80)
    print(f"Text File: {text_path}")
    print(f"AI Enabled: {not args.no_ai}")
    print(f"Dry Run: {args.dry_run}")
    print("=" * 80)

    settings = Settings.from_env()
    conn = connect(args.dry_run)

    try:
        store = build_store(conn)
        limiter = build_rate_limiter(settings, conn)
        orchestrator = ImportOrchestrator(
            store,
            categorizer=build_categorizer(settings, limiter, not args.no_ai),
            rate_limiter=limiter,
            batch_limit=settings.write_batch_limit,
        )

        print(f"\n📄 Parsing statement...")
        result = orchestrator.import_statement(text_path.read_text(encoding='utf-8'), load_pool(store))

        if not result.transactions and not result.skipped:
            print("\n⚠️  No transactions found in this statement")
        else:
            print_result(result, 'Saved' if conn else 'DRY RUN - nothing written')

    except RateLimitExceeded as e:
        print(f"\n⏳ {e}")
        sys.exit(1)
    finally:
        if conn is not None:
            conn.close()


if __name__ == "__main__":
    main()
