#!/usr/bin/env python3
"""
CSV import CLI

Imports transactions from a CSV in the Date,Note,Amount,Type,Category,PaymentMethod layout.
"""
import argparse
import sys
from pathlib import Path

from finance_ingest.cli.common import build_store, connect, load_pool, print_result, setup_logging
from finance_ingest.config import Settings
from finance_ingest.core.import_orchestrator import ImportOrchestrator
from finance_ingest.exceptions import CsvFormatError


def main():
    """Main import function"""
    parser = argparse.ArgumentParser(description='Import transactions from CSV')
    parser.add_argument('csv_file', help='Path to CSV file')
    parser.add_argument('--dry-run', action='store_true', help='Parse and categorize but do not write to the database')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args()
    setup_logging(args.verbose)

    csv_path = Path(args.csv_file)
    if not csv_path.exists():
        print(f"❌ File not found: {csv_path}")
        sys.exit(1)

    print("=" * 80)
    print("📥 CSV IMPORT")
    print("=" * 80)
    print(f"CSV File: {csv_path}")
    print(f"Dry Run: {args.dry_run}")
    print("=" * 80)

    settings = Settings.from_env()
    conn = connect(args.dry_run)

    try:
        store = build_store(conn)
        orchestrator = ImportOrchestrator(store, batch_limit=settings.write_batch_limit)

        print(f"\n📄 Parsing CSV file...")
        text = csv_path.read_text(encoding='utf-8-sig')
        result = orchestrator.import_csv(text, load_pool(store))
        print_result(result, 'Saved' if conn else 'DRY RUN - nothing written')

        print("\n" + "=" * 80)
        print("✅ Import complete!")
        print("=" * 80)

    except CsvFormatError as e:
        print(f"\n❌ {e}")
        sys.exit(1)
    finally:
        if conn is not None:
            conn.close()


if __name__ == "__main__":
    main()
