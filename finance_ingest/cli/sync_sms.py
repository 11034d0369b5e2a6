#!/usr/bin/env python3
"""
SMS sync CLI

Imports bank SMS alerts from an inbox export: a JSON array of
{"_id", "address", "body", "date"} objects as read from the device.
"""
import argparse
import json
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
from finance_ingest.core.import_orchestrator import ImportOrchestrator, ListMessageSource
from finance_ingest.core.models import RawMessage


def main():
    settings = Settings.from_env()

    parser = argparse.ArgumentParser(description='Import bank SMS transactions from an inbox export')
    parser.add_argument('json_file', help='Path to JSON inbox export')
    parser.add_argument('--lookback-days', type=int, default=settings.sms_lookback_days,
                        help=f'How many days back to read (default: {settings.sms_lookback_days})')
    parser.add_argument('--no-ai', action='store_true', help='Skip AI categorization')
    parser.add_argument('--dry-run', action='store_true', help='Parse and categorize but do not write to the database')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args()
    setup_logging(args.verbose)

    json_path = Path(args.json_file)
    if not json_path.exists():
        print(f"❌ File not found: {json_path}")
        sys.exit(1)

    try:
        with open(json_path, encoding='utf-8') as f:
            messages = [RawMessage.from_dict(m) for m in json.load(f)]
    except (json.JSONDecodeError, TypeError, ValueError) as e:
        print(f"❌ Could not read inbox export: {e}")
        sys.exit(1)

    print("=" * 80)
    print("📱 SMS SYNC")
    print("=" * 80)
    print(f"Messages: {len(messages)}")
    print(f"Lookback: {args.lookback_days} days")
    print(f"AI Enabled: {not args.no_ai}")
    print(f"Dry Run: {args.dry_run}")
    print("=" * 80)

    conn = connect(args.dry_run)

    try:
        store = build_store(conn)
        limiter = build_rate_limiter(settings, conn)
        categorizer = build_categorizer(settings, limiter, not args.no_ai)
        orchestrator = ImportOrchestrator(
            store,
            categorizer=categorizer,
            rate_limiter=limiter,
            batch_limit=settings.write_batch_limit,
        )

        result = orchestrator.sync_sms(
            ListMessageSource(messages),
            load_pool(store),
            lookback_days=args.lookback_days,
            use_ai=categorizer is not None,
        )
        print_result(result, 'Saved' if conn else 'DRY RUN - nothing written')

    finally:
        if conn is not None:
            conn.close()


if __name__ == "__main__":
    main()
