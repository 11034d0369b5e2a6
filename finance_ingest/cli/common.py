"""
Shared wiring for the command line tools
"""
import logging
import sys
from typing import List, Optional

from finance_ingest.config import Settings
from finance_ingest.core.categories import DEFAULT_EXPENSE_CATEGORIES, DEFAULT_INCOME_CATEGORIES
from finance_ingest.core.llm_categorizer import LLMCategorizer
from finance_ingest.core.models import Category
from finance_ingest.core.persistence import InMemoryTransactionStore, PostgresTransactionStore
from finance_ingest.core.rate_limiter import (
    InMemoryCounterStore,
    JsonFileCounterStore,
    PostgresCounterStore,
    RateLimiter,
)
from finance_ingest.utils.db_connection import get_db_connection


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(levelname)s %(name)s: %(message)s',
    )


def default_pool() -> List[Category]:
    """Default expense + income categories, one entry per label"""
    pool: List[Category] = []
    for cat in DEFAULT_EXPENSE_CATEGORIES + DEFAULT_INCOME_CATEGORIES:
        if not any(c.matches(cat.label) for c in pool):
            pool.append(cat)
    return pool


def connect(dry_run: bool):
    """psycopg2 connection, or None for dry runs"""
    if dry_run:
        return None

    print("\n🔌 Connecting to database...")
    try:
        conn = get_db_connection()
        print("   ✅ Connected")
        return conn
    except Exception as e:
        print(f"   ❌ Connection failed: {e}")
        sys.exit(1)


def build_store(conn):
    if conn is None:
        return InMemoryTransactionStore(default_pool())
    return PostgresTransactionStore(conn)


def build_rate_limiter(settings: Settings, conn) -> RateLimiter:
    if settings.rate_limit_store == 'postgres' and conn is not None:
        storage = PostgresCounterStore(conn)
    elif settings.rate_limit_store == 'memory':
        storage = InMemoryCounterStore()
    else:
        storage = JsonFileCounterStore(settings.rate_limit_file)
    return RateLimiter(storage, fail_open=settings.rate_limit_fail_open)


def build_categorizer(settings: Settings, limiter: RateLimiter, enabled: bool) -> Optional[LLMCategorizer]:
    if not (enabled and settings.enable_llm):
        return None

    categorizer = LLMCategorizer(
        api_key=','.join(settings.api_keys) or None,
        model=settings.ai_model,
        rate_limiter=limiter,
    )
    if not categorizer.enabled:
        print("⚠️  LLM categorization requested but API key not found")
        return None
    return categorizer


def load_pool(store) -> List[Category]:
    pool = store.load_categories()
    return pool or default_pool()


def print_result(result, label: str):
    print(f"\n💾 {label}")
    print(f"   ✅ Added: {result.added}")
    if result.skipped:
        print(f"   ⏭️  Skipped (duplicates): {result.skipped}")
    if result.failed:
        print(f"   ❌ Failed: {result.failed}")
    if result.new_categories:
        labels = ', '.join(c.label for c in result.new_categories)
        print(f"   🏷️  New categories: {labels}")

    print(f"\n📋 Sample Results (first 10):")
    for i, txn in enumerate(result.transactions[:10], 1):
        sign = '+' if txn.is_income else '-'
        print(f"   {i:2d}. {txn.date_only}  {txn.note[:35]:<35} {sign}{txn.amount:>10.2f}  → {txn.category.label}")
    if len(result.transactions) > 10:
        print(f"       ... and {len(result.transactions) - 10} more")
