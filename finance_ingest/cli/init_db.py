#!/usr/bin/env python3
"""
Database initialization script

Creates the transactions, categories and rate_limits tables and seeds the
default categories.
"""
import sys

from finance_ingest.cli.common import default_pool
from finance_ingest.core.persistence import PostgresTransactionStore, init_schema
from finance_ingest.utils.db_connection import check_connection, get_db_connection


def main():
    print("=" * 80)
    print("🗄️  DATABASE INITIALIZATION")
    print("=" * 80)

    print("\n🔌 Checking database connection...")
    if not check_connection():
        print("   ❌ Database unreachable (check DB_* or DATABASE_URL in .env)")
        sys.exit(1)
    print("   ✅ Connected")

    conn = get_db_connection()

    try:
        print("\n📄 Creating schema")
        init_schema(conn)
        print("   ✅ Success")

        print("\n📚 Seeding default categories")
        store = PostgresTransactionStore(conn)
        store.merge_categories(default_pool())
        print(f"   ✅ {len(store.load_categories())} categories")

    except Exception as e:
        print(f"   ❌ Error: {e}")
        sys.exit(1)
    finally:
        conn.close()

    print("\n" + "=" * 80)
    print("✅ Database ready!")
    print("=" * 80)


if __name__ == "__main__":
    main()
