#!/usr/bin/env python3
"""
Script: apply_schema.py
Purpose: Create the loyalty platform tables and seed default settings

This script:
1. Executes backend/db/schema.sql (idempotent, IF NOT EXISTS everywhere)
2. Verifies every expected table exists
3. Seeds the default system settings that are still missing

Usage:
    cd backend && source venv/bin/activate
    python scripts/migrations/apply_schema.py [--dry-run] [--skip-settings]

Options:
    --dry-run        Show what would be done without making changes
    --skip-settings  Do not seed default system settings
"""

import os
import sys
import argparse
import psycopg2
from pathlib import Path

# Add backend to path
BACKEND_DIR = Path(__file__).parent.parent.parent
sys.path.insert(0, str(BACKEND_DIR))

from dotenv import load_dotenv

# Load environment
env_path = BACKEND_DIR / '.env.development'
if env_path.exists():
    load_dotenv(env_path)
else:
    load_dotenv(BACKEND_DIR / '.env')

DATABASE_URL = os.getenv("DATABASE_URL")
SCHEMA_FILE = BACKEND_DIR / 'db' / 'schema.sql'

EXPECTED_TABLES = [
    'users',
    'user_sessions',
    'user_activity_log',
    'customers',
    'products',
    'product_images',
    'product_views',
    'customer_wishlists',
    'loyalty_rewards',
    'reward_redemptions',
    'customer_vouchers',
    'transactions',
    'transaction_items',
    'stores',
    'store_services',
    'appointments',
    'work_orders',
    'chat_sessions',
    'chat_messages',
    'system_settings',
]


def print_header(title: str):
    """Print formatted header"""
    print(f"\n{'='*60}")
    print(f"  {title}")
    print(f"{'='*60}\n")


def print_step(step: int, description: str):
    """Print step indicator"""
    print(f"\n[Step {step}] {description}")
    print("-" * 50)


def missing_tables(cursor) -> list:
    """Expected tables that are not in the public schema"""
    cursor.execute("""
        SELECT table_name
        FROM information_schema.tables
        WHERE table_schema = 'public'
    """)
    existing = {row[0] for row in cursor.fetchall()}
    return [table for table in EXPECTED_TABLES if table not in existing]


def run_schema(cursor, dry_run: bool = False) -> bool:
    """Execute schema.sql in one statement batch"""
    sql = SCHEMA_FILE.read_text(encoding='utf-8')

    if dry_run:
        print(f"  [DRY RUN] Would execute {SCHEMA_FILE.name}")
        return True

    cursor.execute(sql)
    print(f"  Executed {SCHEMA_FILE.name}")
    return True


def seed_settings(dry_run: bool = False) -> int:
    """Insert default settings that are not yet stored"""
    from loyalty_api.services.settings_service import DEFAULT_SETTINGS, get_settings_service

    if dry_run:
        print(f"  [DRY RUN] Would seed up to {len(DEFAULT_SETTINGS)} default settings")
        return 0

    return get_settings_service().initialize_default_settings()


def main():
    parser = argparse.ArgumentParser(description='Create loyalty platform tables')
    parser.add_argument('--dry-run', action='store_true', help='Show what would be done')
    parser.add_argument('--skip-settings', action='store_true', help='Do not seed default settings')
    args = parser.parse_args()

    if not DATABASE_URL:
        print("ERROR: DATABASE_URL environment variable is required")
        sys.exit(1)

    print_header("Loyalty Platform - Apply Schema")

    conn = psycopg2.connect(DATABASE_URL)
    try:
        cursor = conn.cursor()

        print_step(1, "Checking existing tables")
        before = missing_tables(cursor)
        print(f"  Missing before: {', '.join(before) if before else 'none'}")

        print_step(2, "Executing schema")
        run_schema(cursor, args.dry_run)
        if args.dry_run:
            conn.rollback()
        else:
            conn.commit()

        print_step(3, "Verifying tables")
        after = missing_tables(cursor)
        if after and not args.dry_run:
            print(f"  ERROR: tables still missing: {', '.join(after)}")
            sys.exit(1)
        print(f"  {len(EXPECTED_TABLES) - len(after)}/{len(EXPECTED_TABLES)} tables present")

        cursor.close()
    except psycopg2.Error as e:
        conn.rollback()
        print(f"  ERROR: {e}")
        sys.exit(1)
    finally:
        conn.close()

    if not args.skip_settings:
        print_step(4, "Seeding default settings")
        created = seed_settings(args.dry_run)
        print(f"  {created} settings created")

    print_header("Done")


if __name__ == '__main__':
    main()
