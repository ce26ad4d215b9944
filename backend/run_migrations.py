"""Utility script to run Alembic migrations programmatically before app start (optional).

Usage:
    python run_migrations.py [path/to/invoices.db]

Database files written by the application itself (or by earlier releases)
have tables but no alembic_version. They are brought to the current shape
with the same in-place upgrade the app runs at open time, then stamped at the
baseline revision so later migrations apply on top.
"""
import logging
import os
import sys

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
if BASE_DIR not in sys.path:
    sys.path.insert(0, BASE_DIR)

from invoicedesk.config.database import prepare_schema, sync_url_for  # noqa: E402
from invoicedesk.config.settings import get_settings  # noqa: E402

ALEMBIC_INI = os.path.join(BASE_DIR, 'alembic.ini')
BASELINE_REVISION = '20250301_0001'
SENTINEL_TABLES = {'clients', 'invoices', 'invoice_items'}

logger = logging.getLogger("run_migrations")


def build_config(db_path: str) -> Config:
    cfg = Config(ALEMBIC_INI)
    # Leave the caller's logging setup alone
    cfg.attributes['configure_logger'] = False
    cfg.set_main_option('sqlalchemy.url', sync_url_for(db_path))
    return cfg


def run(db_path=None):
    db_path = os.path.expanduser(db_path or os.getenv('DATABASE_PATH') or get_settings().DATABASE_PATH)
    os.makedirs(os.path.dirname(db_path) or '.', exist_ok=True)
    cfg = build_config(db_path)

    engine = create_engine(sync_url_for(db_path))
    try:
        existing_tables = set(inspect(engine).get_table_names())
        if 'alembic_version' not in existing_tables and existing_tables & SENTINEL_TABLES:
            logger.info("Existing tables detected without alembic_version. Stamping baseline %s.",
                        BASELINE_REVISION)
            with engine.begin() as conn:
                prepare_schema(conn)
            command.stamp(cfg, BASELINE_REVISION)
    finally:
        engine.dispose()

    command.upgrade(cfg, 'head')


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    run(sys.argv[1] if len(sys.argv) > 1 else None)
