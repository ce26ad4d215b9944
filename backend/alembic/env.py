"""Alembic environment script.

Only model metadata and a database URL are needed here; the runtime engine and
session wiring in config.database are not imported. The URL is resolved with
the following precedence:

1. DB_URL
2. sqlalchemy.url from alembic.ini (when set)
3. The application's DATABASE_PATH setting

An async driver URL (sqlite+aiosqlite://) is converted to the synchronous driver.
"""
import os
import sys
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

# Make the invoicedesk package importable when running from a source checkout
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

from invoicedesk.config.settings import get_settings  # noqa: E402
from invoicedesk.models.database import Base  # noqa: E402

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

if config.config_file_name is not None and config.attributes.get('configure_logger', True):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

target_metadata = Base.metadata

raw_url = os.getenv('DB_URL') or config.get_main_option('sqlalchemy.url')
if not raw_url:
    db_path = os.path.expanduser(get_settings().DATABASE_PATH)
    raw_url = f'sqlite:///{db_path}'
if raw_url.startswith('sqlite+aiosqlite://'):
    raw_url = raw_url.replace('sqlite+aiosqlite://', 'sqlite://', 1)

config.set_main_option('sqlalchemy.url', raw_url)


def run_migrations_offline():
    """Run migrations in 'offline' mode."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        compare_type=True,
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    """Run migrations in 'online' mode."""
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix='sqlalchemy.',
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            # SQLite cannot ALTER most column properties in place
            render_as_batch=True,
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
