import os
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from sqlalchemy import create_engine

load_dotenv()

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def database_url() -> str:
    """DATABASE_PATH (exported by database.init_db, or from .env) wins over alembic.ini."""
    db_path = os.getenv("DATABASE_PATH")
    if not db_path:
        return config.get_main_option("sqlalchemy.url")
    if not os.path.isabs(db_path):
        db_path = os.path.join(os.path.dirname(config.config_file_name or "."), db_path)
    return f"sqlite:///{db_path}"


def run_migrations_offline() -> None:
    """Emit the tasks schema as SQL without connecting."""
    context.configure(
        url=database_url(),
        target_metadata=None,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    # Batch mode: SQLite cannot ALTER constraints in place
    engine = create_engine(database_url())
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=None, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
