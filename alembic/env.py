"""
Alembic environment. The database URL comes from DATABASE_URL via app.config,
never from alembic.ini, so migrations and the app always target the same database.
"""
from logging.config import fileConfig

from sqlalchemy import create_engine, pool
from alembic import context
from app.database import Base
from app.config import get_settings
from app.models import User, Conversation, Message, Subscription  # noqa: F401 - register tables

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations() -> None:
    engine = create_engine(get_settings().database_url, poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    raise RuntimeError("Offline (--sql) migrations are not supported; run against a database")
run_migrations()
