from logging.config import fileConfig

from sqlalchemy import create_engine
from sqlalchemy import pool

from alembic import context

from app.db.base import Base, DATABASE_URL

# Register every table on Base.metadata
from app.auth import models as _auth_models  # noqa: F401
from app.gamification import models as _gamification_models  # noqa: F401
from app.quizzes import models as _quiz_models  # noqa: F401
from app.challenges import models as _challenge_models  # noqa: F401
from app.community import models as _community_models  # noqa: F401
from app.forms import models as _form_models  # noqa: F401
from app.notifications import models as _notification_models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def get_url() -> str:
    """Same URL the app uses (DATABASE_URL, postgres:// already normalised)."""
    return DATABASE_URL


def run_migrations_offline() -> None:
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = create_engine(get_url(), poolclass=pool.NullPool)

    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=connection.dialect.name == "sqlite",
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
