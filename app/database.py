from sqlalchemy import event
from sqlmodel import SQLModel, create_engine, Session
from app.config import settings


def build_engine(url: str, **kwargs):
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        engine = create_engine(url, echo=False, **kwargs)

        # sqlite ignores FOREIGN KEY clauses unless asked per connection
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,      # checks dead connections
        pool_recycle=1800,       # refresh every 30 min
        **kwargs,
    )


engine = build_engine(settings.database_url)


def create_db_and_tables(bind=None):
    from app import models  # noqa: F401  registers every table
    SQLModel.metadata.create_all(bind or engine)


def get_session():
    with Session(engine) as session:
        yield session
