from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from .config import settings


_is_sqlite = settings.database_url.startswith("sqlite")

# SQLite uses a single-file pool; sizing only applies to server databases
engine = create_engine(
    settings.database_url,
    future=True,
    pool_pre_ping=True,
    **({} if _is_sqlite else {"pool_size": 5, "max_overflow": 10, "pool_recycle": 3600}),
    connect_args={"check_same_thread": False} if _is_sqlite else {}
)

# IMPORTANT: do not use scoped_session with async frameworks; create a fresh Session per request
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

Base = declarative_base()


@event.listens_for(Engine, "connect")
def _sqlite_foreign_keys(dbapi_connection, connection_record):
    # ON DELETE rules are ignored by SQLite unless enabled per connection
    if dbapi_connection.__class__.__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
