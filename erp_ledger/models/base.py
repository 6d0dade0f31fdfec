"""
Database engine, session management, and base model.

Every model inherits from Base. Every request gets its own
session from get_db(); background producers (the auto-posting
adapters) open their own sessions from SessionLocal.
"""

from sqlalchemy import create_engine
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, sessionmaker, DeclarativeBase

from erp_ledger.config import get_settings

settings = get_settings()

# --- Engine ---
# pool_pre_ping=True tests connections before handing them out,
# so a restarted database does not surface as a failed posting.
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
)

# --- Session Factory ---
# One session is one unit of work. autoflush=False means nothing
# reaches the database until a posting explicitly flushes, so a
# rejected entry never leaves half-written rows behind.
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


# --- Dependency for FastAPI ---
def get_db():
    """
    Provide a database session for a single request.

    The try/finally guarantees the session is closed and its
    connection returned to the pool, even if the endpoint raises.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# --- Conflict-tolerant inserts ---
_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def insert_missing(
    db: Session,
    model: type[Base],
    rows: list[dict],
    conflict_columns: list[str],
) -> int:
    """
    Insert rows, skipping any that collide on a unique key.

    Emits INSERT ... ON CONFLICT DO NOTHING. When two transactions
    insert the same key, the second waits for the first to finish
    and then skips the row instead of failing the whole unit of
    work. Returns the number of rows actually inserted.
    """
    dialect = db.get_bind().dialect.name
    if dialect not in _DIALECT_INSERTS:
        raise NotImplementedError(f"Unsupported database dialect: {dialect}")

    statement = (
        _DIALECT_INSERTS[dialect](model)
        .values(rows)
        .on_conflict_do_nothing(index_elements=conflict_columns)
    )
    return db.execute(statement).rowcount
