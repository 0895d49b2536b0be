import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from kasir.core.config import settings
from kasir.core.exceptions import LockTimeout, StoreError
from kasir.db.tables import metadata

logger = logging.getLogger(__name__)

# Execution option read by the SQLite "begin" hook.
LOCK_WRITES = "kasir_lock_writes"

# SQLSTATE lock_not_available, raised when lock_timeout expires.
PG_LOCK_NOT_AVAILABLE = "55P03"


def build_engine(database_url: str, lock_timeout_ms: int = 5000, echo: bool = False) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": lock_timeout_ms / 1000}

    engine = create_engine(database_url, echo=echo, connect_args=connect_args)
    if engine.dialect.name == "sqlite":
        _install_sqlite_locking(engine)
    return engine


def _install_sqlite_locking(engine: Engine) -> None:
    """Let SQLAlchemy emit BEGIN itself so checkouts can ask for BEGIN IMMEDIATE.

    SQLite has no row locks; IMMEDIATE takes the database write lock up front,
    which serializes checkouts the way FOR UPDATE does on PostgreSQL.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        if conn.get_execution_options().get(LOCK_WRITES):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


engine = build_engine(settings.database_url, settings.lock_timeout_ms, settings.sql_echo)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    target = bind or engine
    metadata.create_all(target)
    logger.info("Schema ready on %s", target.url.render_as_string(hide_password=True))


def _is_lock_timeout(exc: OperationalError) -> bool:
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code == PG_LOCK_NOT_AVAILABLE:
        return True
    return "database is locked" in str(orig)


@contextmanager
def unit_of_work(
    db: Session,
    *,
    lock_writes: bool = False,
    lock_timeout_ms: int | None = None,
) -> Iterator[Session]:
    """Run a block as one all-or-nothing transaction on ``db``.

    The transaction commits only when the block finishes; every other exit
    rolls back before the exception propagates. Driver failures surface as
    ``LockTimeout`` (lock wait expired) or ``StoreError``. ``lock_writes``
    makes SQLite take its write lock at BEGIN. ``lock_timeout_ms`` bounds
    row-lock waits on PostgreSQL; SQLite uses the busy timeout set in
    ``build_engine``.
    """
    try:
        conn = db.connection(execution_options={LOCK_WRITES: True} if lock_writes else None)
        if lock_timeout_ms is not None and conn.dialect.name == "postgresql":
            conn.execute(
                text("SELECT set_config('lock_timeout', :timeout, true)"),
                {"timeout": f"{int(lock_timeout_ms)}ms"},
            )
        yield db
        db.commit()
    except OperationalError as exc:
        db.rollback()
        if _is_lock_timeout(exc):
            raise LockTimeout(
                "Timed out waiting for a lock, retry the request",
                details={"lock_timeout_ms": lock_timeout_ms},
            ) from exc
        raise StoreError(f"Data store failure: {exc.orig}") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise StoreError(f"Data store failure: {exc}") from exc
    except BaseException:
        db.rollback()
        raise
