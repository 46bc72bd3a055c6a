import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from billing.core.config import settings

# -----------------------
# Logging setup
# -----------------------
logger = logging.getLogger(__name__)

# -----------------------
# Database URL
# -----------------------
DATABASE_URL = settings.database_url
url = make_url(DATABASE_URL)
is_sqlite = url.get_backend_name() == "sqlite"

# Hide password in logs
logger.info(f"Connecting to database: {url.render_as_string(hide_password=True)}")

# -----------------------
# SQLAlchemy engine
# -----------------------
if is_sqlite:
    engine = create_engine(
        DATABASE_URL,
        echo=settings.db_echo,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
else:
    engine = create_engine(
        DATABASE_URL,
        echo=settings.db_echo,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=1800,
        pool_pre_ping=True,
    )


# -----------------------
# SQLite: take the write lock when the transaction starts.
# It has no row locks, so balance updates serialize on BEGIN IMMEDIATE.
# -----------------------
if is_sqlite:

    @event.listens_for(engine, "connect")
    def disable_pysqlite_begin(dbapi_conn, connection_record):
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


# -----------------------
# Session and Base
# -----------------------
SessionLocal = sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
)
Base = declarative_base()


def init_db():
    """Create missing tables."""
    # Register every model on Base.metadata
    import billing.models  # noqa: F401

    Base.metadata.create_all(bind=engine)


# -----------------------
# Dependency for FastAPI
# -----------------------
def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database error occurred: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()
