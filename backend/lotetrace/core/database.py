"""
Database configuration and session management

PostgreSQL is the production target (row locks on the lote table serialize
movements across processes). SQLite is accepted for local runs and tests.
"""
import logging
import threading
import time

from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import settings

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": 5,
        "max_overflow": 5,
        "pool_recycle": 300,  # Ricicla connessioni ogni 5 minuti
        "pool_timeout": 30,
        "pool_reset_on_return": "commit",
        "connect_args": {
            "connect_timeout": 10,
            "keepalives": 1,
            "keepalives_idle": 30,
            "keepalives_interval": 10,
            "keepalives_count": 5,
        },
    }


engine = create_engine(settings.DATABASE_URL, echo=False, **_engine_options(settings.DATABASE_URL))


# Thread tracking per il warmup
_warmup_thread = None
_warmup_complete = False


def warmup_pool():
    """Pre-create connections to reduce cold start latency"""
    global _warmup_thread, _warmup_complete

    def _warmup_sync():
        global _warmup_complete
        try:
            connections = []
            for _ in range(2):
                try:
                    conn = engine.connect()
                    conn.execute(text("SELECT 1"))
                    connections.append(conn)
                except Exception as e:
                    logger.warning("Failed to create connection during warmup: %s", e)

            for conn in connections:
                conn.close()

            if connections:
                logger.info("Connection pool warmed up (%d connections)", len(connections))
            else:
                logger.warning("No connections were warmed up")
        finally:
            _warmup_complete = True

    _warmup_complete = False
    _warmup_thread = threading.Thread(target=_warmup_sync, daemon=True)
    _warmup_thread.start()


def wait_for_warmup_complete(timeout=5.0):
    """Attende che il warmup sia completo (opzionale, per shutdown pulito)"""
    if _warmup_complete:
        return True

    start_time = time.time()
    while not _warmup_complete and (time.time() - start_time) < timeout:
        time.sleep(0.1)

    return _warmup_complete


# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


def get_db():
    """Dependency to get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
