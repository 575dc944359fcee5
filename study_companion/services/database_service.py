import logging
from typing import Any, Dict

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool

from study_companion.models import Base

logger = logging.getLogger(__name__)


class DatabaseService:
    """SQLAlchemy engine setup and table creation"""

    def __init__(self, database_url: str, pool_size: int = 5, max_overflow: int = 10,
                 pool_timeout: int = 30, pool_recycle: int = 3600):
        self.database_url = database_url
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.pool_recycle = pool_recycle

        self.engine = None
        self._setup_engine()

    def _setup_engine(self):
        """Setup SQLAlchemy engine with connection pooling"""
        try:
            if self.database_url.startswith("sqlite"):
                self.engine = create_engine(
                    self.database_url,
                    connect_args={"check_same_thread": False},
                    echo=False
                )
                event.listen(self.engine, "connect", self._set_sqlite_pragma)
            else:
                self.engine = create_engine(
                    self.database_url,
                    poolclass=QueuePool,
                    pool_size=self.pool_size,
                    max_overflow=self.max_overflow,
                    pool_timeout=self.pool_timeout,
                    pool_recycle=self.pool_recycle,
                    pool_pre_ping=True,
                    echo=False
                )

            logger.info(f"Database engine created for dialect {self.engine.dialect.name}")

            try:
                Base.metadata.create_all(self.engine)
                logger.info("Database tables ensured via SQLAlchemy metadata")
            except Exception as table_error:
                logger.error(f"Failed to create database tables: {table_error}")
                raise

        except Exception as e:
            logger.error(f"Failed to create database engine: {e}")
            raise

    @staticmethod
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    def get_engine(self) -> Engine:
        return self.engine

    def test_connection(self) -> bool:
        """Test database connectivity"""
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1")).fetchone()
            return True
        except Exception as e:
            logger.error(f"Database connection test failed: {e}")
            return False

    def get_connection_info(self) -> Dict[str, Any]:
        return {
            "status": "connected" if self.test_connection() else "error",
            "dialect": self.engine.dialect.name,
        }

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database engine disposed")
