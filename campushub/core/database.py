"""
Async Database Manager for PostgreSQL (production) and SQLite (local/tests) with SQLAlchemy
- Automatic database creation if missing
- Table initialization from registered models
- Writer serialization on SQLite so check-then-write transactions stay atomic
"""
import logging
from importlib import import_module
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from sqlalchemy import event, text
import sqlalchemy
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
    AsyncEngine
)
import asyncpg
from campushub.core.config import settings
from campushub.models.base import Base

logger = logging.getLogger(__name__)


def _enable_sqlite_write_locks(engine: AsyncEngine) -> None:
    """Make every SQLite transaction take the database write lock up front.

    pysqlite/aiosqlite defer BEGIN until the first write, so two sessions can
    both read "no conflict" before either writes. BEGIN IMMEDIATE serializes
    them, which is what SELECT ... FOR UPDATE does for us on PostgreSQL.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class DatabaseSessionManager:
    """Manages async database sessions with auto-creation and setup."""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.DATABASE_URL
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    async def init(self):
        """Initialize database connection with auto-creation fallback"""
        try:
            self.engine = self._create_engine()

            try:
                async with self.engine.begin() as conn:
                    await self._setup_database(conn)
            except asyncpg.exceptions.InvalidCatalogNameError:
                if not await self._create_database():
                    raise
                async with self.engine.begin() as conn:
                    await self._setup_database(conn)

            self.session_factory = async_sessionmaker(
                bind=self.engine,
                expire_on_commit=False,
                autoflush=False
            )

        except Exception as e:
            logger.error(f"❌ Database initialization failed: {e}")
            raise

    def _create_engine(self) -> AsyncEngine:
        if self.is_sqlite:
            engine = create_async_engine(
                self.database_url,
                echo=settings.DB_ECHO,
                connect_args={"timeout": 30},
            )
            _enable_sqlite_write_locks(engine)
            return engine

        return create_async_engine(
            self.database_url,
            pool_size=15,
            max_overflow=5,
            pool_timeout=30,
            pool_recycle=300,
            pool_pre_ping=True,
            echo=settings.DB_ECHO,
            connect_args={"prepared_statement_cache_size": 0}
        )

    async def _setup_database(self, conn):
        """Initialize database schema"""
        try:
            await conn.execute(text("SELECT 1"))
            for model in settings.DB_MODELS:
                import_module(model)

            logger.info(f"📝 Models registered: {list(Base.metadata.tables.keys())}")
            await conn.run_sync(Base.metadata.create_all)

        except Exception as e:
            logger.error(f"❌ Database setup failed: {e}")
            raise

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Context manager for safe session handling"""
        if not self.session_factory:
            raise RuntimeError("DatabaseSessionManager not initialized")
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _create_database(self) -> bool:
        """Create the PostgreSQL database if it does not exist"""
        try:
            db_url = make_url(self.database_url)
            db_name = db_url.database

            # Connect to the default database (usually 'postgres')
            default_url = db_url.set(database="postgres")
            engine = create_async_engine(default_url, isolation_level="AUTOCOMMIT")
            async with engine.connect() as conn:
                await conn.execute(text(f'CREATE DATABASE "{db_name}"'))
            await engine.dispose()
            logger.info(f"✅ Database '{db_name}' created successfully.")
            return True
        except (asyncpg.exceptions.PostgresError, sqlalchemy.exc.SQLAlchemyError) as e:
            logger.error(f"❌ Failed to create database: {e}")
            return False

    async def close(self):
        """Cleanup connection pool"""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None


# Initialize session manager
session_manager = DatabaseSessionManager()


async def aget_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for database sessions
    Usage:
    @router.get("/")
    async def endpoint(db: AsyncSession = Depends(aget_db)):
        ...
    """
    async with session_manager.get_session() as session:
        yield session
