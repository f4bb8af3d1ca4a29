"""
Database connection and session management.
Owns the async SQLAlchemy engine behind a single store handle with an idempotent connect.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.pool import StaticPool
from sqlalchemy import text, DateTime, Uuid
from rental_market.config import settings
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional
import logging
import uuid

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Timezone-aware current time used for record timestamps."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """
    Base class for all database models.
    Includes common fields: id, created_at, updated_at.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )

    def __repr__(self) -> str:
        """String representation of the model."""
        return f"<{self.__class__.__name__}(id={self.id})>"


class Database:
    """
    Store handle owning the engine and the session factory.

    ``connect()`` may be called any number of times; the engine is built on the
    first call and the same live engine is returned afterwards.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def connect(self) -> AsyncEngine:
        """Create the engine on first use and return it."""
        if self._engine is not None:
            return self._engine

        if self.url.startswith("sqlite"):
            engine_kwargs = {"connect_args": {"check_same_thread": False}}
            # In-memory databases only live as long as their single connection
            if self.url.endswith("://") or ":memory:" in self.url:
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs = {
                "pool_size": 10,
                "max_overflow": 20,
                "pool_pre_ping": True,
                "pool_recycle": 3600,
                "pool_timeout": 30,
            }

        self._engine = create_async_engine(self.url, echo=self.echo, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info(f"Database engine created for {self._safe_url()}")
        return self._engine

    def session(self) -> AsyncSession:
        """Open a new session, connecting first if needed."""
        self.connect()
        return self._session_factory()

    async def ping(self) -> bool:
        """
        Test database connectivity.
        Returns True if connection is successful, False otherwise.
        """
        try:
            async with self.session() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()
            return True
        except Exception as e:
            logger.error(f"Database connection failed: {e}")
            return False

    async def create_tables(self) -> None:
        """Create all database tables."""
        engine = self.connect()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created successfully")

    async def drop_tables(self) -> None:
        """
        Drop all database tables.
        This should only be used in testing or development.
        """
        if settings.is_production:
            raise RuntimeError("Cannot drop tables in production environment")

        engine = self.connect()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("Database tables dropped successfully")

    async def disconnect(self) -> None:
        """Dispose the engine; a later connect() builds a fresh one."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database connections closed")

    def _safe_url(self) -> str:
        return self.url.split("@")[1] if "@" in self.url else self.url


database = Database(settings.database_url, echo=settings.debug)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session.
    Yields an async database session and ensures it's closed after use.
    """
    async with database.session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
