import json
import logging
from pathlib import Path

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from config import Settings

logger = logging.getLogger(__name__)


def _read_credentials_file(path: Path) -> str:
    """Read a DSN from a credentials file.

    The file may hold a JSON object with a ``database_url`` key or a bare DSN.
    """
    raw = path.read_text(encoding="utf-8").strip()
    if raw.startswith("{"):
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("credentials file must hold a JSON object")
        return str(data.get("database_url") or "").strip()
    return raw


def resolve_database_url(settings: Settings) -> str | None:
    """Return the configured database URL, or None when running in local mode.

    A credentials file takes precedence over the inline DATABASE_URL value.
    """
    if settings.database_credentials_file:
        path = Path(settings.database_credentials_file)
        if path.is_file():
            try:
                url = _read_credentials_file(path)
            except (OSError, ValueError) as exc:
                logger.error("Could not read database credentials from %s: %s", path, exc)
                return None
            if url:
                return url
            logger.warning("Database credentials file %s holds no database_url", path)

    return settings.database_url.strip() or None


def create_engine(database_url: str, settings: Settings) -> AsyncEngine:
    return create_async_engine(
        database_url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=5,           # persistent connections in the pool
        max_overflow=10,       # additional connections under burst load
        pool_timeout=30,       # seconds to wait for a connection before erroring
        pool_recycle=1800,     # recycle connections after 30 min to avoid stale handles
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
