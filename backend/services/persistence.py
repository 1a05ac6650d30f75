"""Best-effort persistence of completed analyses.

Three recorders share the same ``submit`` interface:

- ``NullRecorder``: local mode, nothing configured, every submit is a no-op.
- ``DatabaseRecorder``: writes the entry before ``submit`` returns.
- ``BackgroundRecorder``: hands the entry to an ``asyncio.Queue`` drained by a
  single worker task, so callers never wait on storage.

No recorder ever raises from ``submit``; failures are logged and dropped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from config import Settings
from db.connection import create_engine, create_session_factory, resolve_database_url
from engine.errors import PersistenceFailed
from models.database import AnalysisLog

logger = logging.getLogger(__name__)

SOURCE_WEB = "web-indexlegal-integrated"
SOURCE_TERMINAL = "terminal-user"


class Recorder(Protocol):
    mode: str

    @property
    def enabled(self) -> bool: ...

    async def submit(self, document: dict[str, Any]) -> None: ...

    async def close(self) -> None: ...


class NullRecorder:
    """Recorder used when no database credentials are configured."""

    mode = "local"
    enabled = False

    async def submit(self, document: dict[str, Any]) -> None:
        return None

    async def close(self) -> None:
        return None


class DatabaseRecorder:
    """Append analysis documents to the ``legal_analysis_logs`` table."""

    mode = "await"
    enabled = True

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        source: str,
        engine: AsyncEngine | None = None,
    ):
        self._session_factory = session_factory
        self._engine = engine
        self.source = source

    async def write(self, document: dict[str, Any]) -> None:
        """Insert one row. Raises PersistenceFailed on any storage error."""
        try:
            async with self._session_factory() as session:
                session.add(
                    AnalysisLog(
                        source=self.source,
                        legal_category=document.get("Categoria_Legal"),
                        payload=document,
                    )
                )
                await session.commit()
        except Exception as exc:
            raise PersistenceFailed(f"{exc.__class__.__name__}: {exc}") from exc

    async def submit(self, document: dict[str, Any]) -> None:
        try:
            await self.write(document)
        except PersistenceFailed as exc:
            logger.error("Failed to persist analysis log: %s", exc)
        else:
            logger.info("Analysis log saved (source=%s)", self.source)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()


class BackgroundRecorder:
    """Queue-backed recorder; the response path only pays for ``put_nowait``."""

    mode = "background"
    enabled = True

    def __init__(self, writer: DatabaseRecorder, *, maxsize: int = 100, drain_timeout: float = 10.0):
        self._writer = writer
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=maxsize)
        self._drain_timeout = drain_timeout
        self._worker: asyncio.Task | None = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._consume(), name="analysis-log-writer")

    async def submit(self, document: dict[str, Any]) -> None:
        self._ensure_worker()
        try:
            self._queue.put_nowait(document)
        except asyncio.QueueFull:
            logger.warning(
                "Persistence queue full (%d entries); dropping analysis log",
                self._queue.maxsize,
            )

    async def _consume(self) -> None:
        while True:
            document = await self._queue.get()
            try:
                await self._writer.write(document)
            except PersistenceFailed as exc:
                logger.error("Failed to persist analysis log: %s", exc)
            finally:
                self._queue.task_done()

    async def close(self) -> None:
        """Drain queued entries (bounded wait), then stop the worker."""
        if self._worker is not None:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=self._drain_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Shutting down with %d analysis log(s) still queued", self._queue.qsize()
                )
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        await self._writer.close()


def build_recorder(settings: Settings, *, source: str) -> Recorder:
    """Build the recorder for this process, falling back to local mode."""
    database_url = resolve_database_url(settings)
    if not database_url:
        logger.info("No database credentials configured; persistence disabled (local mode)")
        return NullRecorder()

    try:
        engine = create_engine(database_url, settings)
    except Exception as exc:
        logger.error("Failed to initialize database engine: %s", exc)
        return NullRecorder()

    writer = DatabaseRecorder(create_session_factory(engine), source=source, engine=engine)
    if settings.persistence_mode == "await":
        return writer
    return BackgroundRecorder(writer, maxsize=settings.persistence_queue_size)
