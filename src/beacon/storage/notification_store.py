"""Notification store — durable, append-only log of per-user notifications.

Every notification is an immutable row: the store assigns its id and
created_at at insert time and nothing rewrites either afterwards. Reads are
paginated newest-first per user.

The store assumes a single writer per database: creates are serialised by an
asyncio.Lock, which gives unique, increasing ids and non-decreasing
timestamps in insertion order. Any driver error or timeout surfaces as
StorageError, and a failed create leaves no row behind (one transaction per
insert).
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import structlog
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from beacon.db.engine import build_engine, build_session_factory
from beacon.db.models import Base, Notification, utcnow
from beacon.errors import StorageError, ValidationError

logger = structlog.get_logger()

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100
# SQLite integers are signed 64-bit
MAX_OFFSET = 2**63 - 1


def normalize_user_id(user_id: Any) -> str:
    """User ids are opaque keys; numbers are stored as their decimal string."""
    if user_id is None or isinstance(user_id, bool):
        return ""
    return str(user_id).strip()


def validate_fields(user_id: Any, type: Any, message: Any) -> tuple[str, str, str]:
    """Check the three required fields and return them normalised.

    Raises ValidationError naming every missing or empty field.
    """
    uid = normalize_user_id(user_id)
    missing = []
    if not uid:
        missing.append("userId")
    if not isinstance(type, str) or not type.strip():
        missing.append("type")
    if not isinstance(message, str) or not message.strip():
        missing.append("message")
    if missing:
        raise ValidationError(f"Missing or empty field(s): {', '.join(missing)}")
    return uid, type.strip(), message


def coerce_positive(value: Any, default: int) -> int:
    """Coerce a page/limit value; anything unusable falls back to default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


@dataclass
class Page:
    """One window of a user's notifications plus the user's full count."""

    items: list[Notification] = field(default_factory=list)
    total: int = 0
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT


class NotificationStore:
    """Append-only notification store backed by SQLAlchemy (async)."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: Optional[AsyncEngine] = None,
        timeout: float = 5.0,
        default_page: int = DEFAULT_PAGE,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ):
        self._session_factory = session_factory
        self._engine = engine
        self.timeout = timeout
        self.default_page = default_page
        self.default_limit = default_limit
        self.max_limit = max_limit
        self._write_lock = asyncio.Lock()
        self._last_created_at: Optional[datetime] = None

    @classmethod
    def from_url(
        cls,
        database_url: str,
        *,
        echo: bool = False,
        timeout: float = 5.0,
        default_page: int = DEFAULT_PAGE,
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ) -> "NotificationStore":
        """Build a store that owns its own engine."""
        engine = build_engine(database_url, echo=echo)
        return cls(
            build_session_factory(engine),
            engine=engine,
            timeout=timeout,
            default_page=default_page,
            default_limit=default_limit,
            max_limit=max_limit,
        )

    # ─── Lifecycle ────────────────────────────────────────

    async def init_schema(self) -> None:
        """Create the notifications table if it does not exist yet."""
        if self._engine is None:
            raise RuntimeError("init_schema() needs a store built with an engine")
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()

    async def ping(self) -> None:
        """Round-trip a trivial query. Raises StorageError when unreachable."""

        async def _ping():
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))

        await self._guard("ping", _ping())

    # ─── Write path ───────────────────────────────────────

    async def create(self, user_id: Any, type: Any, message: Any) -> Notification:
        """Persist a new notification and return the stored record.

        The returned object carries the store-assigned id and created_at
        and is detached from any session, so it is safe to publish.

        The timeout bounds waiting for the write lock and staging the row.
        The commit itself is not bounded: once it has been issued the row
        may already be durable, so it is awaited to completion.
        """
        uid, kind, body = validate_fields(user_id, type, message)
        await self._guard("create", self._write_lock.acquire())
        try:
            return await self._insert(uid, kind, body)
        finally:
            self._write_lock.release()

    async def _insert(self, user_id: str, type: str, message: str) -> Notification:
        async with self._session_factory() as session:
            row = await self._guard(
                "create", self._stage(session, user_id, type, message)
            )
            await self._guard("create", session.commit(), bounded=False)
        self._last_created_at = row.created_at

        logger.debug("store.inserted", id=row.id, user_id=user_id, type=type)
        return row

    async def _stage(
        self, session: AsyncSession, user_id: str, type: str, message: str
    ) -> Notification:
        """Add and flush the row inside the session's open transaction."""
        if self._last_created_at is None:
            self._last_created_at = await session.scalar(
                select(func.max(Notification.created_at))
            )
        created_at = utcnow()
        # Wall clock may step backwards; insertion order may not
        if self._last_created_at and created_at < self._last_created_at:
            created_at = self._last_created_at

        row = Notification(
            user_id=user_id,
            type=type,
            message=message,
            is_read=False,
            created_at=created_at,
        )
        session.add(row)
        await session.flush()  # get the auto-generated id
        return row

    # ─── Read path ────────────────────────────────────────

    async def list(self, user_id: Any, page: Any = None, limit: Any = None) -> Page:
        """Return one page of a user's notifications, newest first.

        page/limit are coerced rather than rejected, and limit is capped at
        max_limit. total counts every row for the user, independent of the
        window. An unknown user is simply an empty page.
        """
        page_no = coerce_positive(page, self.default_page)
        size = min(coerce_positive(limit, self.default_limit), self.max_limit)
        uid = normalize_user_id(user_id)
        return await self._guard("list", self._select_page(uid, page_no, size))

    async def _select_page(self, user_id: str, page: int, limit: int) -> Page:
        offset = (page - 1) * limit
        async with self._session_factory() as session:
            async with session.begin():
                total = await session.scalar(
                    select(func.count())
                    .select_from(Notification)
                    .where(Notification.user_id == user_id)
                )
                if offset > MAX_OFFSET:
                    # Beyond any rowid SQLite can hold
                    return Page(items=[], total=total or 0, page=page, limit=limit)
                result = await session.execute(
                    select(Notification)
                    .where(Notification.user_id == user_id)
                    .order_by(Notification.created_at.desc(), Notification.id.desc())
                    .offset(offset)
                    .limit(limit)
                )
                items = list(result.scalars().all())
        return Page(items=items, total=total or 0, page=page, limit=limit)

    # ─── Helpers ──────────────────────────────────────────

    async def _guard(self, operation: str, coro, *, bounded: bool = True):
        """Apply the store timeout and translate driver failures."""
        try:
            if bounded:
                return await asyncio.wait_for(coro, timeout=self.timeout)
            return await coro
        except asyncio.TimeoutError as e:
            raise StorageError(
                f"Notification store {operation} timed out after {self.timeout}s"
            ) from e
        except (SQLAlchemyError, OSError) as e:
            raise StorageError(f"Notification store {operation} failed: {e}") from e
