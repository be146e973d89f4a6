"""Relational release store using the "active row" pattern.

Table `release_notes` keeps every snapshot of the release list ever
written. Exactly one row is active at a time; a partial unique index on
`is_active` enforces that at the database level. Writing a new snapshot
marks the current active row inactive and inserts the new one in the
same transaction, so readers always find a complete list.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone

from pydantic import ValidationError
from sqlalchemy import Boolean, DateTime, Index, Integer, Text, create_engine, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from release_notes_api.config import DatabaseConfig
from release_notes_api.errors import PersistenceError
from release_notes_api.logging_config import get_logger
from release_notes_api.schemas import Release, release_list_adapter
from release_notes_api.storage.base import ReleaseMutation

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class ReleaseNoteRecord(Base):
    """One snapshot of the release list, serialized as JSON."""

    __tablename__ = "release_notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    release_note: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_on: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_on: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index(
            "only_one_row_with_active_release_note",
            "is_active",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active"),
        ),
    )

    @property
    def releases(self) -> list[Release]:
        return release_list_adapter.validate_json(self.release_note)


class DatabaseReleaseStore:
    """Release store backed by the `release_notes` table.

    Usage:
        store = DatabaseReleaseStore.from_config(settings.database)
        store.create_schema()
        releases = store.load()
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> DatabaseReleaseStore:
        engine = create_engine(config.sqlalchemy_url(), echo=config.echo, pool_pre_ping=True)
        logger.info("database_configured", db=config.safe_dict())
        return cls(engine)

    def create_schema(self) -> None:
        try:
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            logger.error("schema_creation_failed", err=str(exc))
            raise PersistenceError(f"failed to create release_notes table: {exc}") from exc

    def load(self) -> list[Release] | None:
        try:
            with self._session_factory() as session:
                record = self._find_active(session)
                if record is None:
                    return None
                releases = record.releases
        except SQLAlchemyError as exc:
            logger.error("release_notes_read_failed", err=str(exc))
            raise PersistenceError(f"failed to read active release note: {exc}") from exc
        except ValidationError as exc:
            logger.error("release_notes_corrupt", err=str(exc))
            raise PersistenceError(f"active release note is not a valid release list: {exc}") from exc
        return releases or None

    def replace(self, releases: list[Release]) -> None:
        if not releases:
            logger.warning("ignoring_empty_release_list")
            return
        self.update(lambda _current: list(releases))

    def update(self, mutate: ReleaseMutation) -> list[Release]:
        with self._lock:
            try:
                with self._session_factory() as session, session.begin():
                    active = self._find_active(session, for_update=True)
                    current = active.releases if active is not None else []
                    releases = mutate(current)

                    if active is not None:
                        active.is_active = False
                        active.updated_on = _utcnow()
                        # The old row must be inactive before the new one exists.
                        session.flush()

                    session.add(
                        ReleaseNoteRecord(
                            release_note=release_list_adapter.dump_json(
                                releases, by_alias=True
                            ).decode("utf-8"),
                            is_active=True,
                            created_on=_utcnow(),
                        )
                    )
            except SQLAlchemyError as exc:
                logger.error("release_notes_write_failed", err=str(exc))
                raise PersistenceError(f"failed to save release notes: {exc}") from exc
            except ValidationError as exc:
                logger.error("release_notes_corrupt", err=str(exc))
                raise PersistenceError(f"active release note is not a valid release list: {exc}") from exc

        logger.info("release_notes_saved", count=len(releases))
        return releases

    def count_active(self) -> int:
        with self._session_factory() as session:
            return len(
                session.scalars(
                    select(ReleaseNoteRecord.id).where(ReleaseNoteRecord.is_active.is_(True))
                ).all()
            )

    def close(self) -> None:
        self._engine.dispose()

    @staticmethod
    def _find_active(session: Session, for_update: bool = False) -> ReleaseNoteRecord | None:
        stmt = select(ReleaseNoteRecord).where(ReleaseNoteRecord.is_active.is_(True))
        if for_update:
            stmt = stmt.with_for_update()
        return session.scalars(stmt).first()
