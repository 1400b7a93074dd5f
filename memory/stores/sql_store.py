"""SQLite SQLAlchemy store wrapper."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from memory.schemas import Base, DocumentRecord, utc_now

logger = logging.getLogger("cog.sql_store")


class SQLStore:
    """Provides SQLAlchemy session management and whole-document persistence.

    Every store in the core (world state, goals, episodic memory, agents,
    cognitive state) is saved as a single JSON document. A save rewrites the
    full document inside its own transaction, so a reader never observes a
    half-written snapshot. There is no transaction spanning two documents.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.engine = create_engine(f"sqlite+pysqlite:///{self.db_path}", future=True)
        self._session_factory = sessionmaker(bind=self.engine, future=True)

    def create_all(self) -> None:
        """Create all schema tables if missing."""
        Base.metadata.create_all(self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Context manager that commits on success and rolls back on error."""
        sess = self._session_factory()
        try:
            yield sess
            sess.commit()
        except Exception:
            sess.rollback()
            raise
        finally:
            sess.close()

    def load_document(self, name: str) -> dict[str, Any] | None:
        """Return the stored snapshot for ``name`` or None when never saved."""
        with self.session() as sess:
            row = sess.get(DocumentRecord, name)
            if row is None:
                return None
            return dict(row.payload or {})

    def save_document(self, name: str, payload: dict[str, Any]) -> int:
        """Replace the snapshot for ``name`` and return its new revision."""
        with self.session() as sess:
            row = sess.get(DocumentRecord, name)
            if row is None:
                row = DocumentRecord(name=name, payload=payload, revision=1)
                sess.add(row)
            else:
                row.payload = payload
                row.revision = (row.revision or 0) + 1
                row.updated_at = utc_now()
            sess.flush()
            revision = row.revision
        logger.debug("Saved document %s (revision %d)", name, revision)
        return revision

    def delete_document(self, name: str) -> bool:
        """Remove a stored snapshot. Returns whether one existed."""
        with self.session() as sess:
            row = sess.get(DocumentRecord, name)
            if row is None:
                return False
            sess.delete(row)
        return True

    def list_documents(self) -> list[dict[str, Any]]:
        """List stored document names with revision metadata."""
        with self.session() as sess:
            rows = sess.query(DocumentRecord).order_by(DocumentRecord.name.asc()).all()
            return [
                {"name": row.name, "revision": row.revision, "updated_at": row.updated_at}
                for row in rows
            ]
