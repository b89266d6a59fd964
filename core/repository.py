"""
core/repository.py -- Generic SQLAlchemy Core CRUD repository.

Uses SQLAlchemy Core (not ORM) so domain dataclasses remain the authoritative
domain representation. Swapping SQLite for PostgreSQL is a connection string
change, not a rewrite.

Pattern: Repository + Data Mapper. A concrete repository supplies the Table
and two mappers (_row_to_entity / _entity_values); this base supplies the
standard operations:

    save, save_all, find_by_id, exists_by_id, find_all, find_all_by_id,
    count, delete_by_id, delete, delete_all

Entities are mutable dataclasses with an ``id`` attribute that is None until
the row is written. save() writes the store-assigned id back onto the entity.

save() semantics:
  id is None                  -> INSERT, id generated by the database
  id matches an existing row  -> full-record UPDATE
  id matches no row           -> INSERT with a freshly generated id (merge);
                                 the caller-supplied id is not reused

Security: all queries use bound parameters. No f-strings in SQL.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or things/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Generic, TypeVar

from sqlalchemy import Column, Table, create_engine, event, func, select, text
from sqlalchemy.engine import URL, Engine, Row, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

logger = logging.getLogger("thinggate.repository")

E = TypeVar("E")


class EntityNotFound(LookupError):
    """Raised by delete_by_id() when no row has the given id."""

    def __init__(self, table: str, entity_id: int) -> None:
        self.table = table
        self.entity_id = entity_id
        super().__init__(f"No {table} row with id {entity_id}")


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. Not installed for in-memory databases.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def validate_id(entity_id: Any) -> int:
    """Return entity_id if it is a non-negative int, else raise ValueError."""
    # bool is an int subclass; True is not an id.
    if isinstance(entity_id, bool) or not isinstance(entity_id, int):
        raise ValueError(f"id must be an integer, got {type(entity_id).__name__}")
    if entity_id < 0:
        raise ValueError(f"id must be non-negative, got {entity_id}")
    return entity_id


def _is_sqlite_memory(url: URL) -> bool:
    """True for ":memory:" and for "file:name?mode=memory&uri=true" URLs."""
    if url.get_backend_name() != "sqlite":
        return False
    return url.database in (None, "", ":memory:") or url.query.get("mode") == "memory"


class CrudRepository(Generic[E]):
    """Base repository over a single table with an integer primary key.

    Subclasses set ``table`` and implement the two mappers.
    """

    table: Table

    def __init__(self, db_url: str) -> None:
        url = make_url(db_url)
        engine_kwargs: dict[str, Any] = {}
        if url.get_backend_name() == "sqlite":
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        # One shared connection keeps an in-memory database alive and visible
        # to every thread.
        if _is_sqlite_memory(url):
            engine_kwargs["poolclass"] = StaticPool
        self.engine: Engine = create_engine(url, **engine_kwargs)
        if url.get_backend_name() == "sqlite" and not _is_sqlite_memory(url):
            event.listen(self.engine, "connect", _set_wal_mode)
        self.table.metadata.create_all(self.engine, tables=[self.table])

    @property
    def _pk(self) -> Column:
        return self.table.c.id

    # ------------------------------------------------------------------
    # Mappers (subclass responsibility)
    # ------------------------------------------------------------------

    def _row_to_entity(self, row: Row) -> E:
        raise NotImplementedError

    def _entity_values(self, entity: E) -> dict[str, Any]:
        """Column values for INSERT/UPDATE, excluding the primary key."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def save(self, entity: E) -> E:
        """Insert or update entity and return it with its id set."""
        entity_id = entity.id
        values = self._entity_values(entity)
        with self.engine.connect() as conn:
            if entity_id is not None:
                validate_id(entity_id)
                result = conn.execute(self.table.update().where(self._pk == entity_id).values(**values))
                if result.rowcount > 0:
                    conn.commit()
                    return entity
            result = conn.execute(self.table.insert().values(**values))
            conn.commit()
        entity.id = result.inserted_primary_key[0]
        return entity

    def save_all(self, entities: Iterable[E]) -> list[E]:
        return [self.save(entity) for entity in entities]

    def delete_by_id(self, entity_id: int) -> None:
        """Delete the row with entity_id. Raises EntityNotFound if there is none."""
        validate_id(entity_id)
        with self.engine.connect() as conn:
            result = conn.execute(self.table.delete().where(self._pk == entity_id))
            conn.commit()
        if result.rowcount == 0:
            raise EntityNotFound(self.table.name, entity_id)

    def delete(self, entity: E) -> None:
        """Delete entity's row if it has one. Transient entities are ignored."""
        if entity.id is None:
            return
        validate_id(entity.id)
        with self.engine.connect() as conn:
            conn.execute(self.table.delete().where(self._pk == entity.id))
            conn.commit()

    def delete_all(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(self.table.delete())
            conn.commit()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_id(self, entity_id: int) -> E | None:
        """Return the entity with entity_id, or None if absent."""
        validate_id(entity_id)
        with self.engine.connect() as conn:
            row = conn.execute(self.table.select().where(self._pk == entity_id)).fetchone()
        return self._row_to_entity(row) if row is not None else None

    def exists_by_id(self, entity_id: int) -> bool:
        validate_id(entity_id)
        with self.engine.connect() as conn:
            row = conn.execute(select(self._pk).where(self._pk == entity_id)).fetchone()
        return row is not None

    def find_all(self) -> list[E]:
        """Return every entity ordered by id."""
        with self.engine.connect() as conn:
            rows = conn.execute(self.table.select().order_by(self._pk)).fetchall()
        return [self._row_to_entity(r) for r in rows]

    def find_all_by_id(self, entity_ids: Iterable[int]) -> list[E]:
        """Return the entities whose ids are in entity_ids, ordered by id. Missing ids are skipped."""
        ids = [validate_id(i) for i in entity_ids]
        if not ids:
            return []
        with self.engine.connect() as conn:
            rows = conn.execute(self.table.select().where(self._pk.in_(ids)).order_by(self._pk)).fetchall()
        return [self._row_to_entity(r) for r in rows]

    def count(self) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(self.table)).scalar()
        return result or 0

    # ------------------------------------------------------------------
    # Infrastructure
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("Database ping failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()
