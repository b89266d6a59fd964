"""
things/store.py -- Persistence for Thing records.

Two classes over the same table:

  ThingStore       -- unguarded CRUD (core/repository.CrudRepository).
  ThingRepository  -- the same operations behind the authorization gate.
                      Every public operation requires REQUIRED_ROLE, and
                      find_by_id additionally carries its own guard for the
                      same role. Both guards run.

REQUIRED_ROLE is "BOGUS". The default principal ("user", roles={"USER"})
does not hold it, so with the default configuration every repository call
is denied. This is kept exactly as the application has always declared it;
do not "fix" the role name here.

Usage:
    repo = ThingRepository("sqlite:///things.db")
    with authenticated(principal):
        thing = repo.save(Thing(name="widget"))
        repo.find_by_id(thing.id)
    repo.close()
"""

from typing import Any, Optional

from sqlalchemy import Column, Integer, MetaData, Table, Text
from sqlalchemy.engine import Row

from auth.guard import has_role, permit_all, pre_authorize
from core.repository import CrudRepository
from things.models import Thing

REQUIRED_ROLE = "BOGUS"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_things = Table(
    "things",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text),  # nullable
)


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class ThingStore(CrudRepository[Thing]):
    """Unguarded Thing persistence. Callers outside this module should use ThingRepository."""

    table = _things

    def _row_to_entity(self, row: Row) -> Thing:
        return Thing(id=row.id, name=row.name)

    def _entity_values(self, entity: Thing) -> dict[str, Any]:
        return {"name": entity.name}


@pre_authorize(has_role(REQUIRED_ROLE))
class ThingRepository(ThingStore):
    """Thing persistence behind the authorization gate.

    Must be called inside auth.context.authenticated(); an anonymous call
    raises AuthenticationRequired and a caller without REQUIRED_ROLE gets
    AccessDenied, before the database is touched.
    """

    @pre_authorize(has_role(REQUIRED_ROLE))
    def find_by_id(self, entity_id: int) -> Optional[Thing]:
        """Return the Thing with entity_id, or None if there is none.

        Denial never reveals whether entity_id exists.
        """
        return super().find_by_id(entity_id)

    @permit_all
    def ping(self) -> bool:
        return super().ping()

    @permit_all
    def close(self) -> None:
        super().close()
