"""
core/repository.py -- Generic soft-delete-aware repository over one table.

Pattern: Repository + Data Mapper. Every entity store in auth/ and tracker/
subclasses Repository, points it at a Table and a dataclass, and inherits the
uniform operation set:

  list(include_deleted, active_only, **filters)  -- ordered, never errors on empty
  paginate(page, limit, **filters)                -- list plus Pagination metadata
  get(id, include_deleted)                        -- NotFound when missing/deleted
  exists(id)                                      -- live-row check for FK validation
  create(**values)                                -- returns the created row
  update(id, **fields)                            -- partial update of a live row
  delete(id, deleted_by)                          -- soft delete, or hard delete
  restore(id)                                     -- clears deleted_at/deleted_by

Soft delete lifecycle (soft_delete = True):
  delete sets deleted_at = now and deleted_by = caller. Missing rows raise
  NotFound; rows that are already deleted raise InvalidState. restore applies
  the mirror-image checks: NotFound when missing, InvalidState when the row is
  not currently deleted. Both writes are conditional UPDATEs, so the pre-state
  check and the write happen in one statement.

Hard delete (soft_delete = False) physically removes the row. A foreign key
rejection from the database surfaces as Conflict.

Uniqueness is enforced by the schema, not by pre-queries: IntegrityError from
INSERT/UPDATE is translated to Conflict.

Subclasses customise by overriding the small hooks:
  _select()        -- add joined display columns (labels must not collide)
  _filter()        -- add non-equality filters (date ranges, etc.)
  _to_model()      -- add computed fields
  _after_insert()  -- derive values that need the generated id

Security: all statements are built with SQLAlchemy Core expressions. Filter
keys are column names chosen by route code, never raw user input.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Any, Optional

from sqlalchemy import Table, func, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.sql import Select

from core.database import now_iso
from core.errors import Conflict, InvalidState, NotFound, ValidationError

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass
class Pagination:
    total: int
    page: int
    limit: int
    total_pages: int


def row_to_model(model: type, row) -> Any:
    """Map a result row onto a dataclass, taking only the fields it declares."""
    data = row._mapping
    return model(**{f.name: data[f.name] for f in fields(model) if f.name in data})


def check_page(page: int, limit: int) -> None:
    if page < 1:
        raise ValidationError("page must be 1 or greater.")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}.")


class Repository:
    table: Table
    model: type
    entity: str = "Record"
    soft_delete: bool = True
    order_by: tuple = ()

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # ------------------------------------------------------------------
    # Query building hooks
    # ------------------------------------------------------------------

    def _select(self) -> Select:
        return select(self.table)

    def _active_clause(self):
        return self.table.c.is_active.is_(True)

    def _filter(self, stmt: Select, include_deleted: bool = False, active_only: bool = False, **filters) -> Select:
        """Apply the soft-delete guard, the active flag and equality filters.

        None-valued filters are skipped so routes can pass optional query
        parameters straight through.
        """
        if self.soft_delete and not include_deleted:
            stmt = stmt.where(self.table.c.deleted_at.is_(None))
        if active_only:
            stmt = stmt.where(self._active_clause())
        for name, value in filters.items():
            if value is None:
                continue
            stmt = stmt.where(self.table.c[name] == value)
        return stmt

    def _ordered(self, stmt: Select) -> Select:
        return stmt.order_by(*(self.order_by or (self.table.c.id,)))

    def _to_model(self, row) -> Any:
        return row_to_model(self.model, row)

    def _after_insert(self, conn: Connection, record_id: int, values: dict) -> None:
        pass

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(self, include_deleted: bool = False, active_only: bool = False, **filters) -> list:
        stmt = self._ordered(self._filter(self._select(), include_deleted, active_only, **filters))
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [self._to_model(r) for r in rows]

    def paginate(
        self,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        include_deleted: bool = False,
        **filters,
    ) -> tuple[list, Pagination]:
        """Return one page of rows plus total/page/limit/total_pages."""
        check_page(page, limit)
        base = self._filter(self._select(), include_deleted, **filters)
        count_stmt = select(func.count()).select_from(base.subquery())
        stmt = self._ordered(base).limit(limit).offset((page - 1) * limit)
        with self.engine.connect() as conn:
            total = conn.execute(count_stmt).scalar() or 0
            rows = conn.execute(stmt).fetchall()
        pagination = Pagination(total=total, page=page, limit=limit, total_pages=math.ceil(total / limit))
        return [self._to_model(r) for r in rows], pagination

    def get(self, record_id: int, include_deleted: bool = False) -> Any:
        stmt = self._select().where(self.table.c.id == record_id)
        if self.soft_delete and not include_deleted:
            stmt = stmt.where(self.table.c.deleted_at.is_(None))
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        if row is None:
            raise NotFound(f"{self.entity} not found.")
        return self._to_model(row)

    def exists(self, record_id: Optional[int]) -> bool:
        """Return True if a live (not soft-deleted) row with this id exists."""
        if record_id is None:
            return False
        stmt = select(self.table.c.id).where(self.table.c.id == record_id)
        if self.soft_delete:
            stmt = stmt.where(self.table.c.deleted_at.is_(None))
        with self.engine.connect() as conn:
            return conn.execute(stmt).first() is not None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, **values) -> Any:
        now = now_iso()
        values.update(created_at=now, updated_at=now)
        try:
            with self.engine.connect() as conn:
                result = conn.execute(self.table.insert().values(**values))
                record_id = result.inserted_primary_key[0]
                self._after_insert(conn, record_id, values)
                conn.commit()
        except IntegrityError as exc:
            raise Conflict(f"{self.entity} conflicts with an existing record.") from exc
        return self.get(record_id)

    def update(self, record_id: int, **fields) -> Any:
        if not fields:
            raise ValidationError("No fields to update.")
        fields["updated_at"] = now_iso()
        stmt = self.table.update().where(self.table.c.id == record_id)
        if self.soft_delete:
            stmt = stmt.where(self.table.c.deleted_at.is_(None))
        try:
            with self.engine.connect() as conn:
                result = conn.execute(stmt.values(**fields))
                conn.commit()
        except IntegrityError as exc:
            raise Conflict(f"{self.entity} conflicts with an existing record.") from exc
        if result.rowcount == 0:
            raise NotFound(f"{self.entity} not found.")
        return self.get(record_id)

    def delete(self, record_id: int, deleted_by: Optional[int] = None) -> None:
        if not self.soft_delete:
            self._hard_delete(record_id)
            return
        now = now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                self.table.update()
                .where((self.table.c.id == record_id) & self.table.c.deleted_at.is_(None))
                .values(deleted_at=now, deleted_by=deleted_by, updated_at=now)
            )
            conn.commit()
        if result.rowcount == 0:
            self._raise_missing_or(record_id, f"{self.entity} is already deleted.")

    def restore(self, record_id: int) -> Any:
        if not self.soft_delete:
            raise InvalidState(f"{self.entity} records cannot be restored.")
        with self.engine.connect() as conn:
            result = conn.execute(
                self.table.update()
                .where((self.table.c.id == record_id) & self.table.c.deleted_at.is_not(None))
                .values(deleted_at=None, deleted_by=None, updated_at=now_iso())
            )
            conn.commit()
        if result.rowcount == 0:
            self._raise_missing_or(record_id, f"{self.entity} is not deleted.")
        return self.get(record_id)

    def _hard_delete(self, record_id: int) -> None:
        try:
            with self.engine.connect() as conn:
                result = conn.execute(self.table.delete().where(self.table.c.id == record_id))
                conn.commit()
        except IntegrityError as exc:
            raise Conflict(f"{self.entity} is still referenced by other records.") from exc
        if result.rowcount == 0:
            raise NotFound(f"{self.entity} not found.")

    def _raise_missing_or(self, record_id: int, state_message: str) -> None:
        """After a conditional write matched nothing, report why."""
        with self.engine.connect() as conn:
            found = conn.execute(select(self.table.c.id).where(self.table.c.id == record_id)).first()
        if found is None:
            raise NotFound(f"{self.entity} not found.")
        raise InvalidState(state_message)
