from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

import sqlalchemy as sa
from sqlalchemy.pool import NullPool

from pgseed.errors import SchemaMismatchError


def _bind_value(v: Any) -> Any:
    # Nested mappings go to json/jsonb columns as text; psycopg sends str untyped.
    if isinstance(v, dict):
        return json.dumps(v, default=str)
    return v


def build_insert(table: str, records: list[dict[str, Any]]) -> sa.Insert:
    """
    One multi-row INSERT for all records.

    Columns are the union of record keys in first-seen order; a record that lacks a
    column inserts DEFAULT for it rather than NULL.
    """
    columns: list[str] = []
    for record in records:
        for key in record:
            if key not in columns:
                columns.append(key)

    tbl = sa.table(table, *(sa.column(c) for c in columns))
    rows = [
        {c: _bind_value(record[c]) if c in record else sa.literal_column("DEFAULT") for c in columns}
        for record in records
    ]
    return tbl.insert().values(rows)


class SeedDatabase:
    """
    Seeding statements over a single connection.

    `transaction()` opens a transaction, or a savepoint when the connection is
    already inside one (a handle passed in by the caller).
    """

    def __init__(self, conn: sa.Connection) -> None:
        self._conn = conn

    def _quote(self, table: str) -> str:
        return self._conn.dialect.identifier_preparer.quote(table)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        begin = self._conn.begin_nested if self._conn.in_transaction() else self._conn.begin
        with begin():
            yield

    def identity_enabled(self, table: str) -> bool:
        q = sa.text(
            "SELECT is_identity FROM information_schema.columns "
            "WHERE table_schema = current_schema() AND table_name = :t AND column_name = 'id'"
        )
        value = self._conn.execute(q, {"t": table}).scalar_one_or_none()
        if value is None:
            raise SchemaMismatchError(f"table {table!r} not found or has no id column")
        return value == "YES"

    def drop_identity(self, table: str) -> None:
        self._conn.execute(sa.text(f"ALTER TABLE {self._quote(table)} ALTER COLUMN id DROP IDENTITY"))

    def insert_records(self, table: str, records: list[dict[str, Any]]) -> int:
        self._conn.execute(build_insert(table, records))
        return len(records)

    def restore_identity(self, table: str) -> None:
        # ALWAYS (not BY DEFAULT): a stray explicit id later fails loudly instead of desyncing the sequence.
        self._conn.execute(
            sa.text(f"ALTER TABLE {self._quote(table)} ALTER COLUMN id ADD GENERATED ALWAYS AS IDENTITY")
        )

    def resync_sequence(self, table: str) -> int:
        quoted = self._quote(table)
        q = sa.text(f"SELECT setval(pg_get_serial_sequence(:t, 'id'), (SELECT MAX(id) FROM {quoted}))")
        return int(self._conn.execute(q, {"t": quoted}).scalar_one())

    def existing_tables(self, tables: Iterable[str]) -> set[str]:
        names = sorted(set(tables))
        if not names:
            return set()
        q = sa.text(
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = current_schema() AND table_name IN :names"
        ).bindparams(sa.bindparam("names", expanding=True))
        return set(self._conn.execute(q, {"names": names}).scalars())


@contextmanager
def open_database(database_url: str) -> Iterator[SeedDatabase]:
    """Acquire one connection for the whole run; it is released exactly once, also on error."""
    engine = sa.create_engine(database_url, future=True, poolclass=NullPool)
    try:
        with engine.connect() as conn:
            yield SeedDatabase(conn)
    finally:
        engine.dispose()
