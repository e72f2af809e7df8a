from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable

import pytest


class RecordingDatabase:
    """Stands in for SeedDatabase; records every call in order."""

    def __init__(self, identity: dict[str, bool] | None = None) -> None:
        self.identity = dict(identity or {})
        self.calls: list[tuple[Any, ...]] = []
        self.rows: dict[str, list[dict[str, Any]]] = {}

    @contextmanager
    def transaction(self):
        self.calls.append(("begin",))
        yield
        self.calls.append(("commit",))

    def identity_enabled(self, table: str) -> bool:
        from pgseed.errors import SchemaMismatchError

        self.calls.append(("identity_enabled", table))
        if table not in self.identity:
            raise SchemaMismatchError(f"table {table!r} not found or has no id column")
        return self.identity[table]

    def drop_identity(self, table: str) -> None:
        self.calls.append(("drop_identity", table))

    def insert_records(self, table: str, records: list[dict[str, Any]]) -> int:
        self.calls.append(("insert_records", table, len(records)))
        self.rows.setdefault(table, []).extend(records)
        return len(records)

    def restore_identity(self, table: str) -> None:
        self.calls.append(("restore_identity", table))

    def resync_sequence(self, table: str) -> int:
        value = max(r["id"] for r in self.rows[table])
        self.calls.append(("resync_sequence", table, value))
        return value

    def existing_tables(self, tables) -> set[str]:
        names = set(tables)
        self.calls.append(("existing_tables", sorted(names)))
        return names & set(self.identity)


@pytest.fixture()
def recording_db() -> Callable[..., RecordingDatabase]:
    return RecordingDatabase


@pytest.fixture()
def write_fixture(tmp_path: Path) -> Callable[[str, Any], Path]:
    def _write(name: str, data: Any) -> Path:
        path = tmp_path / name
        path.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")
        return path

    return _write
