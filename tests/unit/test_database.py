from __future__ import annotations

import json
from contextlib import contextmanager

import pytest
from sqlalchemy.dialects import postgresql


def _sql(stmt) -> str:
    return str(stmt.compile(dialect=postgresql.dialect()))


def test_build_insert_is_single_multi_row_statement() -> None:
    from pgseed.database import build_insert

    stmt = build_insert("regions", [{"id": 1, "name": "Europe"}, {"id": 2, "name": "Australia"}])
    sql = _sql(stmt)

    assert sql.startswith("INSERT INTO regions (id, name) VALUES")
    assert sql.count("(%(") == 2


def test_build_insert_uses_union_of_columns_and_default_for_gaps() -> None:
    from pgseed.database import build_insert

    stmt = build_insert("campus_info", [{"id": 1, "campus_name": "Dublin"}, {"id": 2, "details": {"floors": 4}}])
    compiled = stmt.compile(dialect=postgresql.dialect())
    sql = str(compiled)

    assert sql.startswith("INSERT INTO campus_info (id, campus_name, details) VALUES")
    assert sql.count("DEFAULT") == 2
    assert json.dumps({"floors": 4}) in compiled.params.values()


class _FakeConnection:
    def __init__(self, calls: list[str], in_transaction: bool = False) -> None:
        self.calls = calls
        self._in_transaction = in_transaction

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self.calls.append("close")

    def in_transaction(self) -> bool:
        return self._in_transaction

    @contextmanager
    def begin(self):
        self.calls.append("begin")
        yield

    @contextmanager
    def begin_nested(self):
        self.calls.append("savepoint")
        yield


class _FakeEngine:
    def __init__(self, calls: list[str]) -> None:
        self.calls = calls

    def connect(self) -> _FakeConnection:
        self.calls.append("connect")
        return _FakeConnection(self.calls)

    def dispose(self) -> None:
        self.calls.append("dispose")


def test_open_database_releases_connection_once_when_body_raises(monkeypatch) -> None:
    from pgseed.database import open_database

    calls: list[str] = []
    monkeypatch.setattr("pgseed.database.sa.create_engine", lambda *args, **kw: _FakeEngine(calls))

    with pytest.raises(RuntimeError, match="boom"):
        with open_database("postgresql+psycopg://x:y@localhost/db"):
            raise RuntimeError("boom")

    assert calls == ["connect", "close", "dispose"]


def test_transaction_uses_savepoint_inside_callers_transaction() -> None:
    from pgseed.database import SeedDatabase

    calls: list[str] = []
    with SeedDatabase(_FakeConnection(calls)).transaction():
        pass
    with SeedDatabase(_FakeConnection(calls, in_transaction=True)).transaction():
        pass

    assert calls == ["begin", "savepoint"]
