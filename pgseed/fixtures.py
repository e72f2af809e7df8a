from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pgseed.discovery import FixtureSourceFile, discover_sources
from pgseed.errors import FixtureFormatError, SeedConfigError
from pgseed.naming import table_name_for_export


REF_KEY = "$ref"

Record = dict[str, Any]


@dataclass(frozen=True)
class FixtureExport:
    name: str
    table: str
    # Semantic record name -> record. Names are for references only and never persisted.
    records: dict[str, Record]

    def rows(self) -> list[Record]:
        return list(self.records.values())


@dataclass(frozen=True)
class FixtureSource:
    name: str
    path: Path
    exports: list[FixtureExport] = field(default_factory=list)


# Export name -> record name -> resolved record.
Registry = dict[str, dict[str, Record]]


def _parse(source: FixtureSourceFile) -> Any:
    try:
        if source.ext == "json":
            return json.loads(source.path.read_text(encoding="utf-8"))
        if source.ext == "toml":
            return tomllib.loads(source.path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
        raise FixtureFormatError(f"{source.path.name}: {e}") from e
    raise SeedConfigError(f"{source.path.name}: unsupported fixture format {source.ext!r} (use json or toml)")


def resolve_ref(ref: str, registry: Registry) -> Any:
    """
    Resolve `export.record` (the record's id) or `export.record.column`.
    """
    parts = ref.split(".")
    if len(parts) not in (2, 3):
        raise FixtureFormatError(f"bad reference {ref!r}: expected export.record[.column]")
    export_name, record_name = parts[0], parts[1]
    column = parts[2] if len(parts) == 3 else "id"

    record = registry.get(export_name, {}).get(record_name)
    if record is None:
        raise FixtureFormatError(f"unknown reference {ref!r}: only earlier fixtures can be referenced")
    if column not in record:
        raise FixtureFormatError(f"unknown reference {ref!r}: record has no column {column!r}")
    return record[column]


def _resolve_value(value: Any, registry: Registry) -> Any:
    if isinstance(value, dict) and set(value) == {REF_KEY}:
        return resolve_ref(str(value[REF_KEY]), registry)
    return value


def load_source(source: FixtureSourceFile, registry: Registry, *, prefix: str = "test") -> FixtureSource:
    """
    Load one fixture file and add its exports to `registry`.

    Exports keep file order; each export is visible to the references of the
    exports after it, in this file and in later ones.
    """
    data = _parse(source)
    if not isinstance(data, dict):
        raise FixtureFormatError(f"{source.path.name}: top level must be a mapping of exports")

    exports: list[FixtureExport] = []
    for export_name, raw_records in data.items():
        table = table_name_for_export(export_name, prefix)
        if not isinstance(raw_records, dict):
            raise FixtureFormatError(f"{source.path.name}: export {export_name!r} must map record names to records")

        records: dict[str, Record] = {}
        for record_name, raw in raw_records.items():
            if not isinstance(raw, dict):
                raise FixtureFormatError(f"{source.path.name}: {export_name}.{record_name} must be a mapping")
            records[record_name] = {k: _resolve_value(v, registry) for k, v in raw.items()}

        registry[export_name] = records
        exports.append(FixtureExport(name=export_name, table=table, records=records))

    return FixtureSource(name=source.name, path=source.path, exports=exports)


def load_fixtures(directory: Path, *, prefix: str = "test") -> list[FixtureSource]:
    registry: Registry = {}
    return [load_source(s, registry, prefix=prefix) for s in discover_sources(directory)]
