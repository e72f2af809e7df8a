from __future__ import annotations

import argparse
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

import sqlalchemy as sa
from pydantic import ValidationError

from pgseed.database import SeedDatabase, open_database
from pgseed.errors import SchemaMismatchError, SeedConfigError, SeedError
from pgseed.fixtures import FixtureExport, FixtureSource, load_fixtures
from pgseed.logging import configure_logging, logger
from pgseed.settings import SeedSettings


@dataclass
class SeedReport:
    sources: int = 0
    # Table -> records inserted, in seeding order.
    tables: dict[str, int] = field(default_factory=dict)

    @property
    def records(self) -> int:
        return sum(self.tables.values())


def ensure_enabled(settings: SeedSettings) -> None:
    if not settings.seed_fixtures_enabled:
        raise SeedConfigError("refusing to seed: set SEED_FIXTURES_ENABLED=true to seed this database")


def seed_export(db: SeedDatabase, export: FixtureExport, source: str) -> int:
    """
    Insert one export's records with their explicit ids.

    Empty exports are skipped without touching the database. When `id` is an
    identity column it is dropped for the insert, re-added as GENERATED ALWAYS,
    and its sequence moved to max(id).
    """
    rows = export.rows()
    if not rows:
        return 0

    with db.transaction():
        had_identity = db.identity_enabled(export.table)
        if had_identity:
            db.drop_identity(export.table)
        count = db.insert_records(export.table, rows)
        if had_identity:
            db.restore_identity(export.table)
            db.resync_sequence(export.table)

    logger.info("fixture_table_seeded", table=export.table, source=source, count=count)
    return count


def preflight(db: SeedDatabase, sources: list[FixtureSource]) -> None:
    wanted = [e.table for s in sources for e in s.exports if e.records]
    with db.transaction():
        found = db.existing_tables(wanted)
    missing = sorted(set(wanted) - found)
    if missing:
        raise SchemaMismatchError(f"fixture tables not found: {', '.join(missing)}")


@contextmanager
def _database(settings: SeedSettings, db: SeedDatabase | None) -> Iterator[SeedDatabase]:
    if db is not None:
        yield db
        return
    with open_database(settings.database_url) as opened:
        yield opened


def run(settings: SeedSettings, db: SeedDatabase | None = None) -> SeedReport:
    """
    Seed every fixture source in order.

    Fail-fast: the first error aborts the run. Tables seeded before the failure stay
    committed. Pass `db` to run against an already open handle.
    """
    ensure_enabled(settings)
    sources = load_fixtures(Path(settings.fixtures_dir), prefix=settings.export_prefix)

    report = SeedReport(sources=len(sources))
    with _database(settings, db) as handle:
        if settings.seed_preflight:
            preflight(handle, sources)
        for source in sources:
            for export in source.exports:
                count = seed_export(handle, export, source.name)
                if count:
                    report.tables[export.table] = report.tables.get(export.table, 0) + count

    logger.info("fixture_seed_complete", sources=report.sources, tables=len(report.tables), records=report.records)
    return report


def _fail(e: Exception) -> SystemExit:
    logger.error("fixture_seed_failed", error=str(e), error_type=type(e).__name__)
    return SystemExit(1)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="pgseed", description="Seed fixture rows with explicit ids into PostgreSQL.")
    parser.add_argument("--database-url", default=None, help="Defaults to DATABASE_URL.")
    parser.add_argument("--fixtures-dir", default=None, help="Defaults to FIXTURES_DIR or ./fixtures.")
    parser.add_argument("--export-prefix", default=None, help="Marker stripped from export names (default: test).")
    parser.add_argument("--preflight", action="store_true", help="Check all fixture tables exist before seeding.")
    parser.add_argument(
        "--log-level", choices=["debug", "info", "warning", "error", "critical"], default=None, help="Defaults to LOG_LEVEL."
    )
    parser.add_argument("--log-format", choices=["console", "json"], default=None, help="Defaults to LOG_FORMAT.")
    args = parser.parse_args(argv)

    overrides = {
        "database_url": args.database_url,
        "fixtures_dir": args.fixtures_dir,
        "export_prefix": args.export_prefix,
        "seed_preflight": True if args.preflight else None,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    try:
        settings = SeedSettings(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError as e:
        raise _fail(e) from e

    configure_logging(settings.log_level, settings.log_format)
    try:
        run(settings)
    except (SeedError, sa.exc.SQLAlchemyError) as e:
        raise _fail(e) from e


if __name__ == "__main__":
    main()
