from __future__ import annotations


class SeedError(Exception):
    pass


class SeedConfigError(SeedError):
    pass


class FixtureFormatError(SeedConfigError):
    pass


class SchemaMismatchError(SeedError):
    pass
