from __future__ import annotations

import re

from pgseed.errors import FixtureFormatError


_UPPER_RE = re.compile(r"[A-Z]")


def table_name_for_export(export_name: str, prefix: str = "test") -> str:
    """
    Derive the target table from a fixture export name.

    `testRegions` -> `regions`, `testCampusInfo` -> `campus_info`.
    """
    rest = export_name[len(prefix) :] if export_name.startswith(prefix) else ""
    if not rest or not rest[0].isupper():
        raise FixtureFormatError(f"export {export_name!r} must be {prefix!r} followed by a capitalized table name")
    rest = rest[0].lower() + rest[1:]
    return _UPPER_RE.sub(lambda m: "_" + m.group(0).lower(), rest)
