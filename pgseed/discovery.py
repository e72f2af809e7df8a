from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from pgseed.errors import SeedConfigError


_SOURCE_RE = re.compile(r"^(\d+)-([^.]+)\.fixture\.([^.]+)$")


@dataclass(frozen=True)
class FixtureSourceFile:
    path: Path
    order: int
    label: str
    ext: str

    @property
    def name(self) -> str:
        return self.path.name.split(".", 1)[0]


def match_source(path: Path) -> FixtureSourceFile | None:
    m = _SOURCE_RE.match(path.name)
    if not m:
        return None
    return FixtureSourceFile(path=path, order=int(m.group(1)), label=m.group(2), ext=m.group(3))


def discover_sources(directory: Path) -> list[FixtureSourceFile]:
    """
    List fixture sources in insertion order.

    Only regular files named `<digits>-<name>.fixture.<ext>` are picked up; anything
    else in the directory is ignored. The numeric prefix encodes foreign-key order,
    so two sources sharing a prefix is an error rather than an arbitrary tie-break.
    """
    if not directory.is_dir():
        raise SeedConfigError(f"fixtures directory not found: {directory}")

    sources = [s for s in (match_source(p) for p in directory.iterdir() if p.is_file()) if s is not None]
    sources.sort(key=lambda s: s.order)

    for prev, cur in zip(sources, sources[1:]):
        if prev.order == cur.order:
            raise SeedConfigError(f"duplicate fixture order {cur.order}: {prev.path.name}, {cur.path.name}")
    return sources
