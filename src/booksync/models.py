from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class Statistic(Enum):
    FOUND_SOURCE = "found_source"
    SKIPPED_EXISTING = "skipped_existing"
    COPIED = "copied"


@dataclass(slots=True)
class RunSummary:
    found: int = 0
    skipped: int = 0
    copied: int = 0
    source_dirs: list[Path] = field(default_factory=list)

    def absorb(self, stat: Statistic) -> None:
        if stat is Statistic.FOUND_SOURCE:
            self.found += 1
        elif stat is Statistic.SKIPPED_EXISTING:
            self.skipped += 1
        elif stat is Statistic.COPIED:
            self.copied += 1

    @property
    def balanced(self) -> bool:
        return self.found == self.skipped + self.copied
