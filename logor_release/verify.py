"""Compare archive contents against the required-file manifest."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Sequence


@dataclass(frozen=True, slots=True)
class VerificationGap:
    """A required path missing from the artifact. Reported, never raised."""

    path: str


@dataclass(slots=True)
class VerificationReport:
    results: Dict[str, bool] = field(default_factory=dict)

    @property
    def present(self) -> List[str]:
        return [path for path, found in self.results.items() if found]

    @property
    def missing(self) -> List[str]:
        return [path for path, found in self.results.items() if not found]

    @property
    def gaps(self) -> List[VerificationGap]:
        return [VerificationGap(path) for path in self.missing]

    @property
    def ok(self) -> bool:
        return not self.missing

    def to_dict(self) -> Dict[str, object]:
        return {
            "ok": self.ok,
            "results": dict(self.results),
            "missing": self.missing,
        }


def verify_entries(entries: Iterable[str], manifest: Sequence[str]) -> VerificationReport:
    """Exact string match of each manifest path against the listed entries."""

    listed = set(entries)
    return VerificationReport(results={path: path in listed for path in manifest})


def verify_tree(root: Path, manifest: Sequence[str]) -> VerificationReport:
    """Filesystem existence check of each manifest path below ``root``."""

    return VerificationReport(results={path: (root / path).exists() for path in manifest})
