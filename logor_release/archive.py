"""Open downloaded release archives and enumerate or extract their members."""

from __future__ import annotations

import logging
import os
import tarfile
import zipfile
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional

from .errors import ArchiveOpenError
from .events import NullListener, ProgressListener, StepReporter
from .models import ArchiveHandle

logger = logging.getLogger(__name__)


class ArchiveFormat(str, Enum):
    ZIP = "zip"
    TAR_GZ = "tar.gz"

    @property
    def suffix(self) -> str:
        return ".zip" if self is ArchiveFormat.ZIP else ".tgz"


def normalize_entry(name: str) -> str:
    """Return ``name`` as a forward-slash relative path without a leading ``./``."""

    normalized = name.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.rstrip("/")


def iter_entries(path: Path, archive_format: ArchiveFormat) -> Iterator[str]:
    """Lazily yield the relative paths of file members.

    The archive stays open while the generator is alive; iterate again by
    calling this function again.
    """

    archive_format = ArchiveFormat(archive_format)
    try:
        if archive_format is ArchiveFormat.ZIP:
            with zipfile.ZipFile(path) as archive:
                for info in archive.infolist():
                    if not info.is_dir():
                        yield normalize_entry(info.filename)
        else:
            with tarfile.open(path, "r:gz") as archive:
                for member in archive:
                    if not member.isdir():
                        name = normalize_entry(member.name)
                        if name:
                            yield name
    except (zipfile.BadZipFile, tarfile.TarError, EOFError, OSError) as exc:
        raise ArchiveOpenError(f"Cannot read {archive_format.value} archive {path}: {exc}") from exc


def _inside(root: Path, candidate: Path) -> bool:
    try:
        candidate.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True


def extract_archive(path: Path, destination: Path, archive_format: ArchiveFormat) -> Path:
    """Extract every member of ``path`` below ``destination``.

    Members whose target would land outside ``destination`` are rejected.
    """

    archive_format = ArchiveFormat(archive_format)
    try:
        destination.mkdir(parents=True, exist_ok=True)
        if archive_format is ArchiveFormat.ZIP:
            with zipfile.ZipFile(path) as archive:
                for name in archive.namelist():
                    if not _inside(destination, destination / name):
                        raise ArchiveOpenError(f"Archive member escapes extraction root: {name}")
                archive.extractall(destination)
        else:
            with tarfile.open(path, "r:gz") as archive:
                members = archive.getmembers()
                for member in members:
                    if not _inside(destination, destination / member.name):
                        raise ArchiveOpenError(f"Archive member escapes extraction root: {member.name}")
                    if (member.issym() or member.islnk()) and not _inside(
                        destination, destination / os.path.dirname(member.name) / member.linkname
                    ):
                        raise ArchiveOpenError(f"Archive link escapes extraction root: {member.name}")
                if hasattr(tarfile, "data_filter"):
                    archive.extractall(destination, members=members, filter="data")
                else:  # pragma: no cover - interpreters without extraction filters
                    archive.extractall(destination, members=members)
    except (zipfile.BadZipFile, tarfile.TarError, EOFError, OSError) as exc:
        raise ArchiveOpenError(f"Cannot extract {archive_format.value} archive {path}: {exc}") from exc
    return destination


ARCHIVE_SUFFIXES = (".tar.gz", ".tgz", ".zip")


def extraction_dir(archive_path: Path) -> Path:
    """Sibling directory that holds the extracted tree of ``archive_path``."""

    name = archive_path.name
    for suffix in ARCHIVE_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            return archive_path.with_name(name[: -len(suffix)])
    return archive_path.with_name(f"{name}.extracted")


def walk_tree(root: Path) -> List[str]:
    return sorted(path.relative_to(root).as_posix() for path in root.rglob("*") if not path.is_dir())


class ArchiveInspector:
    def __init__(
        self,
        archive_format: ArchiveFormat,
        *,
        keep_archive: bool = False,
        listener: Optional[ProgressListener] = None,
    ) -> None:
        self.archive_format = ArchiveFormat(archive_format)
        self.keep_archive = keep_archive
        self.reporter = StepReporter(listener or NullListener(), "inspect")

    def open_and_list(self, path: Path) -> ArchiveHandle:
        """Read the entry table without extracting, then discard the archive."""

        self.reporter.started(f"Listing {self.archive_format.value} archive {path.name}")
        entries = list(iter_entries(path, self.archive_format))
        self.reporter.succeeded(f"Read {len(entries)} entries from {path.name}", entries=len(entries))
        self._discard(path)
        return ArchiveHandle(path=path, archive_format=self.archive_format.value, entries=entries)

    def extract(self, path: Path, destination: Path) -> ArchiveHandle:
        """Extract into ``destination`` and list the resulting tree, then discard the archive."""

        self.reporter.started(f"Extracting {path.name} to {destination}...")
        extract_archive(path, destination, self.archive_format)
        entries = walk_tree(destination)
        self.reporter.succeeded(f"Extracted to {destination}", entries=len(entries))
        self._discard(path)
        return ArchiveHandle(
            path=path,
            archive_format=self.archive_format.value,
            entries=entries,
            extracted_root=destination,
        )

    def _discard(self, path: Path) -> None:
        if self.keep_archive:
            return
        path.unlink(missing_ok=True)
        self.reporter.progress(f"Deleted {path.name}")
