"""
This module defines the core domain models for the application.

These classes represent the pure, technology-agnostic entities and data
structures that the application's business logic operates on, together with
the ports implemented by the infrastructure layer.
"""

import collections
import dataclasses
from pathlib import Path

from abc import ABC, abstractmethod
from typing import BinaryIO, ContextManager, Dict, Iterable, List, Optional, Set, Tuple

DEFAULT_SCRATCH_TEMPLATE = "Images_png_{ordinal:02d}.zip"


# --- Domain Models ---

@dataclasses.dataclass(frozen=True)
class CatalogEntry:
    """One remote archive of the catalog, identified by its 1-based ordinal."""

    ordinal: int
    url: str

    def scratch_name(self, template: str = DEFAULT_SCRATCH_TEMPLATE) -> str:
        """Derives the local scratch filename from the ordinal."""
        return template.format(ordinal=self.ordinal)


def select_from(
    entries: Iterable[CatalogEntry], resume_at: int
) -> List[CatalogEntry]:
    """Keeps the entries at or after the resume ordinal, in ordinal order."""
    return sorted(
        (entry for entry in entries if entry.ordinal >= resume_at),
        key=lambda entry: entry.ordinal,
    )


@dataclasses.dataclass(frozen=True)
class RunConfig:
    """Run parameters, built once at startup and handed to the service."""

    bucket_name: str
    resume_at: int = 1
    parallel: bool = False
    remove_files: bool = False
    scratch_dir: Path = Path(".")
    scratch_name_template: str = DEFAULT_SCRATCH_TEMPLATE

    def scratch_path(self, entry: CatalogEntry) -> Path:
        return self.scratch_dir / entry.scratch_name(self.scratch_name_template)


@dataclasses.dataclass(frozen=True)
class ScratchArchive:
    """A fully downloaded archive on local disk."""

    entry: CatalogEntry
    path: Path
    size_bytes: int


@dataclasses.dataclass
class UploadReport:
    """
    Result of expanding one archive into object storage.

    Entry failures do not abort the archive, so a report can mix uploaded keys
    and failed entries. Failed entries keep container order.
    """

    archive: ScratchArchive
    succeeded_keys: Set[str] = dataclasses.field(default_factory=set)
    failed_entries: List[Tuple[str, Exception]] = dataclasses.field(
        default_factory=list
    )

    @property
    def ok(self) -> bool:
        return not self.failed_entries

    @property
    def attempted(self) -> int:
        return len(self.succeeded_keys) + len(self.failed_entries)


@dataclasses.dataclass
class ArchiveOutcome:
    """Result of one archive pipeline run."""

    entry: CatalogEntry
    report: Optional[UploadReport] = None
    error: Optional[Exception] = None
    scratch_removed: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and self.report is not None and self.report.ok


@dataclasses.dataclass
class RunSummary:
    """Aggregate of every archive outcome of a run."""

    outcomes: List[ArchiveOutcome] = dataclasses.field(default_factory=list)

    @property
    def succeeded(self) -> List[ArchiveOutcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> List[ArchiveOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def uploaded_count(self) -> int:
        return sum(
            len(outcome.report.succeeded_keys)
            for outcome in self.outcomes
            if outcome.report is not None
        )

    def duplicate_keys(self) -> Dict[str, List[int]]:
        """Returns object keys written by more than one archive, with their ordinals."""
        owners = collections.defaultdict(list)
        for outcome in self.outcomes:
            if outcome.report is None:
                continue
            for key in outcome.report.succeeded_keys:
                owners[key].append(outcome.entry.ordinal)
        return {
            key: sorted(ordinals)
            for key, ordinals in owners.items()
            if len(ordinals) > 1
        }


# --- Ports (Interfaces) ---

class CatalogSource(ABC):
    """A port for the ordered list of archives to transfer."""

    @abstractmethod
    def load(self) -> List[CatalogEntry]:
        """Returns the full catalog in ordinal order."""
        pass


class Fetcher(ABC):
    """A port for any remote archive fetcher."""

    @abstractmethod
    async def fetch(
        self, entry: CatalogEntry, destination: Path
    ) -> ScratchArchive:
        """
        Downloads one archive to a destination path.
        Raises LocalIOError or TransportError on failure.
        """
        pass


class BucketSession(ABC):
    """An open connection to one bucket, reused for every entry of an archive."""

    @abstractmethod
    def open_writer(self, key: str) -> ContextManager[BinaryIO]:
        """Opens a write stream to the object `key`; closing it commits the object."""
        pass


class ObjectStore(ABC):
    """A port for object storage."""

    @abstractmethod
    def session(self, bucket_name: str) -> ContextManager[BucketSession]:
        """Opens a session against a bucket. Raises UploadError on failure."""
        pass


class UnpackerUploader(ABC):
    """A port for expanding a local archive into object storage."""

    @abstractmethod
    async def unpack_and_upload(
        self, archive: ScratchArchive, bucket_name: str
    ) -> UploadReport:
        """
        Uploads every entry of the archive under its stored name.
        Raises ArchiveOpenError if the archive cannot be opened.
        """
        pass
