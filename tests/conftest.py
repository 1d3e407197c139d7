"""Shared fakes and fixtures for the archive_uploader tests."""

import asyncio
import contextlib
import io
import zipfile
from pathlib import Path
from typing import Dict, Iterable, List

import pytest

from archive_uploader.application.domain import (
    BucketSession,
    CatalogEntry,
    CatalogSource,
    Fetcher,
    ObjectStore,
    RunConfig,
    ScratchArchive,
    UnpackerUploader,
    UploadReport,
)
from archive_uploader.application.exceptions import TransportError


def build_zip(entries: Dict[str, bytes], compression=zipfile.ZIP_DEFLATED) -> bytes:
    """Returns the bytes of a zip holding `entries` in insertion order."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=compression) as archive:
        for name, data in entries.items():
            archive.writestr(name, data)
    return buffer.getvalue()


class _FailingWriter(io.BytesIO):
    """Accepts one byte, then fails like a dropped connection."""

    def write(self, data):
        super().write(bytes(data[:1]))
        raise OSError("connection reset by peer")


class FakeBucketSession(BucketSession):
    def __init__(self, store: "FakeObjectStore", bucket_name: str):
        self.store = store
        self.bucket_name = bucket_name

    @contextlib.contextmanager
    def open_writer(self, key):
        self.store.writes.append(key)
        if key in self.store.fail_keys:
            writer = _FailingWriter()
        else:
            writer = io.BytesIO()
        try:
            yield writer
        finally:
            self.store.closed.append(key)
        self.store.objects[(self.bucket_name, key)] = writer.getvalue()


class FakeObjectStore(ObjectStore):
    """In-memory object store keyed by (bucket, key)."""

    def __init__(self, fail_keys: Iterable[str] = ()):
        self.fail_keys = set(fail_keys)
        self.objects = {}
        self.sessions: List[str] = []
        self.writes: List[str] = []
        self.closed: List[str] = []

    @contextlib.contextmanager
    def session(self, bucket_name):
        self.sessions.append(bucket_name)
        yield FakeBucketSession(self, bucket_name)


class StaticCatalog(CatalogSource):
    def __init__(self, urls: Iterable[str]):
        self.entries = [
            CatalogEntry(ordinal=ordinal, url=url)
            for ordinal, url in enumerate(urls, start=1)
        ]

    def load(self):
        return list(self.entries)


class RecordingFetcher(Fetcher):
    """Writes placeholder bytes and records the call order."""

    def __init__(self, events: list, fail_ordinals: Iterable[int] = ()):
        self.events = events
        self.fail_ordinals = set(fail_ordinals)
        self.gates: Dict[int, asyncio.Event] = {}

    def gate(self, ordinal: int) -> asyncio.Event:
        return self.gates.setdefault(ordinal, asyncio.Event())

    async def fetch(self, entry, destination: Path):
        self.events.append(("fetch", entry.ordinal))
        if entry.ordinal in self.gates:
            await self.gates[entry.ordinal].wait()
        await asyncio.sleep(0)
        if entry.ordinal in self.fail_ordinals:
            raise TransportError(f"cannot reach {entry.url}")
        destination.write_bytes(b"placeholder")
        self.events.append(("fetched", entry.ordinal))
        return ScratchArchive(entry=entry, path=destination, size_bytes=11)


class RecordingUnpacker(UnpackerUploader):
    """Reports one uploaded key per archive and records the call order."""

    def __init__(self, events: list):
        self.events = events

    async def unpack_and_upload(self, archive, bucket_name):
        ordinal = archive.entry.ordinal
        self.events.append(("unpack", ordinal))
        assert archive.path.exists()
        await asyncio.sleep(0)
        self.events.append(("unpacked", ordinal))
        return UploadReport(
            archive=archive, succeeded_keys={f"{ordinal:02d}/image.png"}
        )


@pytest.fixture
def object_store():
    return FakeObjectStore()


@pytest.fixture
def run_config(tmp_path):
    return RunConfig(bucket_name="test-bucket", scratch_dir=tmp_path)
