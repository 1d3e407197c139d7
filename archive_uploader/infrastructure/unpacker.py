"""
Infrastructure adapter that expands zip archives into object storage.
"""

import asyncio
import concurrent.futures
import logging
import shutil
import zipfile
import zlib

from tqdm import tqdm

from ..application.domain import (
    BucketSession,
    ObjectStore,
    ScratchArchive,
    UnpackerUploader,
    UploadReport,
)
from ..application.exceptions import (
    ArchiveOpenError,
    EntryOpenError,
    UploadError,
)

# Errors a zip entry stream can raise while being opened or read.
_ENTRY_READ_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    NotImplementedError,
    RuntimeError,
)


class ZipUnpackerUploader(UnpackerUploader):
    """
    An adapter that implements the UnpackerUploader port for zip files,
    copying every entry to an object named after the entry.
    """

    def __init__(self, object_store: ObjectStore, chunk_size: int = 1024 * 1024):
        """Initializes the unpacker."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.object_store = object_store
        self.chunk_size = chunk_size

    def _upload_entry(
        self,
        archive_zip: zipfile.ZipFile,
        info: zipfile.ZipInfo,
        session: BucketSession,
    ):
        """Streams one entry into the object of the same name."""
        try:
            reader = archive_zip.open(info)
        except (*_ENTRY_READ_ERRORS, OSError) as e:
            raise EntryOpenError(f"Cannot open entry {info.filename}: {e}") from e

        with reader:
            try:
                with session.open_writer(info.filename) as writer:
                    shutil.copyfileobj(reader, writer, self.chunk_size)
            except (*_ENTRY_READ_ERRORS, OSError) as e:
                raise UploadError(
                    f"Copy of {info.filename} to object storage failed: {e}"
                ) from e

    def _blocking_unpack_and_upload(
        self, archive: ScratchArchive, bucket_name: str
    ) -> UploadReport:
        """
        Walks the archive in container order, uploading each entry.

        Entry failures are logged and recorded on the report; the remaining
        entries are still attempted.
        """
        try:
            archive_zip = zipfile.ZipFile(archive.path)
        except (zipfile.BadZipFile, OSError) as e:
            raise ArchiveOpenError(
                f"Unable to open zip {archive.path.name}: {e}"
            ) from e

        report = UploadReport(archive=archive)
        with archive_zip, self.object_store.session(bucket_name) as session:
            for info in tqdm(
                archive_zip.infolist(), desc=archive.path.name, unit="entry"
            ):
                self.logger.debug(f"Uploading {info.filename}")
                try:
                    self._upload_entry(archive_zip, info, session)
                except (EntryOpenError, UploadError) as e:
                    self.logger.error(str(e))
                    report.failed_entries.append((info.filename, e))
                else:
                    report.succeeded_keys.add(info.filename)

        return report

    async def unpack_and_upload(
        self, archive: ScratchArchive, bucket_name: str
    ) -> UploadReport:
        """
        Upload every entry of a downloaded archive to `bucket_name`.

        This public method fulfills the UnpackerUploader port contract. The
        heavy, blocking decompression and upload work runs in a thread of its
        own, outside the loop's default executor, so a long upload never holds
        up downloads that write through that executor.

        Args:
            archive: The downloaded archive to expand.
            bucket_name: The destination bucket.

        Returns:
            An UploadReport listing uploaded keys and failed entries.

        Raises:
            ArchiveOpenError: If the file is not a readable zip archive.
            UploadError: If no storage session can be opened.
        """

        self.logger.info(
            f"Expanding {archive.path.name} into bucket {bucket_name}..."
        )
        loop = asyncio.get_running_loop()
        with concurrent.futures.ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"unpack-{archive.entry.ordinal:02d}"
        ) as executor:
            return await loop.run_in_executor(
                executor, self._blocking_unpack_and_upload, archive, bucket_name
            )
