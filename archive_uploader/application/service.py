"""
The core application service and pipeline, containing pure business logic.

This module defines the main orchestrator (UploaderService) for the archive
transfer and the pipeline (ArchivePipeline) that fetches, expands and
optionally cleans up a single archive.
"""

import asyncio
import logging
from pathlib import Path
from typing import List

from tqdm.contrib.logging import logging_redirect_tqdm
from tqdm.asyncio import tqdm_asyncio

from .domain import *
from .exceptions import LocalIOError, UploaderError

logger = logging.getLogger(__name__)


class ArchivePipeline:
    """Encapsulates the full processing pipeline for a single archive."""

    def __init__(
        self,
        fetcher: Fetcher,
        unpacker: UnpackerUploader,
        config: RunConfig,
    ):
        """Initializes the pipeline with necessary dependencies (ports)."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.fetcher = fetcher
        self.unpacker = unpacker
        self.config = config

    def _remove_scratch(self, scratch_path: Path):
        """Deletes the scratch file once its entries have been uploaded."""
        try:
            scratch_path.unlink()
        except OSError as e:
            raise LocalIOError(
                f"Failed to remove scratch file {scratch_path}: {e}"
            ) from e
        self.logger.info(f"Removed scratch file {scratch_path.name}")

    def _log_report(self, report: UploadReport):
        name = report.archive.path.name
        if report.ok:
            self.logger.info(
                f"Uploaded {len(report.succeeded_keys)} entries of {name} "
                f"to {self.config.bucket_name}"
            )
            return
        self.logger.warning(
            f"Uploaded {len(report.succeeded_keys)} of {report.attempted} "
            f"entries of {name}; {len(report.failed_entries)} failed"
        )

    async def run(
        self, entry: CatalogEntry, remove_scratch: bool = False
    ) -> ArchiveOutcome:
        """Executes the sequential steps for processing one archive.

        Archive-level failures end this pipeline and are returned on the
        outcome instead of being raised, so one archive never stops the others.

        Args:
            entry: The catalog entry to transfer.
            remove_scratch: Delete the scratch file after a completed upload.

        Returns:
            The outcome of the pipeline for this entry.
        """

        scratch_path = self.config.scratch_path(entry)
        outcome = ArchiveOutcome(entry=entry)

        self.logger.info(f"Starting download of {scratch_path.name}...")

        try:
            # Step 1: Fetch (CatalogEntry -> ScratchArchive)
            archive = await self.fetcher.fetch(entry, scratch_path)
            self.logger.info(
                f"Download of {scratch_path.name} complete, beginning unzip "
                f"and upload to {self.config.bucket_name}"
            )

            # Step 2: Expand (ScratchArchive -> UploadReport)
            outcome.report = await self.unpacker.unpack_and_upload(
                archive, self.config.bucket_name
            )
            self._log_report(outcome.report)

            # Step 3: Cleanup, only once every entry has been attempted
            if remove_scratch:
                self._remove_scratch(scratch_path)
                outcome.scratch_removed = True
        except UploaderError as e:
            self.logger.error(f"Pipeline for {scratch_path.name} failed: {e}")
            outcome.error = e

        return outcome


class UploaderService:
    """Orchestrates the archive transfer by running pipelines."""

    def __init__(
        self,
        catalog_source: CatalogSource,
        fetcher: Fetcher,
        unpacker: UnpackerUploader,
        config: RunConfig,
    ):
        """Initializes the service and the reusable processing pipeline."""
        self.catalog_source = catalog_source
        self.config = config
        self.pipeline = ArchivePipeline(fetcher, unpacker, config)

    async def run_sequential(
        self, entries: List[CatalogEntry]
    ) -> List[ArchiveOutcome]:
        """Runs one pipeline at a time, in ordinal order."""
        outcomes = []
        for entry in entries:
            outcome = await self._run_guarded(
                entry, remove_scratch=self.config.remove_files
            )
            outcomes.append(outcome)
        return outcomes

    async def _run_guarded(
        self, entry: CatalogEntry, remove_scratch: bool = False
    ) -> ArchiveOutcome:
        """Turns an unexpected pipeline failure into an outcome."""
        try:
            return await self.pipeline.run(entry, remove_scratch=remove_scratch)
        except Exception as e:
            logger.exception(f"Unexpected failure for archive {entry.ordinal}")
            return ArchiveOutcome(entry=entry, error=e)

    async def run_concurrent(
        self, entries: List[CatalogEntry]
    ) -> List[ArchiveOutcome]:
        """Runs one task per archive and waits for every one of them."""

        if self.config.remove_files:
            logger.warning(
                "Scratch file removal is not supported in parallel mode; "
                "all downloaded archives will stay on disk."
            )

        tasks = [
            asyncio.create_task(self._run_guarded(entry)) for entry in entries
        ]

        logger.info(f"Starting {len(tasks)} processing pipelines in parallel...")

        with logging_redirect_tqdm():
            outcomes = await tqdm_asyncio.gather(
                *tasks, desc="Overall Progress", unit="archive"
            )

        return list(outcomes)

    def _log_summary(self, summary: RunSummary):
        logger.info(
            f"Processed {len(summary.outcomes)} archives: "
            f"{len(summary.succeeded)} succeeded, {len(summary.failed)} failed, "
            f"{summary.uploaded_count} objects uploaded."
        )
        for outcome in summary.failed:
            reason = outcome.error or (
                f"{len(outcome.report.failed_entries)} entries failed"
            )
            logger.error(f"Archive {outcome.entry.ordinal} incomplete: {reason}")

        duplicates = summary.duplicate_keys()
        if duplicates:
            logger.warning(
                f"{len(duplicates)} object keys were written by more than one "
                f"archive: {sorted(duplicates)[:10]}"
            )

    async def run(self) -> RunSummary:
        """Executes the transfer for every catalog entry from the resume point."""

        entries = select_from(self.catalog_source.load(), self.config.resume_at)
        mode = "parallel" if self.config.parallel else "sequential"
        logger.info(
            f"Starting upload to {self.config.bucket_name}. Mode: {mode}, "
            f"resuming at {self.config.resume_at}, {len(entries)} archives."
        )

        if not entries:
            logger.info("No archives found to process.")
            return RunSummary()

        if self.config.parallel:
            outcomes = await self.run_concurrent(entries)
        else:
            outcomes = await self.run_sequential(entries)

        summary = RunSummary(outcomes=outcomes)
        self._log_summary(summary)
        logger.info("All processing tasks completed.")
        return summary
