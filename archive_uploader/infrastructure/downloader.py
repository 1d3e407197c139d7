"""HTTP implementation of the Fetcher port."""

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import AsyncGenerator, BinaryIO, Generator, Optional

import httpx
from tqdm import tqdm

from ..application.domain import CatalogEntry, Fetcher, ScratchArchive
from ..application.exceptions import LocalIOError, TransportError


class HttpFetcher(Fetcher):
    """A fetcher that streams archives via HTTP onto local disk."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        chunk_size: int = 1024 * 1024,
        timeout: Optional[float] = None,
    ):
        """Initializes the fetcher adapter."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.client = client
        self.chunk_size = chunk_size
        self.timeout = timeout or None

    @contextlib.contextmanager
    def _scratch_target(self, destination: Path) -> Generator[BinaryIO, None, None]:
        """
        Opens a '.part' file next to the destination and renames it into place
        only if the body completes; the '.part' file never outlives the call.
        """
        part_path = destination.with_suffix(destination.suffix + ".part")
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            out_fh = open(part_path, "wb")
        except OSError as e:
            raise LocalIOError(f"Cannot create {part_path}: {e}") from e

        try:
            with out_fh:
                yield out_fh
            try:
                part_path.replace(destination)
            except OSError as e:
                raise LocalIOError(
                    f"Cannot move {part_path.name} to {destination}: {e}"
                ) from e
        finally:
            part_path.unlink(missing_ok=True)

    async def _stream_chunks(
        self, response: httpx.Response, out_fh: BinaryIO
    ) -> AsyncGenerator[int, None]:
        """Produce byte chunks from a response and write them to a file."""
        async for chunk in response.aiter_bytes(self.chunk_size):
            try:
                await asyncio.to_thread(out_fh.write, chunk)
            except OSError as e:
                raise LocalIOError(f"Write to {out_fh.name} failed: {e}") from e
            yield len(chunk)

    async def _consume_stream_with_progress(
        self,
        stream: AsyncGenerator[int, None],
        total_size: Optional[int],
        desc: str,
    ) -> int:
        """Consume the byte stream to update a TQDM progress bar."""

        with tqdm(
            total=total_size, unit="B", unit_scale=True, desc=desc
        ) as progress_bar:
            async for progress in stream:
                progress_bar.update(progress)

        return progress_bar.n

    async def _stream_from_network(
        self, entry: CatalogEntry, out_fh: BinaryIO, desc: str
    ) -> int:
        """Manage the network request and the streaming process."""
        async with self.client.stream(
            "GET", entry.url, timeout=self.timeout
        ) as response:
            response.raise_for_status()
            content_length = response.headers.get("Content-Length")
            total_size = int(content_length) if content_length else None
            stream = self._stream_chunks(response, out_fh)
            return await self._consume_stream_with_progress(
                stream, total_size, desc
            )

    async def fetch(
        self, entry: CatalogEntry, destination: Path
    ) -> ScratchArchive:
        """
        Download one archive to `destination`, overwriting any existing file.

        This is the public method that fulfills the Fetcher port contract. The
        body is streamed to disk in chunks; a failed transfer removes whatever
        was written so far, so the destination only ever holds a complete copy.

        Args:
            entry: The catalog entry to download.
            destination: The final desired path for the file.

        Returns:
            A ScratchArchive object representing the file on disk.

        Raises:
            LocalIOError: If the scratch file cannot be created or written.
            TransportError: If the request fails or returns an error status.
        """

        self.logger.info(f"Downloading {entry.url} to {destination.name}...")
        try:
            with self._scratch_target(destination) as out_fh:
                size = await self._stream_from_network(
                    entry, out_fh, destination.name
                )
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"Server returned {e.response.status_code} for {entry.url}"
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(
                f"Transfer of {entry.url} failed: {type(e).__name__}: {e}"
            ) from e

        self.logger.info(f"Finished downloading {destination.name} ({size} bytes)")
        return ScratchArchive(entry=entry, path=destination, size_bytes=size)
