"""Google Cloud Storage implementation of the ObjectStore port."""

import contextlib
import logging
from typing import BinaryIO, Callable, Generator, Optional

from google.api_core import exceptions as gcloud_exceptions
from google.auth import exceptions as auth_exceptions
from google.cloud import storage
from google.cloud.storage import exceptions as storage_exceptions

from ..application.domain import BucketSession, ObjectStore
from ..application.exceptions import UploadError


class GcsBucketSession(BucketSession):
    """Writes objects into one bucket through a shared client."""

    def __init__(self, bucket: storage.Bucket):
        self.bucket = bucket

    @contextlib.contextmanager
    def open_writer(self, key: str) -> Generator[BinaryIO, None, None]:
        """Yields a streaming writer; the object is committed on close."""
        blob = self.bucket.blob(key)
        try:
            with blob.open("wb") as writer:
                yield writer
        except (
            gcloud_exceptions.GoogleAPIError,
            auth_exceptions.GoogleAuthError,
            storage_exceptions.InvalidResponse,
            storage_exceptions.DataCorruption,
        ) as e:
            raise UploadError(
                f"Write to gs://{self.bucket.name}/{key} failed: {e}"
            ) from e


class GcsObjectStore(ObjectStore):
    """
    Opens one storage client per session. Authentication follows the
    application default credentials of the environment.
    """

    def __init__(
        self,
        project: Optional[str] = None,
        client_factory: Callable[..., storage.Client] = storage.Client,
    ):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.project = project or None
        self.client_factory = client_factory

    @contextlib.contextmanager
    def session(self, bucket_name: str) -> Generator[GcsBucketSession, None, None]:
        try:
            client = self.client_factory(project=self.project)
        except (
            auth_exceptions.DefaultCredentialsError,
            gcloud_exceptions.GoogleAPIError,
        ) as e:
            raise UploadError(f"Cannot connect to object storage: {e}") from e

        self.logger.debug(f"Opened storage session for bucket {bucket_name}")
        try:
            yield GcsBucketSession(client.bucket(bucket_name))
        finally:
            client.close()
