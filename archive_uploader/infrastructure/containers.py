"""
Dependency Injection container for the archive_uploader component.

This container uses the `dependency-injector` library to wire together all
the components of the application, such as services and infrastructure adapters,
based on the application's configuration.
"""

from pathlib import Path

from dependency_injector import containers, providers
import httpx

from ..application.domain import *
from ..application.service import UploaderService

from .catalog_source import SettingsCatalogSource
from .downloader import HttpFetcher
from .storage import GcsObjectStore
from .unpacker import ZipUnpackerUploader


class Container(containers.DeclarativeContainer):
    """DI container for wiring the application components."""

    config = providers.Configuration()

    http_client = providers.Singleton(
        httpx.AsyncClient,
        follow_redirects=config.uploader.follow_redirects,
    )

    run_config = providers.Singleton(
        RunConfig,
        bucket_name=config.uploader.bucket_name,
        resume_at=config.uploader.resume_at.as_int(),
        parallel=config.uploader.parallel,
        remove_files=config.uploader.remove_files,
        scratch_dir=config.uploader.scratch_dir.as_(Path),
        scratch_name_template=config.uploader.scratch_name_template,
    )

    catalog_source: providers.Factory[CatalogSource] = providers.Factory(
        SettingsCatalogSource,
        urls=config.uploader.catalog.urls,
    )

    fetcher: providers.Factory[Fetcher] = providers.Factory(
        HttpFetcher,
        client=http_client,
        chunk_size=config.uploader.downloader.chunk_size.as_int(),
        timeout=config.uploader.timeout,
    )

    object_store: providers.Singleton[ObjectStore] = providers.Singleton(
        GcsObjectStore,
        project=config.uploader.gcp_project,
    )

    unpacker: providers.Factory[UnpackerUploader] = providers.Factory(
        ZipUnpackerUploader,
        object_store=object_store,
        chunk_size=config.uploader.unpacker.chunk_size.as_int(),
    )

    uploader_service = providers.Factory(
        UploaderService,
        catalog_source=catalog_source,
        fetcher=fetcher,
        unpacker=unpacker,
        config=run_config,
    )
