"""Configuration-backed implementation of the CatalogSource port."""

import collections
import logging
from typing import Any, List, Sequence

from pydantic import ValidationError

from ..application.domain import CatalogEntry, CatalogSource
from ..application.exceptions import ConfigurationError

from .catalog_models import CatalogConfig, CatalogItem


class SettingsCatalogSource(CatalogSource):
    """A catalog read from the ordered URL list of the settings."""

    def __init__(self, urls: Sequence[Any]):
        """Initializes the catalog source."""
        self.logger = logging.getLogger(self.__class__.__name__)
        self.urls = list(urls or [])

    def _map_to_domain(self, ordinal: int, item: CatalogItem) -> CatalogEntry:
        """Maps a single validated item to a domain model."""
        return CatalogEntry(ordinal=ordinal, url=str(item.url))

    def _validate(self) -> CatalogConfig:
        """Validates the raw configuration value."""
        try:
            return CatalogConfig.model_validate({"urls": self.urls})
        except ValidationError as e:
            raise ConfigurationError(f"Invalid archive catalog: {e}") from e

    def _warn_on_repeats(self, config: CatalogConfig):
        """Logs URLs listed more than once; each occurrence is still processed."""
        counts = collections.Counter(str(item.url) for item in config.urls)
        repeated = sorted(url for url, count in counts.items() if count > 1)
        if repeated:
            self.logger.warning(
                f"Catalog lists {len(repeated)} URLs more than once: {repeated}"
            )

    def load(self) -> List[CatalogEntry]:
        """
        Validates and maps the configured archive list.

        Returns:
            Catalog entries numbered from 1 in configuration order.

        Raises:
            ConfigurationError: If a URL is malformed.
        """

        config = self._validate()
        self._warn_on_repeats(config)
        entries = [
            self._map_to_domain(ordinal, item)
            for ordinal, item in enumerate(config.urls, start=1)
        ]
        self.logger.info(f"Loaded catalog of {len(entries)} archives.")
        return entries
